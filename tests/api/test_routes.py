from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from src.api.app import app
from src.api.deps import get_loan_service
from src.data.cache import ResultCache
from src.data.loan_service import LoanService

OFFICE = "11111111-1111-4111-8111-111111111111"
MULTIFAMILY = "33333333-3333-4333-8333-333333333333"
FOREIGN = "44444444-4444-4444-8444-444444444444"


@pytest.fixture
def service(repository, clock) -> LoanService:
    return LoanService(repository, ResultCache(ttl_seconds=300, max_entries=100, clock=clock))


@pytest.fixture
def client(service, org_id):
    app.dependency_overrides[get_loan_service] = lambda: service
    with TestClient(app, headers={"X-Organization-Id": org_id, "X-User-Email": "analyst@example.com"}) as c:
        yield c
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_missing_organization_header(service):
    app.dependency_overrides[get_loan_service] = lambda: service
    try:
        resp = TestClient(app).get("/api/v1/dashboard")
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 401


class TestDashboard:
    def test_summary(self, client):
        resp = client.get("/api/v1/dashboard")
        assert resp.status_code == 200
        body = resp.json()
        assert body["summary"]["loan_count"] == 3
        assert body["summary"]["total_current_balance"] == 275500000.0
        assert body["summary"]["weighted_average_interest_rate"] == 4.76
        assert body["summary"]["status_distribution"] == {"CURRENT": 2, "WATCHLIST": 1}
        assert body["debt_by_fund"]["Unassigned"] == 30500000.0
        assert body["maturity_schedule"]["2027"] == 165000000.0
        assert body["largest_loan"] == 165000000.0
        assert body["property_count"] == 3
        assert body["has_data"] is True
        assert len(body["loans"]) == 3

    def test_second_request_from_cache(self, client, repository):
        assert client.get("/api/v1/dashboard").json()["from_cache"] is False
        assert client.get("/api/v1/dashboard").json()["from_cache"] is True
        assert repository.fetch_calls == 1

    def test_filtered(self, client):
        body = client.get("/api/v1/dashboard", params={"lender": "Pacific Private Capital"}).json()
        assert body["summary"]["loan_count"] == 1
        assert body["summary"]["total_current_balance"] == 80000000.0


class TestLoans:
    def test_list_paginated(self, client):
        body = client.get("/api/v1/loans", params={"limit": 2}).json()
        assert body["total"] == 3
        assert body["limit"] == 2
        assert [item["id"] for item in body["items"]][0] == OFFICE

    def test_list_filtered(self, client):
        body = client.get("/api/v1/loans", params={"status": "WATCHLIST"}).json()
        assert [item["id"] for item in body["items"]] == [MULTIFAMILY]

    def test_negative_offset_rejected(self, client):
        assert client.get("/api/v1/loans", params={"offset": -1}).status_code == 422

    def test_get_loan(self, client):
        body = client.get(f"/api/v1/loans/{OFFICE}").json()
        assert body["loan_number"] == "LON-2024-001"
        assert body["amortization_type"] == "interest_only"
        assert body["loan_to_value"] == 0.7

    def test_other_organization_loan_not_found(self, client):
        assert client.get(f"/api/v1/loans/{FOREIGN}").status_code == 404

    def test_malformed_id(self, client):
        assert client.get("/api/v1/loans/not-a-uuid").status_code == 422


class TestUpdateLoan:
    def test_update_invalidates_dashboard(self, client):
        client.get("/api/v1/dashboard")
        resp = client.patch(f"/api/v1/loans/{OFFICE}", json={"current_balance": 160000000})
        assert resp.status_code == 200
        assert resp.json()["current_balance"] == 160000000.0

        body = client.get("/api/v1/dashboard").json()
        assert body["from_cache"] is False
        assert body["summary"]["total_current_balance"] == 270500000.0

    def test_empty_update(self, client):
        assert client.patch(f"/api/v1/loans/{OFFICE}", json={}).status_code == 400

    def test_ltv_out_of_range(self, client):
        assert client.patch(f"/api/v1/loans/{OFFICE}", json={"loan_to_value": 1.5}).status_code == 422

    @pytest.mark.parametrize("field", ["status", "current_balance", "interest_rate_percent", "maturity_date"])
    def test_null_for_required_field(self, client, field):
        resp = client.patch(f"/api/v1/loans/{OFFICE}", json={field: None})
        assert resp.status_code == 422
        assert client.get(f"/api/v1/loans/{OFFICE}").json()["status"] == "CURRENT"

    def test_null_clears_optional_field(self, client):
        resp = client.patch(f"/api/v1/loans/{OFFICE}", json={"dscr": None})
        assert resp.status_code == 200
        assert resp.json()["dscr"] is None

    def test_update_other_organization(self, client):
        assert client.patch(f"/api/v1/loans/{FOREIGN}", json={"status": "DEFAULT"}).status_code == 404

    def test_delete(self, client):
        assert client.delete(f"/api/v1/loans/{OFFICE}").status_code == 204
        assert client.get(f"/api/v1/loans/{OFFICE}").status_code == 404
        assert client.delete(f"/api/v1/loans/{OFFICE}").status_code == 404


class TestAmortizationSchedule:
    def test_schedule(self, client):
        resp = client.get(f"/api/v1/loans/{MULTIFAMILY}/amortization-schedule")
        assert resp.status_code == 200
        body = resp.json()
        assert body["payments_per_year"] == 12
        assert len(body["entries"]) == 360
        assert body["entries"][0]["interest_portion"] == 112000.0
        assert body["entries"][-1]["remaining_balance"] == 0.0
        assert body["totals"]["total_principal"] == 32000000.0
        assert len(body["annual"]) == 30

    def test_interest_only_schedule(self, client):
        body = client.get(f"/api/v1/loans/{OFFICE}/amortization-schedule").json()
        assert body["amortization_type"] == "interest_only"
        assert all(e["principal_portion"] == 0.0 for e in body["entries"])
        assert body["entries"][-1]["remaining_balance"] == 175000000.0

    def test_invalid_stored_terms(self, client, repository, org_id):
        loan = repository.loans[org_id][MULTIFAMILY]
        repository.loans[org_id][MULTIFAMILY] = replace(loan, amortization_period_months=0)
        resp = client.get(f"/api/v1/loans/{MULTIFAMILY}/amortization-schedule")
        assert resp.status_code == 400
        assert resp.json()["field"] == "term_payments"
        assert resp.json()["detail"].startswith("Invalid loan terms")

    def test_missing_loan(self, client):
        assert client.get(f"/api/v1/loans/{FOREIGN}/amortization-schedule").status_code == 404


class TestNotes:
    def test_note_flow(self, client):
        resp = client.post(f"/api/v1/loans/{OFFICE}/notes", json={"content": "Refinance discussion"})
        assert resp.status_code == 201
        note = resp.json()
        assert note["author"] == "analyst@example.com"

        notes = client.get(f"/api/v1/loans/{OFFICE}/notes").json()
        assert [n["id"] for n in notes] == [note["id"]]

        assert client.delete(f"/api/v1/loans/{OFFICE}/notes/{note['id']}").status_code == 204
        assert client.get(f"/api/v1/loans/{OFFICE}/notes").json() == []

    def test_blank_note(self, client):
        resp = client.post(f"/api/v1/loans/{OFFICE}/notes", json={"content": "   "})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Content is required"

    def test_note_on_other_organization_loan(self, client):
        resp = client.post(f"/api/v1/loans/{FOREIGN}/notes", json={"content": "hi"})
        assert resp.status_code == 404
        assert client.get(f"/api/v1/loans/{FOREIGN}/notes").status_code == 404


class TestReports:
    def test_report(self, client):
        body = client.get("/api/v1/reports").json()
        assert body["total_portfolio_value"] == 440000000.0
        assert body["total_debt"] == 275500000.0
        assert body["average_dscr"] == 1.35
        assert body["average_occupancy_rate"] == 0.9
        assert body["total_loans"] == 3
        assert body["has_data"] is True

    def test_empty_organization(self, client, service):
        body = client.get(
            "/api/v1/reports", headers={"X-Organization-Id": "9d8c7b6a-5f4e-4d3c-8b2a-1f0e9d8c7b6a"}
        ).json()
        assert body["has_data"] is False
        assert body["total_debt"] == 0.0
