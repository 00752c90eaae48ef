"""Canonical test fixtures shared across engine, data and API tests.

Fixture portfolio: three loans modeled on a small CRE debt book.
  Office       $175.0M original / $165.0M current, 4.5%, interest-only, matures 2027
  Retail       $85.0M original  / $80.0M current,  5.5%, 25yr amortizing, matures 2026
  Multifamily  $32.0M original  / $30.5M current,  4.2%, 30yr amortizing, matures 2030
"""

import uuid
from collections import defaultdict
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from src.models.loan import (
    AmortizationType,
    LoanFilters,
    LoanNote,
    LoanPage,
    LoanRecord,
    LoanTerms,
)
from src.models.portfolio import PropertySnapshot

ORG_ID = "0b6f5d1e-8a62-4c4f-9d0e-3f1c2a7b9e11"
OTHER_ORG_ID = "7c1e9a44-2b3d-4e5f-8a9b-0c1d2e3f4a5b"

OFFICE_LOAN_ID = "11111111-1111-4111-8111-111111111111"
RETAIL_LOAN_ID = "22222222-2222-4222-8222-222222222222"
MULTIFAMILY_LOAN_ID = "33333333-3333-4333-8333-333333333333"
OTHER_ORG_LOAN_ID = "44444444-4444-4444-8444-444444444444"


class InMemoryLoanRepository:
    """LoanRepository backed by dicts. Counts fetches so tests can observe caching."""

    def __init__(self, loans: dict[str, list[LoanRecord]], properties: dict[str, list[PropertySnapshot]]):
        self.loans = {org: {loan.id: loan for loan in items} for org, items in loans.items()}
        self.properties = properties
        self.notes: dict[str, list[LoanNote]] = defaultdict(list)
        self.fetch_calls = 0

    @staticmethod
    def _matches(loan: LoanRecord, filters: LoanFilters) -> bool:
        if filters.property_type and loan.property_type != filters.property_type:
            return False
        if filters.lender and loan.lender != filters.lender:
            return False
        if filters.fund and loan.fund != filters.fund:
            return False
        if filters.status and loan.status != filters.status:
            return False
        if filters.search:
            needle = filters.search.lower()
            haystack = f"{loan.loan_number or ''} {loan.property_name or ''}".lower()
            if needle not in haystack:
                return False
        return True

    def _matching(self, organization_id: str, filters: LoanFilters) -> list[LoanRecord]:
        loans = [
            loan for loan in self.loans.get(organization_id, {}).values()
            if self._matches(loan, filters)
        ]
        return sorted(loans, key=lambda loan: loan.current_balance, reverse=True)

    async def fetch_loans(self, organization_id, filters, limit=None):
        self.fetch_calls += 1
        loans = self._matching(organization_id, filters)
        return loans[:limit] if limit is not None else loans

    async def fetch_loan_page(self, organization_id, filters, offset, limit):
        self.fetch_calls += 1
        loans = self._matching(organization_id, filters)
        return LoanPage(items=loans[offset:offset + limit], total=len(loans), offset=offset, limit=limit)

    async def get_loan(self, organization_id, loan_id):
        return self.loans.get(organization_id, {}).get(loan_id)

    async def update_loan(self, organization_id, loan_id, changes):
        loan = await self.get_loan(organization_id, loan_id)
        if loan is None:
            return None
        updated = replace(loan, **changes)
        self.loans[organization_id][loan_id] = updated
        return updated

    async def delete_loan(self, organization_id, loan_id):
        if await self.get_loan(organization_id, loan_id) is None:
            return False
        del self.loans[organization_id][loan_id]
        self.notes.pop(loan_id, None)
        return True

    async def fetch_properties(self, organization_id):
        return list(self.properties.get(organization_id, []))

    async def list_notes(self, loan_id):
        return list(reversed(self.notes[loan_id]))

    async def add_note(self, loan_id, author, content):
        note = LoanNote(id=str(uuid.uuid4()), loan_id=loan_id, author=author, content=content)
        self.notes[loan_id].append(note)
        return note

    async def delete_note(self, loan_id, note_id):
        before = len(self.notes[loan_id])
        self.notes[loan_id] = [n for n in self.notes[loan_id] if n.id != note_id]
        return len(self.notes[loan_id]) < before


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def canonical_terms() -> LoanTerms:
    """$30.5M at 4.2%, 30yr monthly, fully amortizing."""
    return LoanTerms(
        principal=Decimal("30500000"),
        annual_rate_percent=Decimal("4.2"),
        term_payments=360,
        payments_per_year=12,
        amortization_type=AmortizationType.FULLY_AMORTIZING,
    )


@pytest.fixture
def office_loan() -> LoanRecord:
    return LoanRecord(
        id=OFFICE_LOAN_ID,
        loan_number="LON-2024-001",
        current_balance=Decimal("165000000"),
        original_balance=Decimal("175000000"),
        interest_rate_percent=Decimal("4.5"),
        loan_to_value=Decimal("0.70"),
        status="CURRENT",
        origination_date=date(2022, 3, 15),
        maturity_date=date(2027, 3, 15),
        property_name="Manhattan Office Tower",
        property_type="OFFICE",
        lender="Metropolitan Life Insurance",
        fund="Debt Fund I",
        dscr=Decimal("1.35"),
        amortization_type=AmortizationType.INTEREST_ONLY,
        amortization_period_months=360,
    )


@pytest.fixture
def retail_loan() -> LoanRecord:
    return LoanRecord(
        id=RETAIL_LOAN_ID,
        loan_number="LON-2024-002",
        current_balance=Decimal("80000000"),
        original_balance=Decimal("85000000"),
        interest_rate_percent=Decimal("5.5"),
        loan_to_value=Decimal("0.75"),
        status="CURRENT",
        origination_date=date(2023, 6, 1),
        maturity_date=date(2026, 6, 1),
        property_name="Westfield Shopping Center",
        property_type="RETAIL",
        lender="Pacific Private Capital",
        fund="Value-Add Fund II",
        dscr=Decimal("1.25"),
        amortization_period_months=300,
    )


@pytest.fixture
def multifamily_loan() -> LoanRecord:
    return LoanRecord(
        id=MULTIFAMILY_LOAN_ID,
        loan_number="LON-2024-003",
        current_balance=Decimal("30500000"),
        original_balance=Decimal("32000000"),
        interest_rate_percent=Decimal("4.2"),
        loan_to_value=Decimal("0.65"),
        status="WATCHLIST",
        origination_date=date(2023, 1, 10),
        maturity_date=date(2030, 1, 10),
        property_name="Riverside Apartments",
        property_type="MULTIFAMILY",
        lender="First National Bank",
        dscr=Decimal("1.45"),
        amortization_period_months=360,
    )


@pytest.fixture
def portfolio_loans(office_loan, retail_loan, multifamily_loan) -> list[LoanRecord]:
    return [office_loan, retail_loan, multifamily_loan]


@pytest.fixture
def portfolio_properties() -> list[PropertySnapshot]:
    return [
        PropertySnapshot(
            name="Manhattan Office Tower",
            property_type="OFFICE",
            current_value=Decimal("275000000"),
            purchase_price=Decimal("250000000"),
            annual_noi=Decimal("18000000"),
            occupancy_rate=Decimal("0.92"),
        ),
        PropertySnapshot(
            name="Westfield Shopping Center",
            property_type="RETAIL",
            purchase_price=Decimal("120000000"),
            annual_noi=Decimal("8500000"),
            occupancy_rate=Decimal("0.88"),
        ),
        PropertySnapshot(
            name="Riverside Apartments",
            property_type="MULTIFAMILY",
            current_value=Decimal("45000000"),
            annual_noi=Decimal("2700000"),
        ),
    ]


@pytest.fixture
def other_org_loan(retail_loan) -> LoanRecord:
    return replace(retail_loan, id=OTHER_ORG_LOAN_ID, loan_number="EXT-001")


@pytest.fixture
def repository(portfolio_loans, portfolio_properties, other_org_loan) -> InMemoryLoanRepository:
    return InMemoryLoanRepository(
        loans={ORG_ID: portfolio_loans, OTHER_ORG_ID: [other_org_loan]},
        properties={ORG_ID: portfolio_properties},
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def org_id() -> str:
    return ORG_ID


@pytest.fixture
def other_org_id() -> str:
    return OTHER_ORG_ID
