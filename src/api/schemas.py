"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, Field, PlainSerializer, model_validator

# Decimals go out as JSON numbers, not strings
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


# ---- Request schemas ----

# Columns a PATCH may omit but never clear
NON_NULLABLE_LOAN_FIELDS = frozenset({
    "current_balance",
    "original_balance",
    "interest_rate_percent",
    "status",
    "maturity_date",
})


class LoanUpdateRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    current_balance: Decimal | None = Field(None, ge=0)
    original_balance: Decimal | None = Field(None, ge=0)
    interest_rate_percent: Decimal | None = Field(None, ge=0)
    loan_to_value: Decimal | None = Field(None, ge=0, le=1)
    dscr: Decimal | None = Field(None, ge=0)
    status: str | None = Field(None, min_length=1, max_length=50)
    maturity_date: date | None = None

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        nulled = sorted(
            name for name in self.model_fields_set
            if name in NON_NULLABLE_LOAN_FIELDS and getattr(self, name) is None
        )
        if nulled:
            raise ValueError(f"Fields cannot be null: {', '.join(nulled)}")
        return self


class NoteCreateRequest(BaseModel):
    content: str = Field(..., max_length=10_000)


# ---- Response schemas ----

class LoanResponse(BaseModel):
    id: str | None = None
    loan_number: str | None = None
    status: str
    current_balance: Money
    original_balance: Money
    interest_rate_percent: Money
    loan_to_value: Money | None = None
    dscr: Money | None = None
    origination_date: date | None = None
    maturity_date: date
    property_name: str | None = None
    property_type: str | None = None
    lender: str | None = None
    fund: str | None = None
    amortization_type: str
    amortization_period_months: int
    payment_frequency: str


class LoanPageResponse(BaseModel):
    items: list[LoanResponse]
    total: int
    offset: int
    limit: int


class PortfolioSummaryResponse(BaseModel):
    loan_count: int
    total_current_balance: Money
    total_original_balance: Money
    weighted_average_interest_rate: Money
    average_loan_to_value: Money
    status_distribution: dict[str, int]


class DashboardResponse(BaseModel):
    summary: PortfolioSummaryResponse
    weighted_average_maturity_years: Money
    debt_by_property_type: dict[str, Money]
    debt_by_lender: dict[str, Money]
    debt_by_fund: dict[str, Money]
    maturity_schedule: dict[int, Money]
    average_loan_size: Money
    largest_loan: Money
    property_count: int
    has_data: bool
    loans: list[LoanResponse]
    from_cache: bool = False


class ScheduleEntryResponse(BaseModel):
    period: int
    payment_amount: Money
    principal_portion: Money
    interest_portion: Money
    remaining_balance: Money


class ScheduleTotalsResponse(BaseModel):
    payment_count: int
    total_paid: Money
    total_interest: Money
    total_principal: Money


class AnnualDebtResponse(BaseModel):
    year: int
    principal: Money
    interest: Money
    debt_service: Money
    ending_balance: Money


class AmortizationScheduleResponse(BaseModel):
    loan_id: str
    amortization_type: str
    payments_per_year: int
    entries: list[ScheduleEntryResponse]
    totals: ScheduleTotalsResponse
    annual: list[AnnualDebtResponse]


class NoteResponse(BaseModel):
    id: str
    loan_id: str
    author: str
    content: str
    created_at: datetime


class ReportResponse(BaseModel):
    total_portfolio_value: Money
    total_debt: Money
    average_dscr: Money
    average_ltv: Money
    total_noi: Money
    average_occupancy_rate: Money
    total_loans: int
    total_properties: int
    has_data: bool
