from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum


class AmortizationType(Enum):
    FULLY_AMORTIZING = "fully_amortizing"
    INTEREST_ONLY = "interest_only"


class PaymentFrequency(Enum):
    ANNUAL = "annual"
    QUARTERLY = "quarterly"
    MONTHLY = "monthly"

    @property
    def payments_per_year(self) -> int:
        return {"annual": 1, "quarterly": 4, "monthly": 12}[self.value]


@dataclass(frozen=True)
class LoanTerms:
    """Inputs to the amortization engine."""
    principal: Decimal
    annual_rate_percent: Decimal  # 4.5 means 4.5%
    term_payments: int            # Number of scheduled payments, not months
    payments_per_year: int = 12   # 1, 4 or 12
    amortization_type: AmortizationType = AmortizationType.FULLY_AMORTIZING


@dataclass(frozen=True)
class ScheduleEntry:
    period: int
    payment_amount: Decimal
    principal_portion: Decimal
    interest_portion: Decimal
    remaining_balance: Decimal


@dataclass(frozen=True)
class ScheduleTotals:
    payment_count: int
    total_paid: Decimal
    total_interest: Decimal
    total_principal: Decimal


@dataclass(frozen=True)
class LoanRecord:
    """A loan as materialized from storage."""
    current_balance: Decimal
    original_balance: Decimal
    interest_rate_percent: Decimal
    status: str
    maturity_date: date
    loan_to_value: Decimal | None = None  # 0-1, None if unknown

    # Identity / display
    id: str | None = None
    loan_number: str | None = None
    origination_date: date | None = None
    property_name: str | None = None
    property_type: str | None = None
    lender: str | None = None
    fund: str | None = None

    # Credit metrics
    dscr: Decimal | None = None

    # Amortization terms
    amortization_type: AmortizationType = AmortizationType.FULLY_AMORTIZING
    amortization_period_months: int = 360
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY


@dataclass(frozen=True)
class LoanFilters:
    """Query parameters narrowing a loan collection. None means no filter."""
    property_type: str | None = None
    lender: str | None = None
    fund: str | None = None
    status: str | None = None
    search: str | None = None  # Matches loan number or property name

    def as_params(self) -> dict[str, str | None]:
        return {
            "property_type": self.property_type,
            "lender": self.lender,
            "fund": self.fund,
            "status": self.status,
            "search": self.search,
        }


@dataclass(frozen=True)
class LoanPage:
    items: list[LoanRecord]
    total: int
    offset: int
    limit: int


@dataclass(frozen=True)
class LoanNote:
    id: str
    loan_id: str
    author: str
    content: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
