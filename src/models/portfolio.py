from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class PortfolioSummary:
    loan_count: int = 0
    total_current_balance: Decimal = Decimal("0")
    total_original_balance: Decimal = Decimal("0")
    weighted_average_interest_rate: Decimal = Decimal("0")  # Percent, weighted by current balance
    average_loan_to_value: Decimal = Decimal("0")
    status_distribution: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class DashboardMetrics:
    """Core summary plus the breakdowns shown on the debt dashboard."""
    summary: PortfolioSummary
    weighted_average_maturity_years: Decimal = Decimal("0")
    debt_by_property_type: dict[str, Decimal] = field(default_factory=dict)
    debt_by_lender: dict[str, Decimal] = field(default_factory=dict)
    debt_by_fund: dict[str, Decimal] = field(default_factory=dict)
    maturity_schedule: dict[int, Decimal] = field(default_factory=dict)  # Year -> balance maturing
    average_loan_size: Decimal = Decimal("0")
    largest_loan: Decimal = Decimal("0")
    property_count: int = 0

    @property
    def has_data(self) -> bool:
        return self.summary.loan_count > 0 or self.property_count > 0


@dataclass(frozen=True)
class PropertySnapshot:
    """Valuation and operating figures for a property backing a loan."""
    name: str
    property_type: str | None = None
    current_value: Decimal | None = None
    purchase_price: Decimal | None = None
    annual_noi: Decimal | None = None
    occupancy_rate: Decimal | None = None  # 0-1


@dataclass(frozen=True)
class ReportMetrics:
    total_portfolio_value: Decimal
    total_debt: Decimal
    average_dscr: Decimal
    average_ltv: Decimal
    total_noi: Decimal
    average_occupancy_rate: Decimal
    total_loans: int
    total_properties: int

    @property
    def has_data(self) -> bool:
        return self.total_loans > 0 or self.total_properties > 0
