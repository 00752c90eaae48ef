"""Portfolio aggregation over materialized loan records.

Pure computation. Records are taken as-is: negative balances or
out-of-range LTVs flow through the arithmetic rather than being rejected.
Aggregates are rounded once, on the final value.
"""

from collections import Counter, defaultdict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from src.models.loan import LoanRecord
from src.models.portfolio import DashboardMetrics, PortfolioSummary

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")
DAYS_PER_YEAR = Decimal("365")
UNASSIGNED = "Unassigned"


def _round(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, ROUND_HALF_UP)


def weighted_average_rate(loans: list[LoanRecord]) -> Decimal:
    """Interest rate weighted by current balance, unrounded. 0 if no balance."""
    total = sum((loan.current_balance for loan in loans), ZERO)
    if total <= 0:
        return ZERO
    weighted = sum((loan.current_balance * loan.interest_rate_percent for loan in loans), ZERO)
    return weighted / total


def average_positive(values: list[Decimal | None]) -> Decimal:
    """Mean of the values that are present and greater than zero."""
    present = [v for v in values if v is not None and v > 0]
    if not present:
        return ZERO
    return sum(present, ZERO) / len(present)


def summarize(loans: list[LoanRecord]) -> PortfolioSummary:
    """Compute the core portfolio summary for a loan collection."""
    total_current = sum((loan.current_balance for loan in loans), ZERO)
    total_original = sum((loan.original_balance for loan in loans), ZERO)

    return PortfolioSummary(
        loan_count=len(loans),
        total_current_balance=_round(total_current),
        total_original_balance=_round(total_original),
        weighted_average_interest_rate=_round(weighted_average_rate(loans)),
        average_loan_to_value=_round(average_positive([loan.loan_to_value for loan in loans])),
        status_distribution=dict(Counter(loan.status for loan in loans)),
    )


def _balance_by(loans: list[LoanRecord], key) -> dict:
    totals: dict = defaultdict(lambda: ZERO)
    for loan in loans:
        totals[key(loan)] += loan.current_balance
    return {k: _round(v) for k, v in totals.items()}


def weighted_average_maturity(loans: list[LoanRecord], as_of: date) -> Decimal:
    """Years to maturity weighted by current balance; matured loans count as 0."""
    total = sum((loan.current_balance for loan in loans), ZERO)
    if total <= 0:
        return ZERO
    weighted = ZERO
    for loan in loans:
        years = Decimal((loan.maturity_date - as_of).days) / DAYS_PER_YEAR
        weighted += loan.current_balance * max(ZERO, years)
    return weighted / total


def dashboard_metrics(
    loans: list[LoanRecord],
    as_of: date | None = None,
    property_count: int = 0,
) -> DashboardMetrics:
    """Core summary plus the dashboard's composition and maturity breakdowns.

    property_count is the organization's property total, independent of
    the loan filters; it only feeds has_data.
    """
    as_of = as_of or date.today()
    summary = summarize(loans)
    total_current = sum((loan.current_balance for loan in loans), ZERO)

    return DashboardMetrics(
        summary=summary,
        weighted_average_maturity_years=_round(weighted_average_maturity(loans, as_of)),
        debt_by_property_type=_balance_by(loans, lambda loan: loan.property_type or UNASSIGNED),
        debt_by_lender=_balance_by(loans, lambda loan: loan.lender or UNASSIGNED),
        debt_by_fund=_balance_by(loans, lambda loan: loan.fund or UNASSIGNED),
        maturity_schedule=dict(sorted(_balance_by(loans, lambda loan: loan.maturity_date.year).items())),
        average_loan_size=_round(total_current / len(loans)) if loans else ZERO,
        largest_loan=_round(max(loan.current_balance for loan in loans)) if loans else ZERO,
        property_count=property_count,
    )
