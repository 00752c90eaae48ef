"""Portfolio report metrics: valuation, coverage and occupancy across loans and properties."""

from decimal import Decimal, ROUND_HALF_UP

from src.engine.portfolio import average_positive
from src.models.loan import LoanRecord
from src.models.portfolio import PropertySnapshot, ReportMetrics

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")


def property_value(prop: PropertySnapshot) -> Decimal:
    """Current value if appraised, otherwise purchase price, otherwise 0."""
    return prop.current_value or prop.purchase_price or ZERO


def report_metrics(
    loans: list[LoanRecord],
    properties: list[PropertySnapshot],
) -> ReportMetrics:
    """Compute report metrics.

    Averages (DSCR, LTV, occupancy) only consider records carrying a
    positive value, so missing data does not drag the mean toward zero.
    """
    def q(value: Decimal) -> Decimal:
        return value.quantize(TWO_PLACES, ROUND_HALF_UP)

    return ReportMetrics(
        total_portfolio_value=q(sum((property_value(p) for p in properties), ZERO)),
        total_debt=q(sum((loan.current_balance for loan in loans), ZERO)),
        average_dscr=q(average_positive([loan.dscr for loan in loans])),
        average_ltv=q(average_positive([loan.loan_to_value for loan in loans])),
        total_noi=q(sum((p.annual_noi or ZERO for p in properties), ZERO)),
        average_occupancy_rate=q(average_positive([p.occupancy_rate for p in properties])),
        total_loans=len(loans),
        total_properties=len(properties),
    )
