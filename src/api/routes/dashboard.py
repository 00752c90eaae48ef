"""Dashboard routes."""

from fastapi import APIRouter, Depends

from src.api.deps import Caller, get_caller, get_loan_service
from src.api.routes.loans import loan_to_response
from src.api.schemas import DashboardResponse, PortfolioSummaryResponse
from src.data.loan_service import LoanService
from src.models.loan import LoanFilters

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    property_type: str | None = None,
    lender: str | None = None,
    fund: str | None = None,
    caller: Caller = Depends(get_caller),
    service: LoanService = Depends(get_loan_service),
):
    """Debt portfolio overview for the caller's organization, optionally filtered."""
    filters = LoanFilters(property_type=property_type, lender=lender, fund=fund)
    view = await service.dashboard(caller.organization_id, filters)

    m = view.metrics
    s = m.summary
    return DashboardResponse(
        summary=PortfolioSummaryResponse(
            loan_count=s.loan_count,
            total_current_balance=s.total_current_balance,
            total_original_balance=s.total_original_balance,
            weighted_average_interest_rate=s.weighted_average_interest_rate,
            average_loan_to_value=s.average_loan_to_value,
            status_distribution=s.status_distribution,
        ),
        weighted_average_maturity_years=m.weighted_average_maturity_years,
        debt_by_property_type=m.debt_by_property_type,
        debt_by_lender=m.debt_by_lender,
        debt_by_fund=m.debt_by_fund,
        maturity_schedule=m.maturity_schedule,
        average_loan_size=m.average_loan_size,
        largest_loan=m.largest_loan,
        property_count=m.property_count,
        has_data=m.has_data,
        loans=[loan_to_response(loan) for loan in view.loans],
        from_cache=view.from_cache,
    )
