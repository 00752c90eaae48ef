"""Report routes."""

from fastapi import APIRouter, Depends

from src.api.deps import Caller, get_caller, get_loan_service
from src.api.schemas import ReportResponse
from src.data.loan_service import LoanService

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get("", response_model=ReportResponse)
async def get_report(
    caller: Caller = Depends(get_caller),
    service: LoanService = Depends(get_loan_service),
):
    r = await service.report(caller.organization_id)
    return ReportResponse(
        total_portfolio_value=r.total_portfolio_value,
        total_debt=r.total_debt,
        average_dscr=r.average_dscr,
        average_ltv=r.average_ltv,
        total_noi=r.total_noi,
        average_occupancy_rate=r.average_occupancy_rate,
        total_loans=r.total_loans,
        total_properties=r.total_properties,
        has_data=r.has_data,
    )
