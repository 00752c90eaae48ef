"""Loan routes: listing, detail, updates, amortization schedule and notes."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from src.api.deps import Caller, get_caller, get_loan_service
from src.api.schemas import (
    AmortizationScheduleResponse,
    AnnualDebtResponse,
    LoanPageResponse,
    LoanResponse,
    LoanUpdateRequest,
    NoteCreateRequest,
    NoteResponse,
    ScheduleEntryResponse,
    ScheduleTotalsResponse,
)
from src.data.loan_service import LoanService, ScheduleView
from src.engine.amortization import annual_summary, schedule_totals
from src.models.loan import LoanFilters, LoanNote, LoanRecord

router = APIRouter(prefix="/api/v1/loans", tags=["loans"])


def loan_to_response(loan: LoanRecord) -> LoanResponse:
    return LoanResponse(
        id=loan.id,
        loan_number=loan.loan_number,
        status=loan.status,
        current_balance=loan.current_balance,
        original_balance=loan.original_balance,
        interest_rate_percent=loan.interest_rate_percent,
        loan_to_value=loan.loan_to_value,
        dscr=loan.dscr,
        origination_date=loan.origination_date,
        maturity_date=loan.maturity_date,
        property_name=loan.property_name,
        property_type=loan.property_type,
        lender=loan.lender,
        fund=loan.fund,
        amortization_type=loan.amortization_type.value,
        amortization_period_months=loan.amortization_period_months,
        payment_frequency=loan.payment_frequency.value,
    )


def _note_to_response(note: LoanNote) -> NoteResponse:
    return NoteResponse(
        id=note.id,
        loan_id=note.loan_id,
        author=note.author,
        content=note.content,
        created_at=note.created_at,
    )


def _schedule_to_response(view: ScheduleView) -> AmortizationScheduleResponse:
    totals = schedule_totals(view.entries)
    return AmortizationScheduleResponse(
        loan_id=view.loan.id or "",
        amortization_type=view.loan.amortization_type.value,
        payments_per_year=view.payments_per_year,
        entries=[
            ScheduleEntryResponse(
                period=e.period,
                payment_amount=e.payment_amount,
                principal_portion=e.principal_portion,
                interest_portion=e.interest_portion,
                remaining_balance=e.remaining_balance,
            )
            for e in view.entries
        ],
        totals=ScheduleTotalsResponse(
            payment_count=totals.payment_count,
            total_paid=totals.total_paid,
            total_interest=totals.total_interest,
            total_principal=totals.total_principal,
        ),
        annual=[
            AnnualDebtResponse(**year)
            for year in annual_summary(view.entries, view.payments_per_year)
        ],
    )


@router.get("", response_model=LoanPageResponse)
async def list_loans(
    property_type: str | None = None,
    lender: str | None = None,
    fund: str | None = None,
    status: str | None = None,
    search: str | None = None,
    offset: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1),
    caller: Caller = Depends(get_caller),
    service: LoanService = Depends(get_loan_service),
):
    filters = LoanFilters(
        property_type=property_type, lender=lender, fund=fund, status=status, search=search
    )
    page = await service.list_loans(caller.organization_id, filters, offset=offset, limit=limit)
    return LoanPageResponse(
        items=[loan_to_response(loan) for loan in page.items],
        total=page.total,
        offset=page.offset,
        limit=page.limit,
    )


@router.get("/{loan_id}", response_model=LoanResponse)
async def get_loan(
    loan_id: UUID,
    caller: Caller = Depends(get_caller),
    service: LoanService = Depends(get_loan_service),
):
    loan = await service.get_loan(caller.organization_id, str(loan_id))
    if loan is None:
        raise HTTPException(status_code=404, detail="Loan not found")
    return loan_to_response(loan)


@router.patch("/{loan_id}", response_model=LoanResponse)
async def update_loan(
    loan_id: UUID,
    req: LoanUpdateRequest,
    caller: Caller = Depends(get_caller),
    service: LoanService = Depends(get_loan_service),
):
    changes = req.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    loan = await service.update_loan(caller.organization_id, str(loan_id), changes)
    if loan is None:
        raise HTTPException(status_code=404, detail="Loan not found")
    return loan_to_response(loan)


@router.delete("/{loan_id}", status_code=204)
async def delete_loan(
    loan_id: UUID,
    caller: Caller = Depends(get_caller),
    service: LoanService = Depends(get_loan_service),
):
    if not await service.delete_loan(caller.organization_id, str(loan_id)):
        raise HTTPException(status_code=404, detail="Loan not found")
    return Response(status_code=204)


@router.get("/{loan_id}/amortization-schedule", response_model=AmortizationScheduleResponse)
async def get_amortization_schedule(
    loan_id: UUID,
    caller: Caller = Depends(get_caller),
    service: LoanService = Depends(get_loan_service),
):
    """Payment-by-payment schedule computed from the loan's stored terms.

    Invalid stored terms surface as 400 through the app's InvalidInputError handler.
    """
    view = await service.amortization_schedule(caller.organization_id, str(loan_id))
    if view is None:
        raise HTTPException(status_code=404, detail="Loan not found")
    return _schedule_to_response(view)


@router.get("/{loan_id}/notes", response_model=list[NoteResponse])
async def list_notes(
    loan_id: UUID,
    caller: Caller = Depends(get_caller),
    service: LoanService = Depends(get_loan_service),
):
    notes = await service.list_notes(caller.organization_id, str(loan_id))
    if notes is None:
        raise HTTPException(status_code=404, detail="Loan not found")
    return [_note_to_response(n) for n in notes]


@router.post("/{loan_id}/notes", response_model=NoteResponse, status_code=201)
async def create_note(
    loan_id: UUID,
    req: NoteCreateRequest,
    caller: Caller = Depends(get_caller),
    service: LoanService = Depends(get_loan_service),
):
    try:
        note = await service.add_note(caller.organization_id, str(loan_id), caller.email, req.content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if note is None:
        raise HTTPException(status_code=404, detail="Loan not found")
    return _note_to_response(note)


@router.delete("/{loan_id}/notes/{note_id}", status_code=204)
async def delete_note(
    loan_id: UUID,
    note_id: UUID,
    caller: Caller = Depends(get_caller),
    service: LoanService = Depends(get_loan_service),
):
    if not await service.delete_note(caller.organization_id, str(loan_id), str(note_id)):
        raise HTTPException(status_code=404, detail="Note not found")
    return Response(status_code=204)
