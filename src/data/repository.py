"""SQLAlchemy-backed loan repository."""

import logging
import uuid
from typing import Any

from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.models.db import FundRow, LenderRow, LoanRow, NoteRow, PropertyRow
from src.models.loan import (
    AmortizationType,
    LoanFilters,
    LoanNote,
    LoanPage,
    LoanRecord,
    PaymentFrequency,
)
from src.models.portfolio import PropertySnapshot

logger = logging.getLogger(__name__)

# Fields a client may change through update_loan()
EDITABLE_FIELDS = frozenset({
    "current_balance",
    "original_balance",
    "interest_rate_percent",
    "loan_to_value",
    "dscr",
    "status",
    "maturity_date",
})


def _uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def loan_row_to_record(row: LoanRow) -> LoanRecord:
    return LoanRecord(
        id=str(row.id),
        loan_number=row.loan_number,
        current_balance=row.current_balance,
        original_balance=row.original_balance,
        interest_rate_percent=row.interest_rate_percent,
        loan_to_value=row.loan_to_value,
        status=row.status,
        maturity_date=row.maturity_date,
        origination_date=row.origination_date,
        property_name=row.property.name if row.property else None,
        property_type=row.property.property_type if row.property else None,
        lender=row.lender.name if row.lender else None,
        fund=row.fund.name if row.fund else None,
        dscr=row.dscr,
        amortization_type=AmortizationType(row.amortization_type),
        amortization_period_months=row.amortization_period_months,
        payment_frequency=PaymentFrequency(row.payment_frequency),
    )


def _note_row_to_note(row: NoteRow) -> LoanNote:
    return LoanNote(
        id=str(row.id),
        loan_id=str(row.loan_id),
        author=row.author,
        content=row.content,
        created_at=row.created_at,
    )


class SqlLoanRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _loan_query(self, organization_id: uuid.UUID, filters: LoanFilters) -> Select:
        stmt = select(LoanRow).where(LoanRow.organization_id == organization_id)

        if filters.property_type or filters.search:
            stmt = stmt.outerjoin(LoanRow.property)
        if filters.property_type:
            stmt = stmt.where(PropertyRow.property_type == filters.property_type)
        if filters.lender:
            stmt = stmt.join(LoanRow.lender).where(LenderRow.name == filters.lender)
        if filters.fund:
            stmt = stmt.join(LoanRow.fund).where(FundRow.name == filters.fund)
        if filters.status:
            stmt = stmt.where(LoanRow.status == filters.status)
        if filters.search:
            pattern = f"%{filters.search}%"
            stmt = stmt.where(or_(
                LoanRow.loan_number.ilike(pattern),
                PropertyRow.name.ilike(pattern),
            ))
        return stmt

    def _with_relations(self, stmt: Select) -> Select:
        return stmt.options(
            selectinload(LoanRow.property),
            selectinload(LoanRow.lender),
            selectinload(LoanRow.fund),
        )

    async def _get_row(self, organization_id: str, loan_id: str) -> LoanRow | None:
        org, lid = _uuid(organization_id), _uuid(loan_id)
        if org is None or lid is None:
            return None
        stmt = self._with_relations(
            select(LoanRow).where(LoanRow.id == lid, LoanRow.organization_id == org)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def fetch_loans(
        self, organization_id: str, filters: LoanFilters, limit: int | None = None
    ) -> list[LoanRecord]:
        org = _uuid(organization_id)
        if org is None:
            return []
        stmt = self._with_relations(self._loan_query(org, filters)).order_by(
            LoanRow.current_balance.desc(), LoanRow.loan_number
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return [loan_row_to_record(row) for row in result.scalars().all()]

    async def fetch_loan_page(
        self, organization_id: str, filters: LoanFilters, offset: int, limit: int
    ) -> LoanPage:
        org = _uuid(organization_id)
        if org is None:
            return LoanPage(items=[], total=0, offset=offset, limit=limit)

        base = self._loan_query(org, filters)
        total = await self.session.scalar(select(func.count()).select_from(base.subquery()))

        stmt = (
            self._with_relations(base)
            .order_by(LoanRow.current_balance.desc(), LoanRow.loan_number)
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        items = [loan_row_to_record(row) for row in result.scalars().all()]
        return LoanPage(items=items, total=total or 0, offset=offset, limit=limit)

    async def get_loan(self, organization_id: str, loan_id: str) -> LoanRecord | None:
        row = await self._get_row(organization_id, loan_id)
        return loan_row_to_record(row) if row is not None else None

    async def update_loan(
        self, organization_id: str, loan_id: str, changes: dict[str, Any]
    ) -> LoanRecord | None:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")

        row = await self._get_row(organization_id, loan_id)
        if row is None:
            return None
        for name, value in changes.items():
            setattr(row, name, value)
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception("Failed to update loan %s", loan_id)
            raise
        logger.info("Updated loan %s (%s)", loan_id, ", ".join(sorted(changes)))
        return loan_row_to_record(row)

    async def delete_loan(self, organization_id: str, loan_id: str) -> bool:
        row = await self._get_row(organization_id, loan_id)
        if row is None:
            return False
        try:
            await self.session.execute(delete(NoteRow).where(NoteRow.loan_id == row.id))
            await self.session.execute(delete(LoanRow).where(LoanRow.id == row.id))
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.exception("Failed to delete loan %s", loan_id)
            raise
        logger.info("Deleted loan %s", loan_id)
        return True

    async def fetch_properties(self, organization_id: str) -> list[PropertySnapshot]:
        org = _uuid(organization_id)
        if org is None:
            return []
        result = await self.session.execute(
            select(PropertyRow).where(PropertyRow.organization_id == org)
        )
        return [
            PropertySnapshot(
                name=row.name,
                property_type=row.property_type,
                current_value=row.current_value,
                purchase_price=row.purchase_price,
                annual_noi=row.annual_noi,
                occupancy_rate=row.occupancy_rate,
            )
            for row in result.scalars().all()
        ]

    async def list_notes(self, loan_id: str) -> list[LoanNote]:
        lid = _uuid(loan_id)
        if lid is None:
            return []
        result = await self.session.execute(
            select(NoteRow).where(NoteRow.loan_id == lid).order_by(NoteRow.created_at.desc())
        )
        return [_note_row_to_note(row) for row in result.scalars().all()]

    async def add_note(self, loan_id: str, author: str, content: str) -> LoanNote:
        row = NoteRow(loan_id=uuid.UUID(str(loan_id)), author=author, content=content)
        self.session.add(row)
        await self.session.commit()
        return _note_row_to_note(row)

    async def delete_note(self, loan_id: str, note_id: str) -> bool:
        lid, nid = _uuid(loan_id), _uuid(note_id)
        if lid is None or nid is None:
            return False
        result = await self.session.execute(
            delete(NoteRow).where(NoteRow.id == nid, NoteRow.loan_id == lid)
        )
        await self.session.commit()
        return result.rowcount > 0
