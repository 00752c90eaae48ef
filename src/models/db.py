"""SQLAlchemy ORM models for PostgreSQL persistence."""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class OrganizationRow(Base):
    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    name: Mapped[str] = mapped_column(String(255))

    loans: Mapped[list["LoanRow"]] = relationship(back_populates="organization")
    properties: Mapped[list["PropertyRow"]] = relationship(back_populates="organization")


class PropertyRow(Base):
    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("organizations.id"), index=True)

    name: Mapped[str] = mapped_column(String(255))
    address: Mapped[str] = mapped_column(String(255), default="")
    city: Mapped[str] = mapped_column(String(100), default="")
    state: Mapped[str] = mapped_column(String(2), default="")
    property_type: Mapped[str] = mapped_column(String(50), default="OTHER")  # OFFICE, RETAIL, MULTIFAMILY...

    # Valuation & operations
    purchase_price: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    current_value: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    annual_noi: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    occupancy_rate: Mapped[Decimal | None] = mapped_column(Numeric(5, 4), nullable=True)

    organization: Mapped["OrganizationRow"] = relationship(back_populates="properties")
    loans: Mapped[list["LoanRow"]] = relationship(back_populates="property")


class LenderRow(Base):
    __tablename__ = "lenders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("organizations.id"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    lender_type: Mapped[str] = mapped_column(String(50), default="BANK")


class FundRow(Base):
    __tablename__ = "funds"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("organizations.id"), index=True)
    name: Mapped[str] = mapped_column(String(255))


class LoanRow(Base):
    __tablename__ = "loans"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    organization_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("organizations.id"), index=True)
    property_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("properties.id"), nullable=True)
    lender_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("lenders.id"), nullable=True)
    fund_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("funds.id"), nullable=True)

    loan_number: Mapped[str] = mapped_column(String(50))
    status: Mapped[str] = mapped_column(String(50), default="CURRENT")

    # Balances
    original_balance: Mapped[Decimal] = mapped_column(Numeric(15, 2))
    current_balance: Mapped[Decimal] = mapped_column(Numeric(15, 2))

    # Terms
    interest_rate_percent: Mapped[Decimal] = mapped_column(Numeric(7, 4))
    amortization_type: Mapped[str] = mapped_column(String(30), default="fully_amortizing")
    # Stored in months (360 = 30 years), not years; converted to payments by frequency
    amortization_period_months: Mapped[int] = mapped_column(Integer, default=360)
    payment_frequency: Mapped[str] = mapped_column(String(20), default="monthly")
    origination_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    maturity_date: Mapped[date] = mapped_column(Date)

    # Credit metrics
    loan_to_value: Mapped[Decimal | None] = mapped_column(Numeric(5, 4), nullable=True)
    dscr: Mapped[Decimal | None] = mapped_column(Numeric(6, 3), nullable=True)

    organization: Mapped["OrganizationRow"] = relationship(back_populates="loans")
    property: Mapped[Optional["PropertyRow"]] = relationship(back_populates="loans")
    lender: Mapped[Optional["LenderRow"]] = relationship()
    fund: Mapped[Optional["FundRow"]] = relationship()
    notes: Mapped[list["NoteRow"]] = relationship(
        back_populates="loan", cascade="all, delete-orphan"
    )


class NoteRow(Base):
    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    loan_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("loans.id"), index=True)
    author: Mapped[str] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text)

    loan: Mapped["LoanRow"] = relationship(back_populates="notes")
