"""Protocol definitions for data sources.

The repository is the only seam between the service layer and storage.
Implementations materialize rows into the plain dataclasses the engine
consumes, and scope every query to one organization.
"""

from typing import Any, Protocol, runtime_checkable

from src.models.loan import LoanFilters, LoanNote, LoanPage, LoanRecord
from src.models.portfolio import PropertySnapshot


@runtime_checkable
class LoanRepository(Protocol):
    async def fetch_loans(
        self, organization_id: str, filters: LoanFilters, limit: int | None = None
    ) -> list[LoanRecord]:
        """Fetch loans matching filters, largest current balance first."""
        ...

    async def fetch_loan_page(
        self, organization_id: str, filters: LoanFilters, offset: int, limit: int
    ) -> LoanPage:
        """Fetch one page of loans plus the total match count."""
        ...

    async def get_loan(self, organization_id: str, loan_id: str) -> LoanRecord | None:
        """Fetch a single loan, or None if it does not belong to the organization."""
        ...

    async def update_loan(
        self, organization_id: str, loan_id: str, changes: dict[str, Any]
    ) -> LoanRecord | None:
        """Apply field changes to a loan and return the updated record."""
        ...

    async def delete_loan(self, organization_id: str, loan_id: str) -> bool:
        """Delete a loan and its notes. Returns False if it was not found."""
        ...

    async def fetch_properties(self, organization_id: str) -> list[PropertySnapshot]:
        """Fetch valuation snapshots for every property in the organization."""
        ...

    async def list_notes(self, loan_id: str) -> list[LoanNote]:
        """Notes on a loan, newest first."""
        ...

    async def add_note(self, loan_id: str, author: str, content: str) -> LoanNote:
        ...

    async def delete_note(self, loan_id: str, note_id: str) -> bool:
        ...
