"""Loan service: orchestrates the repository, the engines and the result cache.

Flow: repository → amortization / portfolio engines → cache → caller

Reads are memoized under the organization's key prefix. Every write goes
through this service and drops that prefix, so a dashboard never outlives
a change to the loans it was computed from. Reads note the prefix's
invalidation generation before touching the repository, and a result
computed across a write is returned but not cached.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from src.config import settings
from src.data.base import LoanRepository
from src.data.cache import NullCache, ResultCache, fingerprint, organization_prefix
from src.engine.amortization import compute_schedule, terms_from_loan
from src.engine.portfolio import dashboard_metrics
from src.engine.reports import report_metrics
from src.models.loan import LoanFilters, LoanNote, LoanPage, LoanRecord, ScheduleEntry
from src.models.portfolio import DashboardMetrics, ReportMetrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardView:
    metrics: DashboardMetrics
    loans: list[LoanRecord]  # Largest loans first, truncated for display
    from_cache: bool = False


@dataclass(frozen=True)
class ScheduleView:
    loan: LoanRecord
    entries: list[ScheduleEntry]
    payments_per_year: int


class LoanService:
    def __init__(
        self,
        repository: LoanRepository,
        cache: ResultCache | NullCache | None = None,
    ):
        self.repository = repository
        self.cache = cache if cache is not None else NullCache()

    # ── Cache access ────────────────────────────────────────────────

    def _cache_get(self, key: str) -> Any | None:
        try:
            return self.cache.get(key)
        except Exception:
            logger.warning("Result cache unavailable, recomputing %s", key)
            return None

    def _cache_generation(self, organization_id: str) -> int | None:
        try:
            return self.cache.generation(organization_prefix(organization_id))
        except Exception:
            logger.warning("Result cache unavailable, not caching for organization %s", organization_id)
            return None

    def _cache_put(self, key: str, value: Any, organization_id: str, generation: int | None) -> None:
        # A None generation means the cache was unreachable before the read
        if generation is None:
            return
        try:
            self.cache.put(key, value, generation=(organization_prefix(organization_id), generation))
        except Exception:
            logger.warning("Failed to write result cache for %s", key)

    def invalidate_organization(self, organization_id: str) -> None:
        try:
            self.cache.invalidate(organization_prefix(organization_id))
        except Exception:
            logger.warning("Failed to invalidate result cache for organization %s", organization_id)

    # ── Reads ───────────────────────────────────────────────────────

    async def dashboard(
        self,
        organization_id: str,
        filters: LoanFilters,
        as_of: date | None = None,
    ) -> DashboardView:
        as_of = as_of or date.today()
        key = fingerprint("dashboard", organization_id, as_of=as_of, **filters.as_params())
        cached = self._cache_get(key)
        if cached is not None:
            return DashboardView(metrics=cached.metrics, loans=cached.loans, from_cache=True)

        generation = self._cache_generation(organization_id)
        loans = await self.repository.fetch_loans(
            organization_id, filters, limit=settings.dashboard_loan_limit
        )
        properties = await self.repository.fetch_properties(organization_id)
        view = DashboardView(
            metrics=dashboard_metrics(loans, as_of=as_of, property_count=len(properties)),
            loans=loans[:settings.dashboard_sample_size],
        )
        logger.debug("Computed dashboard for %s over %d loans", organization_id, len(loans))
        self._cache_put(key, view, organization_id, generation)
        return view

    async def list_loans(
        self,
        organization_id: str,
        filters: LoanFilters,
        offset: int = 0,
        limit: int | None = None,
    ) -> LoanPage:
        limit = min(limit or settings.default_page_size, settings.max_page_size)
        offset = max(offset, 0)
        key = fingerprint("loans", organization_id, offset=offset, limit=limit, **filters.as_params())
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        generation = self._cache_generation(organization_id)
        page = await self.repository.fetch_loan_page(organization_id, filters, offset, limit)
        self._cache_put(key, page, organization_id, generation)
        return page

    async def get_loan(self, organization_id: str, loan_id: str) -> LoanRecord | None:
        return await self.repository.get_loan(organization_id, loan_id)

    async def amortization_schedule(
        self, organization_id: str, loan_id: str
    ) -> ScheduleView | None:
        """Schedule for a stored loan, or None if the loan does not exist.

        Raises:
            InvalidInputError: the stored terms cannot be amortized.
        """
        key = fingerprint("schedule", organization_id, loan_id=loan_id)
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        generation = self._cache_generation(organization_id)
        loan = await self.repository.get_loan(organization_id, loan_id)
        if loan is None:
            return None
        terms = terms_from_loan(loan)
        view = ScheduleView(
            loan=loan,
            entries=compute_schedule(terms),
            payments_per_year=terms.payments_per_year,
        )
        self._cache_put(key, view, organization_id, generation)
        return view

    async def report(self, organization_id: str) -> ReportMetrics:
        key = fingerprint("report", organization_id)
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        generation = self._cache_generation(organization_id)
        loans = await self.repository.fetch_loans(organization_id, LoanFilters())
        properties = await self.repository.fetch_properties(organization_id)
        metrics = report_metrics(loans, properties)
        self._cache_put(key, metrics, organization_id, generation)
        return metrics

    async def list_notes(self, organization_id: str, loan_id: str) -> list[LoanNote] | None:
        if await self.repository.get_loan(organization_id, loan_id) is None:
            return None
        return await self.repository.list_notes(loan_id)

    # ── Writes ──────────────────────────────────────────────────────

    async def update_loan(
        self, organization_id: str, loan_id: str, changes: dict[str, Any]
    ) -> LoanRecord | None:
        loan = await self.repository.update_loan(organization_id, loan_id, changes)
        if loan is not None:
            self.invalidate_organization(organization_id)
        return loan

    async def delete_loan(self, organization_id: str, loan_id: str) -> bool:
        deleted = await self.repository.delete_loan(organization_id, loan_id)
        if deleted:
            self.invalidate_organization(organization_id)
        return deleted

    async def add_note(
        self, organization_id: str, loan_id: str, author: str, content: str
    ) -> LoanNote | None:
        """Attach a note to a loan. Returns None if the loan is not in the organization.

        Raises:
            ValueError: content is blank.
        """
        content = content.strip()
        if not content:
            raise ValueError("Content is required")
        if await self.repository.get_loan(organization_id, loan_id) is None:
            return None
        return await self.repository.add_note(loan_id, author, content)

    async def delete_note(self, organization_id: str, loan_id: str, note_id: str) -> bool:
        if await self.repository.get_loan(organization_id, loan_id) is None:
            return False
        return await self.repository.delete_note(loan_id, note_id)
