"""FastAPI dependency injection."""

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from src.config import settings
from src.data.cache import NullCache, ResultCache
from src.data.loan_service import LoanService
from src.data.repository import SqlLoanRepository

engine = create_async_engine(settings.database_url, echo=settings.debug)
async_session = async_sessionmaker(engine, expire_on_commit=False)


def build_cache() -> ResultCache | NullCache:
    if not settings.result_cache_enabled:
        return NullCache()
    return ResultCache(
        ttl_seconds=settings.result_cache_ttl_seconds,
        max_entries=settings.result_cache_max_entries,
    )


# One cache per process, shared by every request
result_cache = build_cache()


@dataclass(frozen=True)
class Caller:
    organization_id: str
    email: str


async def get_db() -> AsyncSession:
    async with async_session() as session:
        yield session


def get_cache() -> ResultCache | NullCache:
    return result_cache


def get_caller(
    x_organization_id: UUID | None = Header(None),
    x_user_email: str | None = Header(None),
) -> Caller:
    """Identity forwarded by the authenticating gateway."""
    if x_organization_id is None:
        raise HTTPException(status_code=401, detail="Not authorized")
    return Caller(organization_id=str(x_organization_id), email=x_user_email or "unknown")


def get_loan_service(
    session: AsyncSession = Depends(get_db),
    cache: ResultCache | NullCache = Depends(get_cache),
) -> LoanService:
    return LoanService(SqlLoanRepository(session), cache)
