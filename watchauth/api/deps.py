"""FastAPI dependencies."""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from watchauth.config import settings
from watchauth.db.repository import HistoryRepository, ReferenceRepository
from watchauth.db.session import get_db


async def get_database() -> AsyncSession:
    """Dependency for database session."""
    async for session in get_db():
        yield session
        break  # Only yield once, as FastAPI handles the session lifecycle


async def get_reference_repository(db: AsyncSession = Depends(get_database)) -> ReferenceRepository:
    return ReferenceRepository(db)


async def get_history_repository(db: AsyncSession = Depends(get_database)) -> HistoryRepository:
    return HistoryRepository(db)


async def require_admin_api_key(
    x_admin_api_key: Optional[str] = Header(default=None, alias="X-Admin-API-Key")
) -> None:
    """
    Guard for reference writes.

    Open when no admin key is configured; otherwise the X-Admin-API-Key
    header must match it.

    Raises:
        HTTPException: 403 if the header is missing or wrong
    """
    if not settings.admin_api_key:
        return

    if x_admin_api_key != settings.admin_api_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin API key"
        )
