"""Persistence gateway over the reference and analysis-history tables.

Repositories wrap an ``AsyncSession`` and expose typed operations. Database
failures are rolled back and re-raised as ``BackendError`` with the
original message attached; missing targets raise ``NotFoundError``.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from typing import Any, Generic, Iterable, List, Optional, Sequence, TypeVar

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from watchauth import metrics
from watchauth.db.models import AnalysisHistory, ReferenceWatch, VerificationStatus, utcnow
from watchauth.db.updates import PHYSICAL_COLUMNS, ReferenceUpdate
from watchauth.errors import BackendError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Columns a create payload may set
REFERENCE_COLUMNS = (
    "brand",
    "model_name",
    "collection_family",
    "reference_number",
    "watch_identity",
    "case_material",
    "dial_color",
    "bracelet_type",
    "physical_observations",
    "condition_baseline",
    "authenticity_indicators",
    "verification_status",
    "verified_by",
    "verified_at",
    "source",
    "notes",
)

HISTORY_COLUMNS = (
    "analysis_data",
    "photo_urls",
    "primary_photo_url",
    "brand",
    "model_name",
    "reference_number",
    "confidence_level",
    "overall_grade",
    "match_results",
    "best_match_score",
    "session_id",
    "user_id",
    "photo_count",
    "analysis_duration_ms",
)


@dataclass
class Page(Generic[T]):
    """One page of an offset-paginated listing."""

    items: List[T]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
        }


@dataclass
class ReferenceFilters:
    brand: Optional[str] = None
    model: Optional[str] = None
    status: Optional[str] = None
    search: Optional[str] = None


@dataclass
class HistoryFilters:
    brand: Optional[str] = None
    confidence: Optional[str] = None


def _like_pattern(text: str) -> str:
    """Substring pattern with LIKE wildcards in the input escaped."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _contains(column, text: str):
    return column.ilike(_like_pattern(text), escape="\\")


class _Repository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fail(self, operation: str, exc: SQLAlchemyError):
        """Roll back and translate a database error."""
        try:
            await self.db.rollback()
        except SQLAlchemyError:
            logger.exception(f"Rollback after failed {operation} also failed")
        metrics.db_errors_total.labels(operation=operation).inc()
        logger.error(f"{operation} failed: {exc}")
        raise BackendError(f"{operation} failed", detail=str(exc)) from exc

    async def _paginate(self, model, conditions: Sequence[Any], order_by: Sequence[Any],
                        page: int, limit: int, operation: str) -> Page:
        try:
            count_query = select(func.count()).select_from(model).where(*conditions)
            total = (await self.db.execute(count_query)).scalar_one()

            query = (
                select(model)
                .where(*conditions)
                .order_by(*order_by)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            items = list((await self.db.execute(query)).scalars().all())
        except SQLAlchemyError as e:
            await self._fail(operation, e)

        return Page(items=items, page=page, limit=limit, total=total)


class ReferenceRepository(_Repository):
    """CRUD over reference watches."""

    def _conditions(self, filters: ReferenceFilters) -> list:
        conditions = []
        if filters.brand:
            conditions.append(_contains(ReferenceWatch.brand, filters.brand))
        if filters.model:
            conditions.append(_contains(ReferenceWatch.model_name, filters.model))
        if filters.status:
            conditions.append(ReferenceWatch.verification_status == filters.status)
        if filters.search:
            conditions.append(
                or_(
                    _contains(ReferenceWatch.brand, filters.search),
                    _contains(ReferenceWatch.model_name, filters.search),
                    _contains(ReferenceWatch.collection_family, filters.search),
                    _contains(ReferenceWatch.reference_number, filters.search),
                )
            )
        return conditions

    async def list(self, filters: Optional[ReferenceFilters] = None,
                   page: int = 1, limit: int = 25) -> Page[ReferenceWatch]:
        """List references, most recently updated first."""
        return await self._paginate(
            ReferenceWatch,
            self._conditions(filters or ReferenceFilters()),
            (ReferenceWatch.updated_at.desc(), ReferenceWatch.id),
            page,
            limit,
            "List references",
        )

    async def get(self, reference_id: uuid.UUID) -> ReferenceWatch:
        try:
            reference = await self.db.get(ReferenceWatch, reference_id)
        except SQLAlchemyError as e:
            await self._fail("Fetch reference", e)

        if reference is None:
            raise NotFoundError("Reference not found")
        return reference

    async def create(self, record: dict[str, Any]) -> ReferenceWatch:
        """Insert a reference. Mirrored physical columns default from the JSON."""
        values = {k: v for k, v in record.items() if k in REFERENCE_COLUMNS}

        observations = values.get("physical_observations") or {}
        for column in PHYSICAL_COLUMNS:
            if values.get(column) is None and observations.get(column):
                values[column] = observations[column]

        try:
            status = VerificationStatus(values.get("verification_status") or VerificationStatus.PENDING)
        except ValueError as e:
            raise ValidationError(f"Invalid verification_status '{values['verification_status']}'") from e
        values["verification_status"] = status.value

        reference = ReferenceWatch(**values)
        self.db.add(reference)
        try:
            await self.db.commit()
            await self.db.refresh(reference)
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError(
                "Reference already exists for this brand, model and reference number",
                detail=str(e.orig),
            ) from e
        except SQLAlchemyError as e:
            await self._fail("Create reference", e)

        metrics.reference_writes_total.labels(operation="create").inc()
        logger.info(f"Created reference {reference.id}: {reference.brand} {reference.reference_number}")
        return reference

    async def update(self, reference_id: uuid.UUID, update: ReferenceUpdate) -> ReferenceWatch:
        """Apply only the fields set on ``update``."""
        update.validate()
        reference = await self.get(reference_id)

        values = update.resolved(reference.verification_status, utcnow())
        if not values:
            return reference

        for name, value in values.items():
            setattr(reference, name, value)

        try:
            await self.db.commit()
            await self.db.refresh(reference)
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError(
                "Another reference already uses this brand, model and reference number",
                detail=str(e.orig),
            ) from e
        except SQLAlchemyError as e:
            await self._fail("Update reference", e)

        metrics.reference_writes_total.labels(operation="update").inc()
        logger.info(f"Updated reference {reference_id}: {', '.join(values)}")
        return reference

    async def delete(self, reference_id: uuid.UUID) -> None:
        reference = await self.get(reference_id)
        try:
            await self.db.delete(reference)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._fail("Delete reference", e)

        metrics.reference_writes_total.labels(operation="delete").inc()
        logger.info(f"Deleted reference {reference_id}")

    async def find_candidates(self, brand: str, limit: int = 50) -> List[ReferenceWatch]:
        """References whose brand equals ``brand``, ignoring case and padding."""
        normalized = (brand or "").strip().lower()
        if not normalized:
            return []

        query = (
            select(ReferenceWatch)
            .where(func.lower(func.trim(ReferenceWatch.brand)) == normalized)
            .order_by(ReferenceWatch.updated_at.desc(), ReferenceWatch.id)
            .limit(limit)
        )
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            await self._fail("Search references", e)
        return list(result.scalars().all())

    async def existing_ids(self, ids: Iterable[uuid.UUID]) -> set[uuid.UUID]:
        wanted = set(ids)
        if not wanted:
            return set()
        try:
            result = await self.db.execute(
                select(ReferenceWatch.id).where(ReferenceWatch.id.in_(wanted))
            )
        except SQLAlchemyError as e:
            await self._fail("Check references", e)
        return set(result.scalars().all())


class HistoryRepository(_Repository):
    """Append-only log of analysis sessions."""

    async def append(self, record: dict[str, Any]) -> AnalysisHistory:
        """Insert one session after checking match_results point at real references."""
        values = {k: v for k, v in record.items() if k in HISTORY_COLUMNS}

        referenced = _referenced_ids(values.get("match_results") or [])
        if referenced:
            existing = await ReferenceRepository(self.db).existing_ids(referenced)
            missing = sorted(str(i) for i in referenced - existing)
            if missing:
                raise ValidationError(
                    "match_results reference unknown reference watches",
                    detail={"missing_reference_ids": missing},
                )

        entry = AnalysisHistory(**values)
        self.db.add(entry)
        try:
            await self.db.commit()
            await self.db.refresh(entry)
        except SQLAlchemyError as e:
            await self._fail("Append analysis history", e)

        metrics.history_appends_total.inc()
        logger.info(f"Recorded analysis {entry.id} (session={entry.session_id})")
        return entry

    async def list(self, filters: Optional[HistoryFilters] = None,
                   page: int = 1, limit: int = 12) -> Page[AnalysisHistory]:
        """List sessions, newest first."""
        filters = filters or HistoryFilters()
        conditions = []
        if filters.brand:
            conditions.append(_contains(AnalysisHistory.brand, filters.brand))
        if filters.confidence:
            conditions.append(AnalysisHistory.confidence_level == filters.confidence)

        return await self._paginate(
            AnalysisHistory,
            conditions,
            (AnalysisHistory.created_at.desc(), AnalysisHistory.id),
            page,
            limit,
            "List analysis history",
        )

    async def get(self, history_id: uuid.UUID) -> AnalysisHistory:
        try:
            entry = await self.db.get(AnalysisHistory, history_id)
        except SQLAlchemyError as e:
            await self._fail("Fetch analysis history", e)

        if entry is None:
            raise NotFoundError("Analysis not found")
        return entry


def _referenced_ids(match_results: Iterable[dict[str, Any]]) -> set[uuid.UUID]:
    ids = set()
    for match in match_results:
        raw = match.get("reference_id")
        if raw is None and isinstance(match.get("reference_watch"), dict):
            raw = match["reference_watch"].get("id")
        if raw is None:
            raise ValidationError("Each match result needs a reference_id")
        try:
            ids.add(uuid.UUID(str(raw)))
        except ValueError as e:
            raise ValidationError(f"Invalid reference_id '{raw}'") from e
    return ids
