"""SQLAlchemy database models."""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the timezone-less DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class VerificationStatus(str, enum.Enum):
    """Curation state of a reference record."""

    PENDING = "pending"
    VERIFIED = "verified"
    NEEDS_REVIEW = "needs_review"


class ReferenceWatch(Base):
    """Canonical catalog record used as ground truth for matching."""

    __tablename__ = "reference_watches"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    # Watch identity
    brand: Mapped[str] = mapped_column(Text, nullable=False)
    model_name: Mapped[str] = mapped_column(Text, nullable=False)
    collection_family: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reference_number: Mapped[str] = mapped_column(Text, nullable=False)
    watch_identity: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    # Physical observations (three hot fields are denormalized into columns)
    case_material: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    dial_color: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bracelet_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    physical_observations: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    condition_baseline: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    authenticity_indicators: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)

    # Curation metadata
    verification_status: Mapped[str] = mapped_column(
        String(20), default=VerificationStatus.PENDING.value, nullable=False
    )
    verified_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    source: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "brand", "model_name", "reference_number", name="uq_reference_per_brand"
        ),
        Index("idx_ref_watches_reference", "reference_number"),
        Index("idx_ref_watches_status", "verification_status"),
        Index("idx_ref_watches_updated", "updated_at"),
    )

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.VERIFIED.value

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dict."""
        return {
            "id": str(self.id),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "brand": self.brand,
            "model_name": self.model_name,
            "collection_family": self.collection_family,
            "reference_number": self.reference_number,
            "watch_identity": self.watch_identity,
            "case_material": self.case_material,
            "dial_color": self.dial_color,
            "bracelet_type": self.bracelet_type,
            "physical_observations": self.physical_observations,
            "condition_baseline": self.condition_baseline,
            "authenticity_indicators": self.authenticity_indicators,
            "verification_status": self.verification_status,
            "verified_by": self.verified_by,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "source": self.source,
            "notes": self.notes,
        }


class AnalysisHistory(Base):
    """One row per completed analysis session. Append-only."""

    __tablename__ = "analysis_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    analysis_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    photo_urls: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    primary_photo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Quick access fields for filtering/sorting
    brand: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    model_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reference_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    confidence_level: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    overall_grade: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    match_results: Mapped[Optional[list[dict[str, Any]]]] = mapped_column(JSONType, nullable=True)
    best_match_score: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)

    session_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    photo_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    analysis_duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("idx_analysis_history_created_at", "created_at"),
        Index("idx_analysis_history_brand", "brand"),
        Index("idx_analysis_history_confidence", "confidence_level"),
        Index("idx_analysis_history_session", "session_id"),
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dict."""
        return {
            "id": str(self.id),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "analysis_data": self.analysis_data,
            "photo_urls": self.photo_urls or [],
            "primary_photo_url": self.primary_photo_url,
            "brand": self.brand,
            "model_name": self.model_name,
            "reference_number": self.reference_number,
            "confidence_level": self.confidence_level,
            "overall_grade": self.overall_grade,
            "match_results": self.match_results,
            "best_match_score": (
                float(self.best_match_score) if self.best_match_score is not None else None
            ),
            "session_id": self.session_id,
            "user_id": self.user_id,
            "photo_count": self.photo_count,
            "analysis_duration_ms": self.analysis_duration_ms,
        }
