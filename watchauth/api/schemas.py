"""Request models shared by the HTTP routes and the client layer."""

from datetime import datetime, timezone
from typing import Any, ClassVar, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from watchauth.db.models import VerificationStatus


class WatchIdentity(BaseModel):
    model_config = ConfigDict(extra="allow", protected_namespaces=())

    brand: str = ""
    model_name: str = ""
    collection_family: str = ""
    reference_number: str = ""
    dial_variant: str = ""
    bezel_variant: str = ""
    bracelet_variant: str = ""
    limited_edition: bool = False
    serial_number: str = ""
    estimated_year: str = ""


class PhysicalObservations(BaseModel):
    model_config = ConfigDict(extra="allow")

    case_material: str = ""
    case_finish: str = ""
    case_diameter_estimate: str = ""
    case_shape: str = ""
    bezel_type: str = ""
    bezel_material: str = ""
    bezel_insert_material: str = ""
    crystal_material: str = ""
    has_cyclops: Optional[bool] = None
    crown_type: str = ""
    has_crown_guards: Optional[bool] = None
    dial_color: str = ""
    dial_finish: str = ""
    indices_type: str = ""
    hands_style: str = ""
    has_date: Optional[bool] = None
    date_position: str = ""
    bracelet_type: str = ""
    bracelet_material: str = ""
    clasp_type: str = ""


class ConditionAssessment(BaseModel):
    model_config = ConfigDict(extra="allow")

    overall_grade: str = ""
    crystal_condition: str = ""
    case_condition: str = ""
    bezel_condition: str = ""
    dial_condition: str = ""
    bracelet_condition: str = ""
    visible_damage: List[str] = Field(default_factory=list)


class AuthenticityIndicators(BaseModel):
    model_config = ConfigDict(extra="allow")

    positive_signs: List[str] = Field(default_factory=list)
    concerns: List[str] = Field(default_factory=list)
    red_flags: List[str] = Field(default_factory=list)
    confidence_level: str = ""
    reasoning: str = ""


class WatchPhotoExtraction(BaseModel):
    """Structured attributes an AI provider extracted from watch photos."""

    model_config = ConfigDict(extra="allow")

    watch_identity: WatchIdentity
    physical_observations: PhysicalObservations = Field(default_factory=PhysicalObservations)
    condition_assessment: ConditionAssessment = Field(default_factory=ConditionAssessment)
    authenticity_indicators: AuthenticityIndicators = Field(default_factory=AuthenticityIndicators)
    additional_photos_needed: List[str] = Field(default_factory=list)
    preliminary_assessment: str = ""


class MatchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    analysis: WatchPhotoExtraction
    session_id: Optional[str] = Field(default=None, alias="sessionId")


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class ReferenceCreate(BaseModel):
    """Create payload. Required fields are checked by the route so that
    missing and empty values get the same error."""

    model_config = ConfigDict(use_enum_values=True, protected_namespaces=())

    brand: Optional[str] = None
    model_name: Optional[str] = None
    collection_family: Optional[str] = None
    reference_number: Optional[str] = None
    watch_identity: Optional[dict[str, Any]] = None
    case_material: Optional[str] = None
    dial_color: Optional[str] = None
    bracelet_type: Optional[str] = None
    physical_observations: Optional[dict[str, Any]] = None
    condition_baseline: Optional[dict[str, Any]] = None
    authenticity_indicators: Optional[dict[str, Any]] = None
    verification_status: VerificationStatus = VerificationStatus.PENDING
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    source: Optional[str] = None
    notes: Optional[str] = None

    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("brand", "model_name", "reference_number")

    @field_validator("verified_at")
    @classmethod
    def normalize_verified_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(v)

    def missing_fields(self) -> list[str]:
        return [name for name in self.REQUIRED_FIELDS if not (getattr(self, name) or "").strip()]


class ReferencePatch(BaseModel):
    """PATCH payload. Only keys present in the body are applied."""

    model_config = ConfigDict(use_enum_values=True, protected_namespaces=())

    brand: Optional[str] = None
    model_name: Optional[str] = None
    collection_family: Optional[str] = None
    reference_number: Optional[str] = None
    watch_identity: Optional[dict[str, Any]] = None
    case_material: Optional[str] = None
    dial_color: Optional[str] = None
    bracelet_type: Optional[str] = None
    physical_observations: Optional[dict[str, Any]] = None
    condition_baseline: Optional[dict[str, Any]] = None
    authenticity_indicators: Optional[dict[str, Any]] = None
    verification_status: Optional[VerificationStatus] = None
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None
    source: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("verified_at")
    @classmethod
    def normalize_verified_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(v)


class HistoryCreate(BaseModel):
    """One completed analysis session."""

    analysis: WatchPhotoExtraction
    photo_urls: List[str] = Field(default_factory=list)
    primary_photo_url: Optional[str] = None
    match_results: Optional[List[dict[str, Any]]] = None
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    analysis_duration_ms: Optional[int] = Field(default=None, ge=0)


class AnalyzeRequest(BaseModel):
    images: List[str] = Field(default_factory=list)
