"""Explicit partial-update structure for reference watches.

Each field is either ``UNSET`` (leave the stored value alone) or a value to
write. ``None`` and ``""`` are real values: they overwrite what is stored.
"""

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, ClassVar, Mapping

from watchauth.db.models import VerificationStatus
from watchauth.errors import ValidationError


class _Unset:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

# Columns mirrored from physical_observations
PHYSICAL_COLUMNS = ("case_material", "dial_color", "bracelet_type")


@dataclass(frozen=True)
class ReferenceUpdate:
    """Partial update for a ReferenceWatch."""

    brand: Any = UNSET
    model_name: Any = UNSET
    collection_family: Any = UNSET
    reference_number: Any = UNSET
    watch_identity: Any = UNSET
    case_material: Any = UNSET
    dial_color: Any = UNSET
    bracelet_type: Any = UNSET
    physical_observations: Any = UNSET
    condition_baseline: Any = UNSET
    authenticity_indicators: Any = UNSET
    verification_status: Any = UNSET
    verified_by: Any = UNSET
    verified_at: Any = UNSET
    source: Any = UNSET
    notes: Any = UNSET

    NON_NULLABLE: ClassVar[tuple[str, ...]] = (
        "brand",
        "model_name",
        "reference_number",
        "verification_status",
    )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ReferenceUpdate":
        """Build from a mapping holding only the keys the caller sent."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})

    def is_set(self, name: str) -> bool:
        return getattr(self, name) is not UNSET

    def changes(self) -> dict[str, Any]:
        """Fields that carry a value, in declaration order."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_empty(self) -> bool:
        return not self.changes()

    def validate(self) -> None:
        """Reject nulls on required columns and unknown statuses."""
        nulled = [name for name in self.NON_NULLABLE if self.is_set(name) and getattr(self, name) is None]
        if nulled:
            raise ValidationError(
                f"Fields cannot be null: {', '.join(nulled)}",
                detail={"fields": nulled},
            )

        if self.is_set("verification_status"):
            allowed = [s.value for s in VerificationStatus]
            if self.verification_status not in allowed:
                raise ValidationError(
                    f"Invalid verification_status '{self.verification_status}'. "
                    f"Allowed: {', '.join(allowed)}"
                )

    def resolved(self, current_status: str, now: datetime) -> dict[str, Any]:
        """Column values to write, with derived columns filled in.

        - physical_observations fills the mirrored columns the caller did
          not set explicitly.
        - moving to ``verified`` stamps ``verified_at`` unless given.
        """
        values = self.changes()

        observations = values.get("physical_observations")
        if self.is_set("physical_observations") and isinstance(observations, dict):
            for column in PHYSICAL_COLUMNS:
                if not self.is_set(column):
                    values[column] = observations.get(column)

        if (
            values.get("verification_status") == VerificationStatus.VERIFIED.value
            and current_status != VerificationStatus.VERIFIED.value
            and not self.is_set("verified_at")
        ):
            values["verified_at"] = now

        return values
