"""Field-by-field comparison of an extraction against a reference watch."""

from collections import Counter
from dataclasses import asdict, dataclass
from difflib import SequenceMatcher
from typing import Any, Dict, List, Optional

from watchauth.api.schemas import WatchPhotoExtraction
from watchauth.db.models import ReferenceWatch
from watchauth.matching.scorer import normalize


@dataclass(frozen=True)
class FieldRule:
    path: str
    label: str
    importance: str
    threshold: float


FIELD_RULES = (
    FieldRule("watch_identity.brand", "Brand", "critical", 0.95),
    FieldRule("watch_identity.model_name", "Model", "critical", 0.90),
    FieldRule("watch_identity.reference_number", "Reference Number", "critical", 0.85),
    FieldRule("physical_observations.case_material", "Case Material", "high", 0.85),
    FieldRule("physical_observations.dial_color", "Dial Color", "high", 0.80),
    FieldRule("watch_identity.dial_variant", "Dial Variant", "high", 0.80),
    FieldRule("physical_observations.bezel_type", "Bezel Type", "medium", 0.75),
    FieldRule("physical_observations.bracelet_type", "Bracelet", "medium", 0.70),
    FieldRule("physical_observations.crystal_material", "Crystal", "medium", 0.80),
    FieldRule("physical_observations.case_shape", "Case Shape", "medium", 0.75),
    FieldRule("physical_observations.clasp_type", "Clasp Type", "low", 0.60),
    FieldRule("physical_observations.crown_type", "Crown", "low", 0.60),
    FieldRule("physical_observations.case_finish", "Case Finish", "low", 0.65),
    FieldRule("watch_identity.serial_number", "Serial Number", "optional", 0.90),
    FieldRule("watch_identity.estimated_year", "Year", "optional", 0.80),
    FieldRule("condition_assessment.overall_grade", "Condition", "optional", 0.70),
)


@dataclass
class FieldDiscrepancy:
    field_path: str
    field_label: str
    importance: str
    severity: str
    ai_value: Any
    reference_value: Any
    explanation: str
    similarity_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def string_similarity(a: str, b: str) -> float:
    """0-1 ratio of matching characters after normalization."""
    left, right = normalize(a), normalize(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    return SequenceMatcher(None, left, right).ratio()


def _lookup(data: Dict[str, Any], path: str) -> Any:
    current: Any = data
    for key in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def reference_view(reference: ReferenceWatch) -> Dict[str, Any]:
    """Reference laid out like an extraction so paths resolve the same way."""
    identity = dict(reference.watch_identity or {})
    identity.update(
        brand=reference.brand,
        model_name=reference.model_name,
        reference_number=reference.reference_number,
    )
    if reference.collection_family:
        identity["collection_family"] = reference.collection_family

    observations = dict(reference.physical_observations or {})
    for column in ("case_material", "dial_color", "bracelet_type"):
        value = getattr(reference, column)
        if value:
            observations[column] = value

    return {
        "watch_identity": identity,
        "physical_observations": observations,
        "condition_assessment": dict(reference.condition_baseline or {}),
        "authenticity_indicators": dict(reference.authenticity_indicators or {}),
    }


def _explain(similarity: float, ai_value: str, reference_value: str) -> str:
    if similarity >= 0.95:
        return "Values match"
    if similarity >= 0.85:
        return f'Minor variation: "{ai_value}" vs "{reference_value}"'
    if similarity >= 0.70:
        return f'Moderate difference: "{ai_value}" vs "{reference_value}" - verify carefully'
    return f'Significant mismatch: "{ai_value}" vs "{reference_value}" - possible red flag'


def compare_field(rule: FieldRule, ai_value: Any, reference_value: Any) -> Optional[FieldDiscrepancy]:
    if not ai_value and not reference_value:
        return None

    if not ai_value or not reference_value:
        return FieldDiscrepancy(
            field_path=rule.path,
            field_label=rule.label,
            importance=rule.importance,
            severity="missing_data",
            ai_value=ai_value,
            reference_value=reference_value,
            explanation=(
                "Reference data missing for comparison"
                if ai_value
                else "AI could not extract this value from photos"
            ),
        )

    if isinstance(ai_value, bool) or isinstance(reference_value, bool):
        same = ai_value == reference_value
        return FieldDiscrepancy(
            field_path=rule.path,
            field_label=rule.label,
            importance=rule.importance,
            severity="exact_match" if same else "major_diff",
            ai_value=ai_value,
            reference_value=reference_value,
            similarity_score=100.0 if same else 0.0,
            explanation=(
                "Values match"
                if same
                else f'Mismatch: AI detected "{ai_value}" but reference shows "{reference_value}"'
            ),
        )

    similarity = string_similarity(str(ai_value), str(reference_value))
    if similarity >= 0.95:
        severity = "exact_match"
    elif similarity >= rule.threshold:
        severity = "minor_diff"
    elif rule.importance == "critical":
        severity = "critical"
    else:
        severity = "major_diff"

    return FieldDiscrepancy(
        field_path=rule.path,
        field_label=rule.label,
        importance=rule.importance,
        severity=severity,
        ai_value=ai_value,
        reference_value=reference_value,
        similarity_score=round(similarity * 100, 2),
        explanation=_explain(similarity, str(ai_value), str(reference_value)),
    )


def _compare_authenticity(ai: Dict[str, Any], reference: Dict[str, Any]) -> List[FieldDiscrepancy]:
    found: List[FieldDiscrepancy] = []

    ai_signs = list(ai.get("positive_signs") or [])
    expected = list(reference.get("positive_signs") or [])
    if expected:
        hits = [
            sign for sign in expected
            if any(string_similarity(candidate, sign) > 0.7 for candidate in ai_signs)
        ]
        rate = len(hits) / len(expected)
        if rate >= 0.9:
            severity = "exact_match"
        elif rate >= 0.7:
            severity = "minor_diff"
        elif rate >= 0.5:
            severity = "major_diff"
        else:
            severity = "critical"

        found.append(FieldDiscrepancy(
            field_path="authenticity_indicators.positive_signs",
            field_label="Authenticity Markers",
            importance="high",
            severity=severity,
            ai_value=ai_signs,
            reference_value=expected,
            similarity_score=round(rate * 100, 2),
            explanation=(
                f"AI found {len(hits)} of {len(expected)} expected authenticity markers "
                f"({rate * 100:.0f}% match)"
            ),
        ))

    ai_flags = list(ai.get("red_flags") or [])
    if ai_flags and not reference.get("red_flags"):
        found.append(FieldDiscrepancy(
            field_path="authenticity_indicators.red_flags",
            field_label="Red Flags",
            importance="critical",
            severity="critical",
            ai_value=ai_flags,
            reference_value=[],
            explanation=f"AI detected {len(ai_flags)} red flag(s) not expected in genuine examples",
        ))

    return found


def calculate_discrepancies(
    extraction: WatchPhotoExtraction, reference: ReferenceWatch
) -> List[FieldDiscrepancy]:
    """All field discrepancies, in importance order, then authenticity checks."""
    ai = extraction.model_dump()
    ref = reference_view(reference)

    discrepancies = []
    for rule in FIELD_RULES:
        discrepancy = compare_field(rule, _lookup(ai, rule.path), _lookup(ref, rule.path))
        if discrepancy is not None:
            discrepancies.append(discrepancy)

    discrepancies.extend(
        _compare_authenticity(ai["authenticity_indicators"], ref["authenticity_indicators"])
    )
    return discrepancies


def summarize_discrepancies(discrepancies: List[FieldDiscrepancy]) -> Dict[str, Any]:
    return {
        "total": len(discrepancies),
        "by_severity": dict(Counter(d.severity for d in discrepancies)),
        "by_importance": dict(Counter(d.importance for d in discrepancies)),
        "critical_issues": [d.to_dict() for d in discrepancies if d.severity == "critical"],
    }
