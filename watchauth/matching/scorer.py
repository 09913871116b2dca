"""Deterministic scoring of an extraction against reference watches.

Weights are points out of 100:

    brand             15   normalized exact match, otherwise not a candidate
    reference_number  50   exact, case-insensitive
    model_name        20   x similarity (1.0 exact, 0.8 substring, else token Jaccard)
    case_material      5   normalized equal or substring
    dial_color         5
    bracelet_type      5
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from watchauth.api.schemas import WatchPhotoExtraction
from watchauth.db.models import ReferenceWatch

logger = logging.getLogger(__name__)

PHYSICAL_FIELDS = ("case_material", "dial_color", "bracelet_type")

_TOKEN_RE = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class MatchWeights:
    brand: float = 15.0
    reference_number: float = 50.0
    model_name: float = 20.0
    case_material: float = 5.0
    dial_color: float = 5.0
    bracelet_type: float = 5.0

    @property
    def total(self) -> float:
        return (
            self.brand
            + self.reference_number
            + self.model_name
            + self.case_material
            + self.dial_color
            + self.bracelet_type
        )

    @property
    def physical_total(self) -> float:
        return self.case_material + self.dial_color + self.bracelet_type


DEFAULT_WEIGHTS = MatchWeights()

# Confidence tiers (lower bounds, 0-100 scale)
TIER_THRESHOLDS = (
    ("excellent", 85.0),
    ("good", 70.0),
    ("possible", 55.0),
)


@dataclass
class ScoredCandidate:
    """Score of one reference against one extraction."""

    reference: ReferenceWatch
    score: float
    matched_fields: List[str] = field(default_factory=list)
    component_scores: Dict[str, float] = field(default_factory=dict)

    @property
    def confidence_tier(self) -> str:
        return confidence_tier(self.score)


def normalize(value: Optional[str]) -> str:
    """Lowercase, trim and collapse whitespace."""
    if not value:
        return ""
    return " ".join(str(value).lower().split())


def tokens(value: Optional[str]) -> set[str]:
    return set(_TOKEN_RE.findall(normalize(value)))


def reference_numbers_equal(a: Optional[str], b: Optional[str]) -> bool:
    left, right = (a or "").strip().upper(), (b or "").strip().upper()
    return bool(left) and left == right


def model_similarity(a: Optional[str], b: Optional[str]) -> float:
    """1.0 exact, 0.8 when one contains the other, else token Jaccard overlap."""
    left, right = normalize(a), normalize(b)
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    if left in right or right in left:
        return 0.8

    left_tokens, right_tokens = tokens(left), tokens(right)
    union = left_tokens | right_tokens
    if not union:
        return 0.0
    return len(left_tokens & right_tokens) / len(union)


def attribute_matches(a: Optional[str], b: Optional[str]) -> bool:
    left, right = normalize(a), normalize(b)
    if not left or not right:
        return False
    return left == right or left in right or right in left


def reference_physical(reference: ReferenceWatch, name: str) -> Optional[str]:
    """Physical attribute from its column, falling back to the JSON blob."""
    value = getattr(reference, name, None)
    if value:
        return value
    observations = reference.physical_observations or {}
    return observations.get(name)


def confidence_tier(score: float) -> str:
    for tier, threshold in TIER_THRESHOLDS:
        if score >= threshold:
            return tier
    return "poor"


def score_candidate(
    extraction: WatchPhotoExtraction,
    reference: ReferenceWatch,
    weights: MatchWeights = DEFAULT_WEIGHTS,
) -> Optional[ScoredCandidate]:
    """Score ``reference`` against ``extraction``.

    Returns None when the brands differ: brand equality is a precondition,
    not a weighted signal.
    """
    identity = extraction.watch_identity
    brand = normalize(identity.brand)
    if not brand or brand != normalize(reference.brand):
        return None

    matched = ["brand"]
    earned = weights.brand

    reference_hit = reference_numbers_equal(identity.reference_number, reference.reference_number)
    if reference_hit:
        matched.append("reference_number")
        earned += weights.reference_number

    model_score = model_similarity(identity.model_name, reference.model_name)
    if model_score > 0:
        matched.append("model_name")
        earned += weights.model_name * model_score

    physical_earned = 0.0
    observations = extraction.physical_observations
    for name in PHYSICAL_FIELDS:
        if attribute_matches(getattr(observations, name, ""), reference_physical(reference, name)):
            matched.append(name)
            physical_earned += getattr(weights, name)
    earned += physical_earned

    score = round(earned / weights.total * 100, 2)
    physical_score = physical_earned / weights.physical_total if weights.physical_total else 0.0

    return ScoredCandidate(
        reference=reference,
        score=score,
        matched_fields=matched,
        component_scores={
            "brand": 100.0,
            "model": round(model_score * 100, 2),
            "reference": 100.0 if reference_hit else 0.0,
            "physical": round(physical_score * 100, 2),
        },
    )


def _timestamp(value: Optional[datetime]) -> float:
    return value.timestamp() if value else float("-inf")


def ranking_key(candidate: ScoredCandidate):
    """Score desc, then verified first, latest verification, latest update."""
    reference = candidate.reference
    return (
        -candidate.score,
        0 if reference.is_verified else 1,
        -_timestamp(reference.verified_at),
        -_timestamp(reference.updated_at),
    )


def rank_candidates(
    extraction: WatchPhotoExtraction,
    references: Sequence[ReferenceWatch],
    min_score: float,
    max_results: int,
    weights: MatchWeights = DEFAULT_WEIGHTS,
) -> List[ScoredCandidate]:
    """Score, drop anything under ``min_score``, sort and truncate."""
    scored = []
    for reference in references:
        candidate = score_candidate(extraction, reference, weights)
        if candidate is None:
            continue
        logger.debug(
            f"Scored {reference.id} ({reference.reference_number}): {candidate.score} "
            f"{candidate.component_scores}"
        )
        if candidate.score >= min_score:
            scored.append(candidate)

    scored.sort(key=ranking_key)
    return scored[:max_results]


def describe(candidate: ScoredCandidate) -> Dict[str, Any]:
    return {
        "brand": candidate.reference.brand,
        "model_name": candidate.reference.model_name,
        "reference_number": candidate.reference.reference_number,
        "score": candidate.score,
        "matched_fields": candidate.matched_fields,
    }
