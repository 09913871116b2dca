"""Reference matching: brand-filtered candidate lookup plus deterministic scoring."""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from watchauth import metrics
from watchauth.api.schemas import WatchPhotoExtraction
from watchauth.config import settings
from watchauth.db.repository import ReferenceRepository
from watchauth.errors import WatchAuthError
from watchauth.logging_config import get_logger
from watchauth.matching.discrepancy import calculate_discrepancies, summarize_discrepancies
from watchauth.matching.scorer import (
    DEFAULT_WEIGHTS,
    MatchWeights,
    ScoredCandidate,
    describe,
    rank_candidates,
)


@dataclass
class MatchOutcome:
    """Result of one match request."""

    matches: List[Dict[str, Any]] = field(default_factory=list)
    total_candidates_checked: int = 0
    session_id: str = ""

    @property
    def total_found(self) -> int:
        return len(self.matches)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "matches": self.matches,
            "total_found": self.total_found,
            "total_candidates_checked": self.total_candidates_checked,
            "session_id": self.session_id,
        }


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}"


def build_match_result(extraction: WatchPhotoExtraction, candidate: ScoredCandidate) -> Dict[str, Any]:
    discrepancies = calculate_discrepancies(extraction, candidate.reference)
    return {
        "reference_id": str(candidate.reference.id),
        "reference_watch": candidate.reference.to_dict(),
        "match_score": candidate.score,
        "matched_fields": candidate.matched_fields,
        "component_scores": candidate.component_scores,
        "confidence_tier": candidate.confidence_tier,
        "discrepancies": [d.to_dict() for d in discrepancies],
        "discrepancy_summary": summarize_discrepancies(discrepancies),
    }


class ReferenceMatcher:
    """
    Finds the reference watches that best fit an AI extraction.

    Only references of the same brand are considered. Each candidate is
    scored by ``rank_candidates``; results under ``min_score`` are dropped
    and at most ``max_results`` are returned, best first.
    """

    def __init__(
        self,
        repository: ReferenceRepository,
        weights: MatchWeights = DEFAULT_WEIGHTS,
        min_score: Optional[float] = None,
        max_results: Optional[int] = None,
        candidate_limit: Optional[int] = None,
    ):
        self.repository = repository
        self.weights = weights
        self.min_score = settings.match_min_score if min_score is None else min_score
        self.max_results = settings.match_max_results if max_results is None else max_results
        self.candidate_limit = (
            settings.match_candidate_limit if candidate_limit is None else candidate_limit
        )

    async def find_matches(
        self, extraction: WatchPhotoExtraction, session_id: Optional[str] = None
    ) -> MatchOutcome:
        session_id = session_id or new_session_id()
        log = get_logger(__name__, session_id=session_id)
        brand = extraction.watch_identity.brand.strip()

        if not brand:
            log.info("Extraction has no brand; nothing to match")
            metrics.match_requests_total.labels(outcome="no_brand").inc()
            return MatchOutcome(session_id=session_id)

        started = time.perf_counter()
        try:
            candidates = await self.repository.find_candidates(brand, limit=self.candidate_limit)
            ranked = rank_candidates(
                extraction,
                candidates,
                min_score=self.min_score,
                max_results=self.max_results,
                weights=self.weights,
            )
            matches = [build_match_result(extraction, c) for c in ranked]
        except WatchAuthError:
            metrics.match_requests_total.labels(outcome="error").inc()
            raise
        finally:
            metrics.match_duration_seconds.observe(time.perf_counter() - started)

        metrics.match_candidates_scanned.observe(len(candidates))
        metrics.match_requests_total.labels(outcome="matched" if matches else "no_match").inc()

        log.info(
            f"Matched {brand} {extraction.watch_identity.reference_number or '-'}: "
            f"{len(matches)} of {len(candidates)} candidates"
        )
        if ranked:
            log.info(f"Ranking: {[describe(c) for c in ranked]}")

        return MatchOutcome(
            matches=matches,
            total_candidates_checked=len(candidates),
            session_id=session_id,
        )
