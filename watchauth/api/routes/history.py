"""Analysis history API endpoints."""

import uuid
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from watchauth.api.deps import get_history_repository
from watchauth.api.schemas import HistoryCreate
from watchauth.config import settings
from watchauth.db.repository import HistoryFilters, HistoryRepository
from watchauth.errors import ValidationError

router = APIRouter(prefix="/api/history", tags=["history"])


def history_record(payload: HistoryCreate) -> dict[str, Any]:
    """Row values for a session, with the quick-access columns derived."""
    analysis = payload.analysis
    identity = analysis.watch_identity
    matches = payload.match_results or []

    scores = [
        m["match_score"] for m in matches
        if isinstance(m.get("match_score"), (int, float)) and not isinstance(m["match_score"], bool)
    ]
    out_of_range = [score for score in scores if not 0 <= score <= 100]
    if out_of_range:
        raise ValidationError(
            "match_score must be between 0 and 100",
            detail={"invalid_scores": out_of_range},
        )

    return {
        "analysis_data": analysis.model_dump(),
        "photo_urls": payload.photo_urls,
        "primary_photo_url": payload.primary_photo_url or (payload.photo_urls[0] if payload.photo_urls else None),
        "brand": identity.brand or None,
        "model_name": identity.model_name or None,
        "reference_number": identity.reference_number or None,
        "confidence_level": analysis.authenticity_indicators.confidence_level or None,
        "overall_grade": analysis.condition_assessment.overall_grade or None,
        "match_results": payload.match_results,
        "best_match_score": max(scores) if scores else None,
        "session_id": payload.session_id,
        "user_id": payload.user_id,
        "photo_count": len(payload.photo_urls),
        "analysis_duration_ms": payload.analysis_duration_ms,
    }


@router.get("")
async def list_history(
    brand: Optional[str] = None,
    confidence: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.history_page_size, ge=1, le=settings.max_page_size),
    repo: HistoryRepository = Depends(get_history_repository),
):
    """List past analysis sessions, newest first."""
    result = await repo.list(HistoryFilters(brand=brand, confidence=confidence), page=page, limit=limit)
    return {
        "success": True,
        "data": [entry.to_dict() for entry in result.items],
        "pagination": result.pagination(),
    }


@router.post("", status_code=201)
async def record_analysis(
    payload: HistoryCreate,
    repo: HistoryRepository = Depends(get_history_repository),
):
    entry = await repo.append(history_record(payload))
    return {"success": True, "data": entry.to_dict()}


@router.get("/{history_id}")
async def get_analysis(
    history_id: uuid.UUID,
    repo: HistoryRepository = Depends(get_history_repository),
):
    entry = await repo.get(history_id)
    return {"success": True, "data": entry.to_dict()}
