"""Reference watch API endpoints."""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from watchauth.api.deps import get_reference_repository, require_admin_api_key
from watchauth.api.schemas import MatchRequest, ReferenceCreate, ReferencePatch
from watchauth.config import settings
from watchauth.db.models import VerificationStatus
from watchauth.db.repository import ReferenceFilters, ReferenceRepository
from watchauth.db.updates import ReferenceUpdate
from watchauth.errors import ValidationError
from watchauth.matching.service import ReferenceMatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/references", tags=["references"])


@router.get("")
async def list_references(
    brand: Optional[str] = None,
    model: Optional[str] = None,
    status: Optional[VerificationStatus] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.references_page_size, ge=1, le=settings.max_page_size),
    repo: ReferenceRepository = Depends(get_reference_repository),
):
    """List reference watches with filters and pagination."""
    filters = ReferenceFilters(
        brand=brand,
        model=model,
        status=status.value if status else None,
        search=search,
    )
    result = await repo.list(filters, page=page, limit=limit)
    return {
        "success": True,
        "data": [r.to_dict() for r in result.items],
        "pagination": result.pagination(),
    }


@router.post("", status_code=201, dependencies=[Depends(require_admin_api_key)])
async def create_reference(
    payload: ReferenceCreate,
    repo: ReferenceRepository = Depends(get_reference_repository),
):
    """Create a reference watch. brand, model_name and reference_number are required."""
    missing = payload.missing_fields()
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            detail={"missing_fields": missing},
        )

    reference = await repo.create(payload.model_dump())
    return {"success": True, "data": reference.to_dict()}


@router.post("/match")
async def match_references(
    payload: MatchRequest,
    repo: ReferenceRepository = Depends(get_reference_repository),
):
    """Find the reference watches that best fit an extraction."""
    matcher = ReferenceMatcher(repo)
    outcome = await matcher.find_matches(payload.analysis, session_id=payload.session_id)
    return outcome.to_dict()


@router.get("/{reference_id}")
async def get_reference(
    reference_id: uuid.UUID,
    repo: ReferenceRepository = Depends(get_reference_repository),
):
    reference = await repo.get(reference_id)
    return {"success": True, "data": reference.to_dict()}


@router.patch("/{reference_id}", dependencies=[Depends(require_admin_api_key)])
async def update_reference(
    reference_id: uuid.UUID,
    payload: ReferencePatch,
    repo: ReferenceRepository = Depends(get_reference_repository),
):
    """Partially update a reference. Keys absent from the body are left alone."""
    update = ReferenceUpdate.from_mapping(payload.model_dump(exclude_unset=True))
    reference = await repo.update(reference_id, update)
    return {"success": True, "data": reference.to_dict()}


@router.delete("/{reference_id}", dependencies=[Depends(require_admin_api_key)])
async def delete_reference(
    reference_id: uuid.UUID,
    repo: ReferenceRepository = Depends(get_reference_repository),
):
    await repo.delete(reference_id)
    return {"success": True, "message": "Reference deleted successfully"}
