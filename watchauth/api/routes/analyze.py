"""Photo analysis endpoint."""

from fastapi import APIRouter

from watchauth.ai.extraction_service import extraction_service
from watchauth.api.schemas import AnalyzeRequest

router = APIRouter(prefix="/api/analyze", tags=["analyze"])


@router.post("")
async def analyze_photos(payload: AnalyzeRequest):
    """Extract watch attributes from photos with the vision model."""
    result = await extraction_service.extract(payload.images)
    return {"success": True, **result}
