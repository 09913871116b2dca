"""Server-rendered admin pages."""

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from watchauth.api.deps import get_reference_repository
from watchauth.config import settings
from watchauth.db.models import VerificationStatus
from watchauth.db.repository import ReferenceFilters, ReferenceRepository
from watchauth.errors import ValidationError

TEMPLATES_DIR = Path(__file__).resolve().parents[2] / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/references", response_class=HTMLResponse)
async def references_page(
    request: Request,
    brand: Optional[str] = None,
    model: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.references_page_size, ge=1, le=settings.max_page_size),
    repo: ReferenceRepository = Depends(get_reference_repository),
):
    """Reference library table with the same filters as the JSON listing."""
    if status and status not in {s.value for s in VerificationStatus}:
        raise ValidationError(f"Invalid status '{status}'")
    filters = ReferenceFilters(
        brand=brand,
        model=model,
        status=status or None,
        search=search,
    )
    result = await repo.list(filters, page=page, limit=limit)
    return templates.TemplateResponse(
        request,
        "admin_references.html",
        {
            "references": result.items,
            "pagination": result.pagination(),
            "filters": filters,
            "statuses": [s.value for s in VerificationStatus],
        },
    )
