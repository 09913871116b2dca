"""Database tests for the reference and history repositories."""

import uuid
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from conftest import submariner_record
from watchauth.db.models import AnalysisHistory
from watchauth.db.repository import (
    HistoryFilters,
    HistoryRepository,
    ReferenceFilters,
    ReferenceRepository,
)
from watchauth.db.updates import ReferenceUpdate
from watchauth.errors import BackendError, NotFoundError, ValidationError


@pytest.fixture
def repo(test_db):
    return ReferenceRepository(test_db)


@pytest.fixture
async def library(repo):
    """A small mixed-brand library."""
    return [
        await repo.create(submariner_record()),
        await repo.create(submariner_record(
            model_name="Cosmograph Daytona",
            reference_number="116500LN",
            verification_status="pending",
            physical_observations={"case_material": "Oystersteel", "dial_color": "White"},
        )),
        await repo.create({
            "brand": "Omega",
            "model_name": "Speedmaster Professional",
            "collection_family": "Moonwatch",
            "reference_number": "311.30.42.30.01.005",
            "verification_status": "needs_review",
        }),
    ]


@pytest.mark.asyncio
async def test_create_defaults_and_mirrors_physical_columns(repo):
    reference = await repo.create({
        "brand": "Rolex",
        "model_name": "Submariner",
        "reference_number": "116610LN",
        "physical_observations": {"case_material": "Stainless Steel 904L", "dial_color": "Black"},
    })

    assert reference.id is not None
    assert reference.verification_status == "pending"
    assert reference.case_material == "Stainless Steel 904L"
    assert reference.dial_color == "Black"
    assert reference.bracelet_type is None


@pytest.mark.asyncio
async def test_create_rejects_unknown_status(repo):
    with pytest.raises(ValidationError):
        await repo.create(submariner_record(verification_status="approved"))


@pytest.mark.asyncio
async def test_duplicate_reference_is_a_validation_error(repo):
    await repo.create(submariner_record())
    with pytest.raises(ValidationError):
        await repo.create(submariner_record())

    page = await repo.list()
    assert page.total == 1


@pytest.mark.asyncio
async def test_get_missing_raises_not_found(repo):
    with pytest.raises(NotFoundError):
        await repo.get(uuid.uuid4())


@pytest.mark.asyncio
async def test_list_filters(repo, library):
    rolex = await repo.list(ReferenceFilters(brand="rol"))
    assert rolex.total == 2

    daytona = await repo.list(ReferenceFilters(model="daytona"))
    assert [r.reference_number for r in daytona.items] == ["116500LN"]

    review = await repo.list(ReferenceFilters(status="needs_review"))
    assert [r.brand for r in review.items] == ["Omega"]

    moonwatch = await repo.list(ReferenceFilters(search="moonwatch"))
    assert moonwatch.total == 1

    by_reference = await repo.list(ReferenceFilters(search="116610"))
    assert by_reference.total == 1


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(repo, library):
    page = await repo.list(ReferenceFilters(search="%"))
    assert page.total == 0


@pytest.mark.asyncio
async def test_pagination(repo, library):
    first = await repo.list(page=1, limit=2)
    second = await repo.list(page=2, limit=2)

    assert first.total == 3
    assert first.total_pages == 2
    assert len(first.items) == 2
    assert len(second.items) == 1
    assert {r.id for r in first.items}.isdisjoint({r.id for r in second.items})
    assert second.pagination() == {"page": 2, "limit": 2, "total": 3, "total_pages": 2}


@pytest.mark.asyncio
async def test_update_applies_only_set_fields(repo, library):
    reference = library[0]
    before = reference.to_dict()

    updated = await repo.update(reference.id, ReferenceUpdate(notes="", dial_color="Green"))

    assert updated.notes == ""
    assert updated.dial_color == "Green"
    assert updated.model_name == before["model_name"]
    assert updated.source == before["source"]


@pytest.mark.asyncio
async def test_empty_update_leaves_record_untouched(repo, library):
    reference = library[1]
    before = reference.to_dict()

    updated = await repo.update(reference.id, ReferenceUpdate())

    assert updated.to_dict() == before


@pytest.mark.asyncio
async def test_update_to_verified_stamps_verified_at(repo, library):
    pending = library[1]
    assert pending.verified_at is None

    updated = await repo.update(pending.id, ReferenceUpdate(verification_status="verified"))

    assert updated.verification_status == "verified"
    assert updated.verified_at is not None


@pytest.mark.asyncio
async def test_update_missing_raises_not_found(repo):
    with pytest.raises(NotFoundError):
        await repo.update(uuid.uuid4(), ReferenceUpdate(notes="x"))


@pytest.mark.asyncio
async def test_delete(repo, library):
    await repo.delete(library[2].id)

    with pytest.raises(NotFoundError):
        await repo.get(library[2].id)
    with pytest.raises(NotFoundError):
        await repo.delete(library[2].id)


@pytest.mark.asyncio
async def test_find_candidates_matches_brand_exactly(repo, library):
    assert len(await repo.find_candidates("  rolex ")) == 2
    assert len(await repo.find_candidates("Rol")) == 0
    assert await repo.find_candidates("") == []
    assert len(await repo.find_candidates("Rolex", limit=1)) == 1


@pytest.mark.asyncio
async def test_database_errors_become_backend_errors(repo, test_db, monkeypatch):
    monkeypatch.setattr(
        test_db,
        "execute",
        AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("database is down"))),
    )

    with pytest.raises(BackendError) as exc_info:
        await repo.list()
    assert exc_info.value.message == "List references failed"
    assert "database is down" in exc_info.value.detail


@pytest.mark.asyncio
async def test_history_append_and_list(test_db, library):
    history = HistoryRepository(test_db)
    entry = await history.append({
        "analysis_data": {"watch_identity": {"brand": "Rolex"}},
        "photo_urls": ["https://example.com/a.jpg"],
        "brand": "Rolex",
        "confidence_level": "high",
        "match_results": [{"reference_id": str(library[0].id), "match_score": 100.0}],
        "best_match_score": 100.0,
        "photo_count": 1,
    })

    assert entry.id is not None
    assert (await history.get(entry.id)).brand == "Rolex"

    assert (await history.list(HistoryFilters(brand="rol"))).total == 1
    assert (await history.list(HistoryFilters(confidence="low"))).total == 0


@pytest.mark.asyncio
async def test_history_rejects_unknown_reference_ids(test_db):
    history = HistoryRepository(test_db)
    missing = str(uuid.uuid4())

    with pytest.raises(ValidationError) as exc_info:
        await history.append({
            "analysis_data": {},
            "photo_urls": [],
            "match_results": [{"reference_watch": {"id": missing}}],
        })

    assert exc_info.value.detail == {"missing_reference_ids": [missing]}
    count = (await test_db.execute(select(func.count()).select_from(AnalysisHistory))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
async def test_history_get_missing_raises_not_found(test_db):
    with pytest.raises(NotFoundError):
        await HistoryRepository(test_db).get(uuid.uuid4())
