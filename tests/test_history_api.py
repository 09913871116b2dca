"""API tests for analysis history."""

import uuid

import pytest

from conftest import submariner_extraction, submariner_record


@pytest.fixture
async def match_payload(client):
    """A stored reference plus the match response for the Submariner extraction."""
    created = await client.post("/api/references", json=submariner_record())
    assert created.status_code == 201
    response = await client.post("/api/references/match", json={"analysis": submariner_extraction()})
    return response.json()


@pytest.mark.asyncio
async def test_record_analysis_derives_summary_fields(client, match_payload):
    response = await client.post("/api/history", json={
        "analysis": submariner_extraction(),
        "photo_urls": ["https://cdn.example.com/dial.jpg", "https://cdn.example.com/caseback.jpg"],
        "match_results": match_payload["matches"],
        "session_id": match_payload["session_id"],
        "analysis_duration_ms": 4200,
    })

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["brand"] == "Rolex"
    assert data["model_name"] == "Submariner"
    assert data["reference_number"] == "116610LN"
    assert data["confidence_level"] == "high"
    assert data["overall_grade"] == "excellent"
    assert data["photo_count"] == 2
    assert data["primary_photo_url"] == "https://cdn.example.com/dial.jpg"
    assert data["best_match_score"] == 100.0
    assert data["session_id"] == match_payload["session_id"]


@pytest.mark.asyncio
async def test_record_without_matches(client):
    response = await client.post("/api/history", json={"analysis": submariner_extraction()})

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["best_match_score"] is None
    assert data["photo_count"] == 0
    assert data["primary_photo_url"] is None


@pytest.mark.asyncio
async def test_unknown_reference_in_matches_is_rejected(client):
    response = await client.post("/api/history", json={
        "analysis": submariner_extraction(),
        "match_results": [{"reference_id": str(uuid.uuid4()), "match_score": 80.0}],
    })

    assert response.status_code == 400
    assert "missing_reference_ids" in response.json()["detail"]
    assert (await client.get("/api/history")).json()["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_negative_duration_is_rejected(client):
    response = await client.post("/api/history", json={
        "analysis": submariner_extraction(),
        "analysis_duration_ms": -1,
    })
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_filters_and_pagination(client):
    for brand, confidence in (("Rolex", "high"), ("Rolex", "low"), ("Omega", "high")):
        extraction = submariner_extraction(brand=brand)
        extraction["authenticity_indicators"]["confidence_level"] = confidence
        response = await client.post("/api/history", json={"analysis": extraction})
        assert response.status_code == 201

    rolex = (await client.get("/api/history", params={"brand": "rolex"})).json()
    assert rolex["pagination"]["total"] == 2

    high = (await client.get("/api/history", params={"confidence": "high"})).json()
    assert {entry["brand"] for entry in high["data"]} == {"Rolex", "Omega"}

    paged = (await client.get("/api/history", params={"page": 2, "limit": 2})).json()
    assert paged["pagination"] == {"page": 2, "limit": 2, "total": 3, "total_pages": 2}
    assert len(paged["data"]) == 1


@pytest.mark.asyncio
async def test_get_analysis(client):
    created = (await client.post("/api/history", json={"analysis": submariner_extraction()})).json()["data"]

    response = await client.get(f"/api/history/{created['id']}")

    assert response.status_code == 200
    assert response.json()["data"]["id"] == created["id"]


@pytest.mark.asyncio
async def test_get_unknown_analysis_is_404(client):
    response = await client.get(f"/api/history/{uuid.uuid4()}")
    assert response.status_code == 404
    assert response.json()["error"] == "Analysis not found"


@pytest.mark.parametrize("score", [1000.0, -5, 100.5])
@pytest.mark.asyncio
async def test_out_of_range_match_score_is_rejected(client, score):
    response = await client.post("/api/history", json={
        "analysis": submariner_extraction(),
        "match_results": [{"match_score": score}],
    })

    assert response.status_code == 400
    assert (await client.get("/api/history")).json()["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_boolean_match_score_is_ignored(client):
    response = await client.post("/api/history", json={
        "analysis": submariner_extraction(),
        "match_results": [{"match_score": True}],
    })

    assert response.status_code == 201
    assert response.json()["data"]["best_match_score"] is None
