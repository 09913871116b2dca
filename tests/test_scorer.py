"""Tests for the deterministic match scorer."""

from datetime import datetime, timedelta

import pytest

from watchauth.api.schemas import WatchPhotoExtraction
from watchauth.db.models import ReferenceWatch
from watchauth.matching.scorer import (
    DEFAULT_WEIGHTS,
    confidence_tier,
    model_similarity,
    normalize,
    rank_candidates,
    reference_numbers_equal,
    score_candidate,
)

NOW = datetime(2026, 1, 1, 12, 0, 0)


def make_reference(**kwargs) -> ReferenceWatch:
    values = {
        "brand": "Rolex",
        "model_name": "Submariner",
        "reference_number": "116610LN",
        "case_material": "Stainless Steel 904L",
        "dial_color": "Black",
        "bracelet_type": "Oyster bracelet",
        "physical_observations": {},
        "verification_status": "pending",
        "verified_at": None,
        "updated_at": NOW,
    }
    values.update(kwargs)
    return ReferenceWatch(**values)


def make_extraction(physical=None, **identity) -> WatchPhotoExtraction:
    base = {"brand": "Rolex", "model_name": "Submariner", "reference_number": "116610LN"}
    base.update(identity)
    return WatchPhotoExtraction.model_validate({
        "watch_identity": base,
        "physical_observations": physical if physical is not None else {
            "case_material": "stainless steel",
            "dial_color": "Black",
            "bracelet_type": "Oyster",
        },
    })


def test_normalize_collapses_whitespace_and_case():
    assert normalize("  Stainless   STEEL ") == "stainless steel"
    assert normalize(None) == ""


def test_reference_numbers_ignore_case_and_padding():
    assert reference_numbers_equal(" 116610ln ", "116610LN")
    assert not reference_numbers_equal("116610LV", "116610LN")
    assert not reference_numbers_equal("", "")


@pytest.mark.parametrize("left,right,expected", [
    ("Submariner", "submariner", 1.0),
    ("Submariner", "Submariner Date", 0.8),
    ("Speedmaster Professional", "Speedmaster Moonwatch Professional", 2 / 3),
    ("Nautilus", "Royal Oak", 0.0),
    ("", "Royal Oak", 0.0),
])
def test_model_similarity(left, right, expected):
    assert model_similarity(left, right) == pytest.approx(expected)


def test_full_match_scores_100():
    candidate = score_candidate(make_extraction(), make_reference())

    assert candidate.score == 100.0
    assert candidate.matched_fields == [
        "brand", "reference_number", "model_name", "case_material", "dial_color", "bracelet_type",
    ]
    assert candidate.component_scores == {
        "brand": 100.0, "model": 100.0, "reference": 100.0, "physical": 100.0,
    }
    assert candidate.confidence_tier == "excellent"


def test_brand_mismatch_is_not_a_candidate():
    assert score_candidate(make_extraction(brand="Omega"), make_reference()) is None
    assert score_candidate(make_extraction(brand=""), make_reference()) is None


def test_brand_comparison_is_normalized():
    candidate = score_candidate(make_extraction(brand="  ROLEX "), make_reference())
    assert candidate is not None


def test_brand_only_hit_falls_below_threshold():
    extraction = make_extraction(model_name="Daytona", reference_number="116500LN", physical={})
    candidate = score_candidate(extraction, make_reference())

    assert candidate.score == DEFAULT_WEIGHTS.brand
    assert rank_candidates(extraction, [make_reference()], min_score=20, max_results=5) == []


def test_model_substring_earns_partial_weight():
    extraction = make_extraction(model_name="Submariner Date", reference_number="", physical={})
    candidate = score_candidate(extraction, make_reference())

    assert candidate.score == pytest.approx(15 + 20 * 0.8)
    assert "reference_number" not in candidate.matched_fields


def test_physical_attributes_fall_back_to_json():
    reference = make_reference(
        case_material=None,
        dial_color=None,
        bracelet_type=None,
        physical_observations={"dial_color": "Black"},
    )
    candidate = score_candidate(make_extraction(), reference)

    assert "dial_color" in candidate.matched_fields
    assert "case_material" not in candidate.matched_fields
    assert candidate.score == pytest.approx(90.0)


@pytest.mark.parametrize("score,tier", [
    (100, "excellent"),
    (85, "excellent"),
    (84.99, "good"),
    (70, "good"),
    (55, "possible"),
    (54.99, "poor"),
    (0, "poor"),
])
def test_confidence_tiers(score, tier):
    assert confidence_tier(score) == tier


def test_ranking_orders_by_score():
    exact = make_reference(reference_number="116610LN")
    other = make_reference(reference_number="116610LV", model_name="Submariner Hulk")

    ranked = rank_candidates(make_extraction(), [other, exact], min_score=20, max_results=5)

    assert [c.reference for c in ranked] == [exact, other]
    assert ranked[0].score > ranked[1].score


def test_ties_prefer_verified_then_recent_verification_then_recent_update():
    pending_new = make_reference(verification_status="pending", updated_at=NOW + timedelta(days=5))
    verified_old = make_reference(
        verification_status="verified",
        verified_at=NOW - timedelta(days=30),
        updated_at=NOW,
    )
    verified_recent = make_reference(
        verification_status="verified",
        verified_at=NOW - timedelta(days=1),
        updated_at=NOW - timedelta(days=10),
    )
    pending_old = make_reference(verification_status="pending", updated_at=NOW - timedelta(days=5))

    ranked = rank_candidates(
        make_extraction(),
        [pending_old, verified_old, pending_new, verified_recent],
        min_score=20,
        max_results=5,
    )

    assert [c.reference for c in ranked] == [verified_recent, verified_old, pending_new, pending_old]


def test_results_are_truncated():
    references = [make_reference(notes=str(i)) for i in range(8)]
    ranked = rank_candidates(make_extraction(), references, min_score=20, max_results=5)
    assert len(ranked) == 5
