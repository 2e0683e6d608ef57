"""Tests for the pairwise traveler compatibility score and match reasons."""

from types import SimpleNamespace

import pytest

from app.services.recommendation.compatibility import (
    calculate_compatibility_score,
    get_match_reasons,
    haversine_km,
    score,
    tag_overlap,
)


def traveler(style=(), interests=(), languages=(), travel_score=0, lat=None, lng=None):
    return SimpleNamespace(
        travel_style=list(style),
        interests=list(interests),
        languages=list(languages),
        travel_score=travel_score,
        latitude=lat,
        longitude=lng,
    )


class TestTagOverlap:

    def test_symmetric(self):
        a, b = ["hiking", "food", "museums"], ["food", "nightlife"]
        assert tag_overlap(a, b) == tag_overlap(b, a)

    def test_self_overlap_is_one(self):
        assert tag_overlap(["food", "art"], ["art", "food"]) == 1.0

    def test_empty_side_is_zero(self):
        assert tag_overlap([], ["food"]) == 0.0
        assert tag_overlap(["food"], None) == 0.0

    def test_jaccard_ratio(self):
        # {a, b} ∩ {b, c} = {b}; union has 3
        assert tag_overlap(["a", "b"], ["b", "c"]) == pytest.approx(1 / 3)


class TestHaversine:

    def test_zero_distance(self):
        assert haversine_km(48.85, 2.35, 48.85, 2.35) == pytest.approx(0.0)

    def test_london_to_paris(self):
        distance = haversine_km(51.5074, -0.1278, 48.8566, 2.3522)
        assert 330 < distance < 360, f"London-Paris should be ~344 km, got {distance}"


class TestCompatibilityScore:

    def test_identical_profiles_with_coordinates_score_one(self):
        a = traveler(["adventure"], ["food"], ["English"], 300, 40.0, -3.7)
        b = traveler(["adventure"], ["food"], ["English"], 300, 40.0, -3.7)
        assert calculate_compatibility_score(a, b) == pytest.approx(1.0)

    def test_missing_coordinates_caps_at_point_nine(self):
        a = traveler(["adventure"], ["food"], ["English"], 300)
        b = traveler(["adventure"], ["food"], ["English"], 300, 40.0, -3.7)
        assert calculate_compatibility_score(a, b) == pytest.approx(0.9)

    def test_weighted_sum(self):
        a = traveler(["adventure", "culture"], ["food"], ["English"], 100)
        b = traveler(["adventure"], ["food"], ["English"], 100)
        # style 0.5*30 + interests 25 + languages 20 + experience 15 = 75
        assert calculate_compatibility_score(a, b) == pytest.approx(0.75)

    def test_experience_similarity_floors_at_zero(self):
        a = traveler(travel_score=0)
        b = traveler(travel_score=5000)
        assert calculate_compatibility_score(a, b) == 0.0

    def test_distant_users_get_no_proximity_points(self):
        a = traveler(travel_score=0, lat=51.5, lng=-0.12)      # London
        b = traveler(travel_score=0, lat=-33.87, lng=151.21)   # Sydney
        assert calculate_compatibility_score(a, b) == pytest.approx(0.15)

    def test_shared_factors_are_symmetric(self):
        a = traveler(["adventure", "budget"], ["food", "art"], ["English", "Spanish"], 420, 10.0, 10.0)
        b = traveler(["budget"], ["art", "surfing"], ["Spanish"], 610, 12.0, 11.0)
        assert calculate_compatibility_score(a, b) == pytest.approx(calculate_compatibility_score(b, a))

    def test_post_context_does_not_move_score(self):
        a = traveler(["adventure"], ["food"], ["English"], 100)
        b = traveler(["luxury"], ["food"], ["English"], 250)
        without = calculate_compatibility_score(a, b)
        with_posts = calculate_compatibility_score(a, b, [SimpleNamespace(tags=["food"])])
        assert without == with_posts

    def test_score_stays_in_unit_range(self):
        a = traveler(["a", "b"], ["c"], ["d"], 10, 0.0, 0.0)
        b = traveler(["b"], ["c", "e"], ["d", "f"], 900, 1.0, 1.0)
        assert 0.0 <= calculate_compatibility_score(a, b) <= 1.0


class TestMatchReasons:

    def test_reasons_in_fixed_order_and_capped(self):
        a = traveler(["adventure"], ["food", "art", "hiking", "music"], ["English"], 100)
        b = traveler(["adventure"], ["music", "hiking", "art", "food"], ["English"], 150)
        reasons = get_match_reasons(a, b)
        assert reasons == [
            "Both enjoy adventure travel",
            "Shared interests in food, art, hiking",
            "Both speak English",
        ]

    def test_similar_experience_reason(self):
        a = traveler(travel_score=100)
        b = traveler(travel_score=250)
        assert get_match_reasons(a, b) == ["Similar travel experience level"]

    def test_no_shared_anything(self):
        a = traveler(["luxury"], ["spa"], ["French"], 0)
        b = traveler(["budget"], ["hiking"], ["German"], 900)
        assert get_match_reasons(a, b) == []

    def test_reasons_follow_first_users_order(self):
        a = traveler(interests=["food", "art"], travel_score=0)
        b = traveler(interests=["art", "food"], travel_score=5000)
        assert get_match_reasons(a, b) == ["Shared interests in food, art"]
        assert get_match_reasons(b, a) == ["Shared interests in art, food"]


class TestCompatibilityResult:

    def test_percent_and_label(self):
        a = traveler(["adventure"], ["food"], ["English"], 300)
        result = score(a, traveler(["adventure"], ["food"], ["English"], 300))
        assert result.percent == 90
        assert result.label == "High"

    @pytest.mark.parametrize("value,label", [(0.71, "High"), (0.7, "Medium"), (0.51, "Medium"), (0.5, "Low")])
    def test_label_thresholds(self, value, label):
        from app.services.recommendation.compatibility import CompatibilityResult
        assert CompatibilityResult(value=value, reasons=[]).label == label
