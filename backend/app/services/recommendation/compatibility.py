"""Compatibility scorer — how well two travelers' profiles fit together.

Score (0-1) is a weighted sum of normalized sub-scores (see CompatibilityWeights):
  Travel style overlap (30)   Jaccard over style tags
  Interest overlap (25)       Jaccard over interest tags
  Language overlap (20)       Jaccard over spoken languages
  Experience (15)             1 - |travel score gap| / 1000, floored at 0
  Proximity (10)              1 - distance_km / 5000, floored at 0; skipped
                              when either user has no coordinates

The sum is divided by 100 regardless of how many factors took part, so a pair
without coordinates tops out at 0.9.

Every factor is symmetric in the two profiles. ``user_a_posts`` is accepted as
context for the requesting side only and does not move the number; reasons list
shared tags in ``user_a``'s order, so they may read differently when the
arguments are swapped.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from app.services.recommendation.config import CompatibilityWeights, recommendation_config

EARTH_RADIUS_KM = 6371.0


@dataclass
class CompatibilityResult:
    value: float
    reasons: list[str]

    @property
    def percent(self) -> int:
        return round(self.value * 100)

    @property
    def label(self) -> str:
        if self.value > 0.7:
            return "High"
        if self.value > 0.5:
            return "Medium"
        return "Low"


def tag_overlap(a: Iterable[str] | None, b: Iterable[str] | None) -> float:
    """Jaccard overlap |A ∩ B| / |A ∪ B|; 0 when either side is empty."""
    set_a, set_b = set(a or ()), set(b or ())
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in km between two lat/lng points given in degrees."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _coordinates(profile: Any) -> tuple[float, float] | None:
    lat, lng = getattr(profile, "latitude", None), getattr(profile, "longitude", None)
    if lat is None or lng is None:
        return None
    return float(lat), float(lng)


def _shared(a: Iterable[str] | None, b: Iterable[str] | None) -> list[str]:
    other = set(b or ())
    seen: list[str] = []
    for item in a or ():
        if item in other and item not in seen:
            seen.append(item)
    return seen


def calculate_compatibility_score(
    user_a: Any,
    user_b: Any,
    user_a_posts: list | None = None,
    weights: CompatibilityWeights = recommendation_config.compatibility,
) -> float:
    score = 0.0
    score += tag_overlap(user_a.travel_style, user_b.travel_style) * weights.travel_style
    score += tag_overlap(user_a.interests, user_b.interests) * weights.interests
    score += tag_overlap(user_a.languages, user_b.languages) * weights.languages

    gap = abs((user_a.travel_score or 0) - (user_b.travel_score or 0))
    score += max(0.0, 1 - gap / weights.experience_scale) * weights.experience

    coords_a, coords_b = _coordinates(user_a), _coordinates(user_b)
    if coords_a and coords_b:
        distance = haversine_km(*coords_a, *coords_b)
        score += max(0.0, 1 - distance / weights.proximity_scale_km) * weights.proximity

    return score / 100


def get_match_reasons(
    user_a: Any, user_b: Any, weights: CompatibilityWeights = recommendation_config.compatibility
) -> list[str]:
    """Human-readable reasons for a match; descriptive only."""
    reasons = []

    styles = _shared(user_a.travel_style, user_b.travel_style)
    if styles:
        reasons.append(f"Both enjoy {', '.join(styles)} travel")

    interests = _shared(user_a.interests, user_b.interests)
    if interests:
        reasons.append(f"Shared interests in {', '.join(interests[:3])}")

    languages = _shared(user_a.languages, user_b.languages)
    if languages:
        reasons.append(f"Both speak {', '.join(languages)}")

    gap = abs((user_a.travel_score or 0) - (user_b.travel_score or 0))
    if gap < weights.similar_experience_gap:
        reasons.append("Similar travel experience level")

    return reasons[: weights.max_reasons]


def score(user_a: Any, user_b: Any, user_a_posts: list | None = None) -> CompatibilityResult:
    return CompatibilityResult(
        value=calculate_compatibility_score(user_a, user_b, user_a_posts),
        reasons=get_match_reasons(user_a, user_b),
    )
