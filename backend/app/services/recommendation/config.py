"""Recommendation engine configuration — single source for all thresholds."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CompatibilityWeights:
    """Points per factor; the score is the weighted sum over 100."""
    travel_style: int = 30
    interests: int = 25
    languages: int = 20
    experience: int = 15
    proximity: int = 10            # only when both users have coordinates

    experience_scale: float = 1000.0   # travel-score gap that zeroes experience similarity
    proximity_scale_km: float = 5000.0  # distance that zeroes proximity
    similar_experience_gap: int = 200   # below this gap, "similar experience" is a match reason
    max_reasons: int = 3


@dataclass(frozen=True)
class CompanionMatching:
    score_window_below: int = 100    # candidates may trail the requester's travel score by this much
    candidate_limit: int = 50        # profiles scored per request
    min_compatibility: float = 0.6   # strictly greater than this is kept
    max_results: int = 20


@dataclass(frozen=True)
class GroupRelevance:
    """Relevance = tag_points * tags + home_country_points + activity + size bonus."""
    tag_points: float = 10.0
    home_country_points: float = 15.0
    activity_window_days: float = 10.0   # activity bonus decays 1 point/day over this window
    member_points: float = 0.5
    member_points_cap: float = 20.0
    active_days: float = 7.0             # "very active" reason threshold
    large_community: int = 100
    small_community: int = 20
    max_results: int = 10


@dataclass(frozen=True)
class ResultLimits:
    posts: int = 20
    users: int = 10
    trending: int = 10


@dataclass(frozen=True)
class TrendingWindow:
    days: int = 30
    feed_days: int = 7          # feed "trending" filter window
    feed_min_likes: int = 10


# Minimum travel score per experience tier for group-trip requirements
EXPERIENCE_TIERS: dict[str, int] = {
    "beginner": 0,
    "intermediate": 500,
    "advanced": 1500,
}


@dataclass(frozen=True)
class RecommendationConfig:
    """Top-level config aggregating all sub-configs."""
    compatibility: CompatibilityWeights = field(default_factory=CompatibilityWeights)
    companions: CompanionMatching = field(default_factory=CompanionMatching)
    groups: GroupRelevance = field(default_factory=GroupRelevance)
    limits: ResultLimits = field(default_factory=ResultLimits)
    trending: TrendingWindow = field(default_factory=TrendingWindow)


# Singleton, import this everywhere
recommendation_config = RecommendationConfig()
