"""Recommendation engine — social travel matching and ranking.

Modules:
    config          Centralized weights, caps and thresholds
    compatibility   Pairwise traveler compatibility score + match reasons
    trending        Windowed destination aggregation with its own cache
    generator       Five ranking strategies (posts, users, destinations,
                    travel_companions, groups)
    service         Per-(user, kind) TTL cache in front of the generator

Pipeline:
    RecommendationService.get_or_compute → RecommendationGenerator.recommend
    → compatibility.score / TrendingService.trending_destinations
"""
