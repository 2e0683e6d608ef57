"""Recommendation service — TTL cache in front of the generator."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.services.cache_service import TTLCache
from app.services.recommendation.generator import RecommendationGenerator, RecommendationKind
from app.services.recommendation.trending import TrendingService
from app.services.social_graph_service import social_graph_service

logger = logging.getLogger(__name__)


class RecommendationService:
    """Caches generator output per (user, kind).

    Empty lists are cached like any other result. The cache only saves work;
    dropping it at any time leaves results correct.
    """

    def __init__(self, generator: RecommendationGenerator, trending: TrendingService, cache: TTLCache | None = None):
        self.generator = generator
        self.trending = trending
        self.cache = cache or TTLCache(
            settings.recommendation_cache_ttl_minutes * 60, name="recommendations"
        )

    @staticmethod
    def _key(user_id: str, kind: RecommendationKind) -> str:
        return f"{user_id}:{kind.value}"

    async def get_or_compute(self, db: AsyncSession, user_id: str, kind: RecommendationKind | str) -> list[dict]:
        kind = RecommendationKind(kind)
        key = self._key(user_id, kind)

        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug(f"Recommendation cache hit for {key}")
            return cached

        results = await self.generator.recommend(db, user_id, kind)
        await self.cache.set(key, results)
        return results

    async def invalidate_user(self, user_id: str) -> None:
        """Drop every cached kind for ``user_id``."""
        await self.cache.delete(*(self._key(user_id, kind) for kind in RecommendationKind))

    async def on_block(self, blocker_id: str, blocked_id: str) -> None:
        # Both sides may hold cached results listing the other
        await self.invalidate_user(blocker_id)
        await self.invalidate_user(blocked_id)
        logger.info(f"Recommendation cache invalidated for {blocker_id} and {blocked_id} after block")

    async def trending_destinations(self, db: AsyncSession) -> list[dict]:
        return await self.trending.trending_destinations(db)

    async def cache_stats(self) -> dict:
        recommendations = await self.cache.stats()
        trending = await self.trending.cache.stats()
        return {
            "recommendations_cache_size": recommendations["size"],
            "trending_cache_size": trending["size"],
            "recommendations": recommendations,
            "trending": trending,
        }

    async def clear_cache(self) -> dict:
        await self.cache.clear()
        await self.trending.clear()
        return {"success": True, "message": "Social travel cache cleared"}

    async def close(self) -> None:
        await self.cache.close()
        await self.trending.cache.close()


trending_service = TrendingService()
recommendation_generator = RecommendationGenerator(social_graph_service, trending_service)
recommendation_service = RecommendationService(recommendation_generator, trending_service)
