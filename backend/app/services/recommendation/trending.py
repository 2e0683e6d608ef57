"""Trending aggregator — destinations ranked by engagement over a trailing window.

Groups active posts created within the window by destination name:
  total_likes   sum of likes          (primary sort, desc)
  post_count    number of posts       (secondary sort, desc)
  avg_rating    mean post rating
  tags          post tags + AI topics seen for that destination, most common first

The ranked list is cached under a single key for ``trending_cache_ttl_minutes``.
"""

import logging
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import utcnow
from app.models.social import TravelPost
from app.services.cache_service import TTLCache
from app.services.recommendation.config import recommendation_config

logger = logging.getLogger(__name__)

CACHE_KEY = "trending_destinations"
MAX_TAGS = 10


class TrendingService:
    def __init__(
        self,
        cache: TTLCache | None = None,
        window_days: int = settings.trending_window_days,
        now: Callable[[], datetime] = utcnow,
    ):
        self.cache = cache or TTLCache(
            settings.trending_cache_ttl_minutes * 60, name="trending"
        )
        self.window_days = window_days
        self.limit = recommendation_config.limits.trending
        self._now = now

    async def trending_destinations(self, db: AsyncSession) -> list[dict]:
        """Ranked trending destinations; an empty list when the store is unavailable."""
        cached = await self.cache.get(CACHE_KEY)
        if cached is not None:
            return cached

        try:
            trending = await self._aggregate(db)
        except SQLAlchemyError as e:
            logger.error(f"Trending aggregation failed: {e}")
            await db.rollback()
            return []

        await self.cache.set(CACHE_KEY, trending)
        logger.info(f"Computed {len(trending)} trending destinations")
        return trending

    async def clear(self) -> None:
        await self.cache.clear()

    async def _aggregate(self, db: AsyncSession) -> list[dict]:
        since = self._now() - timedelta(days=self.window_days)
        window = (TravelPost.status == "active", TravelPost.created_at >= since)

        total_likes = func.coalesce(func.sum(TravelPost.likes), 0)
        post_count = func.count(TravelPost.id)
        result = await db.execute(
            select(
                TravelPost.destination_name,
                post_count.label("post_count"),
                total_likes.label("total_likes"),
                func.avg(TravelPost.rating).label("avg_rating"),
            )
            .where(*window)
            .group_by(TravelPost.destination_name)
            .order_by(total_likes.desc(), post_count.desc(), TravelPost.destination_name)
            .limit(self.limit)
        )
        rows = result.all()
        if not rows:
            return []

        names = [row.destination_name for row in rows]
        tag_rows = await db.execute(
            select(TravelPost.destination_name, TravelPost.tags, TravelPost.ai_topics)
            .where(*window, TravelPost.destination_name.in_(names))
        )
        tag_counts: dict[str, Counter] = {name: Counter() for name in names}
        for name, tags, topics in tag_rows.all():
            tag_counts[name].update(set(tags or []) | set(topics or []))

        return [
            {
                "destination": row.destination_name,
                "post_count": int(row.post_count),
                "total_likes": int(row.total_likes),
                "avg_rating": round(float(row.avg_rating), 2) if row.avg_rating is not None else None,
                "tags": [tag for tag, _ in tag_counts[row.destination_name].most_common(MAX_TAGS)],
            }
            for row in rows
        ]
