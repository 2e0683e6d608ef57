"""Tests for trending destination aggregation and its cache."""

from datetime import timedelta

import pytest

from app.database import utcnow
from app.services.cache_service import TTLCache
from app.services.recommendation.trending import TrendingService
from tests.conftest import TickClock

NOW = utcnow().replace(microsecond=0)


@pytest.fixture
def tick():
    return TickClock()


@pytest.fixture
def trending(tick, redis_client):
    cache = TTLCache(3600, clock=tick, name="trending", client=redis_client)
    return TrendingService(cache=cache, now=lambda: NOW)


def days_ago(n):
    return NOW - timedelta(days=n)


class TestAggregation:

    async def test_groups_and_ranks_by_likes_then_count(self, db, trending, make_post):
        await make_post("u1", "Lisbon", likes=10, rating=4, tags=["food", "beach"], created_at=days_ago(2))
        await make_post("u2", "Lisbon", likes=5, rating=5, tags=["food"], ai_topics=["culture"],
                        created_at=days_ago(5))
        await make_post("u3", "Porto", likes=15, rating=3, tags=["wine"], created_at=days_ago(1))
        await make_post("u4", "Kyoto", likes=3, rating=5, created_at=days_ago(29))

        results = await trending.trending_destinations(db)

        assert [r["destination"] for r in results] == ["Lisbon", "Porto", "Kyoto"]
        lisbon = results[0]
        assert lisbon["post_count"] == 2
        assert lisbon["total_likes"] == 15
        assert lisbon["avg_rating"] == 4.5
        assert lisbon["tags"][0] == "food"
        assert set(lisbon["tags"]) == {"food", "beach", "culture"}

    async def test_window_and_status_exclusions(self, db, trending, make_post):
        await make_post("u1", "Oslo", likes=100, created_at=days_ago(40))
        await make_post("u2", "Rome", likes=50, status="archived", created_at=days_ago(1))
        await make_post("u3", "Nice", likes=1, created_at=days_ago(1))

        results = await trending.trending_destinations(db)

        assert [r["destination"] for r in results] == ["Nice"]

    async def test_capped_at_ten(self, db, trending, make_post):
        for i in range(12):
            await make_post(f"u{i}", f"Town {i:02d}", likes=i, created_at=days_ago(1))

        results = await trending.trending_destinations(db)

        assert len(results) == 10
        assert results[0]["destination"] == "Town 11"

    async def test_no_posts(self, db, trending):
        assert await trending.trending_destinations(db) == []


class TestTrendingCache:

    async def test_cached_until_ttl_passes(self, db, trending, tick, make_post):
        await make_post("u1", "Lisbon", likes=5, created_at=days_ago(1))
        first = await trending.trending_destinations(db)

        await make_post("u2", "Porto", likes=50, created_at=days_ago(1))
        tick.advance(3599)
        assert await trending.trending_destinations(db) == first

        tick.advance(1)
        refreshed = await trending.trending_destinations(db)
        assert [r["destination"] for r in refreshed] == ["Porto", "Lisbon"]

    async def test_clear_forces_recompute(self, db, trending, make_post):
        assert await trending.trending_destinations(db) == []
        await make_post("u1", "Lisbon", likes=5, created_at=days_ago(1))
        assert await trending.trending_destinations(db) == []

        await trending.clear()

        assert [r["destination"] for r in await trending.trending_destinations(db)] == ["Lisbon"]
