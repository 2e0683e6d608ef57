"""Tests for the five recommendation strategies."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.database import utcnow
from app.models.social import TravelGroup, TravelGroupMember
from app.services.cache_service import TTLCache
from app.services.recommendation.generator import RecommendationGenerator, RecommendationKind
from app.services.recommendation.trending import TrendingService
from tests.conftest import TickClock

NOW = utcnow().replace(microsecond=0)


class StubTrending:
    def __init__(self, entries):
        self.entries = entries

    async def trending_destinations(self, db):
        return [dict(e) for e in self.entries]


class BrokenGraph:
    async def get_or_create_profile(self, db, user_id):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))


@pytest.fixture
def generator(graph, redis_client):
    trending = TrendingService(cache=TTLCache(3600, clock=TickClock(), name="trending", client=redis_client))
    return RecommendationGenerator(graph, trending, now=lambda: NOW)


@pytest.fixture
async def requester(make_profile):
    return await make_profile(
        "alice",
        travel_score=500,
        travel_style=["adventure"],
        interests=["food", "culture"],
        languages=["English"],
        country="Portugal",
    )


class TestCompanions:

    async def test_filters_by_window_block_and_threshold(self, db, generator, graph, make_profile, requester):
        await make_profile("bob", travel_score=520, travel_style=["adventure"],
                           interests=["food", "culture"], languages=["English"])
        await make_profile("carol", travel_score=500, travel_style=["luxury"],
                           interests=["shopping"], languages=["English"])
        await make_profile("dave", travel_score=300, travel_style=["adventure"],
                           interests=["food", "culture"], languages=["English"])
        await make_profile("eve", travel_score=500, travel_style=["adventure"],
                           interests=["food", "culture"], languages=["English"])
        await graph.block_user(db, "alice", "eve")

        results = await generator.recommend(db, "alice", "travel_companions")

        ids = [r["user_id"] for r in results]
        assert ids == ["bob"], "carol scores 0.35, dave is below the score window, eve is blocked"
        assert results[0]["compatibility_score"] == pytest.approx(0.897)
        assert "Both enjoy adventure travel" in results[0]["match_reasons"]

    async def test_blocked_by_the_other_side_is_hidden(self, db, generator, graph, make_profile, requester):
        await make_profile("bob", travel_score=500, travel_style=["adventure"],
                           interests=["food", "culture"], languages=["English"])
        await graph.block_user(db, "bob", "alice")

        assert await generator.recommend(db, "alice", RecommendationKind.TRAVEL_COMPANIONS) == []

    async def test_sorted_desc_and_never_self(self, db, generator, make_profile, requester):
        await make_profile("bob", travel_score=500, travel_style=["adventure"],
                           interests=["food"], languages=["English"])
        await make_profile("frank", travel_score=500, travel_style=["adventure"],
                           interests=["food", "culture"], languages=["English"])

        results = await generator.recommend(db, "alice", "travel_companions")

        assert [r["user_id"] for r in results] == ["frank", "bob"]
        assert all(r["compatibility_score"] > 0.6 for r in results)
        assert "alice" not in [r["user_id"] for r in results]


class TestPosts:

    async def test_matches_interests_and_orders_by_likes(self, db, generator, make_profile, make_post, requester):
        await make_profile("bob")
        await make_post("bob", "Porto", tags=["food"], likes=5)
        await make_post("bob", "Ibiza", tags=["nightlife"], travel_type="solo", likes=50)
        await make_post("bob", "Kyoto", tags=[], ai_topics=["culture"], likes=9)
        await make_post("bob", "Moab", tags=[], travel_type="adventure", likes=1)
        await make_post("bob", "Lima", tags=["food"], likes=100, status="archived")
        await make_post("alice", "Lisbon", tags=["food"], likes=70)

        results = await generator.recommend(db, "alice", "posts")

        assert [r["destination"]["name"] for r in results] == ["Kyoto", "Porto", "Moab"]

    async def test_blocked_authors_excluded(self, db, generator, graph, make_profile, make_post, requester):
        await make_profile("mallory")
        await make_post("mallory", "Rome", tags=["food"], likes=3)
        await graph.block_user(db, "alice", "mallory")

        assert await generator.recommend(db, "alice", "posts") == []


class TestUsers:

    async def test_shared_style_or_visited_country(self, db, generator, make_profile, make_post, requester):
        await make_post("alice", "Porto", destination_country="Portugal")
        await make_profile("bob", travel_score=100, travel_style=["adventure"])
        await make_profile("carol", travel_score=300, travel_style=["luxury"], country="Portugal")
        await make_profile("dave", travel_score=900, travel_style=["luxury"], country="Spain")

        results = await generator.recommend(db, "alice", "users")

        assert [r["user_id"] for r in results] == ["carol", "bob"]


class TestDestinations:

    async def test_reranks_trending_by_interest_match(self, db, graph, requester):
        trending = StubTrending([
            {"destination": "Ibiza", "post_count": 9, "total_likes": 90, "avg_rating": 4.0, "tags": ["nightlife"]},
            {"destination": "Oslo", "post_count": 5, "total_likes": 60, "avg_rating": 4.5, "tags": ["fjords"]},
            {"destination": "Naples", "post_count": 4, "total_likes": 50, "avg_rating": 4.8, "tags": ["food"]},
            {"destination": "Kyoto", "post_count": 3, "total_likes": 40, "avg_rating": 4.9,
             "tags": ["culture", "food", "temples"]},
        ])
        generator = RecommendationGenerator(graph, trending, now=lambda: NOW)

        results = await generator.recommend(db, "alice", "destinations")

        assert [r["destination"] for r in results] == ["Kyoto", "Naples", "Ibiza", "Oslo"]
        assert results[0]["interest_match"] == 2
        assert results[0]["matching_tags"] == ["culture", "food"]
        assert results[-1]["interest_match"] == 0


class TestGroups:

    @staticmethod
    def group(name, members=("owner",), **fields):
        fields.setdefault("privacy", "public")
        fields.setdefault("last_activity", NOW)
        return TravelGroup(
            name=name,
            admin_id=members[0],
            members=[TravelGroupMember(user_id=m) for m in members],
            **fields,
        )

    async def test_relevance_ordering_and_exclusions(self, db, generator, requester):
        db.add_all([
            self.group("Food Lovers", tags=["food", "culture"], member_count=10),
            self.group("Lisbon Locals", tags=[], location="Portugal", member_count=4,
                       last_activity=NOW - timedelta(days=3)),
            self.group("Secret Supper", tags=["food"], privacy="private", member_count=10),
            self.group("My Crew", members=("owner", "alice"), tags=["food"], member_count=2),
            self.group("Party People", tags=["nightlife"], category="luxury", member_count=200),
        ])
        await db.commit()

        results = await generator.recommend(db, "alice", "groups")

        assert [g["name"] for g in results] == ["Food Lovers", "Lisbon Locals"]
        # 2 tags * 10 + 10 activity + 10 * 0.5 members
        assert results[0]["relevance_score"] == 35.0
        assert results[0]["match_reasons"] == [
            "Matches your interests: food, culture",
            "Very active community",
            "Intimate community for close connections",
        ]
        # 15 home country + 7 activity + 4 * 0.5 members
        assert results[1]["relevance_score"] == 24.0
        assert results[1]["match_reasons"][0] == "Based in Portugal"

    async def test_category_match_counts(self, db, generator, requester):
        db.add(self.group("Trailheads", tags=[], category="adventure", member_count=150,
                          last_activity=NOW - timedelta(days=30)))
        await db.commit()

        results = await generator.recommend(db, "alice", "groups")

        assert results[0]["relevance_score"] == 20.0
        assert results[0]["match_reasons"] == ["Large community (150 members)"]


class TestGeneratorErrors:

    async def test_unknown_kind_raises(self, generator):
        with pytest.raises(ValueError):
            await generator.recommend(None, "alice", "hotels")

    async def test_store_failure_yields_empty_list(self, db):
        generator = RecommendationGenerator(BrokenGraph(), StubTrending([]))
        assert await generator.recommend(db, "alice", "posts") == []

    async def test_new_user_gets_default_profile(self, db, generator, graph):
        assert await generator.recommend(db, "newbie", "travel_companions") == []
        profile = await graph.get_profile(db, "newbie")
        assert profile.travel_style == ["adventure"]
