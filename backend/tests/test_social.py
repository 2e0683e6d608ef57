"""Tests for profiles, the follow/block graph, posts and travel groups."""

import uuid

import pytest

from app.services.content_ai_service import ModerationResult
from app.services.group_trip_errors import ModerationRejected
from app.services.travel_group_service import TravelGroupService


class TestProfiles:

    async def test_first_access_creates_default_profile(self, db, graph):
        profile = await graph.get_or_create_profile(db, "alice")

        assert profile.username == "user_alice"
        assert profile.travel_style == ["adventure"]
        assert profile.interests == ["culture", "food"]
        assert profile.languages == ["English"]
        assert profile.travel_score == 0
        assert await graph.get_or_create_profile(db, "alice") is profile

    async def test_colliding_default_handles_get_a_suffix(self, db, graph):
        first = await graph.get_or_create_profile(db, "alice-abcdef")
        second = await graph.get_or_create_profile(db, "bob-abcdef")
        await db.commit()

        assert first.username == "user_abcdef"
        assert second.username.startswith("user_abcdef_")
        assert second.username != first.username

    async def test_handle_taken_between_check_and_insert(self, db, graph, make_profile, monkeypatch):
        await make_profile("alice-abcdef")

        async def never_taken(db, username):
            return False

        monkeypatch.setattr(graph, "_username_taken", never_taken)
        profile = await graph.get_or_create_profile(db, "bob-abcdef")
        await db.commit()

        assert profile.username.startswith("user_abcdef_")
        assert (await graph.get_profile(db, "alice-abcdef")).username == "user_abcdef"

    async def test_update_profile(self, db, graph):
        profile = await graph.update_profile(db, "alice", {
            "bio": "Always packing", "travel_style": ["budget"], "followers": 999,
        })

        assert profile.bio == "Always packing"
        assert profile.travel_style == ["budget"]
        assert profile.followers == 0, "stats are derived, never client-set"

    async def test_username_must_be_unique(self, db, graph, make_profile):
        await make_profile("bob")
        with pytest.raises(ValueError, match="Username already taken"):
            await graph.update_profile(db, "alice", {"username": "user_bob"})

    async def test_visibility_values(self, db, graph):
        with pytest.raises(ValueError):
            await graph.update_profile(db, "alice", {"profile_visibility": "everyone"})


class TestConnections:

    async def test_follow_toggle_updates_counts(self, db, graph):
        result = await graph.toggle_follow(db, "alice", "bob")
        assert result == {"following": True, "action": "followed"}

        alice = await graph.get_profile(db, "alice")
        bob = await graph.get_profile(db, "bob")
        assert (alice.following, bob.followers) == (1, 1)
        assert [c.following_id for c in await graph.get_following(db, "alice")] == ["bob"]
        assert [c.follower_id for c in await graph.get_followers(db, "bob")] == ["alice"]

        result = await graph.toggle_follow(db, "alice", "bob")
        assert result["following"] is False
        assert (alice.following, bob.followers) == (0, 0)

    async def test_cannot_follow_self(self, db, graph):
        with pytest.raises(ValueError):
            await graph.toggle_follow(db, "alice", "alice")

    async def test_block_drops_follows_both_ways(self, db, graph):
        await graph.toggle_follow(db, "alice", "bob")
        await graph.toggle_follow(db, "bob", "alice")

        await graph.block_user(db, "alice", "bob")
        await graph.block_user(db, "alice", "bob")

        assert await graph.is_blocked_between(db, "bob", "alice")
        assert await graph.blocked_ids(db, "alice") == {"bob"}
        assert await graph.get_following(db, "alice") == []
        assert (await graph.get_profile(db, "bob")).followers == 0
        with pytest.raises(ValueError):
            await graph.toggle_follow(db, "bob", "alice")


class TestTravelScore:

    async def test_score_formula(self, db, graph, make_profile, make_post):
        await make_profile("alice")
        await graph.toggle_follow(db, "bob", "alice")
        await make_post("alice", "Porto", destination_country="Portugal", likes=3, comments=2)
        await make_post("alice", "Seville", destination_country="Spain", likes=1)

        score = await graph.recalculate_travel_score(db, "alice")

        # 2 posts * 10 + 4 likes * 2 + 2 comments * 3 + 2 countries * 25 + 1 follower
        assert score == 85
        profile = await graph.get_profile(db, "alice")
        assert (profile.post_count, profile.visited_countries) == (2, 2)

    async def test_recalculate_all(self, db, graph, make_profile, make_post):
        await make_profile("alice")
        await make_profile("bob")
        await make_post("bob", "Oslo", destination_country="Norway")

        assert await graph.recalculate_all_scores(db) == 2
        assert (await graph.get_profile(db, "bob")).travel_score == 35


class TestPosts:

    async def test_create_attaches_enrichment_and_scores_author(self, db, posts, graph):
        post = await posts.create_post(db, "alice", {
            "destination": "Lisbon", "country": "Portugal", "content": "Tram 28 at dawn",
            "tags": ["food"], "rating": 4,
        })

        assert post.ai_sentiment == "positive"
        assert post.ai_topics == ["beaches", "food"]
        profile = await graph.get_profile(db, "alice")
        assert profile.post_count == 1
        assert profile.travel_score == 35

    @pytest.mark.parametrize("data", [
        {"destination": "Lisbon", "content": ""},
        {"destination": "", "content": "hello"},
        {"destination": "Lisbon", "content": "hello", "travel_type": "spaceflight"},
        {"destination": "Lisbon", "content": "hello", "rating": 9},
    ])
    async def test_create_validation(self, db, posts, data):
        with pytest.raises(ValueError):
            await posts.create_post(db, "alice", data)

    async def test_feed_flags_and_filters(self, db, posts, graph, make_profile, make_post):
        await make_profile("bob")
        await make_profile("carol")
        liked = await make_post("bob", "Porto")
        await make_post("carol", "Oslo")
        await graph.toggle_follow(db, "alice", "bob")
        await posts.toggle_like(db, "alice", liked.id)

        feed = await posts.get_feed(db, "alice")
        following = await posts.get_feed(db, "alice", filter="following")

        by_destination = {p["destination"]["name"]: p for p in feed}
        assert by_destination["Porto"]["is_liked"] is True
        assert by_destination["Porto"]["user"]["username"] == "user_bob"
        assert by_destination["Oslo"]["is_liked"] is False
        assert [p["destination"]["name"] for p in following] == ["Porto"]

    async def test_feed_hides_blocked_authors(self, db, posts, graph, make_post):
        await make_post("mallory", "Rome")
        await graph.block_user(db, "mallory", "alice")

        assert await posts.get_feed(db, "alice") == []

    async def test_feed_rejects_unknown_filter(self, db, posts):
        with pytest.raises(ValueError):
            await posts.get_feed(db, "alice", filter="friends")

    async def test_search(self, db, posts, make_post):
        await make_post("bob", "Porto", destination_country="Portugal", rating=5)
        await make_post("bob", "Lisbon", destination_country="Portugal", tags=["porto-wine"], rating=3)
        await make_post("bob", "Oslo", destination_country="Norway", rating=5)

        found = await posts.search_posts(db, "porto")
        assert {p.destination_name for p in found} == {"Porto", "Lisbon"}

        rated = await posts.search_posts(db, "porto", {"min_rating": 4})
        assert [p.destination_name for p in rated] == ["Porto"]

    async def test_like_toggle_updates_owner_score(self, db, posts, graph, make_post):
        post = await make_post("bob", "Porto")

        assert await posts.toggle_like(db, "alice", post.id) == {"liked": True, "action": "liked", "likes": 1}
        assert (await graph.get_profile(db, "bob")).travel_score == 12

        assert (await posts.toggle_like(db, "alice", post.id))["likes"] == 0

    async def test_like_counts_survive_stale_copies(self, db, posts, session_factory, make_post):
        post = await make_post("bob", "Porto")
        async with session_factory() as other:
            await posts.toggle_like(other, "carol", post.id)

        result = await posts.toggle_like(db, "alice", post.id)

        assert result["likes"] == 2
        assert post.likes == 2

    async def test_like_missing_post(self, db, posts):
        with pytest.raises(LookupError):
            await posts.toggle_like(db, "alice", uuid.uuid4())

    async def test_bookmark_counter_only_grows(self, db, posts, make_post):
        post = await make_post("bob", "Porto")

        assert await posts.toggle_bookmark(db, "alice", post.id) == {"bookmarked": True, "bookmarks": 1}
        assert await posts.toggle_bookmark(db, "alice", post.id) == {"bookmarked": False, "bookmarks": 1}
        assert await posts.toggle_bookmark(db, "alice", post.id) == {"bookmarked": True, "bookmarks": 2}


    async def test_bookmark_increments_in_database(self, db, posts, session_factory, make_post):
        post = await make_post("bob", "Porto")
        async with session_factory() as other:
            await posts.toggle_bookmark(other, "carol", post.id)

        assert await posts.toggle_bookmark(db, "alice", post.id) == {"bookmarked": True, "bookmarks": 2}


class TestComments:

    async def test_comment_and_reply_counters(self, db, posts, make_post):
        post = await make_post("bob", "Porto")

        comment = await posts.add_comment(db, "alice", post.id, "Which bakery?")
        reply = await posts.add_comment(db, "bob", post.id, "Manteigaria", uuid.UUID(comment["id"]))

        assert comment["status"] == "active"
        assert reply["parent_comment_id"] == comment["id"]
        assert post.comments == 2

    async def test_rejected_comment_changes_nothing(self, db, posts, content_ai, make_post):
        post = await make_post("bob", "Porto")
        content_ai.moderation = ModerationResult(score=0.0, flags=["harassment"], action="reject")

        with pytest.raises(ModerationRejected):
            await posts.add_comment(db, "alice", post.id, "nasty")
        assert post.comments == 0

    async def test_review_verdict_hides_comment(self, db, posts, content_ai, make_post):
        post = await make_post("bob", "Porto")
        content_ai.moderation = ModerationResult(score=0.5, flags=["promotional"], action="review")

        comment = await posts.add_comment(db, "alice", post.id, "visit my blog")

        assert comment["status"] == "hidden"
        assert comment["moderation"] == {"score": 0.5, "flags": ["promotional"]}

    async def test_missing_parent(self, db, posts, make_post):
        post = await make_post("bob", "Porto")
        with pytest.raises(LookupError):
            await posts.add_comment(db, "alice", post.id, "hi", uuid.uuid4())


class TestTravelGroups:

    @pytest.fixture
    def groups(self, graph):
        return TravelGroupService(graph)

    async def test_create_and_join(self, db, groups):
        group = await groups.create_group(db, "alice", {
            "name": "Slow Travelers", "description": "Trains over planes", "tags": ["rail"],
        })
        assert group.member_count == 1
        assert [(m.user_id, m.role) for m in group.members] == [("alice", "admin")]

        joined = await groups.join_group(db, "bob", group.id)
        again = await groups.join_group(db, "bob", group.id)

        assert joined["joined"] is True
        assert again == {"joined": False, "already_member": True, "message": "Already a member of this group"}
        assert (await groups.get_group(db, group.id)).member_count == 2

    async def test_private_group_needs_approval(self, db, groups):
        group = await groups.create_group(db, "alice", {
            "name": "Inner Circle", "description": "Invite only", "privacy": "private", "member_approval": True,
        })

        result = await groups.join_group(db, "bob", group.id)

        assert result["joined"] is False and result["already_member"] is False

    async def test_create_requires_description(self, db, groups):
        with pytest.raises(ValueError):
            await groups.create_group(db, "alice", {"name": "No blurb"})
