"""Social graph service — profiles, follow/block edges, derived profile stats."""

import hashlib
import logging
import uuid
from collections.abc import Iterator
from itertools import islice

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.social import SocialConnection, TravelPost, UserProfile

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES = {
    "travel_style": ["adventure"],
    "interests": ["culture", "food"],
    "languages": ["English"],
}

# Fields a client may set on its own profile; stats are always derived
EDITABLE_FIELDS = (
    "full_name", "bio", "avatar", "age", "city", "country", "latitude", "longitude",
    "travel_style", "interests", "languages", "profile_visibility", "post_visibility",
)

VISIBILITY = ("public", "friends", "private")

HANDLE_ATTEMPTS = 5


def _handle_candidates(user_id: str) -> Iterator[str]:
    base = f"user_{user_id[-6:]}"
    yield base
    yield f"{base}_{hashlib.sha1(user_id.encode()).hexdigest()[:6]}"
    while True:
        yield f"{base}_{uuid.uuid4().hex[:6]}"


class SocialGraphService:
    """Profile store plus the follow/block graph between travelers."""

    # ─── Profiles ───

    async def get_profile(self, db: AsyncSession, user_id: str) -> UserProfile | None:
        result = await db.execute(select(UserProfile).where(UserProfile.user_id == user_id))
        return result.scalar_one_or_none()

    async def get_or_create_profile(self, db: AsyncSession, user_id: str) -> UserProfile:
        """Fetch a profile, creating a default one on first access.

        The default handle is ``user_<last 6 chars of id>``; when that is taken a
        suffix derived from the full id is added. Each insert runs in a savepoint
        so a lost race on the handle or the user id never poisons the caller's
        transaction.
        """
        profile = await self.get_profile(db, user_id)
        if profile:
            return profile

        for username in islice(_handle_candidates(user_id), HANDLE_ATTEMPTS):
            if await self._username_taken(db, username):
                continue
            profile = UserProfile(
                user_id=user_id,
                username=username,
                full_name=f"user_{user_id[-6:]}",
                bio="Travel enthusiast exploring the world!",
                avatar=f"https://i.pravatar.cc/150?u={user_id}",
                travel_style=list(DEFAULT_PREFERENCES["travel_style"]),
                interests=list(DEFAULT_PREFERENCES["interests"]),
                languages=list(DEFAULT_PREFERENCES["languages"]),
                badges=[],
            )
            try:
                async with db.begin_nested():
                    db.add(profile)
            except IntegrityError:
                existing = await self.get_profile(db, user_id)
                if existing:
                    return existing
                logger.info(f"Handle {username} taken concurrently, retrying for user {user_id}")
                continue
            logger.info(f"Created profile for user {user_id} as {username}")
            return profile

        raise RuntimeError(f"Could not allocate a username for user {user_id}")

    async def _username_taken(self, db: AsyncSession, username: str) -> bool:
        result = await db.execute(select(UserProfile.id).where(UserProfile.username == username))
        return result.scalar_one_or_none() is not None

    async def update_profile(self, db: AsyncSession, user_id: str, updates: dict) -> UserProfile:
        profile = await self.get_or_create_profile(db, user_id)

        if "username" in updates and updates["username"] and updates["username"] != profile.username:
            taken = await db.execute(
                select(UserProfile.id).where(UserProfile.username == updates["username"])
            )
            if taken.scalar_one_or_none():
                raise ValueError("Username already taken")
            profile.username = updates["username"]

        for name in EDITABLE_FIELDS:
            if name not in updates or updates[name] is None:
                continue
            value = updates[name]
            if name.endswith("visibility") and value not in VISIBILITY:
                raise ValueError(f"{name} must be one of {', '.join(VISIBILITY)}")
            setattr(profile, name, list(value) if name in DEFAULT_PREFERENCES else value)

        profile.last_active = utcnow()
        await db.commit()
        return profile

    async def get_profiles(self, db: AsyncSession, user_ids: list[str]) -> dict[str, UserProfile]:
        if not user_ids:
            return {}
        result = await db.execute(select(UserProfile).where(UserProfile.user_id.in_(user_ids)))
        return {p.user_id: p for p in result.scalars().all()}

    # ─── Connections ───

    async def toggle_follow(self, db: AsyncSession, follower_id: str, following_id: str) -> dict:
        """Follow, or unfollow when the edge already exists."""
        if follower_id == following_id:
            raise ValueError("Cannot follow yourself")
        if await self.is_blocked_between(db, follower_id, following_id):
            raise ValueError("Cannot follow a blocked user")

        await self.get_or_create_profile(db, follower_id)
        await self.get_or_create_profile(db, following_id)

        existing = await db.execute(
            select(SocialConnection).where(
                SocialConnection.follower_id == follower_id,
                SocialConnection.following_id == following_id,
                SocialConnection.connection_type == "follow",
            )
        )
        connection = existing.scalar_one_or_none()
        if connection:
            await db.delete(connection)
            following = False
        else:
            db.add(SocialConnection(
                follower_id=follower_id,
                following_id=following_id,
                connection_type="follow",
            ))
            following = True
        await db.flush()

        await self._refresh_connection_counts(db, follower_id)
        await self._refresh_connection_counts(db, following_id)
        await db.commit()

        logger.info(f"User {follower_id} {'followed' if following else 'unfollowed'} {following_id}")
        return {"following": following, "action": "followed" if following else "unfollowed"}

    async def block_user(self, db: AsyncSession, blocker_id: str, blocked_id: str) -> dict:
        """Block a user; drops follow edges in both directions. Idempotent."""
        if blocker_id == blocked_id:
            raise ValueError("Cannot block yourself")

        existing = await db.execute(
            select(SocialConnection.id).where(
                SocialConnection.follower_id == blocker_id,
                SocialConnection.following_id == blocked_id,
                SocialConnection.connection_type == "block",
            )
        )
        if existing.scalar_one_or_none() is None:
            db.add(SocialConnection(
                follower_id=blocker_id, following_id=blocked_id, connection_type="block"
            ))

        await db.execute(
            delete(SocialConnection).where(
                SocialConnection.connection_type == "follow",
                or_(
                    and_(SocialConnection.follower_id == blocker_id, SocialConnection.following_id == blocked_id),
                    and_(SocialConnection.follower_id == blocked_id, SocialConnection.following_id == blocker_id),
                ),
            )
        )
        await db.flush()
        for user_id in (blocker_id, blocked_id):
            if await self.get_profile(db, user_id):
                await self._refresh_connection_counts(db, user_id)
        await db.commit()
        return {"blocked": True}

    async def get_following(self, db: AsyncSession, user_id: str) -> list[SocialConnection]:
        result = await db.execute(
            select(SocialConnection).where(
                SocialConnection.follower_id == user_id,
                SocialConnection.connection_type == "follow",
                SocialConnection.status == "accepted",
            ).order_by(SocialConnection.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_followers(self, db: AsyncSession, user_id: str) -> list[SocialConnection]:
        result = await db.execute(
            select(SocialConnection).where(
                SocialConnection.following_id == user_id,
                SocialConnection.connection_type == "follow",
                SocialConnection.status == "accepted",
            ).order_by(SocialConnection.created_at.desc())
        )
        return list(result.scalars().all())

    async def blocked_ids(self, db: AsyncSession, user_id: str) -> set[str]:
        """Users hidden from ``user_id``: those it blocked and those who blocked it."""
        result = await db.execute(
            select(SocialConnection.follower_id, SocialConnection.following_id).where(
                SocialConnection.connection_type == "block",
                or_(SocialConnection.follower_id == user_id, SocialConnection.following_id == user_id),
            )
        )
        hidden = set()
        for follower_id, following_id in result.all():
            hidden.add(following_id if follower_id == user_id else follower_id)
        return hidden

    async def is_blocked_between(self, db: AsyncSession, a: str, b: str) -> bool:
        return b in await self.blocked_ids(db, a)

    async def _refresh_connection_counts(self, db: AsyncSession, user_id: str) -> None:
        profile = await self.get_or_create_profile(db, user_id)
        followers = await db.execute(
            select(func.count(SocialConnection.id)).where(
                SocialConnection.following_id == user_id,
                SocialConnection.connection_type == "follow",
                SocialConnection.status == "accepted",
            )
        )
        following = await db.execute(
            select(func.count(SocialConnection.id)).where(
                SocialConnection.follower_id == user_id,
                SocialConnection.connection_type == "follow",
                SocialConnection.status == "accepted",
            )
        )
        profile.followers = followers.scalar() or 0
        profile.following = following.scalar() or 0

    # ─── Derived stats ───

    async def recalculate_travel_score(self, db: AsyncSession, user_id: str, commit: bool = True) -> int:
        """Recompute travel score, visited countries and post count from the user's posts.

        Pure function of the stored posts and follow counts, so concurrent runs
        converge on the same values.
        """
        profile = await self.get_or_create_profile(db, user_id)
        result = await db.execute(
            select(TravelPost.likes, TravelPost.comments, TravelPost.destination_country)
            .where(TravelPost.user_id == user_id)
        )
        rows = result.all()

        countries = {country for _, _, country in rows if country}
        score = len(rows) * 10
        score += sum(likes or 0 for likes, _, _ in rows) * 2
        score += sum(comments or 0 for _, comments, _ in rows) * 3
        score += len(countries) * 25
        score += (profile.followers or 0) * 1
        score += (profile.following or 0) * 0.5

        profile.travel_score = round(score)
        profile.visited_countries = len(countries)
        profile.post_count = len(rows)
        if commit:
            await db.commit()
        return profile.travel_score

    async def recalculate_all_scores(self, db: AsyncSession) -> int:
        result = await db.execute(select(UserProfile.user_id))
        user_ids = list(result.scalars().all())
        for user_id in user_ids:
            await self.recalculate_travel_score(db, user_id, commit=False)
        await db.commit()
        return len(user_ids)


social_graph_service = SocialGraphService()
