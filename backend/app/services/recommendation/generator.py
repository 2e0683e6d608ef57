"""Recommendation generator — five ranking strategies over the social graph.

  posts              active posts by others matching the requester's interests/style,
                     by likes then recency
  users              profiles sharing a travel style or living in a country the
                     requester has posted about, by travel score
  destinations       trending destinations, stably re-ranked by interest-tag matches
  travel_companions  compatibility-scored profiles above the min threshold
  groups             public groups not yet joined, by relevance score

Blocked users (either direction) never appear. Data-access failures yield an
empty list; an unknown kind is rejected before any query runs.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.social import TravelGroup, TravelPost, UserProfile
from app.services.presenters import group_view, post_view, profile_view
from app.services.recommendation import compatibility
from app.services.recommendation.config import recommendation_config
from app.services.recommendation.trending import TrendingService
from app.services.social_graph_service import SocialGraphService

logger = logging.getLogger(__name__)

cfg = recommendation_config

# Rows pulled per strategy before tag matching, which runs in Python over JSON columns
CANDIDATE_POOL = 500


class RecommendationKind(str, Enum):
    POSTS = "posts"
    USERS = "users"
    DESTINATIONS = "destinations"
    TRAVEL_COMPANIONS = "travel_companions"
    GROUPS = "groups"


def _intersects(values, wanted: set) -> bool:
    return any(v in wanted for v in values or ())


class RecommendationGenerator:
    def __init__(
        self,
        graph: SocialGraphService,
        trending: TrendingService,
        now: Callable[[], datetime] = utcnow,
    ):
        self.graph = graph
        self.trending = trending
        self._now = now

    async def recommend(self, db: AsyncSession, user_id: str, kind: RecommendationKind | str) -> list[dict]:
        """Ranked recommendations of ``kind`` for ``user_id``.

        Raises ValueError for an unknown kind; never raises for store failures.
        """
        kind = RecommendationKind(kind)
        strategy = {
            RecommendationKind.POSTS: self._posts,
            RecommendationKind.USERS: self._users,
            RecommendationKind.DESTINATIONS: self._destinations,
            RecommendationKind.TRAVEL_COMPANIONS: self._companions,
            RecommendationKind.GROUPS: self._groups,
        }[kind]

        try:
            profile = await self.graph.get_or_create_profile(db, user_id)
            await db.commit()
            results = await strategy(db, profile)
        except SQLAlchemyError as e:
            logger.error(f"{kind.value} recommendations failed for {user_id}: {e}")
            await db.rollback()
            return []

        logger.info(f"Generated {len(results)} {kind.value} recommendations for {user_id}")
        return results

    # ─── Strategies ───

    async def _posts(self, db: AsyncSession, profile: UserProfile) -> list[dict]:
        interests = set(profile.interests or [])
        styles = set(profile.travel_style or [])
        hidden = await self.graph.blocked_ids(db, profile.user_id)

        query = (
            select(TravelPost)
            .where(TravelPost.status == "active", TravelPost.user_id != profile.user_id)
            .order_by(TravelPost.likes.desc(), TravelPost.created_at.desc())
            .limit(CANDIDATE_POOL)
        )
        if hidden:
            query = query.where(TravelPost.user_id.notin_(hidden))
        result = await db.execute(query)

        matches = []
        for post in result.scalars().all():
            if (
                _intersects(post.tags, interests)
                or post.travel_type in styles
                or _intersects(post.ai_topics, interests)
            ):
                matches.append(post_view(post))
                if len(matches) >= cfg.limits.posts:
                    break
        return matches

    async def _users(self, db: AsyncSession, profile: UserProfile) -> list[dict]:
        styles = set(profile.travel_style or [])
        countries_result = await db.execute(
            select(TravelPost.destination_country).where(
                TravelPost.user_id == profile.user_id, TravelPost.destination_country.is_not(None)
            )
        )
        countries = set(countries_result.scalars().all())
        hidden = await self.graph.blocked_ids(db, profile.user_id)

        result = await db.execute(
            select(UserProfile)
            .where(UserProfile.user_id != profile.user_id)
            .order_by(UserProfile.travel_score.desc(), UserProfile.created_at)
            .limit(CANDIDATE_POOL)
        )
        matches = []
        for candidate in result.scalars().all():
            if candidate.user_id in hidden:
                continue
            if _intersects(candidate.travel_style, styles) or candidate.country in countries:
                matches.append(profile_view(candidate))
                if len(matches) >= cfg.limits.users:
                    break
        return matches

    async def _destinations(self, db: AsyncSession, profile: UserProfile) -> list[dict]:
        wanted = set(profile.interests or []) | set(profile.travel_style or [])
        ranked = []
        for entry in await self.trending.trending_destinations(db):
            matched = [tag for tag in entry.get("tags", []) if tag in wanted]
            ranked.append({**entry, "interest_match": len(matched), "matching_tags": matched})
        # sorted() is stable, so equal matches keep their trending order
        return sorted(ranked, key=lambda d: d["interest_match"], reverse=True)

    async def _companions(self, db: AsyncSession, profile: UserProfile) -> list[dict]:
        rules = cfg.companions
        styles = set(profile.travel_style or [])
        interests = set(profile.interests or [])
        languages = set(profile.languages or [])
        floor = max(0, (profile.travel_score or 0) - rules.score_window_below)
        hidden = await self.graph.blocked_ids(db, profile.user_id)

        posts_result = await db.execute(select(TravelPost).where(TravelPost.user_id == profile.user_id))
        own_posts = list(posts_result.scalars().all())

        result = await db.execute(
            select(UserProfile)
            .where(UserProfile.user_id != profile.user_id, UserProfile.travel_score >= floor)
            .order_by(UserProfile.travel_score.desc(), UserProfile.created_at)
            .limit(CANDIDATE_POOL)
        )
        candidates = []
        for candidate in result.scalars().all():
            if candidate.user_id in hidden:
                continue
            if (
                _intersects(candidate.travel_style, styles)
                or _intersects(candidate.interests, interests)
                or _intersects(candidate.languages, languages)
            ):
                candidates.append(candidate)
                if len(candidates) >= rules.candidate_limit:
                    break

        scored = []
        for candidate in candidates:
            match = compatibility.score(profile, candidate, own_posts)
            if match.value > rules.min_compatibility:
                scored.append({
                    **profile_view(candidate),
                    "compatibility_score": match.value,
                    "match_reasons": match.reasons,
                })
        scored.sort(key=lambda c: c["compatibility_score"], reverse=True)
        return scored[: rules.max_results]

    async def _groups(self, db: AsyncSession, profile: UserProfile) -> list[dict]:
        rules = cfg.groups
        interests = set(profile.interests or [])
        styles = set(profile.travel_style or [])
        now = self._now()

        result = await db.execute(
            select(TravelGroup)
            .where(TravelGroup.privacy == "public")
            .order_by(TravelGroup.member_count.desc(), TravelGroup.last_activity.desc())
            .limit(CANDIDATE_POOL)
        )
        scored = []
        for group in result.scalars().all():
            if any(m.user_id == profile.user_id for m in group.members):
                continue
            home_match = bool(profile.country) and group.location == profile.country
            if not (_intersects(group.tags, interests) or group.category in styles or home_match):
                continue

            matching_tags = [tag for tag in group.tags or [] if tag in interests]
            idle_days = (now - group.last_activity).total_seconds() / 86400
            relevance = len(matching_tags) * rules.tag_points
            relevance += rules.home_country_points if home_match else 0
            relevance += max(0.0, rules.activity_window_days - idle_days)
            relevance += min((group.member_count or 0) * rules.member_points, rules.member_points_cap)

            scored.append({
                **group_view(group),
                "relevance_score": round(relevance, 2),
                "match_reasons": self._group_reasons(group, matching_tags, home_match, idle_days),
            })
        scored.sort(key=lambda g: g["relevance_score"], reverse=True)
        return scored[: rules.max_results]

    @staticmethod
    def _group_reasons(group: TravelGroup, matching_tags: list[str], home_match: bool, idle_days: float) -> list[str]:
        rules = cfg.groups
        reasons = []
        if matching_tags:
            reasons.append(f"Matches your interests: {', '.join(matching_tags[:2])}")
        if home_match:
            reasons.append(f"Based in {group.location}")
        if idle_days < rules.active_days:
            reasons.append("Very active community")
        members = group.member_count or 0
        if members > rules.large_community:
            reasons.append(f"Large community ({members} members)")
        elif members < rules.small_community:
            reasons.append("Intimate community for close connections")
        return reasons[:3]
