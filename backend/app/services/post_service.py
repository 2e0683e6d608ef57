"""Post service — travel posts, feed, search, likes, bookmarks, comments."""

import logging
import uuid
from datetime import timedelta

from sqlalchemy import String, cast, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import utcnow
from app.models.social import PostComment, PostReaction, TravelPost
from app.services.content_ai_service import ContentAIService, content_ai_service
from app.services.group_trip_errors import ModerationRejected
from app.services.presenters import comment_view, post_view
from app.services.recommendation.config import recommendation_config
from app.services.social_graph_service import SocialGraphService, social_graph_service

logger = logging.getLogger(__name__)

TRAVEL_TYPES = ("solo", "couple", "family", "group", "business")
FEED_FILTERS = ("all", "following", "trending")
FEED_SORTS = ("recent", "popular", "trending")


class PostService:
    def __init__(self, content_ai: ContentAIService, graph: SocialGraphService):
        self.content_ai = content_ai
        self.graph = graph

    async def get_post(self, db: AsyncSession, post_id: uuid.UUID) -> TravelPost:
        result = await db.execute(select(TravelPost).where(TravelPost.id == post_id))
        post = result.scalar_one_or_none()
        if not post:
            raise LookupError("Post not found")
        return post

    async def create_post(self, db: AsyncSession, user_id: str, data: dict) -> TravelPost:
        destination = (data.get("destination") or "").strip()
        content = (data.get("content") or "").strip()
        if not destination or not content:
            raise ValueError("Destination and content are required")
        travel_type = data.get("travel_type") or "solo"
        if travel_type not in TRAVEL_TYPES:
            raise ValueError(f"travel_type must be one of {', '.join(TRAVEL_TYPES)}")
        rating = data.get("rating") or 5
        if not 1 <= int(rating) <= 5:
            raise ValueError("rating must be between 1 and 5")

        await self.graph.get_or_create_profile(db, user_id)
        enrichment = await self.content_ai.enrich(content, destination)

        coordinates = data.get("coordinates") or {}
        post = TravelPost(
            user_id=user_id,
            destination_name=destination,
            destination_country=data.get("country") or None,
            destination_city=data.get("city") or None,
            latitude=coordinates.get("lat"),
            longitude=coordinates.get("lng"),
            content=content,
            images=list(data.get("images") or []),
            videos=list(data.get("videos") or []),
            duration=data.get("duration"),
            budget=data.get("budget"),
            travel_type=travel_type,
            rating=int(rating),
            season=data.get("season"),
            accommodation=data.get("accommodation"),
            transportation=data.get("transportation"),
            tags=list(data.get("tags") or []),
            privacy=data.get("privacy") or "public",
            ai_sentiment=enrichment.sentiment,
            ai_topics=enrichment.topics,
            ai_readability_score=enrichment.readability_score,
            ai_engagement_prediction=enrichment.engagement_prediction,
        )
        db.add(post)
        await db.flush()

        profile = await self.graph.get_or_create_profile(db, user_id)
        profile.last_active = utcnow()
        await self.graph.recalculate_travel_score(db, user_id, commit=False)
        await db.commit()

        logger.info(f"Created travel post {post.id} for user {user_id} ({destination})")
        return post

    async def get_feed(
        self, db: AsyncSession, user_id: str, filter: str = "all", sort_by: str = "recent",
        page: int = 1, limit: int = 20,
    ) -> list[dict]:
        if filter not in FEED_FILTERS:
            raise ValueError(f"filter must be one of {', '.join(FEED_FILTERS)}")
        if sort_by not in FEED_SORTS:
            raise ValueError(f"sort_by must be one of {', '.join(FEED_SORTS)}")

        query = select(TravelPost).where(TravelPost.status == "active")

        if filter == "following":
            following = await self.graph.get_following(db, user_id)
            query = query.where(TravelPost.user_id.in_([c.following_id for c in following]))
        elif filter == "trending":
            window = recommendation_config.trending
            query = query.where(
                TravelPost.likes >= window.feed_min_likes,
                TravelPost.created_at >= utcnow() - timedelta(days=window.feed_days),
            )

        hidden = await self.graph.blocked_ids(db, user_id)
        if hidden:
            query = query.where(TravelPost.user_id.notin_(hidden))

        if sort_by == "popular":
            query = query.order_by(TravelPost.likes.desc(), TravelPost.comments.desc())
        elif sort_by == "trending":
            query = query.order_by(TravelPost.likes.desc(), TravelPost.views.desc(), TravelPost.created_at.desc())
        else:
            query = query.order_by(TravelPost.created_at.desc())

        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        posts = list(result.scalars().all())

        authors = await self.graph.get_profiles(db, list({p.user_id for p in posts}))
        reactions = await self._reactions_for(db, user_id, [p.id for p in posts])

        feed = []
        for post in posts:
            entry = post_view(post)
            author = authors.get(post.user_id)
            entry["user"] = {"user_id": author.user_id, "username": author.username, "avatar": author.avatar} if author else None
            entry["is_liked"] = (post.id, "like") in reactions
            entry["is_bookmarked"] = (post.id, "bookmark") in reactions
            feed.append(entry)
        return feed

    async def search_posts(
        self, db: AsyncSession, query: str, filters: dict | None = None, page: int = 1, limit: int = 20
    ) -> list[TravelPost]:
        filters = filters or {}
        pattern = f"%{query}%"
        stmt = select(TravelPost).where(
            TravelPost.status == "active",
            or_(
                TravelPost.destination_name.ilike(pattern),
                TravelPost.content.ilike(pattern),
                cast(TravelPost.tags, String).ilike(pattern),
            ),
        )
        if filters.get("travel_type"):
            stmt = stmt.where(TravelPost.travel_type == filters["travel_type"])
        if filters.get("min_rating"):
            stmt = stmt.where(TravelPost.rating >= int(filters["min_rating"]))
        if filters.get("destination"):
            stmt = stmt.where(TravelPost.destination_country.ilike(f"%{filters['destination']}%"))

        stmt = stmt.order_by(TravelPost.likes.desc(), TravelPost.created_at.desc())
        result = await db.execute(stmt.offset((page - 1) * limit).limit(limit))
        return list(result.scalars().all())

    # ─── Engagement ───

    async def toggle_like(self, db: AsyncSession, user_id: str, post_id: uuid.UUID) -> dict:
        post = await self.get_post(db, post_id)
        reaction = await self._reaction(db, user_id, post_id, "like")
        if reaction:
            await db.delete(reaction)
            liked = False
        else:
            db.add(PostReaction(post_id=post_id, user_id=user_id, kind="like"))
            liked = True
        await db.flush()
        await self._recount_likes(db, post)
        await self.graph.recalculate_travel_score(db, post.user_id, commit=False)
        await db.commit()
        return {"liked": liked, "action": "liked" if liked else "unliked", "likes": post.likes}

    async def toggle_bookmark(self, db: AsyncSession, user_id: str, post_id: uuid.UUID) -> dict:
        """Bookmark or un-bookmark; the post's bookmark counter only ever grows."""
        post = await self.get_post(db, post_id)
        reaction = await self._reaction(db, user_id, post_id, "bookmark")
        if reaction:
            await db.delete(reaction)
            bookmarked = False
        else:
            db.add(PostReaction(post_id=post_id, user_id=user_id, kind="bookmark"))
            await db.flush()
            await self._increment(db, post, "bookmarks")
            bookmarked = True
        await db.commit()
        return {"bookmarked": bookmarked, "bookmarks": post.bookmarks}

    async def add_comment(
        self, db: AsyncSession, user_id: str, post_id: uuid.UUID, content: str,
        parent_comment_id: uuid.UUID | None = None,
    ) -> dict:
        content = (content or "").strip()
        if not content:
            raise ValueError("Comment content is required")
        post = await self.get_post(db, post_id)

        parent = None
        if parent_comment_id:
            result = await db.execute(
                select(PostComment).where(PostComment.id == parent_comment_id, PostComment.post_id == post_id)
            )
            parent = result.scalar_one_or_none()
            if not parent:
                raise LookupError("Parent comment not found")

        moderation = await self.content_ai.moderate(content)
        if moderation.rejected:
            raise ModerationRejected("Comment violates community guidelines")

        comment = PostComment(
            post_id=post_id,
            user_id=user_id,
            content=content,
            parent_comment_id=parent_comment_id,
            status="hidden" if moderation.action == "review" else "active",
            moderation_score=moderation.score,
            moderation_flags=moderation.flags,
        )
        db.add(comment)
        await db.flush()
        await self._increment(db, post, "comments")
        if parent:
            await self._increment(db, parent, "replies")
        await self.graph.recalculate_travel_score(db, post.user_id, commit=False)
        await db.commit()
        return comment_view(comment)

    async def _recount_likes(self, db: AsyncSession, post: TravelPost) -> None:
        """Set the like counter from the reaction rows."""
        like_count = (
            select(func.count(PostReaction.id))
            .where(PostReaction.post_id == post.id, PostReaction.kind == "like")
            .scalar_subquery()
        )
        await db.execute(
            update(TravelPost)
            .where(TravelPost.id == post.id)
            .values(likes=like_count)
            .execution_options(synchronize_session=False)
        )
        await db.refresh(post, ["likes"])

    async def _increment(self, db: AsyncSession, obj: TravelPost | PostComment, column: str) -> None:
        # In-database increment; concurrent writers each land their +1
        model = type(obj)
        await db.execute(
            update(model)
            .where(model.id == obj.id)
            .values({column: func.coalesce(getattr(model, column), 0) + 1})
            .execution_options(synchronize_session=False)
        )
        await db.refresh(obj, [column])

    async def _reaction(self, db: AsyncSession, user_id: str, post_id: uuid.UUID, kind: str) -> PostReaction | None:
        result = await db.execute(
            select(PostReaction).where(
                PostReaction.post_id == post_id,
                PostReaction.user_id == user_id,
                PostReaction.kind == kind,
            )
        )
        return result.scalar_one_or_none()

    async def _reactions_for(self, db: AsyncSession, user_id: str, post_ids: list[uuid.UUID]) -> set[tuple]:
        if not post_ids:
            return set()
        result = await db.execute(
            select(PostReaction.post_id, PostReaction.kind).where(
                PostReaction.user_id == user_id, PostReaction.post_id.in_(post_ids)
            )
        )
        return {(post_id, kind) for post_id, kind in result.all()}


post_service = PostService(content_ai_service, social_graph_service)
