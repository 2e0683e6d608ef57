"""Social router — profiles, follows, posts, recommendations, discovery, groups."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db, utcnow
from app.dependencies import get_current_user_id
from app.schemas.social import CommentCreate, GroupCreate, PostCreate, ProfileUpdate
from app.services.group_trip_errors import ModerationRejected
from app.services.post_service import post_service
from app.services.presenters import group_view, post_view, profile_view
from app.services.recommendation import compatibility
from app.services.recommendation.generator import RecommendationKind
from app.services.recommendation.service import recommendation_service
from app.services.social_graph_service import social_graph_service
from app.services.travel_group_service import travel_group_service

router = APIRouter()


# ─── Profiles ───

@router.get("/profile")
async def get_my_profile(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    profile = await social_graph_service.get_or_create_profile(db, user_id)
    await db.commit()
    return profile_view(profile)


@router.get("/profile/{target_id}")
async def get_profile(
    target_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    if await social_graph_service.is_blocked_between(db, user_id, target_id):
        raise HTTPException(status_code=404, detail="Profile not found")
    profile = await social_graph_service.get_or_create_profile(db, target_id)
    await db.commit()
    return profile_view(profile)


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        profile = await social_graph_service.update_profile(db, user_id, body.model_dump(exclude_unset=True))
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    return profile_view(profile)


# ─── Connections ───

@router.post("/users/{target_id}/follow")
async def toggle_follow(
    target_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await social_graph_service.toggle_follow(db, user_id, target_id)
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/users/{target_id}/block")
async def block_user(
    target_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        result = await social_graph_service.block_user(db, user_id, target_id)
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    await recommendation_service.on_block(user_id, target_id)
    return result


@router.get("/users/{target_id}/followers")
async def get_followers(
    target_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    connections = await social_graph_service.get_followers(db, target_id)
    return [{"user_id": c.follower_id, "since": c.created_at.isoformat()} for c in connections]


@router.get("/users/{target_id}/following")
async def get_following(
    target_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    connections = await social_graph_service.get_following(db, target_id)
    return [{"user_id": c.following_id, "since": c.created_at.isoformat()} for c in connections]


# ─── Posts ───

@router.post("/posts", status_code=201)
async def create_post(
    body: PostCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        post = await post_service.create_post(db, user_id, body.model_dump())
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    return post_view(post)


@router.get("/feed")
async def get_feed(
    filter: str = "all",
    sort_by: str = "recent",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        posts = await post_service.get_feed(db, user_id, filter=filter, sort_by=sort_by, page=page, limit=limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"posts": posts, "pagination": {"page": page, "limit": limit, "has_more": len(posts) == limit}}


@router.get("/posts/search")
async def search_posts(
    q: str = Query(..., min_length=1),
    travel_type: str | None = None,
    min_rating: int | None = Query(None, ge=1, le=5),
    destination: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    filters = {"travel_type": travel_type, "min_rating": min_rating, "destination": destination}
    posts = await post_service.search_posts(db, q, filters, page=page, limit=limit)
    return {"posts": [post_view(p) for p in posts], "query": q}


@router.post("/posts/{post_id}/like")
async def toggle_like(
    post_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await post_service.toggle_like(db, user_id, post_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/posts/{post_id}/bookmark")
async def toggle_bookmark(
    post_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await post_service.toggle_bookmark(db, user_id, post_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/posts/{post_id}/comments", status_code=201)
async def add_comment(
    post_id: uuid.UUID,
    body: CommentCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await post_service.add_comment(db, user_id, post_id, body.content, body.parent_comment_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ModerationRejected as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# ─── Recommendations & discovery ───

@router.get("/recommendations/{kind}")
async def get_recommendations(
    kind: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        kind = RecommendationKind(kind)
    except ValueError:
        valid = ", ".join(k.value for k in RecommendationKind)
        raise HTTPException(status_code=400, detail=f"Invalid recommendation type. Valid types: {valid}")
    results = await recommendation_service.get_or_compute(db, user_id, kind)
    return {"type": kind.value, "recommendations": results, "count": len(results)}


@router.get("/compatibility/{target_id}")
async def get_compatibility(
    target_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    if target_id == user_id:
        raise HTTPException(status_code=400, detail="Cannot check compatibility with yourself")
    me = await social_graph_service.get_or_create_profile(db, user_id)
    other = await social_graph_service.get_or_create_profile(db, target_id)
    await db.commit()

    match = compatibility.score(me, other)
    return {
        "user_id": target_id,
        "compatibility_score": match.percent,
        "match_reasons": match.reasons,
        "recommendation": match.label,
    }


@router.get("/discover/companions")
async def discover_companions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    min_compatibility: int = Query(60, ge=0, le=100),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    companions = await recommendation_service.get_or_compute(db, user_id, RecommendationKind.TRAVEL_COMPANIONS)
    matching = [c for c in companions if c["compatibility_score"] * 100 >= min_compatibility]
    start = (page - 1) * limit
    return {
        "companions": matching[start: start + limit],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": len(matching),
            "has_more": start + limit < len(matching),
        },
        "filters": {"min_compatibility": min_compatibility},
    }


@router.get("/discover/users")
async def discover_users(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    users = await recommendation_service.get_or_compute(db, user_id, RecommendationKind.USERS)
    return {"users": users, "count": len(users)}


@router.get("/trending/destinations")
async def trending_destinations(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return await recommendation_service.trending_destinations(db)


@router.get("/analytics/score")
async def my_travel_score(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    score = await social_graph_service.recalculate_travel_score(db, user_id)
    return {"user_id": user_id, "travel_score": score, "calculated_at": utcnow().isoformat()}


@router.get("/analytics/score/{target_id}")
async def travel_score(
    target_id: str,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    score = await social_graph_service.recalculate_travel_score(db, target_id)
    return {"user_id": target_id, "travel_score": score, "calculated_at": utcnow().isoformat()}


# ─── Travel groups ───

@router.post("/groups", status_code=201)
async def create_group(
    body: GroupCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        group = await travel_group_service.create_group(db, user_id, body.model_dump())
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    return group_view(group)


@router.post("/groups/{group_id}/join")
async def join_group(
    group_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await travel_group_service.join_group(db, user_id, group_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ─── Cache ───

@router.get("/cache/stats")
async def cache_stats(user_id: str = Depends(get_current_user_id)):
    return await recommendation_service.cache_stats()


@router.delete("/cache")
async def clear_cache(user_id: str = Depends(get_current_user_id)):
    return await recommendation_service.clear_cache()
