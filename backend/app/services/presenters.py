"""Presenters — JSON-ready dicts for social entities.

Recommendation results are cached as these dicts, never as ORM objects, so a
cached list stays valid after the session that produced it is closed.
"""

from app.models.collaboration import GroupTrip, TripPoll
from app.models.social import PostComment, TravelGroup, TravelPost, UserProfile


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def profile_view(p: UserProfile) -> dict:
    return {
        "user_id": p.user_id,
        "username": p.username,
        "full_name": p.full_name,
        "bio": p.bio,
        "avatar": p.avatar,
        "location": {
            "city": p.city,
            "country": p.country,
            "coordinates": (
                {"lat": p.latitude, "lng": p.longitude}
                if p.latitude is not None and p.longitude is not None else None
            ),
        },
        "stats": {
            "followers": p.followers or 0,
            "following": p.following or 0,
            "posts": p.post_count or 0,
            "travel_score": p.travel_score or 0,
            "visited_countries": p.visited_countries or 0,
        },
        "preferences": {
            "travel_style": list(p.travel_style or []),
            "interests": list(p.interests or []),
            "languages": list(p.languages or []),
        },
        "badges": list(p.badges or []),
        "is_verified": p.is_verified,
        "privacy": {"profile": p.profile_visibility, "posts": p.post_visibility},
        "created_at": _iso(p.created_at),
    }


def post_view(post: TravelPost) -> dict:
    return {
        "id": str(post.id),
        "user_id": post.user_id,
        "destination": {
            "name": post.destination_name,
            "country": post.destination_country,
            "city": post.destination_city,
        },
        "content": post.content,
        "media": {"images": list(post.images or []), "videos": list(post.videos or [])},
        "details": {
            "duration": post.duration,
            "budget": float(post.budget) if post.budget is not None else None,
            "travel_type": post.travel_type,
            "rating": post.rating,
            "season": post.season,
            "accommodation": post.accommodation,
            "transportation": post.transportation,
        },
        "tags": list(post.tags or []),
        "engagement": {
            "likes": post.likes or 0,
            "comments": post.comments or 0,
            "shares": post.shares or 0,
            "bookmarks": post.bookmarks or 0,
            "views": post.views or 0,
        },
        "privacy": post.privacy,
        "status": post.status,
        "ai_enhanced": {
            "sentiment": post.ai_sentiment,
            "topics": list(post.ai_topics or []),
            "readability_score": post.ai_readability_score,
            "engagement_prediction": post.ai_engagement_prediction,
        },
        "created_at": _iso(post.created_at),
    }


def comment_view(c: PostComment) -> dict:
    return {
        "id": str(c.id),
        "post_id": str(c.post_id),
        "user_id": c.user_id,
        "content": c.content,
        "parent_comment_id": str(c.parent_comment_id) if c.parent_comment_id else None,
        "status": c.status,
        "moderation": {"score": c.moderation_score, "flags": list(c.moderation_flags or [])},
        "created_at": _iso(c.created_at),
    }


def group_view(g: TravelGroup) -> dict:
    return {
        "id": str(g.id),
        "name": g.name,
        "description": g.description,
        "category": g.category,
        "admin_id": g.admin_id,
        "stats": {"member_count": g.member_count or 0, "post_count": g.post_count or 0},
        "privacy": g.privacy,
        "tags": list(g.tags or []),
        "location": g.location,
        "last_activity": _iso(g.last_activity),
    }


def poll_view(poll: TripPoll, index: int) -> dict:
    tally = {option: 0 for option in poll.options}
    for vote in poll.votes:
        tally[vote.option] = tally.get(vote.option, 0) + 1
    return {
        "index": index,
        "question": poll.question,
        "options": list(poll.options),
        "votes": [{"user_id": v.user_id, "option": v.option} for v in poll.votes],
        "tally": tally,
        "deadline": _iso(poll.deadline),
        "is_active": poll.is_active,
    }


def trip_view(trip: GroupTrip) -> dict:
    return {
        "id": str(trip.id),
        "title": trip.title,
        "description": trip.description,
        "admin_id": trip.admin_id,
        "destination": {
            "name": trip.destination_name,
            "country": trip.destination_country,
            "coordinates": (
                {"lat": trip.latitude, "lng": trip.longitude}
                if trip.latitude is not None and trip.longitude is not None else None
            ),
        },
        "dates": {
            "start_date": _iso(trip.start_date),
            "end_date": _iso(trip.end_date),
            "flexible": trip.dates_flexible,
        },
        "budget": {
            "min": float(trip.budget_min) if trip.budget_min is not None else None,
            "max": float(trip.budget_max) if trip.budget_max is not None else None,
            "currency": trip.currency,
            "shared": trip.budget_shared,
        },
        "capacity": {"min": trip.capacity_min, "max": trip.capacity_max, "current": trip.capacity_current},
        "participants": [
            {
                "user_id": p.user_id,
                "status": p.status,
                "role": p.role,
                "joined_at": _iso(p.joined_at),
                "preferences": p.preferences or {},
            }
            for p in trip.participants
        ],
        "requirements": {
            "age_range": {"min": trip.req_age_min, "max": trip.req_age_max},
            "experience": trip.req_experience,
            "languages": list(trip.req_languages or []),
        },
        "planning": {
            "phase": trip.phase,
            "polls": [poll_view(poll, i) for i, poll in enumerate(trip.polls)],
            "discussions": [
                {
                    "index": i,
                    "user_id": d.user_id,
                    "message": d.message,
                    "timestamp": _iso(d.created_at),
                    "replies": [
                        {"user_id": r.user_id, "message": r.message, "timestamp": _iso(r.created_at)}
                        for r in d.replies
                    ],
                }
                for i, d in enumerate(trip.discussions)
            ],
            "shared_expenses": [
                {
                    "id": str(e.id),
                    "description": e.description,
                    "amount": float(e.amount),
                    "paid_by": e.paid_by,
                    "split_between": list(e.split_between or []),
                    "date": _iso(e.created_at),
                }
                for e in trip.shared_expenses
            ],
        },
        "status": trip.status,
        "privacy": trip.privacy,
        "tags": list(trip.tags or []),
        "ai_suggestions": trip.ai_suggestions,
        "created_at": _iso(trip.created_at),
        "updated_at": _iso(trip.updated_at),
    }
