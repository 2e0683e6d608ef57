"""Group trips router — creation, membership, polls, discussions, expenses."""

import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user_id
from app.schemas.social import (
    DiscussionCreate,
    ExpenseCreate,
    GroupTripCreate,
    JoinDecision,
    JoinTripRequest,
    PhaseUpdate,
    PollCreate,
    VoteRequest,
)
from app.services.collaboration_service import collaboration_service
from app.services.group_trip_errors import TripError
from app.services.presenters import trip_view

router = APIRouter()


def _http_error(e: TripError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", status_code=201)
async def create_group_trip(
    body: GroupTripCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Create a trip; itinerary suggestions are generated after the response."""
    try:
        trip = await collaboration_service.create_trip(db, user_id, body.model_dump())
    except TripError as e:
        raise _http_error(e)
    background_tasks.add_task(collaboration_service.refresh_suggestions_task, trip.id)
    return trip_view(trip)


@router.get("")
async def list_group_trips(
    filter: str = "my_trips",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        trips = await collaboration_service.list_trips(db, user_id, filter=filter, page=page, limit=limit)
    except TripError as e:
        raise _http_error(e)
    return {"trips": trips, "pagination": {"page": page, "limit": limit}, "filter": filter}


@router.get("/{trip_id}")
async def get_group_trip(
    trip_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        trip = await collaboration_service.get_trip(db, trip_id)
    except TripError as e:
        raise _http_error(e)
    return trip_view(trip)


@router.post("/{trip_id}/join")
async def join_group_trip(
    trip_id: uuid.UUID,
    body: JoinTripRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    preferences = body.preferences if body else {}
    try:
        result = await collaboration_service.join(db, user_id, trip_id, preferences)
    except TripError as e:
        raise _http_error(e)
    return result.to_dict()


@router.post("/{trip_id}/requests")
async def respond_to_request(
    trip_id: uuid.UUID,
    body: JoinDecision,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        trip = await collaboration_service.respond_to_request(db, trip_id, user_id, body.user_id, body.accept)
    except TripError as e:
        raise _http_error(e)
    return trip_view(trip)


@router.post("/{trip_id}/polls", status_code=201)
async def create_poll(
    trip_id: uuid.UUID,
    body: PollCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await collaboration_service.create_poll(db, trip_id, user_id, body.model_dump())
    except TripError as e:
        raise _http_error(e)


@router.post("/{trip_id}/polls/{poll_index}/vote")
async def vote(
    trip_id: uuid.UUID,
    poll_index: int,
    body: VoteRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        poll = await collaboration_service.vote(db, trip_id, user_id, poll_index, body.option)
    except TripError as e:
        raise _http_error(e)
    return {"success": True, "message": "Vote recorded successfully", "poll": poll}


@router.post("/{trip_id}/polls/{poll_index}/close")
async def close_poll(
    trip_id: uuid.UUID,
    poll_index: int,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await collaboration_service.close_poll(db, trip_id, user_id, poll_index)
    except TripError as e:
        raise _http_error(e)


@router.post("/{trip_id}/discussions", status_code=201)
async def post_discussion(
    trip_id: uuid.UUID,
    body: DiscussionCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await collaboration_service.post_discussion(db, trip_id, user_id, body.message)
    except TripError as e:
        raise _http_error(e)


@router.post("/{trip_id}/discussions/{discussion_index}/replies", status_code=201)
async def reply_to_discussion(
    trip_id: uuid.UUID,
    discussion_index: int,
    body: DiscussionCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await collaboration_service.reply_to_discussion(db, trip_id, user_id, discussion_index, body.message)
    except TripError as e:
        raise _http_error(e)


@router.put("/{trip_id}/phase")
async def update_phase(
    trip_id: uuid.UUID,
    body: PhaseUpdate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        trip = await collaboration_service.update_phase(db, trip_id, user_id, body.phase)
    except TripError as e:
        raise _http_error(e)
    return {"phase": trip.phase, "status": trip.status}


@router.post("/{trip_id}/expenses", status_code=201)
async def add_expense(
    trip_id: uuid.UUID,
    body: ExpenseCreate,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await collaboration_service.add_shared_expense(db, trip_id, user_id, body.model_dump())
    except TripError as e:
        raise _http_error(e)


@router.get("/{trip_id}/expenses/summary")
async def expense_summary(
    trip_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return await collaboration_service.expense_summary(db, trip_id, user_id)
    except TripError as e:
        raise _http_error(e)
