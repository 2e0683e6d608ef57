"""Collaboration service — group trip lifecycle, polls, discussions, shared expenses.

Every mutation locks the trip row (SELECT ... FOR UPDATE) and bumps the
trip's version counter, so two writers on the same trip are serialized and a
lost update surfaces as TripConflict instead of a silent overwrite. The
capacity invariant (capacity_current == non-declined participants <= capacity_max)
is re-checked before every commit; any error rolls the whole operation back.
"""

import logging
import uuid
from collections.abc import Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.database import async_session_factory, utcnow
from app.models.collaboration import (
    GroupTrip,
    GroupTripParticipant,
    TripDiscussion,
    TripDiscussionReply,
    TripPoll,
    TripPollVote,
    TripSharedExpense,
)
from app.models.social import UserProfile
from app.services.content_ai_service import ContentAIService, content_ai_service
from app.services.group_trip_errors import (
    CapacityExceeded,
    DeadlinePassed,
    ModerationRejected,
    TripConflict,
    TripError,
    TripForbidden,
    TripNotFound,
    TripValidationError,
)
from app.services.notification_service import NotificationService, notification_service
from app.services.presenters import poll_view, trip_view
from app.services.recommendation.config import EXPERIENCE_TIERS
from app.services.social_graph_service import SocialGraphService, social_graph_service

logger = logging.getLogger(__name__)

PHASES = ("planning", "booking", "confirmed", "in-progress", "completed", "cancelled")
TERMINAL_PHASES = ("completed", "cancelled")
ORGANIZER_ROLES = ("admin", "co-organizer")
TRIP_FILTERS = ("my_trips", "available", "recommended")
DEFAULT_POLL_DAYS = 7
CENT = Decimal("0.01")


@dataclass
class JoinResult:
    """Outcome of a join attempt; only a missing trip is an error."""

    joined: bool
    status: str  # pending | already_joined | closed | full | requirements_not_met
    message: str
    reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"joined": self.joined, "status": self.status, "message": self.message, "reasons": self.reasons}


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _money(value) -> Decimal:
    try:
        amount = Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        raise TripValidationError("Amount must be a number") from None
    return amount


def check_requirements(trip: GroupTrip, profile: UserProfile) -> list[str]:
    """Reasons ``profile`` may not join ``trip``; empty when eligible."""
    reasons = []

    if profile.age is not None and (trip.req_age_min is not None or trip.req_age_max is not None):
        low = trip.req_age_min if trip.req_age_min is not None else 0
        high = trip.req_age_max if trip.req_age_max is not None else 120
        if not low <= profile.age <= high:
            reasons.append(f"Age must be between {low}-{high}")

    if trip.req_experience and trip.req_experience != "any":
        required = EXPERIENCE_TIERS.get(trip.req_experience, 0)
        if (profile.travel_score or 0) < required:
            reasons.append(f"{trip.req_experience} travel experience required")

    required_languages = list(trip.req_languages or [])
    if required_languages and not set(required_languages) & set(profile.languages or []):
        reasons.append(f"Must speak: {' or '.join(required_languages)}")

    return reasons


class CollaborationService:
    """Coordinates group trips: membership, eligibility, polls, discussions, expenses."""

    def __init__(
        self,
        content_ai: ContentAIService,
        notifications: NotificationService,
        graph: SocialGraphService,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.content_ai = content_ai
        self.notifications = notifications
        self.graph = graph
        self._clock = clock

    # ─── Loading & invariants ───

    async def get_trip(self, db: AsyncSession, trip_id: uuid.UUID) -> GroupTrip:
        result = await db.execute(select(GroupTrip).where(GroupTrip.id == trip_id))
        trip = result.scalar_one_or_none()
        if not trip:
            raise TripNotFound("Trip not found")
        return trip

    async def _load_trip_for_update(self, db: AsyncSession, trip_id: uuid.UUID) -> GroupTrip:
        result = await db.execute(
            select(GroupTrip)
            .where(GroupTrip.id == trip_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        trip = result.scalar_one_or_none()
        if not trip:
            raise TripNotFound("Trip not found")
        return trip

    def _validate_capacity(self, trip: GroupTrip) -> None:
        active = sum(1 for p in trip.participants if p.status != "declined")
        if active > trip.capacity_max:
            raise CapacityExceeded(f"Trip is full ({trip.capacity_max} travelers max)")
        trip.capacity_current = active
        if trip.phase in TERMINAL_PHASES:
            trip.status = "closed"
        else:
            trip.status = "full" if active >= trip.capacity_max else "open"

    def _touch(self, trip: GroupTrip) -> None:
        self._validate_capacity(trip)
        trip.updated_at = self._clock()

    @asynccontextmanager
    async def _transaction(self, db: AsyncSession):
        try:
            yield
            await db.commit()
        except (StaleDataError, IntegrityError) as e:
            await db.rollback()
            logger.warning(f"Concurrent group trip update rejected: {e}")
            raise TripConflict("Trip was modified by someone else, please retry") from e
        except Exception:
            await db.rollback()
            raise

    @staticmethod
    def _participant(trip: GroupTrip, user_id: str) -> GroupTripParticipant | None:
        return next((p for p in trip.participants if p.user_id == user_id), None)

    def _require_organizer(self, trip: GroupTrip, user_id: str) -> GroupTripParticipant:
        participant = self._participant(trip, user_id)
        if not participant or participant.status != "confirmed" or participant.role not in ORGANIZER_ROLES:
            raise TripForbidden("Only the trip admin or a co-organizer can do this")
        return participant

    def _require_confirmed(self, trip: GroupTrip, user_id: str, action: str) -> GroupTripParticipant:
        participant = self._participant(trip, user_id)
        if not participant or participant.status != "confirmed":
            raise TripForbidden(f"Only confirmed participants can {action}")
        return participant

    # ─── Lifecycle ───

    async def create_trip(self, db: AsyncSession, admin_id: str, data: dict) -> GroupTrip:
        """Create a trip with the creator as its sole confirmed admin."""
        title = (data.get("title") or "").strip()
        destination = data.get("destination") or {}
        destination_name = (destination.get("name") or "").strip()
        if not title or not destination_name:
            raise TripValidationError("Title and destination name are required")

        capacity = data.get("capacity") or {}
        capacity_min = int(capacity.get("min") or 2)
        capacity_max = int(capacity.get("max") or 10)
        if capacity_max < 1 or capacity_min < 1 or capacity_min > capacity_max:
            raise TripValidationError("Capacity must satisfy 1 <= min <= max")

        dates = data.get("dates") or {}
        start_date: date | None = dates.get("start_date")
        end_date: date | None = dates.get("end_date")
        if start_date and end_date and end_date < start_date:
            raise TripValidationError("End date must be on or after start date")

        budget = data.get("budget") or {}
        budget_min = _money(budget["min"]) if budget.get("min") is not None else None
        budget_max = _money(budget["max"]) if budget.get("max") is not None else None
        if budget_min is not None and budget_max is not None and budget_min > budget_max:
            raise TripValidationError("Budget min cannot exceed budget max")

        requirements = data.get("requirements") or {}
        age_range = requirements.get("age_range") or {}
        experience = requirements.get("experience") or "any"
        if experience != "any" and experience not in EXPERIENCE_TIERS:
            raise TripValidationError(f"Unknown experience level '{experience}'")

        coordinates = destination.get("coordinates") or {}
        now = self._clock()
        await self.graph.get_or_create_profile(db, admin_id)

        trip = GroupTrip(
            title=title,
            description=data.get("description"),
            admin_id=admin_id,
            destination_name=destination_name,
            destination_country=destination.get("country"),
            latitude=coordinates.get("lat"),
            longitude=coordinates.get("lng"),
            start_date=start_date,
            end_date=end_date,
            dates_flexible=bool(dates.get("flexible", False)),
            budget_min=budget_min,
            budget_max=budget_max,
            currency=budget.get("currency") or "USD",
            budget_shared=bool(budget.get("shared", False)),
            capacity_min=capacity_min,
            capacity_max=capacity_max,
            capacity_current=1,
            req_age_min=age_range.get("min"),
            req_age_max=age_range.get("max"),
            req_experience=experience,
            req_languages=list(requirements.get("languages") or []),
            privacy=data.get("privacy") or "public",
            tags=list(data.get("tags") or []),
            created_at=now,
            updated_at=now,
            participants=[
                GroupTripParticipant(user_id=admin_id, status="confirmed", role="admin", preferences={}, joined_at=now)
            ],
            polls=[],
            discussions=[],
            shared_expenses=[],
        )
        async with self._transaction(db):
            self._validate_capacity(trip)
            db.add(trip)

        logger.info(f"Created group trip {trip.id} '{title}' by {admin_id}")
        return trip

    async def refresh_suggestions(self, db: AsyncSession, trip_id: uuid.UUID) -> dict | None:
        """Attach non-binding AI itinerary suggestions; leaves the trip untouched on failure."""
        trip = await self.get_trip(db, trip_id)
        context = {
            "destination": trip.destination_name,
            "start_date": trip.start_date,
            "end_date": trip.end_date,
            "budget_min": trip.budget_min,
            "budget_max": trip.budget_max,
            "currency": trip.currency,
            "capacity_min": trip.capacity_min,
            "capacity_max": trip.capacity_max,
            "tags": trip.tags,
        }
        suggestions = await self.content_ai.suggest_itinerary(context)
        if suggestions is None:
            logger.warning(f"No itinerary suggestions for trip {trip_id}")
            return None

        async with self._transaction(db):
            trip = await self._load_trip_for_update(db, trip_id)
            trip.ai_suggestions = {**suggestions, "last_updated": self._clock().isoformat()}
            self._touch(trip)
        return trip.ai_suggestions

    async def refresh_suggestions_task(self, trip_id: uuid.UUID) -> None:
        """Background entry point; owns its session since the request's is closed by then."""
        async with async_session_factory() as db:
            try:
                await self.refresh_suggestions(db, trip_id)
            except TripError as e:
                logger.warning(f"Suggestion refresh for trip {trip_id} skipped: {e.message}")
            except SQLAlchemyError as e:
                logger.error(f"Suggestion refresh for trip {trip_id} failed: {e}")

    # ─── Membership ───

    async def join(self, db: AsyncSession, user_id: str, trip_id: uuid.UUID, preferences: dict | None = None) -> JoinResult:
        async with self._transaction(db):
            trip = await self._load_trip_for_update(db, trip_id)

            if self._participant(trip, user_id):
                return JoinResult(joined=True, status="already_joined", message="Already a participant")

            if trip.phase in TERMINAL_PHASES:
                return JoinResult(joined=False, status="closed", message=f"Trip is {trip.phase}")

            if trip.capacity_current >= trip.capacity_max:
                return JoinResult(
                    joined=False, status="full", message="Trip is full",
                    reasons=[f"Trip is full ({trip.capacity_max} travelers max)"],
                )

            profile = await self.graph.get_or_create_profile(db, user_id)
            reasons = check_requirements(trip, profile)
            if reasons:
                return JoinResult(
                    joined=False, status="requirements_not_met",
                    message=f"Requirements not met: {', '.join(reasons)}", reasons=reasons,
                )

            trip.participants.append(GroupTripParticipant(
                user_id=user_id,
                status="pending",
                role="participant",
                preferences=dict(preferences or {}),
                joined_at=self._clock(),
            ))
            self._touch(trip)
            await self.notifications.send_join_request(db, trip.admin_id, trip.title, user_id, trip.id)

        logger.info(f"User {user_id} requested to join trip {trip_id} ({trip.capacity_current}/{trip.capacity_max})")
        return JoinResult(joined=True, status="pending", message="Join request sent successfully")

    async def respond_to_request(
        self, db: AsyncSession, trip_id: uuid.UUID, requester_id: str, participant_id: str, accept: bool
    ) -> GroupTrip:
        """Confirm or decline a pending participant; declining frees the seat."""
        async with self._transaction(db):
            trip = await self._load_trip_for_update(db, trip_id)
            self._require_organizer(trip, requester_id)

            participant = self._participant(trip, participant_id)
            if not participant:
                raise TripNotFound("Participant not found")
            if participant.status != "pending":
                raise TripValidationError(f"Request already {participant.status}")

            participant.status = "confirmed" if accept else "declined"
            self._touch(trip)
            await self.notifications.send_request_decision(db, participant_id, trip.title, accept, trip.id)

        logger.info(f"Trip {trip_id}: {participant_id} {'confirmed' if accept else 'declined'} by {requester_id}")
        return trip

    # ─── Polls ───

    async def create_poll(self, db: AsyncSession, trip_id: uuid.UUID, requester_id: str, data: dict) -> dict:
        question = (data.get("question") or "").strip()
        options = [str(o).strip() for o in data.get("options") or [] if str(o).strip()]
        if not question:
            raise TripValidationError("Poll question is required")
        if len(options) < 2:
            raise TripValidationError("A poll needs at least 2 options")
        if len(set(options)) != len(options):
            raise TripValidationError("Poll options must be unique")

        now = self._clock()
        deadline = data.get("deadline")
        deadline = _aware(deadline) if deadline else now + timedelta(days=DEFAULT_POLL_DAYS)
        if deadline <= now:
            raise TripValidationError("Poll deadline must be in the future")

        async with self._transaction(db):
            trip = await self._load_trip_for_update(db, trip_id)
            self._require_organizer(trip, requester_id)

            index = len(trip.polls)
            poll = TripPoll(
                position=index,
                question=question,
                options=options,
                deadline=deadline,
                is_active=True,
                created_by=requester_id,
                created_at=now,
                votes=[],
            )
            trip.polls.append(poll)
            self._touch(trip)

            recipients = [
                p.user_id for p in trip.participants
                if p.status == "confirmed" and p.user_id != requester_id
            ]
            await self.notifications.send_new_poll(db, recipients, trip.title, question, trip.id, index)

        logger.info(f"Poll {index} created on trip {trip_id}, notified {len(recipients)} participants")
        return poll_view(poll, index)

    def _poll_at(self, trip: GroupTrip, poll_index: int) -> TripPoll:
        if not 0 <= poll_index < len(trip.polls):
            raise TripNotFound("Poll not found")
        return trip.polls[poll_index]

    async def vote(self, db: AsyncSession, trip_id: uuid.UUID, user_id: str, poll_index: int, option: str) -> dict:
        """Record a vote; a second vote by the same user replaces the first."""
        async with self._transaction(db):
            trip = await self._load_trip_for_update(db, trip_id)
            self._require_confirmed(trip, user_id, "vote")

            poll = self._poll_at(trip, poll_index)
            if not poll.is_active:
                raise TripValidationError("Poll is closed")
            if self._clock() > poll.deadline:
                raise DeadlinePassed("Poll deadline has passed")
            if option not in poll.options:
                raise TripValidationError(f"'{option}' is not an option in this poll")

            existing = next((v for v in poll.votes if v.user_id == user_id), None)
            if existing:
                existing.option = option
                existing.voted_at = self._clock()
            else:
                poll.votes.append(TripPollVote(user_id=user_id, option=option, voted_at=self._clock()))
            self._touch(trip)

        logger.info(f"User {user_id} voted '{option}' on poll {poll_index} of trip {trip_id}")
        return poll_view(poll, poll_index)

    async def close_poll(self, db: AsyncSession, trip_id: uuid.UUID, requester_id: str, poll_index: int) -> dict:
        async with self._transaction(db):
            trip = await self._load_trip_for_update(db, trip_id)
            self._require_organizer(trip, requester_id)
            poll = self._poll_at(trip, poll_index)
            if poll.is_active:
                poll.is_active = False
                self._touch(trip)
        return poll_view(poll, poll_index)

    # ─── Discussions ───

    async def _moderated(self, message: str) -> str:
        message = (message or "").strip()
        if not message:
            raise TripValidationError("Message is required")
        verdict = await self.content_ai.moderate(message)
        if verdict.rejected:
            raise ModerationRejected("Message violates community guidelines")
        return message

    async def post_discussion(self, db: AsyncSession, trip_id: uuid.UUID, user_id: str, message: str) -> dict:
        # Moderate before taking the row lock; the LLM call can be slow
        trip = await self.get_trip(db, trip_id)
        if not self._participant(trip, user_id):
            raise TripForbidden("Only participants can post messages")
        message = await self._moderated(message)

        async with self._transaction(db):
            trip = await self._load_trip_for_update(db, trip_id)
            if not self._participant(trip, user_id):
                raise TripForbidden("Only participants can post messages")
            index = len(trip.discussions)
            discussion = TripDiscussion(
                position=index, user_id=user_id, message=message, created_at=self._clock(), replies=[]
            )
            trip.discussions.append(discussion)
            self._touch(trip)

        return {
            "index": index,
            "user_id": user_id,
            "message": message,
            "timestamp": discussion.created_at.isoformat(),
            "replies": [],
        }

    async def reply_to_discussion(
        self, db: AsyncSession, trip_id: uuid.UUID, user_id: str, discussion_index: int, message: str
    ) -> dict:
        trip = await self.get_trip(db, trip_id)
        if not self._participant(trip, user_id):
            raise TripForbidden("Only participants can post messages")
        message = await self._moderated(message)

        async with self._transaction(db):
            trip = await self._load_trip_for_update(db, trip_id)
            if not 0 <= discussion_index < len(trip.discussions):
                raise TripNotFound("Discussion not found")
            reply = TripDiscussionReply(user_id=user_id, message=message, created_at=self._clock())
            trip.discussions[discussion_index].replies.append(reply)
            self._touch(trip)

        return {"user_id": user_id, "message": message, "timestamp": reply.created_at.isoformat()}

    # ─── Phase ───

    async def update_phase(self, db: AsyncSession, trip_id: uuid.UUID, requester_id: str, phase: str) -> GroupTrip:
        if phase not in PHASES:
            raise TripValidationError(f"phase must be one of {', '.join(PHASES)}")
        async with self._transaction(db):
            trip = await self._load_trip_for_update(db, trip_id)
            self._require_organizer(trip, requester_id)
            if trip.phase in TERMINAL_PHASES:
                raise TripValidationError(f"Trip is already {trip.phase}")
            trip.phase = phase
            self._touch(trip)

        logger.info(f"Trip {trip_id} moved to phase {phase}")
        return trip

    # ─── Shared expenses ───

    async def add_shared_expense(self, db: AsyncSession, trip_id: uuid.UUID, payer_id: str, data: dict) -> dict:
        description = (data.get("description") or "").strip()
        if not description:
            raise TripValidationError("Expense description is required")
        amount = _money(data.get("amount"))
        if amount <= 0:
            raise TripValidationError("Expense amount must be positive")

        async with self._transaction(db):
            trip = await self._load_trip_for_update(db, trip_id)
            self._require_confirmed(trip, payer_id, "add expenses")

            members = [p.user_id for p in trip.participants if p.status != "declined"]
            split = data.get("split_between") or [p.user_id for p in trip.participants if p.status == "confirmed"]
            split = list(dict.fromkeys(split))
            outsiders = [u for u in split if u not in members]
            if outsiders:
                raise TripValidationError(f"Not trip participants: {', '.join(outsiders)}")

            expense = TripSharedExpense(
                description=description,
                amount=amount,
                paid_by=payer_id,
                split_between=split,
                created_at=self._clock(),
            )
            trip.shared_expenses.append(expense)
            self._touch(trip)

        return {
            "id": str(expense.id),
            "description": description,
            "amount": amount,
            "paid_by": payer_id,
            "split_between": split,
            "date": expense.created_at.isoformat(),
        }

    async def expense_summary(self, db: AsyncSession, trip_id: uuid.UUID, requester_id: str) -> dict:
        """Paid, owed and net balance per person.

        Each expense splits into whole cents; leftover cents go one each to the
        first people in its split list.
        """
        trip = await self.get_trip(db, trip_id)
        if not self._participant(trip, requester_id):
            raise TripForbidden("Only participants can view expenses")

        paid: dict[str, Decimal] = {}
        owed: dict[str, Decimal] = {}
        total = Decimal("0.00")
        for expense in trip.shared_expenses:
            amount = Decimal(expense.amount).quantize(CENT)
            total += amount
            paid[expense.paid_by] = paid.get(expense.paid_by, Decimal("0.00")) + amount

            people = list(expense.split_between or [])
            if not people:
                continue
            cents = int(amount * 100)
            base, remainder = divmod(cents, len(people))
            for i, user_id in enumerate(people):
                share = Decimal(base + (1 if i < remainder else 0)) / 100
                owed[user_id] = owed.get(user_id, Decimal("0.00")) + share

        people = list(dict.fromkeys([p.user_id for p in trip.participants] + list(paid) + list(owed)))
        balances = []
        for user_id in people:
            user_paid = paid.get(user_id, Decimal("0.00")).quantize(CENT)
            user_owed = owed.get(user_id, Decimal("0.00")).quantize(CENT)
            balances.append({
                "user_id": user_id,
                "paid": user_paid,
                "owed": user_owed,
                "balance": (user_paid - user_owed).quantize(CENT),
            })
        return {"currency": trip.currency, "total": total.quantize(CENT), "balances": balances}

    # ─── Listing ───

    async def list_trips(
        self, db: AsyncSession, user_id: str, filter: str = "my_trips", page: int = 1, limit: int = 20
    ) -> list[dict]:
        if filter not in TRIP_FILTERS:
            raise TripValidationError(f"filter must be one of {', '.join(TRIP_FILTERS)}")

        query = select(GroupTrip).order_by(GroupTrip.updated_at.desc())
        if filter == "my_trips":
            query = query.join(GroupTripParticipant).where(GroupTripParticipant.user_id == user_id)
        else:
            query = query.where(
                GroupTrip.status == "open",
                GroupTrip.privacy == "public",
                GroupTrip.capacity_current < GroupTrip.capacity_max,
            )
        result = await db.execute(query)
        trips = list(result.scalars().unique().all())

        if filter != "my_trips":
            trips = [t for t in trips if not self._participant(t, user_id)]
        if filter == "recommended":
            profile = await self.graph.get_or_create_profile(db, user_id)
            interests = set(profile.interests or [])
            trips = [t for t in trips if interests & set(t.tags or [])]

        trips = trips[(page - 1) * limit: page * limit]
        admins = await self.graph.get_profiles(db, list({t.admin_id for t in trips}))
        views = []
        for trip in trips:
            view = trip_view(trip)
            admin = admins.get(trip.admin_id)
            view["admin"] = {"user_id": admin.user_id, "username": admin.username, "avatar": admin.avatar} if admin else None
            views.append(view)
        return views


collaboration_service = CollaborationService(content_ai_service, notification_service, social_graph_service)
