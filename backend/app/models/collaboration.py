"""Group trip models — participants, polls, discussions, shared expenses."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, JSONType, UTCDateTime, utcnow


class GroupTrip(Base):
    __tablename__ = "group_trips"
    __table_args__ = (CheckConstraint("capacity_current <= capacity_max", name="ck_group_trips_capacity"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    admin_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    destination_name: Mapped[str] = mapped_column(String(255), nullable=False)
    destination_country: Mapped[str | None] = mapped_column(String(100))
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)

    start_date: Mapped[date | None] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)
    dates_flexible: Mapped[bool] = mapped_column(Boolean, default=False)

    budget_min: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    budget_max: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    budget_shared: Mapped[bool] = mapped_column(Boolean, default=False)

    # capacity_current == count of participants whose status != declined
    capacity_min: Mapped[int] = mapped_column(Integer, default=2)
    capacity_max: Mapped[int] = mapped_column(Integer, default=10)
    capacity_current: Mapped[int] = mapped_column(Integer, default=1)

    # Join requirements
    req_age_min: Mapped[int | None] = mapped_column(Integer)
    req_age_max: Mapped[int | None] = mapped_column(Integer)
    req_experience: Mapped[str] = mapped_column(String(20), default="any")  # any | beginner | intermediate | advanced
    req_languages: Mapped[list] = mapped_column(JSONType, default=list)

    phase: Mapped[str] = mapped_column(String(20), default="planning")
    status: Mapped[str] = mapped_column(String(20), default="open")  # open | full | closed
    privacy: Mapped[str] = mapped_column(String(20), default="public")  # public | friends | private
    tags: Mapped[list] = mapped_column(JSONType, default=list)
    ai_suggestions: Mapped[dict | None] = mapped_column(JSONType)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    participants: Mapped[list["GroupTripParticipant"]] = relationship(
        back_populates="trip", cascade="all, delete-orphan", lazy="selectin",
        order_by="GroupTripParticipant.joined_at",
    )
    polls: Mapped[list["TripPoll"]] = relationship(
        cascade="all, delete-orphan", lazy="selectin", order_by="TripPoll.position"
    )
    discussions: Mapped[list["TripDiscussion"]] = relationship(
        cascade="all, delete-orphan", lazy="selectin", order_by="TripDiscussion.position"
    )
    shared_expenses: Mapped[list["TripSharedExpense"]] = relationship(
        cascade="all, delete-orphan", lazy="selectin", order_by="TripSharedExpense.created_at"
    )

    __mapper_args__ = {"version_id_col": version_id}


class GroupTripParticipant(Base):
    __tablename__ = "group_trip_participants"
    __table_args__ = (UniqueConstraint("trip_id", "user_id", name="uq_group_trip_participant"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("group_trips.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending | confirmed | declined
    role: Mapped[str] = mapped_column(String(20), default="participant")  # admin | co-organizer | participant
    preferences: Mapped[dict] = mapped_column(JSONType, default=dict)
    joined_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    trip: Mapped["GroupTrip"] = relationship(back_populates="participants")


class TripPoll(Base):
    __tablename__ = "trip_polls"
    __table_args__ = (UniqueConstraint("trip_id", "position", name="uq_trip_poll_position"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("group_trips.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list] = mapped_column(JSONType, nullable=False)
    deadline: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    votes: Mapped[list["TripPollVote"]] = relationship(
        cascade="all, delete-orphan", lazy="selectin", order_by="TripPollVote.voted_at"
    )


class TripPollVote(Base):
    __tablename__ = "trip_poll_votes"
    __table_args__ = (UniqueConstraint("poll_id", "user_id", name="uq_trip_poll_vote"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    poll_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("trip_polls.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    option: Mapped[str] = mapped_column(String(255), nullable=False)
    voted_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class TripDiscussion(Base):
    __tablename__ = "trip_discussions"
    __table_args__ = (UniqueConstraint("trip_id", "position", name="uq_trip_discussion_position"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("group_trips.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    replies: Mapped[list["TripDiscussionReply"]] = relationship(
        cascade="all, delete-orphan", lazy="selectin", order_by="TripDiscussionReply.created_at"
    )


class TripDiscussionReply(Base):
    __tablename__ = "trip_discussion_replies"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    discussion_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("trip_discussions.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class TripSharedExpense(Base):
    __tablename__ = "trip_shared_expenses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    trip_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("group_trips.id", ondelete="CASCADE"), nullable=False
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    paid_by: Mapped[str] = mapped_column(String(64), nullable=False)
    split_between: Mapped[list] = mapped_column(JSONType, default=list)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
