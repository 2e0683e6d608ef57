"""Social network models — profiles, posts, engagement, connections, travel groups."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
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


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255))
    bio: Mapped[str | None] = mapped_column(Text)
    avatar: Mapped[str | None] = mapped_column(String(500))
    age: Mapped[int | None] = mapped_column(Integer)

    # Location
    city: Mapped[str | None] = mapped_column(String(100))
    country: Mapped[str | None] = mapped_column(String(100))
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)

    # Stats, derived and recomputed by SocialGraphService
    followers: Mapped[int] = mapped_column(Integer, default=0)
    following: Mapped[int] = mapped_column(Integer, default=0)
    post_count: Mapped[int] = mapped_column(Integer, default=0)
    travel_score: Mapped[int] = mapped_column(Integer, default=0)
    visited_countries: Mapped[int] = mapped_column(Integer, default=0)

    # Preferences
    travel_style: Mapped[list] = mapped_column(JSONType, default=list)  # adventure, luxury, budget, cultural
    interests: Mapped[list] = mapped_column(JSONType, default=list)
    languages: Mapped[list] = mapped_column(JSONType, default=list)

    badges: Mapped[list] = mapped_column(JSONType, default=list)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    profile_visibility: Mapped[str] = mapped_column(String(20), default="public")  # public | friends | private
    post_visibility: Mapped[str] = mapped_column(String(20), default="public")

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    last_active: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class TravelPost(Base):
    __tablename__ = "travel_posts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    destination_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    destination_country: Mapped[str | None] = mapped_column(String(100))
    destination_city: Mapped[str | None] = mapped_column(String(100))
    latitude: Mapped[float | None] = mapped_column(Float)
    longitude: Mapped[float | None] = mapped_column(Float)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    images: Mapped[list] = mapped_column(JSONType, default=list)
    videos: Mapped[list] = mapped_column(JSONType, default=list)

    # Trip details
    duration: Mapped[str | None] = mapped_column(String(50))
    budget: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    travel_type: Mapped[str] = mapped_column(String(20), default="solo")  # solo | couple | family | group | business
    rating: Mapped[int] = mapped_column(Integer, default=5)
    season: Mapped[str | None] = mapped_column(String(50))
    accommodation: Mapped[str | None] = mapped_column(String(255))
    transportation: Mapped[str | None] = mapped_column(String(255))

    tags: Mapped[list] = mapped_column(JSONType, default=list)

    # Engagement
    likes: Mapped[int] = mapped_column(Integer, default=0)
    comments: Mapped[int] = mapped_column(Integer, default=0)
    shares: Mapped[int] = mapped_column(Integer, default=0)
    bookmarks: Mapped[int] = mapped_column(Integer, default=0)
    views: Mapped[int] = mapped_column(Integer, default=0)

    privacy: Mapped[str] = mapped_column(String(20), default="public")
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)  # active | archived | reported | hidden

    # Enrichment, written once at creation
    ai_sentiment: Mapped[str | None] = mapped_column(String(20))
    ai_topics: Mapped[list] = mapped_column(JSONType, default=list)
    ai_readability_score: Mapped[float | None] = mapped_column(Float)
    ai_engagement_prediction: Mapped[float | None] = mapped_column(Float)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)


class PostReaction(Base):
    """One like or bookmark by one user on one post."""

    __tablename__ = "post_reactions"
    __table_args__ = (UniqueConstraint("post_id", "user_id", "kind", name="uq_post_reaction"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("travel_posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)  # like | bookmark
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class PostComment(Base):
    __tablename__ = "post_comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("travel_posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    parent_comment_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("post_comments.id"))
    likes: Mapped[int] = mapped_column(Integer, default=0)
    replies: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default="active")  # active | hidden | reported
    moderation_score: Mapped[float | None] = mapped_column(Float)
    moderation_flags: Mapped[list] = mapped_column(JSONType, default=list)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class SocialConnection(Base):
    __tablename__ = "social_connections"
    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", "connection_type", name="uq_social_connection"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    follower_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    following_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    connection_type: Mapped[str] = mapped_column(String(20), default="follow")  # follow | friend | block | mute
    status: Mapped[str] = mapped_column(String(20), default="accepted")  # pending | accepted | rejected
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class TravelGroup(Base):
    __tablename__ = "travel_groups"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(50))
    cover: Mapped[str | None] = mapped_column(String(500))
    admin_id: Mapped[str] = mapped_column(String(64), nullable=False)
    member_count: Mapped[int] = mapped_column(Integer, default=1)
    post_count: Mapped[int] = mapped_column(Integer, default=0)
    privacy: Mapped[str] = mapped_column(String(20), default="public")  # public | private
    post_approval: Mapped[bool] = mapped_column(Boolean, default=False)
    member_approval: Mapped[bool] = mapped_column(Boolean, default=False)
    tags: Mapped[list] = mapped_column(JSONType, default=list)
    location: Mapped[str | None] = mapped_column(String(100))  # home country
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    last_activity: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    members: Mapped[list["TravelGroupMember"]] = relationship(
        back_populates="group", cascade="all, delete-orphan", lazy="selectin"
    )


class TravelGroupMember(Base):
    __tablename__ = "travel_group_members"
    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_travel_group_member"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("travel_groups.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(20), default="member")  # admin | moderator | member
    joined_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    group: Mapped["TravelGroup"] = relationship(back_populates="members")
