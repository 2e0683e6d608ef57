"""Social travel: profiles, posts, connections, travel groups, group trips, notifications

Revision ID: social_001
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision = "social_001"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()"))


def _ts(name: str) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    # --- user_profiles ---
    op.create_table(
        "user_profiles",
        _id(),
        sa.Column("user_id", sa.String(64), nullable=False, unique=True),
        sa.Column("username", sa.String(64), nullable=False, unique=True),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("avatar", sa.String(500), nullable=True),
        sa.Column("age", sa.Integer, nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("followers", sa.Integer, server_default="0"),
        sa.Column("following", sa.Integer, server_default="0"),
        sa.Column("post_count", sa.Integer, server_default="0"),
        sa.Column("travel_score", sa.Integer, server_default="0"),
        sa.Column("visited_countries", sa.Integer, server_default="0"),
        sa.Column("travel_style", JSONB, server_default="[]"),
        sa.Column("interests", JSONB, server_default="[]"),
        sa.Column("languages", JSONB, server_default="[]"),
        sa.Column("badges", JSONB, server_default="[]"),
        sa.Column("is_verified", sa.Boolean, server_default="false"),
        sa.Column("profile_visibility", sa.String(20), server_default="'public'"),
        sa.Column("post_visibility", sa.String(20), server_default="'public'"),
        _ts("created_at"),
        _ts("last_active"),
    )
    op.create_index("ix_user_profiles_user_id", "user_profiles", ["user_id"])
    op.create_index("ix_user_profiles_travel_score", "user_profiles", ["travel_score"])

    # --- travel_posts ---
    op.create_table(
        "travel_posts",
        _id(),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("destination_name", sa.String(255), nullable=False),
        sa.Column("destination_country", sa.String(100), nullable=True),
        sa.Column("destination_city", sa.String(100), nullable=True),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("images", JSONB, server_default="[]"),
        sa.Column("videos", JSONB, server_default="[]"),
        sa.Column("duration", sa.String(50), nullable=True),
        sa.Column("budget", sa.Numeric(10, 2), nullable=True),
        sa.Column("travel_type", sa.String(20), server_default="'solo'"),
        sa.Column("rating", sa.Integer, server_default="5"),
        sa.Column("season", sa.String(50), nullable=True),
        sa.Column("accommodation", sa.String(255), nullable=True),
        sa.Column("transportation", sa.String(255), nullable=True),
        sa.Column("tags", JSONB, server_default="[]"),
        sa.Column("likes", sa.Integer, server_default="0"),
        sa.Column("comments", sa.Integer, server_default="0"),
        sa.Column("shares", sa.Integer, server_default="0"),
        sa.Column("bookmarks", sa.Integer, server_default="0"),
        sa.Column("views", sa.Integer, server_default="0"),
        sa.Column("privacy", sa.String(20), server_default="'public'"),
        sa.Column("status", sa.String(20), server_default="'active'"),
        sa.Column("ai_sentiment", sa.String(20), nullable=True),
        sa.Column("ai_topics", JSONB, server_default="[]"),
        sa.Column("ai_readability_score", sa.Float, nullable=True),
        sa.Column("ai_engagement_prediction", sa.Float, nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_travel_posts_user_id", "travel_posts", ["user_id"])
    op.create_index("ix_travel_posts_destination_name", "travel_posts", ["destination_name"])
    op.create_index("ix_travel_posts_status", "travel_posts", ["status"])
    op.create_index("ix_travel_posts_created_at", "travel_posts", ["created_at"])
    op.create_index("ix_travel_posts_tags", "travel_posts", ["tags"], postgresql_using="gin")

    # --- post_reactions ---
    op.create_table(
        "post_reactions",
        _id(),
        sa.Column("post_id", UUID(as_uuid=True), sa.ForeignKey("travel_posts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        _ts("created_at"),
        sa.UniqueConstraint("post_id", "user_id", "kind", name="uq_post_reaction"),
    )
    op.create_index("ix_post_reactions_user_id", "post_reactions", ["user_id"])

    # --- post_comments ---
    op.create_table(
        "post_comments",
        _id(),
        sa.Column("post_id", UUID(as_uuid=True), sa.ForeignKey("travel_posts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("parent_comment_id", UUID(as_uuid=True), sa.ForeignKey("post_comments.id"), nullable=True),
        sa.Column("likes", sa.Integer, server_default="0"),
        sa.Column("replies", sa.Integer, server_default="0"),
        sa.Column("status", sa.String(20), server_default="'active'"),
        sa.Column("moderation_score", sa.Float, nullable=True),
        sa.Column("moderation_flags", JSONB, server_default="[]"),
        _ts("created_at"),
    )
    op.create_index("ix_post_comments_post_id", "post_comments", ["post_id"])

    # --- social_connections ---
    op.create_table(
        "social_connections",
        _id(),
        sa.Column("follower_id", sa.String(64), nullable=False),
        sa.Column("following_id", sa.String(64), nullable=False),
        sa.Column("connection_type", sa.String(20), server_default="'follow'"),
        sa.Column("status", sa.String(20), server_default="'accepted'"),
        _ts("created_at"),
        sa.UniqueConstraint("follower_id", "following_id", "connection_type", name="uq_social_connection"),
    )
    op.create_index("ix_social_connections_follower_id", "social_connections", ["follower_id"])
    op.create_index("ix_social_connections_following_id", "social_connections", ["following_id"])

    # --- travel_groups ---
    op.create_table(
        "travel_groups",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("cover", sa.String(500), nullable=True),
        sa.Column("admin_id", sa.String(64), nullable=False),
        sa.Column("member_count", sa.Integer, server_default="1"),
        sa.Column("post_count", sa.Integer, server_default="0"),
        sa.Column("privacy", sa.String(20), server_default="'public'"),
        sa.Column("post_approval", sa.Boolean, server_default="false"),
        sa.Column("member_approval", sa.Boolean, server_default="false"),
        sa.Column("tags", JSONB, server_default="[]"),
        sa.Column("location", sa.String(100), nullable=True),
        _ts("created_at"),
        _ts("last_activity"),
    )
    op.create_index("ix_travel_groups_privacy_activity", "travel_groups", ["privacy", "last_activity"])

    op.create_table(
        "travel_group_members",
        _id(),
        sa.Column("group_id", UUID(as_uuid=True), sa.ForeignKey("travel_groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("role", sa.String(20), server_default="'member'"),
        _ts("joined_at"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_travel_group_member"),
    )
    op.create_index("ix_travel_group_members_user_id", "travel_group_members", ["user_id"])

    # --- group_trips ---
    op.create_table(
        "group_trips",
        _id(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("admin_id", sa.String(64), nullable=False),
        sa.Column("destination_name", sa.String(255), nullable=False),
        sa.Column("destination_country", sa.String(100), nullable=True),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("dates_flexible", sa.Boolean, server_default="false"),
        sa.Column("budget_min", sa.Numeric(10, 2), nullable=True),
        sa.Column("budget_max", sa.Numeric(10, 2), nullable=True),
        sa.Column("currency", sa.String(3), server_default="'USD'"),
        sa.Column("budget_shared", sa.Boolean, server_default="false"),
        sa.Column("capacity_min", sa.Integer, server_default="2"),
        sa.Column("capacity_max", sa.Integer, server_default="10"),
        sa.Column("capacity_current", sa.Integer, server_default="1"),
        sa.Column("req_age_min", sa.Integer, nullable=True),
        sa.Column("req_age_max", sa.Integer, nullable=True),
        sa.Column("req_experience", sa.String(20), server_default="'any'"),
        sa.Column("req_languages", JSONB, server_default="[]"),
        sa.Column("phase", sa.String(20), server_default="'planning'"),
        sa.Column("status", sa.String(20), server_default="'open'"),
        sa.Column("privacy", sa.String(20), server_default="'public'"),
        sa.Column("tags", JSONB, server_default="[]"),
        sa.Column("ai_suggestions", JSONB, nullable=True),
        sa.Column("version_id", sa.Integer, nullable=False),
        _ts("created_at"),
        _ts("updated_at"),
        sa.CheckConstraint("capacity_current <= capacity_max", name="ck_group_trips_capacity"),
    )
    op.create_index("ix_group_trips_admin_id", "group_trips", ["admin_id"])
    op.create_index("ix_group_trips_status_privacy", "group_trips", ["status", "privacy"])

    op.create_table(
        "group_trip_participants",
        _id(),
        sa.Column("trip_id", UUID(as_uuid=True), sa.ForeignKey("group_trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("status", sa.String(20), server_default="'pending'"),
        sa.Column("role", sa.String(20), server_default="'participant'"),
        sa.Column("preferences", JSONB, server_default="{}"),
        _ts("joined_at"),
        sa.UniqueConstraint("trip_id", "user_id", name="uq_group_trip_participant"),
    )
    op.create_index("ix_group_trip_participants_user_id", "group_trip_participants", ["user_id"])

    op.create_table(
        "trip_polls",
        _id(),
        sa.Column("trip_id", UUID(as_uuid=True), sa.ForeignKey("group_trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("question", sa.Text, nullable=False),
        sa.Column("options", JSONB, nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean, server_default="true"),
        sa.Column("created_by", sa.String(64), nullable=False),
        _ts("created_at"),
        sa.UniqueConstraint("trip_id", "position", name="uq_trip_poll_position"),
    )

    op.create_table(
        "trip_poll_votes",
        _id(),
        sa.Column("poll_id", UUID(as_uuid=True), sa.ForeignKey("trip_polls.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("option", sa.String(255), nullable=False),
        _ts("voted_at"),
        sa.UniqueConstraint("poll_id", "user_id", name="uq_trip_poll_vote"),
    )

    op.create_table(
        "trip_discussions",
        _id(),
        sa.Column("trip_id", UUID(as_uuid=True), sa.ForeignKey("group_trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        _ts("created_at"),
        sa.UniqueConstraint("trip_id", "position", name="uq_trip_discussion_position"),
    )

    op.create_table(
        "trip_discussion_replies",
        _id(),
        sa.Column("discussion_id", UUID(as_uuid=True), sa.ForeignKey("trip_discussions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        _ts("created_at"),
    )

    op.create_table(
        "trip_shared_expenses",
        _id(),
        sa.Column("trip_id", UUID(as_uuid=True), sa.ForeignKey("group_trips.id", ondelete="CASCADE"), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("paid_by", sa.String(64), nullable=False),
        sa.Column("split_between", JSONB, server_default="[]"),
        _ts("created_at"),
    )

    # --- notifications ---
    op.create_table(
        "notifications",
        _id(),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("reference_type", sa.String(50), nullable=True),
        sa.Column("reference_id", UUID(as_uuid=True), nullable=True),
        sa.Column("payload", JSONB, server_default="{}"),
        sa.Column("is_read", sa.Boolean, server_default="false"),
        _ts("created_at"),
    )
    op.create_index("ix_notifications_user_unread", "notifications", ["user_id", "is_read"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("trip_shared_expenses")
    op.drop_table("trip_discussion_replies")
    op.drop_table("trip_discussions")
    op.drop_table("trip_poll_votes")
    op.drop_table("trip_polls")
    op.drop_table("group_trip_participants")
    op.drop_table("group_trips")
    op.drop_table("travel_group_members")
    op.drop_table("travel_groups")
    op.drop_table("social_connections")
    op.drop_table("post_comments")
    op.drop_table("post_reactions")
    op.drop_table("travel_posts")
    op.drop_table("user_profiles")
