"""Initial migration: user_profiles, swipes, matches, messages

Revision ID: 20261019_001
Revises:
Create Date: 2026-10-19 10:00:00

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261019_001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Create user_profiles table
    op.create_table(
        "user_profiles",
        sa.Column("uid", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=False),
        sa.Column("age", sa.Integer(), nullable=False),
        sa.Column("gender", sa.String(length=16), nullable=False),
        sa.Column("bio", sa.Text(), nullable=False),
        sa.Column("photos", sa.JSON(), nullable=False),
        sa.Column("interests", sa.JSON(), nullable=False),
        sa.Column("city", sa.String(length=128), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("height", sa.Integer(), nullable=True),
        sa.Column("education", sa.String(length=128), nullable=True),
        sa.Column("occupation", sa.String(length=128), nullable=True),
        sa.Column("looking_for", sa.String(length=16), nullable=False),
        sa.Column("age_min", sa.Integer(), nullable=False),
        sa.Column("age_max", sa.Integer(), nullable=False),
        sa.Column("distance_radius_km", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_active", sa.DateTime(), nullable=False),
        sa.Column("profile_complete", sa.Boolean(), nullable=False),
        sa.Column("onboarding_completed", sa.Boolean(), nullable=False),
        sa.Column("push_token", sa.String(length=255), nullable=True),
        sa.CheckConstraint("gender IN ('male','female','other')", name="chk_profile_gender"),
        sa.CheckConstraint("looking_for IN ('male','female','everyone')", name="chk_profile_looking_for"),
        sa.CheckConstraint("age_min <= age_max", name="chk_profile_age_range"),
        sa.CheckConstraint("distance_radius_km > 0", name="chk_profile_distance_radius"),
        sa.PrimaryKeyConstraint("uid"),
    )
    op.create_index("idx_profiles_discovery", "user_profiles", ["profile_complete", "last_active"], unique=False)

    # Create swipes table (keyed by ordered pair, overwritten on re-swipe)
    op.create_table(
        "swipes",
        sa.Column("id", sa.String(length=257), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("target_user_id", sa.String(length=128), nullable=False),
        sa.Column("action", sa.String(length=16), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.CheckConstraint("action IN ('like','pass','superlike')", name="chk_swipe_action"),
        sa.CheckConstraint("user_id <> target_user_id", name="chk_swipe_no_self"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_swipes_user_id"), "swipes", ["user_id"], unique=False)
    op.create_index(op.f("ix_swipes_target_user_id"), "swipes", ["target_user_id"], unique=False)

    # Create matches table (keyed by sorted pair)
    op.create_table(
        "matches",
        sa.Column("id", sa.String(length=257), nullable=False),
        sa.Column("user_lo", sa.String(length=128), nullable=False),
        sa.Column("user_hi", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_message_text", sa.Text(), nullable=True),
        sa.Column("last_message_sender_id", sa.String(length=128), nullable=True),
        sa.Column("last_message_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("user_lo <> user_hi", name="chk_match_no_self"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_matches_user_lo"), "matches", ["user_lo"], unique=False)
    op.create_index(op.f("ix_matches_user_hi"), "matches", ["user_hi"], unique=False)
    op.create_index(op.f("ix_matches_created_at"), "matches", ["created_at"], unique=False)

    # Create messages table
    op.create_table(
        "messages",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("match_id", sa.String(length=257), nullable=False),
        sa.Column("sender_id", sa.String(length=128), nullable=False),
        sa.Column("receiver_id", sa.String(length=128), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["match_id"], ["matches.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_messages_match_ts", "messages", ["match_id", "timestamp"], unique=False)
    op.create_index("idx_messages_unread", "messages", ["match_id", "receiver_id", "read"], unique=False)


def downgrade() -> None:
    op.drop_index("idx_messages_unread", table_name="messages")
    op.drop_index("idx_messages_match_ts", table_name="messages")
    op.drop_table("messages")
    op.drop_index(op.f("ix_matches_created_at"), table_name="matches")
    op.drop_index(op.f("ix_matches_user_hi"), table_name="matches")
    op.drop_index(op.f("ix_matches_user_lo"), table_name="matches")
    op.drop_table("matches")
    op.drop_index(op.f("ix_swipes_target_user_id"), table_name="swipes")
    op.drop_index(op.f("ix_swipes_user_id"), table_name="swipes")
    op.drop_table("swipes")
    op.drop_index("idx_profiles_discovery", table_name="user_profiles")
    op.drop_table("user_profiles")
