"""Initial schema: users, events, invitations, RSVPs and email templates.

Revision ID: 001
Revises: None
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'admin'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.CheckConstraint("role IN ('admin', 'user')", name="check_user_role"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Events table
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.String(2000), nullable=False, server_default=sa.text("''")),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(200), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("host_name", sa.String(100), nullable=False),
        sa.Column("host_mobile", sa.String(20), nullable=False),
        sa.Column("host_email", sa.String(100), nullable=False),
        sa.Column("organizer_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        # Running headcount of going RSVPs; admission is a conditional UPDATE on it
        sa.Column("attendee_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.CheckConstraint("capacity >= 1", name="check_event_capacity_positive"),
        sa.CheckConstraint("attendee_count >= 0", name="check_event_attendee_count_non_negative"),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_date", "events", ["date"])
    # Organizer dashboard: WHERE organizer_id = ? ORDER BY created_at DESC
    op.create_index("ix_events_organizer_created", "events", ["organizer_id", "created_at"])

    # Email templates table
    op.create_table(
        "email_templates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("organizer_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=True),
        sa.Column("logo_url", sa.String(2048), nullable=False, server_default=sa.text("''")),
        sa.Column("host_name", sa.String(100), nullable=False),
        sa.Column("primary_color", sa.String(7), nullable=False, server_default=sa.text("'#4F46E5'")),
        sa.Column("secondary_color", sa.String(7), nullable=False, server_default=sa.text("'#ffffff'")),
        sa.Column("text_color", sa.String(7), nullable=False, server_default=sa.text("'#374151'")),
        sa.Column(
            "event_details_background_color", sa.String(7), nullable=False, server_default=sa.text("'#f3f4f6'")
        ),
        sa.Column("font_family", sa.String(100), nullable=False, server_default=sa.text("'Arial, sans-serif'")),
        sa.Column("header_text", sa.String(200), nullable=False, server_default=sa.text("'You''re Invited!'")),
        sa.Column(
            "sample_event_title", sa.String(200), nullable=False,
            server_default=sa.text("'Join Us for an Amazing Event'"),
        ),
        sa.Column(
            "footer_text", sa.String(500), nullable=False,
            server_default=sa.text("'We look forward to seeing you!'"),
        ),
        sa.Column("button_text", sa.String(100), nullable=False, server_default=sa.text("'RSVP Now'")),
        sa.Column("button_radius", sa.String(10), nullable=False, server_default=sa.text("'8'")),
        sa.Column("show_emojis", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("description_text", sa.String(1000), nullable=False, server_default=sa.text("''")),
        *_timestamps(),
    )
    op.create_index("ix_email_templates_id", "email_templates", ["id"])
    op.create_index("ix_email_templates_organizer", "email_templates", ["organizer_id"])
    op.create_index(
        "uq_email_templates_organizer_event",
        "email_templates",
        ["organizer_id", "event_id"],
        unique=True,
        postgresql_where=sa.text("event_id IS NOT NULL"),
    )

    # Organizer settings: the default template is a single nullable pointer
    op.create_table(
        "organizer_settings",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column(
            "default_template_id",
            sa.Integer(),
            sa.ForeignKey("email_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )

    # Invitation tokens table
    op.create_table(
        "invitation_tokens",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_invitation_tokens_id", "invitation_tokens", ["id"])
    op.create_index("ix_invitation_tokens_token", "invitation_tokens", ["token"], unique=True)
    op.create_index("ix_invitation_tokens_email", "invitation_tokens", ["email"])
    op.create_index("ix_invitation_tokens_event_created", "invitation_tokens", ["event_id", "created_at"])

    # RSVPs table
    op.create_table(
        "rsvps",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column(
            "token_id", sa.Integer(), sa.ForeignKey("invitation_tokens.id", ondelete="CASCADE"), nullable=True
        ),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("companions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("guest_name", sa.String(200), nullable=True),
        sa.Column("guest_email", sa.String(255), nullable=True),
        sa.Column("dietary_preference", sa.String(10), nullable=True),
        sa.Column("companion_dietary_preference", sa.String(10), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("(user_id IS NULL) <> (token_id IS NULL)", name="check_rsvp_single_identity"),
        sa.CheckConstraint("status IN ('going', 'maybe', 'not-going')", name="check_rsvp_status"),
        sa.CheckConstraint("token_id IS NULL OR status <> 'maybe'", name="check_rsvp_token_no_maybe"),
        sa.CheckConstraint("companions >= 0", name="check_rsvp_companions_non_negative"),
        sa.CheckConstraint(
            "dietary_preference IS NULL OR dietary_preference IN ('nonveg', 'veg', 'vegan')",
            name="check_rsvp_dietary_preference",
        ),
        sa.CheckConstraint(
            "companion_dietary_preference IS NULL "
            "OR companion_dietary_preference IN ('nonveg', 'veg', 'vegan')",
            name="check_rsvp_companion_dietary_preference",
        ),
    )
    op.create_index("ix_rsvps_id", "rsvps", ["id"])
    # PARTIAL UNIQUE INDEXES: one response per identity, each only over rows
    # carrying that identity. A plain (event_id, user_id, token_id) unique
    # constraint would let NULLs slip through.
    op.create_index(
        "uq_rsvps_event_user",
        "rsvps",
        ["event_id", "user_id"],
        unique=True,
        postgresql_where=sa.text("user_id IS NOT NULL"),
    )
    op.create_index(
        "uq_rsvps_event_token",
        "rsvps",
        ["event_id", "token_id"],
        unique=True,
        postgresql_where=sa.text("token_id IS NOT NULL"),
    )
    # Dietary stats and invitee status filters: WHERE event_id = ? AND status = ?
    op.create_index("ix_rsvps_event_status", "rsvps", ["event_id", "status"])


def downgrade() -> None:
    op.drop_table("rsvps")
    op.drop_table("invitation_tokens")
    op.drop_table("organizer_settings")
    op.drop_table("email_templates")
    op.drop_table("events")
    op.drop_table("users")
