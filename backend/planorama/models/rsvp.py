"""
RSVP model: one attendance response for an event.

Key design decisions:
- Exactly one identity per row: `user_id` (registered account) or `token_id`
  (anonymous invitation link). Enforced by a CHECK constraint.
- Uniqueness is per identity and only over rows where that identity is set:
  partial unique indexes on (event_id, user_id) and (event_id, token_id).
  A plain composite unique index would treat rows lacking the column
  inconsistently across backends.
- Token-path rows can never be `maybe`.
"""

import enum

from sqlalchemy import Column, Integer, String, ForeignKey, Index, CheckConstraint, text

from planorama.db.base import Base, TimestampMixin


class RSVPStatus(str, enum.Enum):
    going = "going"
    maybe = "maybe"
    not_going = "not-going"


class DietaryPreference(str, enum.Enum):
    nonveg = "nonveg"
    veg = "veg"
    vegan = "vegan"


class RSVP(Base, TimestampMixin):
    __tablename__ = "rsvps"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    token_id = Column(Integer, ForeignKey("invitation_tokens.id", ondelete="CASCADE"), nullable=True)
    status = Column(String(20), nullable=False)
    companions = Column(Integer, nullable=False, default=0)
    guest_name = Column(String(200), nullable=True)
    guest_email = Column(String(255), nullable=True)
    dietary_preference = Column(String(10), nullable=True)
    companion_dietary_preference = Column(String(10), nullable=True)

    __table_args__ = (
        CheckConstraint("(user_id IS NULL) <> (token_id IS NULL)", name="check_rsvp_single_identity"),
        CheckConstraint("status IN ('going', 'maybe', 'not-going')", name="check_rsvp_status"),
        CheckConstraint("token_id IS NULL OR status <> 'maybe'", name="check_rsvp_token_no_maybe"),
        CheckConstraint("companions >= 0", name="check_rsvp_companions_non_negative"),
        CheckConstraint(
            "dietary_preference IS NULL OR dietary_preference IN ('nonveg', 'veg', 'vegan')",
            name="check_rsvp_dietary_preference",
        ),
        CheckConstraint(
            "companion_dietary_preference IS NULL "
            "OR companion_dietary_preference IN ('nonveg', 'veg', 'vegan')",
            name="check_rsvp_companion_dietary_preference",
        ),
        Index(
            "uq_rsvps_event_user",
            "event_id",
            "user_id",
            unique=True,
            postgresql_where=text("user_id IS NOT NULL"),
            sqlite_where=text("user_id IS NOT NULL"),
        ),
        Index(
            "uq_rsvps_event_token",
            "event_id",
            "token_id",
            unique=True,
            postgresql_where=text("token_id IS NOT NULL"),
            sqlite_where=text("token_id IS NOT NULL"),
        ),
        Index("ix_rsvps_event_status", "event_id", "status"),
    )

    @property
    def headcount(self) -> int:
        """Seats this response occupies: 1 + companions when going, else 0."""
        if self.status == RSVPStatus.going.value:
            return 1 + (self.companions or 0)
        return 0

    def __repr__(self) -> str:
        identity = f"user={self.user_id}" if self.user_id is not None else f"token={self.token_id}"
        return f"<RSVP(id={self.id}, event={self.event_id}, {identity}, status={self.status})>"
