"""
Event model with attendee tracking.

Key design decisions:
- `attendee_count` is the running headcount of `going` RSVPs (1 + companions each).
  It is denormalized so that token-path admission can be a single conditional
  UPDATE instead of a read-sum-then-insert sequence.
- No CHECK ties attendee_count to capacity: capacity is a soft cap that may be
  lowered below the current headcount.
- Index on (organizer_id, created_at) for the organizer's dashboard listing.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, CheckConstraint

from planorama.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(String(2000), nullable=False, default="")
    date = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(200), nullable=False)
    category = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False)
    host_name = Column(String(100), nullable=False)
    host_mobile = Column(String(20), nullable=False)
    host_email = Column(String(100), nullable=False)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    attendee_count = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("capacity >= 1", name="check_event_capacity_positive"),
        CheckConstraint("attendee_count >= 0", name="check_event_attendee_count_non_negative"),
        Index("ix_events_organizer_created", "organizer_id", "created_at"),
        Index("ix_events_date", "date"),
    )

    @property
    def remaining_spots(self) -> int:
        return max(self.capacity - self.attendee_count, 0)

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, attendees={self.attendee_count}/{self.capacity})>"
