"""
Invitation token: a per-guest secret link to an event.

`user_id` is the declared link to a registered account with the same
(normalized) email. It is set when the token is issued and back-filled when
the account registers, so invitee listings never match users by raw email.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, Index

from planorama.db.base import Base, TimestampMixin


class InvitationToken(Base, TimestampMixin):
    __tablename__ = "invitation_tokens"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    name = Column(String(200), nullable=True)
    token = Column(String(64), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        Index("ix_invitation_tokens_event_created", "event_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<InvitationToken(id={self.id}, event={self.event_id}, email={self.email})>"
