"""
Email template model: per-organizer invitation styling, optionally scoped to one event.
"""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Index, text

from planorama.db.base import Base, TimestampMixin


class EmailTemplate(Base, TimestampMixin):
    __tablename__ = "email_templates"

    id = Column(Integer, primary_key=True, index=True)
    organizer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=True)

    logo_url = Column(String(2048), nullable=False, default="")
    host_name = Column(String(100), nullable=False)
    primary_color = Column(String(7), nullable=False, default="#4F46E5")
    secondary_color = Column(String(7), nullable=False, default="#ffffff")
    text_color = Column(String(7), nullable=False, default="#374151")
    event_details_background_color = Column(String(7), nullable=False, default="#f3f4f6")
    font_family = Column(String(100), nullable=False, default="Arial, sans-serif")
    header_text = Column(String(200), nullable=False, default="You're Invited!")
    sample_event_title = Column(String(200), nullable=False, default="Join Us for an Amazing Event")
    footer_text = Column(String(500), nullable=False, default="We look forward to seeing you!")
    button_text = Column(String(100), nullable=False, default="RSVP Now")
    button_radius = Column(String(10), nullable=False, default="8")
    show_emojis = Column(Boolean, nullable=False, default=True)
    description_text = Column(String(1000), nullable=False, default="")

    __table_args__ = (
        # One template per (organizer, event); organizer-wide templates have no event
        Index(
            "uq_email_templates_organizer_event",
            "organizer_id",
            "event_id",
            unique=True,
            postgresql_where=text("event_id IS NOT NULL"),
            sqlite_where=text("event_id IS NOT NULL"),
        ),
        Index("ix_email_templates_organizer", "organizer_id"),
    )

    def __repr__(self) -> str:
        return f"<EmailTemplate(id={self.id}, organizer={self.organizer_id}, event={self.event_id})>"
