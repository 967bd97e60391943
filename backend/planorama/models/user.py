"""
User model. Organizers are users with the admin role.
"""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, CheckConstraint

from planorama.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="admin")
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("role IN ('admin', 'user')", name="check_user_role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class OrganizerSettings(Base, TimestampMixin):
    """
    Per-organizer settings.

    `default_template_id` is the single source of truth for the organizer's
    default email template: pointing it elsewhere unsets the old default in
    the same write.
    """

    __tablename__ = "organizer_settings"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    default_template_id = Column(
        Integer,
        ForeignKey("email_templates.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<OrganizerSettings(user={self.user_id}, default_template={self.default_template_id})>"
