from planorama.models.user import User, OrganizerSettings
from planorama.models.event import Event
from planorama.models.invitation import InvitationToken
from planorama.models.rsvp import RSVP, RSVPStatus, DietaryPreference
from planorama.models.email_template import EmailTemplate

__all__ = [
    "User", "OrganizerSettings", "Event", "InvitationToken",
    "RSVP", "RSVPStatus", "DietaryPreference", "EmailTemplate",
]
