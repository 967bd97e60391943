from planorama.schemas.user import UserCreate, UserResponse, UserLogin, Token
from planorama.schemas.event import EventCreate, EventUpdate, EventResponse, EventListResponse
from planorama.schemas.invitation import InvitationCreate, InviteeResponse, InviteeListResponse
from planorama.schemas.rsvp import UserRSVPCreate, TokenRSVPCreate, DietaryStats
from planorama.schemas.email import TemplateStyle, TemplateSave, EmailSend

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse",
    "InvitationCreate", "InviteeResponse", "InviteeListResponse",
    "UserRSVPCreate", "TokenRSVPCreate", "DietaryStats",
    "TemplateStyle", "TemplateSave", "EmailSend",
]
