"""
Pydantic schemas for RSVP submission and reporting.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator

from planorama.core.config import get_settings
from planorama.models.rsvp import DietaryPreference, RSVPStatus


class UserRSVPCreate(BaseModel):
    status: RSVPStatus


class TokenRSVPCreate(BaseModel):
    """Anonymous guests must commit: no `maybe` on the token path."""

    status: Literal["going", "not-going"]
    companions: int = 0
    guest_name: Optional[str] = Field(None, max_length=200)
    dietary_preference: Optional[DietaryPreference] = None
    companion_dietary_preference: Optional[DietaryPreference] = None

    @field_validator("companions")
    @classmethod
    def clamp_companions(cls, value: int) -> int:
        return max(0, min(value, get_settings().MAX_GUEST_COMPANIONS))


class UserRSVPResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    status: str

    model_config = {"from_attributes": True}


class UserRSVPEnvelope(BaseModel):
    rsvp: Optional[UserRSVPResponse]


class UserRSVPResult(UserRSVPEnvelope):
    success: bool = True


class EventRSVPResponse(BaseModel):
    id: int
    event_id: int
    user_id: Optional[int]
    token_id: Optional[int]
    status: str
    companions: int
    guest_name: Optional[str]
    guest_email: Optional[str]
    dietary_preference: Optional[str]
    companion_dietary_preference: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class EventRSVPListResponse(BaseModel):
    rsvps: list[EventRSVPResponse]


class TokenRSVPSummary(BaseModel):
    id: int
    status: str
    companions: int
    total_attendees: int


class TokenRSVPResult(BaseModel):
    success: bool = True
    message: str
    rsvp: TokenRSVPSummary


class TokenRSVPDetails(BaseModel):
    status: str
    companions: int
    total_attendees: int
    responded_at: datetime
    dietary_preference: Optional[str] = None
    companion_dietary_preference: Optional[str] = None


class TokenRSVPStatusResponse(BaseModel):
    has_responded: bool
    rsvp: Optional[TokenRSVPDetails] = None


class DietaryStats(BaseModel):
    nonveg: int = 0
    veg: int = 0
    vegan: int = 0
    not_specified: int = 0
