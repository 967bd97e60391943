"""
Pydantic schemas for invitation tokens and invitee listings.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from planorama.schemas.event import PublicEventResponse


class InvitationCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(None, max_length=200)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class InviteeResponse(BaseModel):
    id: int
    email: str
    name: Optional[str]
    token: str
    created_at: datetime
    rsvp_status: Optional[str] = None
    companions: int = 0


class InvitationCreatedResponse(BaseModel):
    token: InviteeResponse
    email_sent: bool


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class InviteeListResponse(BaseModel):
    tokens: list[InviteeResponse]
    pagination: Pagination


class TokenInvitee(BaseModel):
    email: str
    name: Optional[str]


class TokenEventResponse(BaseModel):
    event: PublicEventResponse
    token: TokenInvitee
