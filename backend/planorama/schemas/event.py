"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    date: datetime
    location: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    capacity: int = Field(..., ge=1, le=100000)
    host_name: str = Field(..., min_length=1, max_length=100)
    host_mobile: str = Field(..., min_length=1, max_length=20)
    host_email: EmailStr = Field(..., max_length=100)

    @field_validator("title", "location", "category", "host_name", "host_mobile")
    @classmethod
    def strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("host_email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class EventUpdate(EventCreate):
    pass


class PublicEventResponse(BaseModel):
    id: int
    title: str
    description: str
    date: datetime
    location: str
    category: str
    capacity: int
    host_name: str
    host_email: str

    model_config = {"from_attributes": True}


class EventResponse(PublicEventResponse):
    host_mobile: str
    organizer_id: int
    rsvp_count: int = Field(validation_alias=AliasChoices("attendee_count", "rsvp_count"))
    created_at: datetime


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
