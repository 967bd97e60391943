"""
Pydantic schemas for email templates and ad-hoc email sending.
"""

from typing import Optional
from pydantic import BaseModel, EmailStr, Field

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class TemplateStyle(BaseModel):
    """Styling fields of an invitation email. Defaults apply when no template exists."""

    logo_url: str = ""
    host_name: str = ""
    primary_color: str = "#4F46E5"
    secondary_color: str = "#ffffff"
    text_color: str = "#374151"
    event_details_background_color: str = "#f3f4f6"
    font_family: str = "Arial, sans-serif"
    header_text: str = "You're Invited!"
    sample_event_title: str = "Join Us for an Amazing Event"
    footer_text: str = "We look forward to seeing you!"
    button_text: str = "RSVP Now"
    button_radius: str = "8"
    show_emojis: bool = True
    description_text: str = ""

    model_config = {"from_attributes": True}


class TemplateResponse(TemplateStyle):
    id: Optional[int] = None
    event_id: Optional[int] = None
    is_default: bool = False


class TemplateEnvelope(BaseModel):
    template: TemplateResponse


class TemplateSaveResult(TemplateEnvelope):
    success: bool = True


class TemplateSave(BaseModel):
    event_id: Optional[int] = None
    logo_url: str = Field("", max_length=2048)
    host_name: str = Field(..., min_length=1, max_length=100)
    primary_color: str = Field(..., pattern=HEX_COLOR)
    secondary_color: str = Field(..., pattern=HEX_COLOR)
    text_color: str = Field("#374151", pattern=HEX_COLOR)
    event_details_background_color: str = Field("#f3f4f6", pattern=HEX_COLOR)
    font_family: str = Field(..., min_length=1, max_length=100)
    header_text: str = Field(..., max_length=200)
    sample_event_title: str = Field("Join Us for an Amazing Event", max_length=200)
    footer_text: str = Field(..., max_length=500)
    button_text: str = Field("RSVP Now", max_length=100)
    button_radius: str = Field("8", pattern=r"^\d{1,3}$")
    show_emojis: bool = True
    description_text: str = Field("", max_length=1000)
    is_default: bool = False


class EmailSend(BaseModel):
    to: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=10000)
    reply_to: Optional[EmailStr] = None


class EmailSendResult(BaseModel):
    success: bool = True
    message: str
    message_id: str


class EmailServiceStatus(BaseModel):
    success: bool
    configured: bool
    message: str
    smtp_user: Optional[str] = None
