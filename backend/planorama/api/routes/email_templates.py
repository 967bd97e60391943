"""
Invitation email template editor endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from planorama.core.security import require_admin
from planorama.db.session import get_db
from planorama.models.user import User
from planorama.schemas.email import TemplateEnvelope, TemplateSave, TemplateSaveResult
from planorama.services import template_service

router = APIRouter(prefix="/email-templates", tags=["Email Templates"])


@router.get("", response_model=TemplateEnvelope)
async def get_template_endpoint(
    event_id: Optional[int] = Query(None),
    organizer: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Event template, else the organizer's default, else built-in defaults."""
    template = await template_service.get_template(db, organizer, event_id)
    return TemplateEnvelope(template=template)


@router.post("", response_model=TemplateSaveResult)
async def save_template_endpoint(
    template_data: TemplateSave,
    organizer: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    template = await template_service.save_template(db, organizer, template_data)
    return TemplateSaveResult(template=template)
