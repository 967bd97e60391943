"""
Email template resolution and editing.

Resolution order for an invitation:
    1. the organizer's template for that event
    2. the organizer's default template (OrganizerSettings.default_template_id)
    3. built-in defaults (TemplateStyle field defaults)
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from planorama.core.logging import get_logger
from planorama.models.email_template import EmailTemplate
from planorama.models.user import OrganizerSettings, User
from planorama.schemas.email import TemplateResponse, TemplateSave, TemplateStyle
from planorama.services.event_service import get_owned_event

logger = get_logger(__name__)

_STYLE_FIELDS = tuple(TemplateStyle.model_fields)


async def get_default_template_id(db: AsyncSession, organizer_id: int) -> Optional[int]:
    result = await db.execute(
        select(OrganizerSettings.default_template_id).where(OrganizerSettings.user_id == organizer_id)
    )
    return result.scalar_one_or_none()


async def set_default_template(db: AsyncSession, organizer_id: int, template_id: Optional[int]) -> None:
    """Point the organizer's default at `template_id` in a single-row write."""
    result = await db.execute(
        update(OrganizerSettings)
        .where(OrganizerSettings.user_id == organizer_id)
        .values(default_template_id=template_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.add(OrganizerSettings(user_id=organizer_id, default_template_id=template_id))
        await db.flush()
    logger.info("default_template_set", organizer_id=organizer_id, template_id=template_id)


async def _find_template(
    db: AsyncSession,
    organizer_id: int,
    event_id: Optional[int],
) -> Optional[EmailTemplate]:
    if event_id is not None:
        result = await db.execute(
            select(EmailTemplate).where(
                EmailTemplate.organizer_id == organizer_id,
                EmailTemplate.event_id == event_id,
            )
        )
        template = result.scalar_one_or_none()
        if template is not None:
            return template

    default_id = await get_default_template_id(db, organizer_id)
    if default_id is None:
        return None
    result = await db.execute(
        select(EmailTemplate).where(
            EmailTemplate.id == default_id,
            EmailTemplate.organizer_id == organizer_id,
        )
    )
    return result.scalar_one_or_none()


async def resolve_template(db: AsyncSession, organizer_id: int, event_id: Optional[int]) -> TemplateStyle:
    """Styling for an invitation email, falling back to organizer default, then built-ins."""
    template = await _find_template(db, organizer_id, event_id)
    if template is None:
        return TemplateStyle()
    return TemplateStyle.model_validate(template)


async def _to_response(db: AsyncSession, template: EmailTemplate, organizer_id: int) -> TemplateResponse:
    default_id = await get_default_template_id(db, organizer_id)
    return TemplateResponse(
        id=template.id,
        event_id=template.event_id,
        is_default=template.id == default_id,
        **TemplateStyle.model_validate(template).model_dump(),
    )


async def get_template(db: AsyncSession, organizer: User, event_id: Optional[int] = None) -> TemplateResponse:
    """Template shown in the editor; built-in defaults (with preview copy) when none exists."""
    template = await _find_template(db, organizer.id, event_id)
    if template is None:
        return TemplateResponse(
            description_text="Join us for an amazing event! This is a preview of how your invitation will look.",
        )
    return await _to_response(db, template, organizer.id)


async def save_template(db: AsyncSession, organizer: User, data: TemplateSave) -> TemplateResponse:
    """
    Create or update a template.

    With `event_id` the organizer's template for that event is upserted.
    Without it, the organizer-wide template is upserted: the current default
    if it is organizer-wide, else the most recent organizer-wide template.
    """
    if data.event_id is not None:
        await get_owned_event(db, data.event_id, organizer)
        result = await db.execute(
            select(EmailTemplate).where(
                EmailTemplate.organizer_id == organizer.id,
                EmailTemplate.event_id == data.event_id,
            )
        )
        template = result.scalar_one_or_none()
    else:
        template = None
        default_id = await get_default_template_id(db, organizer.id)
        if default_id is not None:
            result = await db.execute(
                select(EmailTemplate).where(
                    EmailTemplate.id == default_id,
                    EmailTemplate.event_id.is_(None),
                )
            )
            template = result.scalar_one_or_none()
        if template is None:
            result = await db.execute(
                select(EmailTemplate)
                .where(EmailTemplate.organizer_id == organizer.id, EmailTemplate.event_id.is_(None))
                .order_by(EmailTemplate.updated_at.desc(), EmailTemplate.id.desc())
                .limit(1)
            )
            template = result.scalar_one_or_none()

    created = template is None
    if created:
        template = EmailTemplate(organizer_id=organizer.id, event_id=data.event_id)
        db.add(template)

    for field in _STYLE_FIELDS:
        setattr(template, field, getattr(data, field))
    await db.flush()

    if data.is_default:
        await set_default_template(db, organizer.id, template.id)

    logger.info(
        "email_template_saved",
        template_id=template.id,
        organizer_id=organizer.id,
        event_id=template.event_id,
        created=created,
        is_default=data.is_default,
    )
    return await _to_response(db, template, organizer.id)
