"""
Invitation issuing and invitee listings.

Issuing a token never depends on email delivery: the token row is flushed
first, the invitation email is best effort and only reported back through
`email_sent`.
"""

import math
import secrets
from typing import Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from planorama.core.exceptions import DeliveryError, NotFoundError
from planorama.core.logging import get_logger
from planorama.core.metrics import invitations_created, record_invitation_email
from planorama.models.event import Event
from planorama.models.invitation import InvitationToken
from planorama.models.rsvp import RSVP
from planorama.models.user import User
from planorama.schemas.invitation import InvitationCreate
from planorama.services import email_service, template_service
from planorama.services.event_service import get_owned_event
from planorama.services.rsvp_service import get_token

logger = get_logger(__name__)

PENDING = "pending"
TOKEN_BYTES = 32


def generate_token() -> str:
    """64 hex chars of CSPRNG output."""
    return secrets.token_hex(TOKEN_BYTES)


async def create_invitation(
    db: AsyncSession,
    event_id: int,
    data: InvitationCreate,
    organizer: User,
) -> tuple[InvitationToken, bool]:
    """
    Issue an invitation token for one email address and try to send the invite.
    Returns (token, email_sent).
    """
    event = await get_owned_event(db, event_id, organizer)
    email = data.email.strip().lower()

    result = await db.execute(select(User.id).where(User.email == email))
    linked_user_id = result.scalar_one_or_none()

    invitation = InvitationToken(
        event_id=event.id,
        email=email,
        name=data.name,
        token=generate_token(),
        user_id=linked_user_id,
    )
    db.add(invitation)
    await db.flush()
    invitations_created.inc()

    logger.info(
        "invitation_created",
        event_id=event.id,
        token_id=invitation.id,
        linked_user=linked_user_id is not None,
    )

    email_sent = await _dispatch_invitation(db, event, invitation)
    return invitation, email_sent


async def _dispatch_invitation(db: AsyncSession, event: Event, invitation: InvitationToken) -> bool:
    if not email_service.is_email_service_configured():
        record_invitation_email("skipped")
        logger.info("invitation_email_skipped", token_id=invitation.id, reason="not_configured")
        return False

    style = await template_service.resolve_template(db, event.organizer_id, event.id)
    invite_link = email_service.build_invite_link(event.id, invitation.token)
    try:
        await email_service.send_invitation(invitation.email, event, style, invite_link)
    except DeliveryError as e:
        # The token stands; the organizer can share the link by hand
        record_invitation_email("failed")
        logger.warning("invitation_email_failed", token_id=invitation.id, error=e.message)
        return False

    record_invitation_email("sent")
    return True


async def get_event_by_token(db: AsyncSession, token: str) -> tuple[Event, InvitationToken]:
    """Public lookup for the guest landing page."""
    token_row = await get_token(db, token)
    result = await db.execute(select(Event).where(Event.id == token_row.event_id))
    event = result.scalar_one_or_none()
    if event is None:
        raise NotFoundError("Event not found")
    return event, token_row


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def list_invitees(
    db: AsyncSession,
    event_id: int,
    organizer: User,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    status: Optional[str] = None,
) -> tuple[list[dict], int]:
    """
    Invitation tokens of an event with their resolved RSVP status.

    Resolved status is the token's own response, else the response of the
    account linked to the token, else pending. Filters apply before paging.
    """
    event = await get_owned_event(db, event_id, organizer)

    token_rsvp = aliased(RSVP)
    user_rsvp = aliased(RSVP)
    resolved_status = func.coalesce(token_rsvp.status, user_rsvp.status)

    query = (
        select(InvitationToken, token_rsvp, user_rsvp)
        .outerjoin(
            token_rsvp,
            and_(
                token_rsvp.token_id == InvitationToken.id,
                token_rsvp.event_id == InvitationToken.event_id,
            ),
        )
        .outerjoin(
            user_rsvp,
            and_(
                user_rsvp.user_id == InvitationToken.user_id,
                user_rsvp.event_id == InvitationToken.event_id,
            ),
        )
        .where(InvitationToken.event_id == event.id)
    )

    if search and search.strip():
        pattern = f"%{_escape_like(search.strip())}%"
        query = query.where(
            InvitationToken.email.ilike(pattern, escape="\\")
            | InvitationToken.name.ilike(pattern, escape="\\")
        )

    if status == PENDING:
        query = query.where(resolved_status.is_(None))
    elif status:
        query = query.where(resolved_status == status)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    result = await db.execute(
        query
        .order_by(InvitationToken.created_at.desc(), InvitationToken.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    invitees = []
    for invitation, own_rsvp, linked_rsvp in result.all():
        rsvp = own_rsvp or linked_rsvp
        invitees.append({
            "id": invitation.id,
            "email": invitation.email,
            "name": invitation.name,
            "token": invitation.token,
            "created_at": invitation.created_at,
            "rsvp_status": rsvp.status if rsvp else None,
            "companions": rsvp.companions if rsvp else 0,
        })
    return invitees, total


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
