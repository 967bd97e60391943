"""
Invitation token endpoints: issue, list invitees, and the public token lookup.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from planorama.core.security import require_admin
from planorama.db.session import get_db
from planorama.models.user import User
from planorama.schemas.event import PublicEventResponse
from planorama.schemas.invitation import (
    InvitationCreate,
    InvitationCreatedResponse,
    InviteeListResponse,
    InviteeResponse,
    Pagination,
    TokenEventResponse,
    TokenInvitee,
)
from planorama.services import invitation_service

router = APIRouter(prefix="/tokens", tags=["Invitations"])

StatusFilter = Literal["going", "maybe", "not-going", "pending"]


@router.get("/token/{token}", response_model=TokenEventResponse)
async def get_token_event_endpoint(token: str, db: AsyncSession = Depends(get_db)):
    """Event details for an invitation link. No authentication required."""
    event, invitation = await invitation_service.get_event_by_token(db, token)
    return TokenEventResponse(
        event=PublicEventResponse.model_validate(event),
        token=TokenInvitee(email=invitation.email, name=invitation.name),
    )


@router.get("/{event_id}", response_model=InviteeListResponse)
async def list_invitees_endpoint(
    event_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=200),
    status: Optional[StatusFilter] = Query(None),
    organizer: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Invitees of an event with their resolved RSVP status.
    `status=pending` selects invitees who have not responded through any identity.
    """
    invitees, total = await invitation_service.list_invitees(
        db, event_id, organizer, page=page, limit=limit, search=search, status=status
    )
    return InviteeListResponse(
        tokens=[InviteeResponse(**i) for i in invitees],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=invitation_service.total_pages(total, limit),
        ),
    )


@router.post("/{event_id}", response_model=InvitationCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_invitation_endpoint(
    event_id: int,
    invitation_data: InvitationCreate,
    organizer: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Issue an invitation token and email the invite link when SMTP is configured."""
    invitation, email_sent = await invitation_service.create_invitation(
        db, event_id, invitation_data, organizer
    )
    return InvitationCreatedResponse(
        token=InviteeResponse(
            id=invitation.id,
            email=invitation.email,
            name=invitation.name,
            token=invitation.token,
            created_at=invitation.created_at,
        ),
        email_sent=email_sent,
    )
