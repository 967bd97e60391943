"""
RSVP endpoints for both identities.

Organizer (user path) responses are upserts. Guest (token path) responses
are create-once and capacity checked; see rsvp_service for the admission
strategy.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from planorama.core.security import require_admin
from planorama.db.session import get_db
from planorama.models.rsvp import RSVPStatus
from planorama.models.user import User
from planorama.schemas.rsvp import (
    DietaryStats,
    EventRSVPListResponse,
    EventRSVPResponse,
    TokenRSVPCreate,
    TokenRSVPDetails,
    TokenRSVPResult,
    TokenRSVPStatusResponse,
    TokenRSVPSummary,
    UserRSVPCreate,
    UserRSVPEnvelope,
    UserRSVPResponse,
    UserRSVPResult,
)
from planorama.services import rsvp_service
from planorama.services.rate_limit_service import rsvp_rate_limiter

router = APIRouter(prefix="/rsvps", tags=["RSVPs"])


def _token_rsvp_message(status: str, companions: int) -> str:
    if status != RSVPStatus.going.value:
        return "Thank you for your response."
    if companions > 0:
        noun = "companion" if companions == 1 else "companions"
        return f"RSVP confirmed! You and {companions} {noun} have been registered."
    return "RSVP confirmed! You have been registered."


@router.get("/event/{event_id}/all", response_model=EventRSVPListResponse)
async def list_event_rsvps_endpoint(
    event_id: int,
    organizer: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rsvps = await rsvp_service.list_event_rsvps(db, event_id, organizer)
    return EventRSVPListResponse(rsvps=[EventRSVPResponse.model_validate(r) for r in rsvps])


@router.get("/event/{event_id}/dietary-stats", response_model=DietaryStats)
async def dietary_stats_endpoint(
    event_id: int,
    organizer: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Dietary preference buckets over attendees who are going."""
    return await rsvp_service.compute_dietary_statistics(db, event_id, organizer)


@router.post(
    "/token/{token}",
    response_model=TokenRSVPResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rsvp_rate_limiter)],
)
async def submit_token_rsvp_endpoint(
    token: str,
    rsvp_data: TokenRSVPCreate,
    db: AsyncSession = Depends(get_db),
):
    """Public guest response through an invitation link. One response per token."""
    rsvp, total_attendees = await rsvp_service.submit_token_rsvp(
        db,
        token,
        status=rsvp_data.status,
        companions=rsvp_data.companions,
        guest_name=rsvp_data.guest_name,
        dietary_preference=rsvp_data.dietary_preference,
        companion_dietary_preference=rsvp_data.companion_dietary_preference,
    )
    return TokenRSVPResult(
        message=_token_rsvp_message(rsvp.status, rsvp.companions),
        rsvp=TokenRSVPSummary(
            id=rsvp.id,
            status=rsvp.status,
            companions=rsvp.companions,
            total_attendees=total_attendees,
        ),
    )


@router.get("/token/{token}/status", response_model=TokenRSVPStatusResponse)
async def token_rsvp_status_endpoint(token: str, db: AsyncSession = Depends(get_db)):
    rsvp = await rsvp_service.get_token_rsvp_status(db, token)
    if rsvp is None:
        return TokenRSVPStatusResponse(has_responded=False)
    return TokenRSVPStatusResponse(
        has_responded=True,
        rsvp=TokenRSVPDetails(
            status=rsvp.status,
            companions=rsvp.companions,
            total_attendees=rsvp.headcount,
            responded_at=rsvp.created_at,
            dietary_preference=rsvp.dietary_preference,
            companion_dietary_preference=rsvp.companion_dietary_preference,
        ),
    )


@router.get("/{event_id}", response_model=UserRSVPEnvelope)
async def get_user_rsvp_endpoint(
    event_id: int,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """The caller's own RSVP for the event, or null."""
    rsvp = await rsvp_service.get_user_rsvp(db, event_id, user)
    return UserRSVPEnvelope(rsvp=UserRSVPResponse.model_validate(rsvp) if rsvp else None)


@router.post("/{event_id}", response_model=UserRSVPResult, dependencies=[Depends(rsvp_rate_limiter)])
async def submit_user_rsvp_endpoint(
    event_id: int,
    rsvp_data: UserRSVPCreate,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rsvp = await rsvp_service.submit_user_rsvp(db, event_id, user, rsvp_data.status)
    return UserRSVPResult(rsvp=UserRSVPResponse.model_validate(rsvp))
