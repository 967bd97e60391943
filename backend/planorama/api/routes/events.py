"""
Event endpoints. Organizers only see and edit their own events; the public
view exposes what an invitee needs to decide.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from planorama.core.security import require_admin
from planorama.db.session import get_db
from planorama.models.user import User
from planorama.schemas.event import (
    EventCreate,
    EventListResponse,
    EventResponse,
    EventUpdate,
    PublicEventResponse,
)
from planorama.services.event_service import (
    create_event,
    get_event,
    get_owned_event,
    list_events,
    update_event,
)

router = APIRouter(prefix="/events", tags=["Events"])


@router.get("", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    organizer: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's events, newest first, with their current headcount."""
    events, total = await list_events(db, organizer, page, page_size)
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    organizer: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await create_event(db, event_data, organizer)


@router.get("/public/{event_id}", response_model=PublicEventResponse)
async def get_public_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    """Public event details. No authentication required."""
    return await get_event(db, event_id)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    organizer: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await get_owned_event(db, event_id, organizer)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    organizer: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await update_event(db, event_id, event_data, organizer)
