"""
Event service handling CRUD operations for organizers.

Every organizer-facing lookup goes through `get_owned_event`: an event that
exists but belongs to someone else is reported exactly like a missing one.
"""

from datetime import datetime, timezone
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from planorama.core.exceptions import NotFoundError, ValidationFailedError
from planorama.core.logging import get_logger
from planorama.models.event import Event
from planorama.models.user import User
from planorama.schemas.event import EventCreate, EventUpdate

logger = get_logger(__name__)


def _ensure_future(date: datetime, action: str) -> None:
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    if date <= datetime.now(timezone.utc):
        raise ValidationFailedError(
            f"Cannot {action} an event for a past date. Please select a future date and time."
        )


async def create_event(db: AsyncSession, event_data: EventCreate, organizer: User) -> Event:
    """Create a new event with no attendees yet."""
    _ensure_future(event_data.date, "create")

    event = Event(
        title=event_data.title,
        description=event_data.description or "",
        date=event_data.date,
        location=event_data.location,
        category=event_data.category,
        capacity=event_data.capacity,
        host_name=event_data.host_name,
        host_mobile=event_data.host_mobile,
        host_email=event_data.host_email,
        organizer_id=organizer.id,
        attendee_count=0,
    )
    db.add(event)
    await db.flush()

    logger.info("event_created", event_id=event.id, title=event.title, capacity=event.capacity)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID."""
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()

    if not event:
        raise NotFoundError("Event not found")
    return event


async def get_owned_event(db: AsyncSession, event_id: int, organizer: User) -> Event:
    """Get an event only if it belongs to `organizer`."""
    result = await db.execute(
        select(Event).where(Event.id == event_id, Event.organizer_id == organizer.id)
    )
    event = result.scalar_one_or_none()

    if not event:
        raise NotFoundError("Event not found")
    return event


async def update_event(
    db: AsyncSession,
    event_id: int,
    event_data: EventUpdate,
    organizer: User,
) -> Event:
    """
    Replace the editable fields of an event.

    Capacity may drop below the current headcount: admissions already made
    stand, new `going` responses are rejected until spots free up.
    """
    event = await get_owned_event(db, event_id, organizer)
    _ensure_future(event_data.date, "update")

    event.title = event_data.title
    event.description = event_data.description or ""
    event.date = event_data.date
    event.location = event_data.location
    event.category = event_data.category
    event.capacity = event_data.capacity
    event.host_name = event_data.host_name
    event.host_mobile = event_data.host_mobile
    event.host_email = event_data.host_email
    await db.flush()

    if event.attendee_count > event.capacity:
        logger.warning(
            "event_capacity_below_headcount",
            event_id=event.id,
            capacity=event.capacity,
            attendees=event.attendee_count,
        )
    logger.info("event_updated", event_id=event.id)
    return event


async def list_events(
    db: AsyncSession,
    organizer: User,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Event], int]:
    """
    List the organizer's events, newest first.
    Uses the ix_events_organizer_created index.
    """
    query = select(Event).where(Event.organizer_id == organizer.id)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.created_at.desc(), Event.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total
