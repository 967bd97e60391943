"""
RSVP admission engine.

Two identities can respond to an event:
  - user path:  a registered organizer account. Upsert: may change its mind
                any number of times, never capacity checked, no companions.
  - token path: an anonymous guest holding an invitation secret. Create-once:
                a second submission is rejected with the first response.

CONCURRENCY STRATEGY: Conditional Counter Update
================================================

Problem:
  Two guests submit "going" for the last spots simultaneously.
  Both sum the existing RSVPs, both see room, both insert.
  Result: capacity overshoot.

Solution:
  `events.attendee_count` holds the running headcount of going RSVPs
  (1 + companions each). Admission is one statement:

    UPDATE events SET attendee_count = attendee_count + :requested
    WHERE id = :event_id AND attendee_count + :requested <= capacity

  If no row is updated the event is full. The UPDATE takes the event's row
  lock until the request transaction ends, so a second admission for the same
  event waits, then re-evaluates the WHERE against the committed headcount.
  The RSVP insert happens in the same transaction: if it fails (duplicate
  token response) the rollback also returns the seats.

  Uniqueness per identity is the database's job: partial unique indexes on
  (event_id, user_id) and (event_id, token_id), each only over rows where that
  identity is set.

  User path status changes move the same counter by a delta, so the delta
  must come from the response actually replaced:

    UPDATE rsvps SET status = :new WHERE id = :id AND status = :old

  A concurrent change makes that miss (rowcount 0) and the caller re-reads.
"""

import time
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from planorama.core.config import get_settings
from planorama.core.exceptions import (
    AlreadyRespondedError,
    CapacityExceededError,
    ConflictError,
    NotFoundError,
    ValidationFailedError,
)
from planorama.core.logging import bind_rsvp_context, get_logger
from planorama.core.metrics import admission_latency, record_rsvp
from planorama.models.event import Event
from planorama.models.invitation import InvitationToken
from planorama.models.rsvp import RSVP, DietaryPreference, RSVPStatus
from planorama.models.user import User
from planorama.schemas.rsvp import DietaryStats
from planorama.services.event_service import get_owned_event

logger = get_logger(__name__)
settings = get_settings()
TOKEN_STATUSES = (RSVPStatus.going, RSVPStatus.not_going)
USER_RSVP_ATTEMPTS = 3


def _headcount(status: str, companions: int = 0) -> int:
    return 1 + companions if status == RSVPStatus.going.value else 0


def _response_snapshot(rsvp: RSVP) -> dict:
    return {
        "status": rsvp.status,
        "companions": rsvp.companions,
        "responded_at": rsvp.created_at,
    }


async def _adjust_attendees(db: AsyncSession, event_id: int, delta: int) -> None:
    if delta == 0:
        return
    await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(attendee_count=Event.attendee_count + delta)
    )


async def _admit(db: AsyncSession, event: Event, requested: int) -> None:
    """Reserve `requested` spots or raise CapacityExceededError."""
    result = await db.execute(
        update(Event)
        .where(
            Event.id == event.id,
            Event.attendee_count + requested <= Event.capacity,
        )
        .values(attendee_count=Event.attendee_count + requested)
    )
    if result.rowcount == 1:
        return

    await db.refresh(event)
    remaining = max(event.capacity - event.attendee_count, 0)
    logger.warning(
        "capacity_exceeded",
        event_id=event.id,
        requested=requested,
        attendees=event.attendee_count,
        capacity=event.capacity,
        remaining=remaining,
    )
    record_rsvp("token", "capacity_exceeded")
    raise CapacityExceededError(remaining)


async def get_token(db: AsyncSession, token: str) -> InvitationToken:
    result = await db.execute(select(InvitationToken).where(InvitationToken.token == token))
    token_row = result.scalar_one_or_none()
    if token_row is None:
        raise NotFoundError("Invalid or expired invitation token")
    return token_row


async def _get_token_rsvp(db: AsyncSession, event_id: int, token_id: int) -> Optional[RSVP]:
    result = await db.execute(
        select(RSVP).where(RSVP.event_id == event_id, RSVP.token_id == token_id)
    )
    return result.scalar_one_or_none()


async def _get_user_rsvp(db: AsyncSession, event_id: int, user_id: int) -> Optional[RSVP]:
    # Re-reads after a lost compare-and-set must see the committed row, not the identity map
    result = await db.execute(
        select(RSVP)
        .where(RSVP.event_id == event_id, RSVP.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def submit_user_rsvp(
    db: AsyncSession,
    event_id: int,
    user: User,
    status: RSVPStatus,
) -> RSVP:
    """
    Create or replace the caller's RSVP for one of their events.
    Keeps the event headcount in step with the status change.
    """
    event = await get_owned_event(db, event_id, user)
    event_id, user_id = event.id, user.id
    bind_rsvp_context(event_id, user_id=user_id)
    status = RSVPStatus(status).value

    for attempt in range(1, USER_RSVP_ATTEMPTS + 1):
        rsvp = await _get_user_rsvp(db, event_id, user_id)

        if rsvp is not None:
            # Compare-and-set on the status we read: the delta is only valid
            # against that exact previous response
            rsvp_id, previous_status, previous_headcount = rsvp.id, rsvp.status, rsvp.headcount
            result = await db.execute(
                update(RSVP)
                .where(RSVP.id == rsvp_id, RSVP.status == previous_status)
                .values(status=status, companions=0)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                logger.info("user_rsvp_retry", event_id=event_id, user_id=user_id, attempt=attempt)
                continue

            await _adjust_attendees(db, event_id, _headcount(status) - previous_headcount)
            await db.refresh(rsvp)
            record_rsvp("user", "updated")
            logger.info("user_rsvp_updated", event_id=event_id, user_id=user_id, status=status)
            return rsvp

        rsvp = RSVP(event_id=event_id, user_id=user_id, status=status, companions=0)
        db.add(rsvp)
        try:
            await db.flush()
        except IntegrityError:
            # Lost an insert race for the same (event, user): retry as an update
            await db.rollback()
            logger.info("user_rsvp_retry", event_id=event_id, user_id=user_id, attempt=attempt)
            continue

        await _adjust_attendees(db, event_id, _headcount(status))
        record_rsvp("user", "created")
        logger.info("user_rsvp_created", event_id=event_id, user_id=user_id, status=status)
        return rsvp

    raise ConflictError("RSVP was modified concurrently, please retry")


async def get_user_rsvp(db: AsyncSession, event_id: int, user: User) -> Optional[RSVP]:
    event = await get_owned_event(db, event_id, user)
    return await _get_user_rsvp(db, event.id, user.id)


async def list_event_rsvps(db: AsyncSession, event_id: int, organizer: User) -> list[RSVP]:
    event = await get_owned_event(db, event_id, organizer)
    result = await db.execute(
        select(RSVP)
        .where(RSVP.event_id == event.id)
        .order_by(RSVP.created_at.desc(), RSVP.id.desc())
    )
    return list(result.scalars().all())


async def submit_token_rsvp(
    db: AsyncSession,
    token: str,
    status: str,
    companions: int = 0,
    guest_name: Optional[str] = None,
    dietary_preference: Optional[DietaryPreference] = None,
    companion_dietary_preference: Optional[DietaryPreference] = None,
) -> tuple[RSVP, int]:
    """
    Record an anonymous guest's response. Returns (rsvp, total_attendees).

    Raises:
        NotFoundError: unknown token, or its event is gone
        AlreadyRespondedError: this token already has a response
        ValidationFailedError: status is not going / not-going
        CapacityExceededError: going would overshoot the event capacity
    """
    start = time.perf_counter()

    token_row = await get_token(db, token)
    event = (await db.execute(select(Event).where(Event.id == token_row.event_id))).scalar_one_or_none()
    if event is None:
        raise NotFoundError("Event not found")

    event_id, token_id = event.id, token_row.id
    bind_rsvp_context(event_id, token_id=token_id)
    existing = await _get_token_rsvp(db, event_id, token_id)
    if existing is not None:
        record_rsvp("token", "already_responded")
        logger.info("token_rsvp_already_responded", event_id=event_id, token_id=token_id)
        raise AlreadyRespondedError(_response_snapshot(existing))

    status = getattr(status, "value", status)
    if status not in {s.value for s in TOKEN_STATUSES}:
        raise ValidationFailedError(
            "Validation error",
            details=[{"loc": ["body", "status"], "msg": "status must be 'going' or 'not-going'"}],
        )
    companions = max(0, min(int(companions or 0), settings.MAX_GUEST_COMPANIONS))
    total_attendees = _headcount(status, companions)

    if total_attendees:
        await _admit(db, event, total_attendees)

    guest_name = guest_name.strip() if guest_name else None
    rsvp = RSVP(
        event_id=event_id,
        token_id=token_id,
        status=status,
        companions=companions,
        guest_name=guest_name or token_row.name,
        guest_email=token_row.email,
        dietary_preference=getattr(dietary_preference, "value", dietary_preference),
        companion_dietary_preference=getattr(
            companion_dietary_preference, "value", companion_dietary_preference
        ),
    )
    db.add(rsvp)
    try:
        await db.flush()
    except IntegrityError:
        # A concurrent submission for the same token won; our seats roll back with us
        await db.rollback()
        winner = await _get_token_rsvp(db, event_id, token_id)
        record_rsvp("token", "already_responded")
        if winner is None:
            raise
        raise AlreadyRespondedError(_response_snapshot(winner))

    if guest_name:
        token_row.name = guest_name
        await db.flush()

    admission_latency.observe(time.perf_counter() - start)
    record_rsvp("token", "created")
    logger.info(
        "token_rsvp_created",
        event_id=event_id,
        token_id=token_id,
        status=status,
        companions=companions,
        total_attendees=total_attendees,
    )
    return rsvp, total_attendees


async def get_token_rsvp_status(db: AsyncSession, token: str) -> Optional[RSVP]:
    """The response recorded for an invitation token, if any. Read-only."""
    token_row = await get_token(db, token)
    return await _get_token_rsvp(db, token_row.event_id, token_row.id)


async def compute_dietary_statistics(db: AsyncSession, event_id: int, organizer: User) -> DietaryStats:
    """
    Bucket dietary preferences over `going` RSVPs.

    Each going RSVP credits its primary attendee, and one more bucket for its
    companions when it has any (a single companion preference is recorded per
    RSVP). Missing preferences count as not_specified. `maybe` and
    `not-going` responses are excluded.
    """
    event = await get_owned_event(db, event_id, organizer)
    result = await db.execute(
        select(RSVP.companions, RSVP.dietary_preference, RSVP.companion_dietary_preference).where(
            RSVP.event_id == event.id,
            RSVP.status == RSVPStatus.going.value,
        )
    )

    counts = {"nonveg": 0, "veg": 0, "vegan": 0, "not_specified": 0}
    known = {p.value for p in DietaryPreference}

    def credit(preference: Optional[str]) -> None:
        counts[preference if preference in known else "not_specified"] += 1

    for companions, preference, companion_preference in result.all():
        credit(preference)
        if companions and companions > 0:
            credit(companion_preference)

    return DietaryStats(**counts)

