"""
Tests for RSVP endpoints and the admission engine, including concurrency scenarios.
"""

import asyncio

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from conftest import make_event, make_token
from planorama.core.exceptions import AlreadyRespondedError, CapacityExceededError
from planorama.models import Event, RSVP
from planorama.services import rsvp_service


async def token_rsvp(client: AsyncClient, token, **body):
    body.setdefault("status", "going")
    return await client.post(f"/api/v1/rsvps/token/{token.token}", json=body)


# --- token path -------------------------------------------------------------

@pytest.mark.asyncio
async def test_token_rsvp_going(client: AsyncClient, guest_token, small_event, auth_headers):
    """Going with companions admits 1 + companions and bumps the event headcount."""
    response = await token_rsvp(client, guest_token, companions=2, dietary_preference="veg")
    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "RSVP confirmed! You and 2 companions have been registered."
    assert data["rsvp"]["status"] == "going"
    assert data["rsvp"]["companions"] == 2
    assert data["rsvp"]["total_attendees"] == 3

    event = await client.get(f"/api/v1/events/{small_event.id}", headers=auth_headers)
    assert event.json()["rsvp_count"] == 3


@pytest.mark.asyncio
async def test_token_rsvp_invalid_token(client: AsyncClient):
    response = await client.post("/api/v1/rsvps/token/nope", json={"status": "going"})
    assert response.status_code == 404
    assert response.json()["error"] == "Invalid or expired invitation token"


@pytest.mark.asyncio
async def test_token_rsvp_rejects_maybe(client: AsyncClient, guest_token):
    """Guests must commit: maybe is a validation error on the token path."""
    response = await token_rsvp(client, guest_token, status="maybe")
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_token_rsvp_twice_returns_first_response(client: AsyncClient, guest_token):
    """A second submission is rejected and reports the original response unchanged."""
    first = await token_rsvp(client, guest_token, companions=1)
    assert first.status_code == 201

    second = await token_rsvp(client, guest_token, status="not-going")
    assert second.status_code == 400
    data = second.json()
    assert data["code"] == "ALREADY_RESPONDED"
    assert data["error"] == "You have already responded to this invitation"
    assert data["rsvp"]["status"] == "going"
    assert data["rsvp"]["companions"] == 1
    assert data["rsvp"]["responded_at"]


@pytest.mark.asyncio
async def test_capacity_exceeded_reports_remaining(client: AsyncClient, db_session, small_event):
    """Capacity 10: 1+4 admitted, then 1+6 (clamped to 1+5) overshoots with 5 spots left."""
    first = await make_token(db_session, small_event, "one@example.com")
    second = await make_token(db_session, small_event, "two@example.com")

    response = await token_rsvp(client, first, companions=4)
    assert response.status_code == 201
    assert response.json()["rsvp"]["total_attendees"] == 5

    response = await token_rsvp(client, second, companions=6)
    assert response.status_code == 400
    data = response.json()
    assert data["code"] == "CAPACITY_EXCEEDED"
    assert data["remaining_spots"] == 5
    assert data["error"] == "Event is full. Only 5 spots remaining."

    # The rejected guest can still respond later
    status = await client.get(f"/api/v1/rsvps/token/{second.token}/status")
    assert status.json() == {"has_responded": False, "rsvp": None}


@pytest.mark.asyncio
async def test_companions_are_clamped(client: AsyncClient, guest_token):
    response = await token_rsvp(client, guest_token, companions=9)
    assert response.status_code == 201
    assert response.json()["rsvp"]["companions"] == 5
    assert response.json()["rsvp"]["total_attendees"] == 6


@pytest.mark.asyncio
async def test_not_going_never_consumes_capacity(client: AsyncClient, db_session, small_event, auth_headers):
    """A full event still accepts not-going responses."""
    filler = await make_token(db_session, small_event, "filler@example.com")
    filler2 = await make_token(db_session, small_event, "filler2@example.com")
    decliner = await make_token(db_session, small_event, "decliner@example.com")

    assert (await token_rsvp(client, filler, companions=5)).status_code == 201
    assert (await token_rsvp(client, filler2, companions=3)).status_code == 201

    response = await token_rsvp(client, decliner, status="not-going", companions=3)
    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Thank you for your response."
    assert data["rsvp"]["total_attendees"] == 0

    event = await client.get(f"/api/v1/events/{small_event.id}", headers=auth_headers)
    assert event.json()["rsvp_count"] == 10


@pytest.mark.asyncio
async def test_token_rsvp_status(client: AsyncClient, guest_token):
    response = await client.get(f"/api/v1/rsvps/token/{guest_token.token}/status")
    assert response.json()["has_responded"] is False

    await token_rsvp(client, guest_token, companions=1, guest_name="Ann B.", dietary_preference="vegan")

    response = await client.get(f"/api/v1/rsvps/token/{guest_token.token}/status")
    assert response.status_code == 200
    data = response.json()
    assert data["has_responded"] is True
    assert data["rsvp"]["status"] == "going"
    assert data["rsvp"]["total_attendees"] == 2
    assert data["rsvp"]["dietary_preference"] == "vegan"


@pytest.mark.asyncio
async def test_guest_name_is_recorded(client: AsyncClient, db_session, guest_token, small_event, auth_headers):
    await token_rsvp(client, guest_token, guest_name="  Annabel  ")

    response = await client.get(f"/api/v1/rsvps/event/{small_event.id}/all", headers=auth_headers)
    rsvps = response.json()["rsvps"]
    assert len(rsvps) == 1
    assert rsvps[0]["guest_name"] == "Annabel"
    assert rsvps[0]["guest_email"] == "ann@example.com"
    assert rsvps[0]["token_id"] == guest_token.id
    assert rsvps[0]["user_id"] is None

    await db_session.refresh(guest_token)
    assert guest_token.name == "Annabel"


# --- user path --------------------------------------------------------------

@pytest.mark.asyncio
async def test_user_rsvp_upsert(client: AsyncClient, auth_headers, test_event):
    """Repeated user responses replace each other and keep the headcount in step."""
    url = f"/api/v1/rsvps/{test_event.id}"

    response = await client.post(url, json={"status": "going"}, headers=auth_headers)
    assert response.status_code == 200
    first_id = response.json()["rsvp"]["id"]

    event = await client.get(f"/api/v1/events/{test_event.id}", headers=auth_headers)
    assert event.json()["rsvp_count"] == 1

    response = await client.post(url, json={"status": "maybe"}, headers=auth_headers)
    assert response.json()["rsvp"]["id"] == first_id
    assert response.json()["rsvp"]["status"] == "maybe"

    event = await client.get(f"/api/v1/events/{test_event.id}", headers=auth_headers)
    assert event.json()["rsvp_count"] == 0

    response = await client.get(url, headers=auth_headers)
    assert response.json()["rsvp"]["status"] == "maybe"

    listing = await client.get(f"/api/v1/rsvps/event/{test_event.id}/all", headers=auth_headers)
    assert len(listing.json()["rsvps"]) == 1


@pytest.mark.asyncio
async def test_user_rsvp_none_yet(client: AsyncClient, auth_headers, test_event):
    response = await client.get(f"/api/v1/rsvps/{test_event.id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"rsvp": None}


@pytest.mark.asyncio
async def test_user_rsvp_invalid_status(client: AsyncClient, auth_headers, test_event):
    response = await client.post(
        f"/api/v1/rsvps/{test_event.id}", json={"status": "perhaps"}, headers=auth_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_user_rsvp_other_organizer(client: AsyncClient, other_headers, test_event):
    response = await client.post(
        f"/api/v1/rsvps/{test_event.id}", json={"status": "going"}, headers=other_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_user_and_token_identities_coexist(client: AsyncClient, db_session, auth_headers, test_user, small_event):
    """The organizer's own response and a token response for the same email are separate rows."""
    token = await make_token(db_session, small_event, test_user.email, user_id=test_user.id)

    assert (await client.post(
        f"/api/v1/rsvps/{small_event.id}", json={"status": "going"}, headers=auth_headers
    )).status_code == 200
    assert (await token_rsvp(client, token, companions=1)).status_code == 201

    listing = await client.get(f"/api/v1/rsvps/event/{small_event.id}/all", headers=auth_headers)
    assert len(listing.json()["rsvps"]) == 2

    event = await client.get(f"/api/v1/events/{small_event.id}", headers=auth_headers)
    assert event.json()["rsvp_count"] == 3


# --- storage invariants -----------------------------------------------------

@pytest.mark.asyncio
async def test_rsvp_requires_exactly_one_identity(db_session, test_user, guest_token, small_event):
    event_id, user_id, token_id = small_event.id, test_user.id, guest_token.id

    db_session.add(RSVP(event_id=event_id, status="going", companions=0))
    with pytest.raises(IntegrityError):
        await db_session.flush()
    await db_session.rollback()

    db_session.add(RSVP(
        event_id=event_id,
        user_id=user_id,
        token_id=token_id,
        status="going",
        companions=0,
    ))
    with pytest.raises(IntegrityError):
        await db_session.flush()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_token_rsvp_maybe_rejected_by_storage(db_session, guest_token, small_event):
    db_session.add(RSVP(event_id=small_event.id, token_id=guest_token.id, status="maybe", companions=0))
    with pytest.raises(IntegrityError):
        await db_session.flush()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_one_rsvp_per_token(db_session, guest_token, small_event):
    db_session.add(RSVP(event_id=small_event.id, token_id=guest_token.id, status="going", companions=0))
    await db_session.commit()

    db_session.add(RSVP(event_id=small_event.id, token_id=guest_token.id, status="not-going", companions=0))
    with pytest.raises(IntegrityError):
        await db_session.flush()
    await db_session.rollback()


# --- concurrency ------------------------------------------------------------

@pytest.mark.asyncio
async def test_concurrent_token_rsvps_never_overshoot(db_session, session_factory, test_user):
    """
    Capacity 10, eight guests each asking for 2 spots at once:
    exactly five are admitted and the headcount lands on capacity.
    """
    event = await make_event(db_session, test_user, capacity=10)
    tokens = [await make_token(db_session, event, f"guest{i}@example.com") for i in range(8)]

    async def attempt(token_value: str) -> bool:
        async with session_factory() as session:
            try:
                await rsvp_service.submit_token_rsvp(session, token_value, "going", companions=1)
                await session.commit()
                return True
            except CapacityExceededError:
                await session.rollback()
                return False

    results = await asyncio.gather(*(attempt(t.token) for t in tokens))
    assert sum(results) == 5

    async with session_factory() as session:
        stored = (await session.execute(select(Event).where(Event.id == event.id))).scalar_one()
        going = (await session.execute(
            select(func.sum(1 + RSVP.companions)).where(RSVP.event_id == event.id, RSVP.status == "going")
        )).scalar()
    assert stored.attendee_count == 10
    assert going == 10


async def _headcounts(session_factory, event_id: int) -> tuple[int, int]:
    """(stored counter, going headcount recomputed from the rows)"""
    async with session_factory() as session:
        stored = (await session.execute(select(Event.attendee_count).where(Event.id == event_id))).scalar_one()
        going = (await session.execute(
            select(func.coalesce(func.sum(1 + RSVP.companions), 0))
            .where(RSVP.event_id == event_id, RSVP.status == "going")
        )).scalar()
    return stored, going


@pytest.mark.asyncio
async def test_concurrent_duplicate_token_rsvps(db_session, session_factory, small_event):
    """Six simultaneous submissions for one token: one wins, the rest see its response."""
    token = await make_token(db_session, small_event, "dup@example.com")

    async def attempt() -> str:
        async with session_factory() as session:
            try:
                await rsvp_service.submit_token_rsvp(session, token.token, "going", companions=2)
                await session.commit()
                return "ok"
            except AlreadyRespondedError as exc:
                await session.rollback()
                assert exc.rsvp["status"] == "going"
                assert exc.rsvp["companions"] == 2
                return "already"

    results = await asyncio.gather(*(attempt() for _ in range(6)))
    assert results.count("ok") == 1
    assert results.count("already") == 5

    stored, going = await _headcounts(session_factory, small_event.id)
    assert stored == going == 3
    async with session_factory() as session:
        rows = (await session.execute(
            select(func.count()).select_from(RSVP).where(RSVP.token_id == token.id)
        )).scalar()
    assert rows == 1


@pytest.mark.asyncio
async def test_concurrent_first_user_rsvps(db_session, session_factory, test_user, small_event):
    """Two first-time submissions for the same organizer end as one row counted once."""
    event_id = small_event.id

    async def attempt(status: str) -> str:
        async with session_factory() as session:
            rsvp = await rsvp_service.submit_user_rsvp(session, event_id, test_user, status)
            await session.commit()
            return rsvp.status

    results = await asyncio.gather(attempt("going"), attempt("going"))
    assert results == ["going", "going"]

    stored, going = await _headcounts(session_factory, event_id)
    assert stored == going == 1
    async with session_factory() as session:
        rows = (await session.execute(
            select(func.count()).select_from(RSVP).where(RSVP.user_id == test_user.id)
        )).scalar()
    assert rows == 1


@pytest.mark.asyncio
async def test_concurrent_user_status_changes_keep_headcount(db_session, session_factory, test_user):
    """
    Capacity 4, filled by a guest (1+2) and the organizer. The organizer
    switches to maybe and not-going at once: the organizer's seat is released
    exactly once, so a later 1+1 guest still does not fit.
    """
    event = await make_event(db_session, test_user, capacity=4)
    event_id = event.id
    first = await make_token(db_session, event, "first@example.com")
    late = await make_token(db_session, event, "late@example.com")

    await rsvp_service.submit_token_rsvp(db_session, first.token, "going", companions=2)
    await rsvp_service.submit_user_rsvp(db_session, event_id, test_user, "going")
    await db_session.commit()
    assert await _headcounts(session_factory, event_id) == (4, 4)

    async def change(status: str) -> None:
        async with session_factory() as session:
            await rsvp_service.submit_user_rsvp(session, event_id, test_user, status)
            await session.commit()

    await asyncio.gather(change("maybe"), change("not-going"))
    assert await _headcounts(session_factory, event_id) == (3, 3)

    async with session_factory() as session:
        with pytest.raises(CapacityExceededError) as exc_info:
            await rsvp_service.submit_token_rsvp(session, late.token, "going", companions=1)
        await session.rollback()
    assert exc_info.value.remaining_spots == 1
    assert await _headcounts(session_factory, event_id) == (3, 3)


@pytest.mark.asyncio
async def test_capacity_lowered_below_headcount(client: AsyncClient, db_session, small_event, auth_headers):
    """Existing admissions stand; new going guests see no spots, not-going still lands."""
    admitted = await make_token(db_session, small_event, "admitted@example.com")
    hopeful = await make_token(db_session, small_event, "hopeful@example.com")
    decliner = await make_token(db_session, small_event, "decliner@example.com")

    assert (await token_rsvp(client, admitted, companions=5)).status_code == 201

    event = (await client.get(f"/api/v1/events/{small_event.id}", headers=auth_headers)).json()
    payload = {k: event[k] for k in (
        "title", "description", "date", "location", "category", "host_name", "host_mobile", "host_email",
    )}
    response = await client.put(
        f"/api/v1/events/{small_event.id}", json={**payload, "capacity": 4}, headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["capacity"] == 4
    assert response.json()["rsvp_count"] == 6

    response = await token_rsvp(client, hopeful)
    assert response.status_code == 400
    assert response.json()["code"] == "CAPACITY_EXCEEDED"
    assert response.json()["remaining_spots"] == 0

    response = await token_rsvp(client, decliner, status="not-going")
    assert response.status_code == 201

    status = await client.get(f"/api/v1/rsvps/token/{admitted.token}/status")
    assert status.json()["rsvp"]["status"] == "going"
    event = (await client.get(f"/api/v1/events/{small_event.id}", headers=auth_headers)).json()
    assert event["rsvp_count"] == 6
