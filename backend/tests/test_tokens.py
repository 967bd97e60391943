"""
Tests for invitation tokens: issuing, email dispatch outcome, and invitee listings.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from conftest import make_token
from planorama.core.exceptions import DeliveryError
from planorama.models import InvitationToken
from planorama.services import email_service


@pytest.mark.asyncio
async def test_create_invitation_without_smtp(client: AsyncClient, auth_headers, test_event):
    """Token is issued even when email is not configured; email_sent reports false."""
    response = await client.post(
        f"/api/v1/tokens/{test_event.id}",
        json={"email": "Guest@Example.com", "name": " Guest One "},
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["email_sent"] is False
    assert data["token"]["email"] == "guest@example.com"
    assert data["token"]["name"] == "Guest One"
    assert len(data["token"]["token"]) == 64
    assert data["token"]["rsvp_status"] is None


@pytest.mark.asyncio
async def test_create_invitation_sends_email(client: AsyncClient, auth_headers, test_event, monkeypatch):
    sent = []

    async def fake_send_invitation(to, event, style, invite_link):
        sent.append((to, event.id, style.primary_color, invite_link))
        return "<msg@example.com>"

    monkeypatch.setattr(email_service, "is_email_service_configured", lambda: True)
    monkeypatch.setattr(email_service, "send_invitation", fake_send_invitation)

    response = await client.post(
        f"/api/v1/tokens/{test_event.id}", json={"email": "friend@example.com"}, headers=auth_headers
    )
    assert response.status_code == 201
    data = response.json()
    assert data["email_sent"] is True

    assert len(sent) == 1
    to, event_id, primary_color, invite_link = sent[0]
    assert to == "friend@example.com"
    assert event_id == test_event.id
    assert primary_color == "#4F46E5"
    assert invite_link.endswith(f"/event/{test_event.id}/{data['token']['token']}")


@pytest.mark.asyncio
async def test_create_invitation_email_failure_keeps_token(
    client: AsyncClient, db_session, auth_headers, test_event, monkeypatch
):
    """A failed send is reported, not raised; the token still exists."""

    async def failing_send_invitation(to, event, style, invite_link):
        raise DeliveryError()

    monkeypatch.setattr(email_service, "is_email_service_configured", lambda: True)
    monkeypatch.setattr(email_service, "send_invitation", failing_send_invitation)

    response = await client.post(
        f"/api/v1/tokens/{test_event.id}", json={"email": "bounce@example.com"}, headers=auth_headers
    )
    assert response.status_code == 201
    assert response.json()["email_sent"] is False

    result = await db_session.execute(
        select(InvitationToken).where(InvitationToken.email == "bounce@example.com")
    )
    assert result.scalar_one_or_none() is not None


@pytest.mark.asyncio
async def test_create_invitation_links_existing_account(
    client: AsyncClient, db_session, auth_headers, test_event, other_user
):
    response = await client.post(
        f"/api/v1/tokens/{test_event.id}", json={"email": "OTHER@example.com"}, headers=auth_headers
    )
    assert response.status_code == 201

    result = await db_session.execute(
        select(InvitationToken).where(InvitationToken.id == response.json()["token"]["id"])
    )
    assert result.scalar_one().user_id == other_user.id


@pytest.mark.asyncio
async def test_create_invitation_invalid_email(client: AsyncClient, auth_headers, test_event):
    response = await client.post(
        f"/api/v1/tokens/{test_event.id}", json={"email": "not-an-email"}, headers=auth_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_invitation_not_owner(client: AsyncClient, other_headers, test_event):
    response = await client.post(
        f"/api/v1/tokens/{test_event.id}", json={"email": "x@example.com"}, headers=other_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_event_by_token(client: AsyncClient, guest_token, small_event):
    """The invite landing page needs no auth."""
    response = await client.get(f"/api/v1/tokens/token/{guest_token.token}")
    assert response.status_code == 200
    data = response.json()
    assert data["event"]["id"] == small_event.id
    assert data["event"]["title"] == "Dinner Club"
    assert data["token"] == {"email": "ann@example.com", "name": "Ann"}


@pytest.mark.asyncio
async def test_get_event_by_unknown_token(client: AsyncClient):
    response = await client.get("/api/v1/tokens/token/deadbeef")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_invitees_resolves_status(
    client: AsyncClient, db_session, auth_headers, test_user, test_event
):
    """
    Resolved status: the token's own RSVP, else the linked account's RSVP, else pending.
    """
    responded = await make_token(db_session, test_event, "responded@example.com", name="Rita")
    linked = await make_token(db_session, test_event, test_user.email, name="Me", user_id=test_user.id)
    silent = await make_token(db_session, test_event, "silent@example.com", name="Sid")

    await client.post(f"/api/v1/rsvps/token/{responded.token}", json={"status": "going", "companions": 2})
    await client.post(f"/api/v1/rsvps/{test_event.id}", json={"status": "maybe"}, headers=auth_headers)

    response = await client.get(f"/api/v1/tokens/{test_event.id}", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    by_id = {t["id"]: t for t in data["tokens"]}
    assert by_id[responded.id]["rsvp_status"] == "going"
    assert by_id[responded.id]["companions"] == 2
    assert by_id[linked.id]["rsvp_status"] == "maybe"
    assert by_id[silent.id]["rsvp_status"] is None
    assert data["pagination"] == {"page": 1, "limit": 10, "total": 3, "total_pages": 1}

    pending = await client.get(f"/api/v1/tokens/{test_event.id}?status=pending", headers=auth_headers)
    assert [t["id"] for t in pending.json()["tokens"]] == [silent.id]

    going = await client.get(f"/api/v1/tokens/{test_event.id}?status=going", headers=auth_headers)
    assert [t["id"] for t in going.json()["tokens"]] == [responded.id]

    maybe = await client.get(f"/api/v1/tokens/{test_event.id}?status=maybe", headers=auth_headers)
    assert [t["id"] for t in maybe.json()["tokens"]] == [linked.id]


@pytest.mark.asyncio
async def test_list_invitees_search(client: AsyncClient, db_session, auth_headers, test_event):
    await make_token(db_session, test_event, "alice@example.com", name="Alice")
    await make_token(db_session, test_event, "bob@example.com", name="Bobby Tables")
    await make_token(db_session, test_event, "carol_x@example.com", name="Carol")

    response = await client.get(f"/api/v1/tokens/{test_event.id}?search=BOB", headers=auth_headers)
    assert [t["email"] for t in response.json()["tokens"]] == ["bob@example.com"]

    response = await client.get(f"/api/v1/tokens/{test_event.id}?search=tables", headers=auth_headers)
    assert [t["email"] for t in response.json()["tokens"]] == ["bob@example.com"]

    # Wildcards in the search term match literally
    response = await client.get(f"/api/v1/tokens/{test_event.id}?search=_x", headers=auth_headers)
    assert [t["email"] for t in response.json()["tokens"]] == ["carol_x@example.com"]


@pytest.mark.asyncio
async def test_list_invitees_pagination(client: AsyncClient, db_session, auth_headers, test_event):
    """Newest first; filters apply before pagination."""
    tokens = [await make_token(db_session, test_event, f"p{i}@example.com") for i in range(5)]

    response = await client.get(f"/api/v1/tokens/{test_event.id}?page=2&limit=2", headers=auth_headers)
    data = response.json()
    assert [t["id"] for t in data["tokens"]] == [tokens[2].id, tokens[1].id]
    assert data["pagination"] == {"page": 2, "limit": 2, "total": 5, "total_pages": 3}


@pytest.mark.asyncio
async def test_list_invitees_bad_status_filter(client: AsyncClient, auth_headers, test_event):
    response = await client.get(f"/api/v1/tokens/{test_event.id}?status=unknown", headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_invitees_not_owner(client: AsyncClient, other_headers, test_event):
    response = await client.get(f"/api/v1/tokens/{test_event.id}", headers=other_headers)
    assert response.status_code == 404
