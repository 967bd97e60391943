"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test capacity overshoot
  locust -f locustfile.py --tags throughput   # Test public read paths
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

Run against a server with rate limiting relaxed (REDIS_ENABLED=false or
large RSVP_RATE_LIMIT), otherwise most RSVPs come back 429.
"""

import random
import threading
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

CAPACITY = 10
INVITES = 200

# Shared state, filled once by the first organizer to start
EVENT_ID = None
TOKENS = []
_setup_lock = threading.Lock()


def random_email(prefix="load"):
    return f"{prefix}_{random.randint(10000, 99999)}_{random.randint(0, 9999)}@test.com"


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: one event with {CAPACITY} spots, {INVITES} invitations")
    print("=" * 60)


def setup_event(client):
    """Register an organizer, create a small event and issue invitation tokens."""
    global EVENT_ID

    email = random_email("organizer")
    client.post("/api/v1/auth/register", json={"email": email, "password": "test123"})
    resp = client.post("/api/v1/auth/login", json={"email": email, "password": "test123"})
    if resp.status_code != 200:
        return
    headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

    future = (datetime.now(timezone.utc) + timedelta(days=30)).isoformat()
    resp = client.post("/api/v1/events", json={
        "title": "Concurrency Test Event",
        "description": f"{CAPACITY} spots only",
        "date": future,
        "location": "Test",
        "category": "load",
        "capacity": CAPACITY,
        "host_name": "Load Test",
        "host_mobile": "5550000",
        "host_email": email,
    }, headers=headers)
    if resp.status_code != 201:
        return
    event_id = resp.json()["id"]

    for i in range(INVITES):
        resp = client.post(f"/api/v1/tokens/{event_id}", json={
            "email": f"guest{i}@test.com",
        }, headers=headers, name="/api/v1/tokens/{event_id} [setup]")
        if resp.status_code == 201:
            TOKENS.append(resp.json()["token"]["token"])

    EVENT_ID = event_id
    print(f"\n✓ Created event {EVENT_ID} with {CAPACITY} spots and {len(TOKENS)} invitations\n")


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 200 guests → 10 spots

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT SUM(1 + companions) FROM rsvps WHERE event_id = X AND status = 'going';
    Should be ≤ 10, and equal to events.attendee_count
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        with _setup_lock:
            if EVENT_ID is None:
                setup_event(self.client)

    @tag("concurrency")
    @task
    def rsvp_going(self):
        """All guests fight for the same spots, some bringing companions."""
        if not TOKENS:
            return

        token = random.choice(TOKENS)
        with self.client.post(f"/api/v1/rsvps/token/{token}",
            json={"status": "going", "companions": random.randint(0, 2)},
            name="/api/v1/rsvps/token/{token}",
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 400 and resp.json().get("code") in ("CAPACITY_EXCEEDED", "ALREADY_RESPONDED"):
                resp.success()  # Expected: full, or this token already answered
            elif resp.status_code == 429:
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - public guest read paths

    Run: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def invitation_landing_page(self):
        if TOKENS:
            self.client.get(f"/api/v1/tokens/token/{random.choice(TOKENS)}",
                name="/api/v1/tokens/token/{token}")

    @tag("throughput", "read")
    @task(5)
    def rsvp_status(self):
        if TOKENS:
            self.client.get(f"/api/v1/rsvps/token/{random.choice(TOKENS)}/status",
                name="/api/v1/rsvps/token/{token}/status")

    @tag("throughput", "read")
    @task(3)
    def public_event(self):
        if EVENT_ID:
            self.client.get(f"/api/v1/events/public/{EVENT_ID}",
                name="/api/v1/events/public/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    Every request here must be rejected cleanly (4xx), never 500.
    """
    wait_time = between(0.1, 0.3)

    def _expect_client_error(self, resp):
        if 400 <= resp.status_code < 500:
            resp.success()
        else:
            resp.failure(f"Expected 4xx, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_token(self):
        with self.client.post("/api/v1/rsvps/token/does-not-exist",
            json={"status": "going"},
            name="/api/v1/rsvps/token/[unknown]",
            catch_response=True
        ) as resp:
            self._expect_client_error(resp)

    @tag("edge")
    @task
    def maybe_on_token_path(self):
        if not TOKENS:
            return
        with self.client.post(f"/api/v1/rsvps/token/{random.choice(TOKENS)}",
            json={"status": "maybe"},
            name="/api/v1/rsvps/token/[maybe]",
            catch_response=True
        ) as resp:
            self._expect_client_error(resp)

    @tag("edge")
    @task
    def negative_companions(self):
        if not TOKENS:
            return
        with self.client.post(f"/api/v1/rsvps/token/{random.choice(TOKENS)}",
            json={"status": "not-going", "companions": -3},
            name="/api/v1/rsvps/token/[negative]",
            catch_response=True
        ) as resp:
            if resp.status_code in (201, 400, 429):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("edge")
    @task
    def unauthenticated_event_list(self):
        with self.client.get("/api/v1/events", name="/api/v1/events [no auth]", catch_response=True) as resp:
            self._expect_client_error(resp)
