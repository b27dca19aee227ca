"""
Locust Load Test Suite

Expects a seeded database (python -m bookit.db.seed).

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags throughput   # Test listing cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
from locust import HttpUser, task, between, tag, events

# Shared state
EXPERIENCE_IDS = []
CONCURRENCY_TARGET = None  # (experience_id, slot_id, capacity)


def random_email():
    return f"load_{random.randint(10000, 99999)}@test.com"


def booking_body(experience_id, slot_id, participants=1, **extra):
    body = {
        "experience_id": experience_id,
        "slot_id": slot_id,
        "user_name": "Load Tester",
        "user_email": random_email(),
        "user_phone": "+1 555 010 0199",
        "participants": participants,
    }
    body.update(extra)
    return body


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: Picking the concurrency target slot on first user start...")
    print("=" * 60)


def pick_target(client):
    """First available slot of the first experience: every ConcurrencyUser fights over it."""
    global CONCURRENCY_TARGET
    if CONCURRENCY_TARGET:
        return CONCURRENCY_TARGET

    resp = client.get("/api/experiences?limit=1", name="/api/experiences [setup]")
    if resp.status_code != 200 or not resp.json()["data"]:
        return None
    experience_id = resp.json()["data"][0]["id"]

    resp = client.get(f"/api/experiences/{experience_id}", name="/api/experiences/{id} [setup]")
    slots = resp.json()["data"]["available_slots"] if resp.status_code == 200 else []
    if not slots:
        return None

    slot = slots[0]
    CONCURRENCY_TARGET = (experience_id, slot["id"], slot["available_spots"])
    print(f"\n✓ Target slot {slot['id']} with {slot['available_spots']} spots\n")
    return CONCURRENCY_TARGET


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users → one slot

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT booked_count, capacity FROM slots WHERE id = X;
      SELECT SUM(participants) FROM bookings WHERE slot_id = X AND status = 'confirmed';
    booked_count must equal the sum and never exceed capacity
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.target = pick_target(self.client)

    @tag("concurrency")
    @task
    def book_contested_slot(self):
        if not self.target:
            return
        experience_id, slot_id, _ = self.target

        with self.client.post(
            "/api/bookings",
            json=booking_body(experience_id, slot_id),
            name="/api/bookings [contested]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 400:
                resp.success()  # Expected: sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Listing cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_experiences_cached(self):
        sort_by = random.choice(["rating", "price", "reviews_count"])
        resp = self.client.get(
            f"/api/experiences?sort_by={sort_by}&limit=20",
            name="/api/experiences [cached]",
        )
        if resp.status_code == 200:
            for experience in resp.json()["data"]:
                if experience["id"] not in EXPERIENCE_IDS:
                    EXPERIENCE_IDS.append(experience["id"])

    @tag("throughput", "read")
    @task(3)
    def get_experience_detail(self):
        """Detail carries live slot counts and is never cached."""
        if EXPERIENCE_IDS:
            experience_id = random.choice(EXPERIENCE_IDS)
            self.client.get(f"/api/experiences/{experience_id}", name="/api/experiences/{id}")

    @tag("throughput", "read")
    @task(2)
    def categories(self):
        self.client.get("/api/experiences/categories")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, resp, allowed):
        if resp.status_code in allowed:
            resp.success()
        else:
            resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_experience_id(self):
        with self.client.post(
            "/api/bookings",
            json=booking_body(999999, 1),
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def zero_participants(self):
        with self.client.post(
            "/api/bookings",
            json=booking_body(1, 1, participants=0),
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def huge_party(self):
        with self.client.post(
            "/api/bookings",
            json=booking_body(1, 1, participants=999999),
            catch_response=True,
        ) as resp:
            self._expect(resp, [400, 404])

    @tag("edge")
    @task
    def bogus_promo(self):
        with self.client.post(
            "/api/promo/validate",
            json={"code": "NOT-A-CODE", "amount": 100},
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/bookings",
            data="not json at all",
            headers={"Content-Type": "application/json"},
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def short_search(self):
        with self.client.get("/api/experiences/search?q=a", catch_response=True) as resp:
            self._expect(resp, [400])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing
      - Some promo checks and bookings
      - Rare cancellations
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.booking_ids = []

    @task(50)
    def browse_experiences(self):
        resp = self.client.get("/api/experiences?limit=20")
        if resp.status_code == 200:
            for experience in resp.json()["data"]:
                if experience["id"] not in EXPERIENCE_IDS:
                    EXPERIENCE_IDS.append(experience["id"])

    @task(20)
    def view_experience(self):
        if EXPERIENCE_IDS:
            self.client.get(f"/api/experiences/{random.choice(EXPERIENCE_IDS)}", name="/api/experiences/{id}")

    @task(5)
    def check_promo(self):
        self.client.post(
            "/api/promo/validate",
            json={"code": random.choice(["SAVE10", "FLAT5", "WELCOME20"]), "amount": random.randint(20, 200)},
            name="/api/promo/validate",
        )

    @task(10)
    def book_spots(self):
        if not EXPERIENCE_IDS:
            return
        experience_id = random.choice(EXPERIENCE_IDS)
        resp = self.client.get(f"/api/experiences/{experience_id}", name="/api/experiences/{id}")
        if resp.status_code != 200 or not resp.json()["data"]["available_slots"]:
            return

        slot = random.choice(resp.json()["data"]["available_slots"])
        resp = self.client.post(
            "/api/bookings",
            json=booking_body(experience_id, slot["id"], participants=random.randint(1, 3)),
        )
        if resp.status_code == 201:
            self.booking_ids.append(resp.json()["data"]["id"])

    @task(2)
    def cancel_booking(self):
        if self.booking_ids:
            booking_id = self.booking_ids.pop(random.randrange(len(self.booking_ids)))
            self.client.delete(f"/api/bookings/{booking_id}", name="/api/bookings/{id}")
