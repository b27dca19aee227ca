"""
Tests for experience listing, search, detail and slot availability endpoints.
"""

from datetime import date, time, timedelta

import pytest
from httpx import AsyncClient

from bookit.models import Slot


@pytest.mark.asyncio
async def test_list_experiences(client: AsyncClient, test_experience, cheap_experience):
    """Default listing is sorted by rating, best first."""
    response = await client.get("/api/experiences")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [e["title"] for e in body["data"]] == ["Sunset Kayak Tour", "Harbour Ferry Ride"]
    assert body["pagination"] == {"limit": 50, "offset": 0, "count": 2}

    first = body["data"][0]
    assert first["price"] == 50.0
    assert first["rating"] == 4.8
    assert first["category"] == "Water Sports"


@pytest.mark.asyncio
async def test_list_experiences_sorting(client: AsyncClient, test_experience, cheap_experience):
    response = await client.get("/api/experiences", params={"sort_by": "price", "sort_order": "asc"})
    assert [e["price"] for e in response.json()["data"]] == [3.0, 50.0]

    # Unknown sort column falls back to rating
    response = await client.get("/api/experiences", params={"sort_by": "title; DROP TABLE"})
    assert response.status_code == 200
    assert response.json()["data"][0]["title"] == "Sunset Kayak Tour"


@pytest.mark.asyncio
async def test_list_experiences_filters(client: AsyncClient, test_experience, cheap_experience):
    response = await client.get("/api/experiences", params={"category": "Sightseeing"})
    assert [e["title"] for e in response.json()["data"]] == ["Harbour Ferry Ride"]

    response = await client.get("/api/experiences", params={"min_price": 10, "max_price": 60})
    assert [e["title"] for e in response.json()["data"]] == ["Sunset Kayak Tour"]

    response = await client.get("/api/experiences", params={"max_price": 1})
    assert response.json()["data"] == []


@pytest.mark.asyncio
async def test_list_experiences_pagination(client: AsyncClient, test_experience, cheap_experience):
    response = await client.get("/api/experiences", params={"limit": 1, "offset": 1})
    body = response.json()
    assert len(body["data"]) == 1
    assert body["data"][0]["title"] == "Harbour Ferry Ride"
    assert body["pagination"] == {"limit": 1, "offset": 1, "count": 1}


@pytest.mark.asyncio
async def test_list_experiences_limit_clamped(client: AsyncClient, test_experience):
    response = await client.get("/api/experiences", params={"limit": 500})
    assert response.status_code == 200
    assert response.json()["pagination"]["limit"] == 100


@pytest.mark.asyncio
async def test_list_experiences_bad_number(client: AsyncClient, db_session):
    """Non-numeric filters are a 400, not a server error."""
    response = await client.get("/api/experiences", params={"min_price": "cheap"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert body["details"][0].startswith("min_price")


@pytest.mark.asyncio
async def test_list_categories(client: AsyncClient, test_experience, cheap_experience):
    response = await client.get("/api/experiences/categories")
    assert response.status_code == 200
    assert response.json()["data"] == ["Sightseeing", "Water Sports"]


@pytest.mark.asyncio
async def test_search_experiences(client: AsyncClient, test_experience, cheap_experience):
    """Search matches title or description, case-insensitively."""
    response = await client.get("/api/experiences/search", params={"q": "KAYAK"})
    body = response.json()
    assert response.status_code == 200
    assert body["count"] == 1
    assert body["data"][0]["title"] == "Sunset Kayak Tour"

    response = await client.get("/api/experiences/search", params={"q": "harbour"})
    assert response.json()["count"] == 1

    response = await client.get("/api/experiences/search", params={"q": "mangroves"})
    assert response.json()["data"][0]["title"] == "Sunset Kayak Tour"

    response = await client.get("/api/experiences/search", params={"q": "skydiving"})
    assert response.json() == {"success": True, "data": [], "message": None, "count": 0}


@pytest.mark.asyncio
async def test_search_requires_term(client: AsyncClient, db_session):
    response = await client.get("/api/experiences/search")
    assert response.status_code == 400
    assert response.json()["error"] == "Search term is required"

    response = await client.get("/api/experiences/search", params={"q": "   "})
    assert response.status_code == 400
    assert response.json()["error"] == "Search term is required"


@pytest.mark.asyncio
async def test_search_term_too_short(client: AsyncClient, db_session):
    response = await client.get("/api/experiences/search", params={"q": "k"})
    assert response.status_code == 400
    assert response.json()["error"] == "Search term too short"


@pytest.mark.asyncio
async def test_get_experience(client: AsyncClient, test_experience, test_slot, small_slot, full_slot):
    """Detail lists only slots that still have room, soonest first."""
    response = await client.get(f"/api/experiences/{test_experience.id}")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["title"] == "Sunset Kayak Tour"

    slots = data["available_slots"]
    assert [s["id"] for s in slots] == [test_slot.id, small_slot.id]
    assert slots[0]["available_spots"] == 10
    assert slots[0]["is_available"] is True
    assert slots[0]["start_time"] == "09:00:00"


@pytest.mark.asyncio
async def test_get_experience_hides_past_slots(client: AsyncClient, db_session, test_experience):
    db_session.add(Slot(
        experience_id=test_experience.id,
        date=date.today() - timedelta(days=1),
        start_time=time(9, 0),
        end_time=time(11, 0),
        capacity=10,
        booked_count=0,
    ))
    await db_session.commit()

    response = await client.get(f"/api/experiences/{test_experience.id}")
    assert response.json()["data"]["available_slots"] == []


@pytest.mark.asyncio
async def test_get_experience_not_found(client: AsyncClient, db_session):
    response = await client.get("/api/experiences/99999")
    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Experience not found"


@pytest.mark.asyncio
async def test_get_experience_invalid_id(client: AsyncClient, db_session):
    response = await client.get("/api/experiences/abc")
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


@pytest.mark.asyncio
async def test_list_slots_includes_full(client: AsyncClient, test_experience, test_slot, full_slot):
    """The slot listing shows full slots too, flagged as unavailable."""
    slot_date = (date.today() + timedelta(days=7)).isoformat()
    response = await client.get(
        f"/api/experiences/{test_experience.id}/slots",
        params={"date": slot_date},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2

    by_id = {s["id"]: s for s in body["data"]}
    assert by_id[full_slot.id]["available_spots"] == 0
    assert by_id[full_slot.id]["is_available"] is False
    assert by_id[test_slot.id]["is_available"] is True

    response = await client.get(
        f"/api/experiences/{test_experience.id}/slots",
        params={"date": (date.today() + timedelta(days=30)).isoformat()},
    )
    assert response.json()["count"] == 0


@pytest.mark.asyncio
async def test_list_slots_unknown_experience(client: AsyncClient, db_session):
    response = await client.get("/api/experiences/99999/slots")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_available_dates(client: AsyncClient, db_session, test_experience, test_slot):
    """Dates whose only slots are full are left out."""
    db_session.add(Slot(
        experience_id=test_experience.id,
        date=date.today() + timedelta(days=9),
        start_time=time(9, 0),
        end_time=time(11, 0),
        capacity=3,
        booked_count=3,
    ))
    await db_session.commit()

    response = await client.get(f"/api/experiences/{test_experience.id}/available-dates")
    assert response.status_code == 200
    body = response.json()
    assert body["data"] == [(date.today() + timedelta(days=7)).isoformat()]
    assert body["count"] == 1


@pytest.mark.asyncio
async def test_unknown_route(client: AsyncClient, db_session):
    response = await client.get("/api/nowhere")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "Route not found"
    assert body["message"] == "Cannot GET /api/nowhere"


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["cache"] == {"status": "disabled"}
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_search_wildcards_match_literally(client: AsyncClient, test_experience, cheap_experience):
    """`%` and `_` in the term are not LIKE wildcards."""
    response = await client.get("/api/experiences/search", params={"q": "%%"})
    assert response.status_code == 200
    assert response.json()["count"] == 0

    response = await client.get("/api/experiences/search", params={"q": "Sunset_Kayak"})
    assert response.json()["count"] == 0
