"""
Tests for database error translation and the error envelope.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import IntegrityError, OperationalError

from bookit.core.exceptions import StoreError


class FakeDriverError(Exception):
    def __init__(self, sqlstate):
        super().__init__(f"driver error {sqlstate}")
        self.sqlstate = sqlstate


@pytest.mark.parametrize(
    "sqlstate, status_code, error",
    [
        ("23505", 409, "Duplicate entry"),
        ("23503", 400, "Invalid reference"),
        ("23502", 400, "Missing required field"),
        ("22P02", 400, "Invalid data format"),
        ("23514", 409, "Constraint violation"),
    ],
)
def test_store_error_from_sqlstate(sqlstate, status_code, error):
    exc = IntegrityError("INSERT ...", {}, FakeDriverError(sqlstate))
    store_error = StoreError.from_exception(exc)
    assert store_error.status_code == status_code
    assert store_error.error == error
    assert store_error.sqlstate == sqlstate
    assert store_error.details == {"code": sqlstate}


def test_store_error_unknown_is_server_error():
    exc = OperationalError("SELECT 1", {}, Exception("connection reset"))
    store_error = StoreError.from_exception(exc)
    assert store_error.status_code == 500
    assert store_error.sqlstate is None
    assert store_error.details is None


def test_store_error_reads_wrapped_cause():
    """asyncpg errors arrive wrapped by the SQLAlchemy adapter."""
    wrapper = Exception("adapted")
    wrapper.__cause__ = FakeDriverError("55P03")
    store_error = StoreError.from_exception(OperationalError("SELECT ... FOR UPDATE", {}, wrapper))
    assert store_error.sqlstate == "55P03"
    assert store_error.status_code == 500


@pytest.mark.asyncio
async def test_method_not_allowed_envelope(client: AsyncClient):
    response = await client.put("/api/bookings/1")
    assert response.status_code == 405
    assert response.json()["error"] == "Route not found"


@pytest.mark.asyncio
async def test_malformed_json_body(client: AsyncClient):
    response = await client.post(
        "/api/bookings",
        content="not json at all",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "booking_attempts" in response.text
