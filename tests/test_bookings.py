"""
tests/test_bookings.py
Tests for the public API: calendar, statistics, pricing, lookups and
sponsorship submission.
"""

import uuid
from decimal import Decimal

import pytest
from httpx import AsyncClient

from tests.conftest import (
    API,
    BLOCKED_DATE,
    LAST_TEN_DATE,
    ORG_SPONSORED_DATE,
    SPONSOR,
    WEEKDAY_DATE,
    auth_headers,
)


async def _submit(client: AsyncClient, day=WEEKDAY_DATE, **overrides):
    return await client.post(f"{API}/bookings/date/{day.isoformat()}", json=dict(SPONSOR, **overrides))


# ── Health ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["database"] == "ok"
    assert data["redis"] == "disabled"


# ── Calendar ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_calendar_lists_every_date_in_order(client: AsyncClient, seeded):
    response = await client.get(f"{API}/calendar")
    assert response.status_code == 200
    data = response.json()

    assert data["total"] == 31
    assert data["religious_year"] == 1447
    assert set(data["pricing"]) == {"weekday", "weekend", "lastTenNights"}
    dates = [item["date"] for item in data["items"]]
    assert dates == sorted(dates)
    assert "sponsor_email" not in data["items"][0]


@pytest.mark.asyncio
async def test_calendar_flags_special_nights(client: AsyncClient, seeded):
    data = (await client.get(f"{API}/calendar")).json()
    by_date = {item["date"]: item for item in data["items"]}

    special = by_date[LAST_TEN_DATE.isoformat()]
    assert special["is_special_night"] is True
    assert special["is_last_ten_nights"] is True
    assert special["special_night_info"]["name"] == "27th Night"
    assert by_date[ORG_SPONSORED_DATE.isoformat()]["booking_status"] == "org_sponsored"


@pytest.mark.asyncio
async def test_statistics_reflect_submissions(client: AsyncClient, seeded):
    await _submit(client)
    response = await client.get(f"{API}/calendar/stats")
    assert response.status_code == 200
    stats = response.json()

    assert stats["total_dates"] == 31
    assert stats["pending_dates"] == 1
    assert stats["available_dates"] == 25
    assert Decimal(stats["total_expected"]) == Decimal("1500")
    assert Decimal(stats["total_collected"]) == Decimal("0")


@pytest.mark.asyncio
async def test_pricing_endpoint(client: AsyncClient):
    response = await client.get(f"{API}/pricing")
    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["pricing"]["weekday"]["total"]) == Decimal("1500")
    assert data["guest_capacity"]["weekday"] > 0
    assert data["zelle_email"]


# ── Lookups ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_get_by_date(client: AsyncClient, seeded):
    response = await client.get(f"{API}/bookings/date/{WEEKDAY_DATE.isoformat()}")
    assert response.status_code == 200
    data = response.json()
    assert data["weekday"] == "Monday"
    assert data["booking_status"] == "available"
    assert data["pricing_tier"] == "weekday"


@pytest.mark.asyncio
async def test_get_by_unknown_date_returns_404(client: AsyncClient, seeded):
    response = await client.get(f"{API}/bookings/date/2026-06-01")
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_get_by_id_hides_contact_details_from_public(client: AsyncClient, seeded):
    booking_id = (await _submit(client)).json()["id"]

    response = await client.get(f"{API}/bookings/{booking_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["sponsor_name"] == "Ali Khan"
    assert "sponsor_email" not in data
    assert "sponsor_phone" not in data


@pytest.mark.asyncio
async def test_get_by_id_full_record_for_admin(client: AsyncClient, seeded, admin_token):
    booking_id = (await _submit(client)).json()["id"]

    response = await client.get(f"{API}/bookings/{booking_id}", headers=auth_headers(admin_token))
    assert response.status_code == 200
    data = response.json()
    assert data["sponsor_email"] == "ali.khan@example.com"
    assert data["sponsor_phone"] == "(555) 123-4567"
    assert Decimal(data["balance"]) == Decimal("1500")


@pytest.mark.asyncio
async def test_get_unknown_id_returns_404(client: AsyncClient, seeded):
    response = await client.get(f"{API}/bookings/{uuid.uuid4()}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_returns_only_sponsored_dates(client: AsyncClient, seeded):
    await _submit(client)
    data = (await client.get(f"{API}/bookings")).json()
    assert data["total"] == 1
    assert data["items"][0]["date"] == WEEKDAY_DATE.isoformat()


@pytest.mark.asyncio
async def test_search_by_sponsor_or_vendor(client: AsyncClient, seeded):
    await _submit(client)

    by_vendor = (await client.get(f"{API}/bookings", params={"q": "lahore"})).json()
    nothing = (await client.get(f"{API}/bookings", params={"q": "nobody here"})).json()

    assert by_vendor["total"] == 1
    assert nothing["total"] == 0


@pytest.mark.asyncio
async def test_search_query_too_short_returns_422(client: AsyncClient, seeded):
    response = await client.get(f"{API}/bookings", params={"q": "a"})
    assert response.status_code == 422


# ── Submission ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_submit_booking(client: AsyncClient, seeded):
    response = await _submit(client)
    assert response.status_code == 201
    data = response.json()

    assert data["message"].startswith("Booking submitted successfully")
    assert data["booking_status"] == "pending_approval"
    assert data["approval_status"] == "pending"
    assert data["sponsor_name"] == "Ali Khan"
    assert Decimal(data["total_amount"]) == Decimal("1500")
    assert data["zelle_email"]


@pytest.mark.asyncio
async def test_submit_ignores_client_supplied_amounts(client: AsyncClient, seeded):
    response = await _submit(client, day=LAST_TEN_DATE, total_amount="1", food_amount="1")
    assert response.status_code == 201
    record = (await client.get(f"{API}/bookings/date/{LAST_TEN_DATE.isoformat()}")).json()
    assert record["pricing_tier"] == "last10nights"
    assert Decimal(record["total_amount"]) == Decimal(response.json()["total_amount"])
    assert Decimal(record["total_amount"]) > Decimal("1")


@pytest.mark.asyncio
async def test_submit_same_date_twice_returns_409(client: AsyncClient, seeded):
    assert (await _submit(client)).status_code == 201
    response = await _submit(client, sponsor_name="Sara Ahmed")
    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT"


@pytest.mark.asyncio
@pytest.mark.parametrize("day", [BLOCKED_DATE, ORG_SPONSORED_DATE])
async def test_submit_closed_date_returns_409(client: AsyncClient, seeded, day):
    response = await _submit(client, day=day)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_submit_unknown_date_returns_404(client: AsyncClient, seeded):
    response = await client.post(f"{API}/bookings/date/2026-06-01", json=SPONSOR)
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field, value",
    [
        ("sponsor_email", "not-an-email"),
        ("sponsor_phone", "call me maybe"),
        ("sponsor_name", "A"),
        ("expected_guests", 0),
        ("payment_method", "bitcoin"),
    ],
)
async def test_submit_invalid_payload_returns_422(client: AsyncClient, seeded, field, value):
    response = await _submit(client, **{field: value})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_submit_missing_required_field_returns_422(client: AsyncClient, seeded):
    payload = {k: v for k, v in SPONSOR.items() if k != "sponsor_organization"}
    response = await client.post(f"{API}/bookings/date/{WEEKDAY_DATE.isoformat()}", json=payload)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(client: AsyncClient, seeded):
    await _submit(client)

    assert (await client.get(f"{API}/bookings", params={"q": "%%"})).json()["total"] == 0
    assert (await client.get(f"{API}/bookings", params={"q": "__"})).json()["total"] == 0


# ── Rate limiting ──────────────────────────────────────────────────────────────

class CountingRedis:
    """In-memory stand-in for the INCR/EXPIRE calls the limiter makes."""

    def __init__(self):
        self.counts = {}

    async def incr(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, seconds):
        return True


@pytest.fixture
def limited(monkeypatch):
    import config.redis_client
    from config.settings import settings

    fake = CountingRedis()
    monkeypatch.setattr(config.redis_client, "redis_client", fake)
    monkeypatch.setattr(settings, "RATE_LIMIT_UNAUTH_PER_MINUTE", 2)
    return fake


@pytest.mark.asyncio
async def test_unknown_bearer_token_is_rate_limited(client: AsyncClient, database, limited):
    headers = {"Authorization": "Bearer not-a-session"}
    statuses = [(await client.get(f"{API}/pricing", headers=headers)).status_code for _ in range(3)]

    assert statuses == [200, 200, 429]


@pytest.mark.asyncio
async def test_admin_session_skips_rate_limit(client: AsyncClient, admin_token, limited):
    headers = auth_headers(admin_token)
    statuses = [(await client.get(f"{API}/pricing", headers=headers)).status_code for _ in range(3)]

    assert statuses == [200, 200, 200]
    assert limited.counts == {}
