from datetime import date, timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

from booking_engine.api.dependencies import (
    get_eligibility_resolver,
    get_notifier,
)
from booking_engine.config.database import get_db
from booking_engine.main import app
from booking_engine.models import BookingStatus
from booking_engine.services.eligibility.eligibility_client import EligibilityClient
from booking_engine.services.eligibility.eligibility_resolver import EligibilityResolver
from conftest import FUTURE_MONDAY, STANDARD_HOURS, access_token_for, make_booking


class FakeNotifier:
    def __init__(self):
        self.published = []

    async def publish(self, booking_id, status, business_id=None):
        self.published.append((str(booking_id), status, str(business_id)))
        return 1


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def client(session_factory, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def failing_resolver():
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
        return EligibilityResolver(EligibilityClient("https://fn.example.test/eligible", transport=transport))

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_eligibility_resolver] = failing_resolver
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(provider):
    return {"Authorization": f"Bearer {access_token_for(provider)}"}


def test_missing_or_bad_token(client, provider):
    assert client.get(f"/api/v1/providers/{provider.id}/availability").status_code in (401, 403)

    response = client.get(
        f"/api/v1/providers/{provider.id}/availability",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


def test_weekly_schedule_round_trip(client, provider):
    response = client.put(
        f"/api/v1/providers/{provider.id}/availability",
        json={"entries": [
            {"day_of_week": 1, "start_time": "09:00", "end_time": "17:00", "location_mode": "mobile"},
            {"day_of_week": 3, "start_time": "10:00", "end_time": "14:00"},
        ]},
        headers=auth(provider),
    )

    assert response.status_code == 200
    entries = response.json()["entries"]
    assert [e["day_of_week"] for e in entries] == [1, 3]
    assert entries[0]["location_mode"] == "mobile"
    assert {e["origin"] for e in entries} == {"manual"}


def test_validation_error_names_the_day(client, provider):
    response = client.put(
        f"/api/v1/providers/{provider.id}/availability",
        json={"entries": [{"day_of_week": 4, "start_time": "17:00", "end_time": "09:00"}]},
        headers=auth(provider),
    )

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"
    assert response.json()["day_of_week"] == 4


def test_provider_cannot_sync_business(client, business, provider):
    response = client.post(f"/api/v1/businesses/{business.id}/sync-inherited", headers=auth(provider))

    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


def test_hours_apply_and_view(client, business, owner, provider):
    hours = client.get(f"/api/v1/businesses/{business.id}/hours", headers=auth(provider)).json()
    assert [d["is_open"] for d in hours["days"]] == [False, True, True, True, True, True, True]

    applied = client.post(f"/api/v1/providers/{provider.id}/apply-business-hours", headers=auth(owner))
    assert applied.status_code == 200
    assert applied.json()["rows_written"] == 6

    updated = client.put(
        f"/api/v1/businesses/{business.id}/hours",
        json={"business_hours": dict(STANDARD_HOURS, Friday={"open": "09:00", "close": "15:00"})},
        headers=auth(owner),
    )
    assert updated.status_code == 200

    synced = client.post(f"/api/v1/businesses/{business.id}/sync-inherited", headers=auth(owner))
    assert synced.json()["provider_ids"] == [str(provider.id)]

    view = client.get(
        f"/api/v1/providers/{provider.id}/schedule",
        params={"start": FUTURE_MONDAY.isoformat(), "days": 7},
        headers=auth(provider),
    ).json()
    friday = view["days"][4]
    assert friday["status"] == "available"
    assert friday["origin"] == "inherited"
    assert friday["end_time"] == "15:00:00"


def test_transition_conflict_reports_current_status(client, db, business, owner, provider):
    booking = make_booking(db, business, provider, status=BookingStatus.COMPLETED)

    response = client.post(
        f"/api/v1/bookings/{booking.id}/transition",
        json={"status": "pending"},
        headers=auth(owner),
    )

    assert response.status_code == 409
    assert response.json() == {
        "error": "invalid_transition",
        "detail": "Cannot move booking from completed to pending",
        "current_status": "completed",
    }


def test_transition_publishes_after_commit(client, db, business, dispatcher, notifier):
    booking = make_booking(db, business)

    response = client.post(
        f"/api/v1/bookings/{booking.id}/transition",
        json={"status": "confirmed"},
        headers=auth(dispatcher),
    )

    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert notifier.published == [(str(booking.id), "confirmed", str(business.id))]


def test_assignment_lock(client, db, business, owner, provider):
    booking = make_booking(db, business, provider, status=BookingStatus.IN_PROGRESS)

    response = client.post(
        f"/api/v1/bookings/{booking.id}/assign",
        json={"provider_id": str(owner.id)},
        headers=auth(owner),
    )

    assert response.status_code == 409
    assert response.json()["error"] == "booking_locked"
    assert response.json()["current_status"] == "in_progress"


def test_self_claim_returns_warnings(client, db, business, provider):
    booking = make_booking(db, business)

    response = client.post(
        f"/api/v1/bookings/{booking.id}/assign",
        json={"provider_id": str(provider.id)},
        headers=auth(provider),
    )

    assert response.status_code == 200
    assert response.json()["booking"]["provider_id"] == str(provider.id)
    assert response.json()["warnings"] == ["no_schedule"]


def test_eligibility_falls_back_and_strict_mode(client, business, provider):
    response = client.get(f"/api/v1/businesses/{business.id}/eligibility", headers=auth(provider))

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "fallback"
    assert body["primary_error"] == "http_status"
    assert body["configured_count"] == 0

    # A degraded fallback result is still a result in strict mode
    strict = client.get(
        f"/api/v1/businesses/{business.id}/eligibility",
        params={"strict": "true"},
        headers=auth(provider),
    )
    assert strict.status_code == 200


def test_preferences_and_admissibility(client, provider):
    updated = client.put(
        f"/api/v1/providers/{provider.id}/preferences",
        json={"buffer_minutes": 0, "slot_duration_minutes": 30},
        headers=auth(provider),
    )
    assert updated.status_code == 200
    assert updated.json()["is_default"] is False

    bad = client.put(
        f"/api/v1/providers/{provider.id}/preferences",
        json={"slot_duration_minutes": 0},
        headers=auth(provider),
    )
    assert bad.status_code == 422

    result = client.get(
        f"/api/v1/providers/{provider.id}/admissibility",
        params={"date": FUTURE_MONDAY.isoformat(), "start": "10:00"},
        headers=auth(provider),
    ).json()
    assert result["admissible"] is False
    assert result["reasons"][0] == "no_schedule"


def test_blocks_endpoints(client, provider):
    created = client.post(
        f"/api/v1/providers/{provider.id}/blocks",
        json={"start_date": date(2031, 7, 1).isoformat(), "reason": "Holiday"},
        headers=auth(provider),
    )
    assert created.status_code == 201
    block_id = created.json()["id"]

    removed = client.delete(f"/api/v1/providers/{provider.id}/blocks/{block_id}", headers=auth(provider))
    assert removed.status_code == 200

    missing = client.delete(f"/api/v1/providers/{provider.id}/blocks/{block_id}", headers=auth(provider))
    assert missing.status_code == 404


def test_cancellation_policy(client, db, business, provider):
    booking = make_booking(db, business, provider, status=BookingStatus.CONFIRMED)

    body = client.get(f"/api/v1/bookings/{booking.id}/cancellation-policy", headers=auth(provider)).json()

    assert body["cancellation_allowed"] is True
    assert body["cancellation_window_hours"] == 24


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_inverted_business_hours_are_rejected(client, business, owner):
    response = client.put(
        f"/api/v1/businesses/{business.id}/hours",
        json={"business_hours": dict(STANDARD_HOURS, Monday={"open": "17:00", "close": "09:00"})},
        headers=auth(owner),
    )

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"
    assert response.json()["day_of_week"] == 1


def test_expired_token_is_rejected(client, provider):
    token = access_token_for(provider, expires_in=timedelta(minutes=-5))

    response = client.get(
        f"/api/v1/providers/{provider.id}/availability",
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 401
