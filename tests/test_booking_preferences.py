from datetime import datetime, time

import pytest

from booking_engine.core.errors import Forbidden, ValidationError
from booking_engine.models import BookingStatus
from booking_engine.schemas.availability import AvailabilityEntryIn, BookingPreferencesUpdate
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.availability.booking_preferences_service import (
    BookingPreferencesService,
    generate_slots,
    weekday_index,
)
from conftest import FUTURE_MONDAY, actor_for, make_booking

# Two weeks before FUTURE_MONDAY, mid-morning
NOW = datetime(2031, 5, 19, 10, 0)


def monday_9_to_17(db, provider):
    AvailabilityService.set_weekly_schedule(db, provider.id, [
        AvailabilityEntryIn(day_of_week=1, start_time=time(9), end_time=time(17)),
    ])


def test_defaults_when_never_saved(db, provider):
    prefs = BookingPreferencesService.get_preferences(db, provider.id)

    assert prefs.is_default is True
    assert prefs.max_bookings_per_day == 8
    assert prefs.slot_duration_minutes == 60
    assert prefs.buffer_minutes == 15
    assert prefs.min_advance_hours == 2
    assert prefs.auto_accept_bookings is False
    assert prefs.allow_cancellation is True
    assert prefs.cancellation_window_hours == 24


def test_update_merges_partial_changes(db, provider):
    BookingPreferencesService.update_preferences(
        db, provider.id, BookingPreferencesUpdate(buffer_minutes=0), actor=actor_for(provider)
    )
    prefs = BookingPreferencesService.update_preferences(db, provider.id, {"slot_duration_minutes": 45})

    assert prefs.is_default is False
    assert prefs.buffer_minutes == 0
    assert prefs.slot_duration_minutes == 45
    assert prefs.max_bookings_per_day == 8


@pytest.mark.parametrize("changes", [
    {"slot_duration_minutes": 0},
    {"buffer_minutes": -5},
    {"min_advance_hours": -1},
    {"max_bookings_per_day": 0},
    {"cancellation_window_hours": -2},
])
def test_invariants_are_enforced(db, provider, changes):
    with pytest.raises(ValidationError):
        BookingPreferencesService.update_preferences(db, provider.id, changes)

    assert BookingPreferencesService.get_preferences(db, provider.id).is_default is True


def test_provider_cannot_change_colleague_preferences(db, provider, other_provider):
    with pytest.raises(Forbidden):
        BookingPreferencesService.update_preferences(
            db, other_provider.id, {"buffer_minutes": 5}, actor=actor_for(provider)
        )


def test_slots_step_by_duration_plus_buffer():
    slots = generate_slots(time(9), time(12), 60, 15)

    assert slots == [time(9), time(10, 15)]


def test_weekday_index_starts_on_sunday():
    assert weekday_index(FUTURE_MONDAY) == 1
    assert weekday_index(datetime(2031, 6, 1).date()) == 0


def test_admissible_request(db, provider):
    monday_9_to_17(db, provider)

    result = BookingPreferencesService.check_admissibility(db, provider.id, FUTURE_MONDAY, time(10), NOW)

    assert result.admissible is True
    assert result.reasons == []


def test_outside_schedule_and_no_schedule(db, provider):
    monday_9_to_17(db, provider)

    late = BookingPreferencesService.check_admissibility(db, provider.id, FUTURE_MONDAY, time(16, 30), NOW)
    tuesday = BookingPreferencesService.check_admissibility(
        db, provider.id, FUTURE_MONDAY.replace(day=3), time(10), NOW
    )

    assert late.reasons == ["outside_schedule"]
    assert tuesday.reasons == ["no_schedule"]


def test_blocked_day_wins(db, provider):
    monday_9_to_17(db, provider)
    AvailabilityService.block_interval(db, provider.id, FUTURE_MONDAY, None, "Sick day")

    result = BookingPreferencesService.check_admissibility(db, provider.id, FUTURE_MONDAY, time(10), NOW)

    assert result.reasons == ["blocked"]


def test_advance_notice_window(db, provider):
    monday_9_to_17(db, provider)

    too_soon = BookingPreferencesService.check_admissibility(
        db, provider.id, FUTURE_MONDAY, time(10), datetime(2031, 6, 2, 9, 0)
    )
    too_far = BookingPreferencesService.check_admissibility(
        db, provider.id, FUTURE_MONDAY, time(10), datetime(2031, 4, 1, 9, 0)
    )

    assert "too_soon" in too_soon.reasons
    assert too_far.reasons == ["too_far"]


def test_daily_cap(db, business, provider):
    monday_9_to_17(db, provider)
    BookingPreferencesService.update_preferences(db, provider.id, {"max_bookings_per_day": 2})
    make_booking(db, business, provider, status=BookingStatus.CONFIRMED)
    make_booking(db, business, provider, status=BookingStatus.PENDING, start_time=time(12), end_time=time(13))
    make_booking(db, business, provider, status=BookingStatus.CANCELLED, start_time=time(14), end_time=time(15))

    result = BookingPreferencesService.check_admissibility(db, provider.id, FUTURE_MONDAY, time(15), NOW)

    assert result.reasons == ["daily_cap_reached"]


def test_cancellation_window(db, business, provider):
    booking = make_booking(db, business, provider, status=BookingStatus.CONFIRMED)

    early, window = BookingPreferencesService.cancellation_allowed(db, booking, datetime(2031, 6, 1, 9, 0))
    late, _ = BookingPreferencesService.cancellation_allowed(db, booking, datetime(2031, 6, 2, 8, 0))

    assert (early, window) == (True, 24)
    assert late is False


def test_cancellation_disabled(db, business, provider):
    BookingPreferencesService.update_preferences(db, provider.id, {"allow_cancellation": False})
    booking = make_booking(db, business, provider, status=BookingStatus.CONFIRMED)

    allowed, _ = BookingPreferencesService.cancellation_allowed(db, booking, NOW)

    assert allowed is False
