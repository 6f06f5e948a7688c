# ===== booking_engine/services/availability/booking_preferences_service.py =====
"""Slot parameters per provider and the admissibility checks built on them"""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session
import logging

from booking_engine.core.errors import ValidationError
from booking_engine.models.booking import Booking, BookingStatus
from booking_engine.models.booking_preferences import BookingPreferences
from booking_engine.schemas.availability import BookingPreferencesOut, BookingPreferencesUpdate
from booking_engine.services.authorization import Actor, ensure_can_manage_provider
from booking_engine.services.availability.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES: Dict[str, Union[int, bool]] = {
    "max_bookings_per_day": 8,
    "slot_duration_minutes": 60,
    "buffer_minutes": 15,
    "min_advance_hours": 2,
    "max_advance_days": 30,
    "auto_accept_bookings": False,
    "allow_cancellation": True,
    "cancellation_window_hours": 24,
}

# Bookings that occupy a provider's day
ACTIVE_BOOKING_STATUSES = (
    BookingStatus.PENDING.value,
    BookingStatus.CONFIRMED.value,
    BookingStatus.IN_PROGRESS.value,
)


@dataclass
class Admissibility:
    admissible: bool
    reasons: List[str] = field(default_factory=list)


def weekday_index(day: date) -> int:
    """Day of week with Sunday=0"""
    return (day.weekday() + 1) % 7


def generate_slots(start: time, end: time, duration_minutes: int, buffer_minutes: int) -> List[time]:
    """Slot start times inside one window, stepping by duration plus buffer"""
    slots = []
    anchor = date(2000, 1, 1)
    current_slot = datetime.combine(anchor, start)
    day_end = datetime.combine(anchor, end)

    while current_slot + timedelta(minutes=duration_minutes) <= day_end:
        slots.append(current_slot.time())
        # Move to next slot (including buffer time)
        current_slot += timedelta(minutes=duration_minutes + buffer_minutes)

    return slots


def day_slots(entry, prefs) -> List[time]:
    """Slots for one weekly availability window under a provider's preferences"""
    return generate_slots(
        entry.start_time,
        entry.end_time,
        prefs.slot_duration_minutes,
        prefs.buffer_minutes,
    )


def validate_preferences(values: Dict) -> None:
    if values["max_bookings_per_day"] < 1:
        raise ValidationError("max_bookings_per_day must be at least 1")
    if values["slot_duration_minutes"] <= 0:
        raise ValidationError("slot_duration_minutes must be greater than 0")
    if values["buffer_minutes"] < 0:
        raise ValidationError("buffer_minutes cannot be negative")
    if values["min_advance_hours"] < 0:
        raise ValidationError("min_advance_hours cannot be negative")
    if values["max_advance_days"] < 1:
        raise ValidationError("max_advance_days must be at least 1")
    if values["cancellation_window_hours"] < 0:
        raise ValidationError("cancellation_window_hours cannot be negative")


class BookingPreferencesService:
    """Handles per-provider booking preferences"""

    @staticmethod
    def _to_out(provider_id: UUID, row: Optional[BookingPreferences]) -> BookingPreferencesOut:
        if row is None:
            return BookingPreferencesOut(provider_id=provider_id, is_default=True, **DEFAULT_PREFERENCES)
        values = {name: getattr(row, name) for name in DEFAULT_PREFERENCES}
        return BookingPreferencesOut(provider_id=provider_id, is_default=False, **values)

    @staticmethod
    def get_preferences(db: Session, provider_id: UUID) -> BookingPreferencesOut:
        """Stored preferences, or the defaults when the provider never saved any"""
        provider = AvailabilityService.get_provider(db, provider_id)
        row = db.query(BookingPreferences).filter(
            BookingPreferences.provider_id == provider.id
        ).first()
        return BookingPreferencesService._to_out(provider.id, row)

    @staticmethod
    def update_preferences(
            db: Session,
            provider_id: UUID,
            changes: Union[BookingPreferencesUpdate, Dict],
            actor: Optional[Actor] = None
    ) -> BookingPreferencesOut:
        provider = AvailabilityService.get_provider(db, provider_id)
        if actor is not None:
            ensure_can_manage_provider(actor, provider)

        if isinstance(changes, BookingPreferencesUpdate):
            changes = changes.model_dump(exclude_none=True)
        unknown = set(changes) - set(DEFAULT_PREFERENCES)
        if unknown:
            raise ValidationError(f"Unknown preference fields: {', '.join(sorted(unknown))}")

        row = db.query(BookingPreferences).filter(
            BookingPreferences.provider_id == provider.id
        ).first()
        current = BookingPreferencesService._to_out(provider.id, row).model_dump()
        merged = {name: changes.get(name, current[name]) for name in DEFAULT_PREFERENCES}
        validate_preferences(merged)

        if row is None:
            row = BookingPreferences(provider_id=provider.id, **merged)
            db.add(row)
        else:
            for name, value in merged.items():
                setattr(row, name, value)
        db.commit()

        logger.info(f"Updated booking preferences for provider {provider.id}: {sorted(changes)}")
        return BookingPreferencesService._to_out(provider.id, row)

    @staticmethod
    def count_active_bookings(db: Session, provider_id: UUID, day: date) -> int:
        return db.query(func.count(Booking.id)).filter(
            Booking.provider_id == provider_id,
            Booking.booking_date == day,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES)
        ).scalar() or 0

    @staticmethod
    def check_admissibility(
            db: Session,
            provider_id: UUID,
            booking_date: date,
            start_time: time,
            now: datetime
    ) -> Admissibility:
        """
        Decide whether a booking request starting at booking_date/start_time
        could be accepted for this provider.

        `now` is the business-local wall clock; an aware value is compared on
        its wall-clock time.
        """
        prefs = BookingPreferencesService.get_preferences(db, provider_id)
        reasons = []

        if AvailabilityService.blocks_covering(db, provider_id, booking_date):
            reasons.append("blocked")
        else:
            weekday = weekday_index(booking_date)
            entry = next(
                (e for e in AvailabilityService.active_entries(db, provider_id) if e.day_of_week == weekday),
                None
            )
            if entry is None:
                reasons.append("no_schedule")
            else:
                requested_start = datetime.combine(booking_date, start_time)
                requested_end = requested_start + timedelta(minutes=prefs.slot_duration_minutes)
                if (start_time < entry.start_time
                        or requested_end > datetime.combine(booking_date, entry.end_time)):
                    reasons.append("outside_schedule")

        requested = datetime.combine(booking_date, start_time)
        wall_now = now.replace(tzinfo=None)
        if requested - wall_now < timedelta(hours=prefs.min_advance_hours):
            reasons.append("too_soon")
        if booking_date > wall_now.date() + timedelta(days=prefs.max_advance_days):
            reasons.append("too_far")

        booked = BookingPreferencesService.count_active_bookings(db, provider_id, booking_date)
        if booked >= prefs.max_bookings_per_day:
            reasons.append("daily_cap_reached")

        return Admissibility(admissible=not reasons, reasons=reasons)

    @staticmethod
    def cancellation_allowed(db: Session, booking: Booking, now: datetime) -> tuple:
        """(allowed, window_hours) for cancelling this booking at `now`"""
        if booking.provider_id is not None:
            prefs = BookingPreferencesService.get_preferences(db, booking.provider_id)
            allow, window = prefs.allow_cancellation, prefs.cancellation_window_hours
        else:
            allow = DEFAULT_PREFERENCES["allow_cancellation"]
            window = DEFAULT_PREFERENCES["cancellation_window_hours"]

        if not allow:
            return False, window

        starts_at = datetime.combine(booking.booking_date, booking.start_time)
        return starts_at - now.replace(tzinfo=None) >= timedelta(hours=window), window
