# ===== booking_engine/services/availability/schedule_view_service.py =====
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy.orm import Session
import logging

from booking_engine.core.errors import ValidationError
from booking_engine.models.availability import ScheduleOrigin
from booking_engine.schemas.schedule import DayScheduleView, ScheduleView
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.availability.booking_preferences_service import (
    BookingPreferencesService,
    day_slots,
    weekday_index,
)

logger = logging.getLogger(__name__)

MAX_VIEW_DAYS = 62


class ScheduleViewService:
    """Read-only per-day view of a provider's schedule"""

    @staticmethod
    def get_schedule_view(db: Session, provider_id: UUID, start_date: date, days: int = 7) -> ScheduleView:
        """
        For each date: a covering block wins, then the weekly entry for that
        weekday, otherwise the day has no schedule.
        """
        if not 1 <= days <= MAX_VIEW_DAYS:
            raise ValidationError(f"days must be between 1 and {MAX_VIEW_DAYS}")

        schedule = AvailabilityService.get_schedule(db, provider_id)
        prefs = BookingPreferencesService.get_preferences(db, provider_id)
        by_day = {entry.day_of_week: entry for entry in schedule.entries}

        view_days = []
        for offset in range(days):
            current = start_date + timedelta(days=offset)
            weekday = weekday_index(current)

            block = next((b for b in schedule.blocked if b.covers(current)), None)
            if block is not None:
                view_days.append(DayScheduleView(
                    date=current,
                    day_of_week=weekday,
                    status="blocked",
                    block_reason=block.reason,
                ))
                continue

            entry = by_day.get(weekday)
            if entry is None:
                view_days.append(DayScheduleView(date=current, day_of_week=weekday, status="no_schedule"))
                continue

            view_days.append(DayScheduleView(
                date=current,
                day_of_week=weekday,
                status="available",
                origin=entry.origin,
                start_time=entry.start_time,
                end_time=entry.end_time,
                location_mode=entry.location_mode,
                slots=day_slots(entry, prefs),
            ))

        origins = {entry.origin for entry in schedule.entries}
        return ScheduleView(
            provider_id=schedule.provider_id,
            start_date=start_date,
            days=view_days,
            has_inherited_days=ScheduleOrigin.INHERITED.value in origins,
            has_manual_days=ScheduleOrigin.MANUAL.value in origins,
            preferences=prefs,
        )
