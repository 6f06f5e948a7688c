# ===== booking_engine/services/availability/availability_service.py =====
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging

from booking_engine.core.errors import NotFound, ValidationError
from booking_engine.models.availability import BlockedInterval, ScheduleOrigin, WeeklyAvailability
from booking_engine.models.provider import LocationMode, Provider
from booking_engine.services.authorization import Actor, ensure_can_manage_provider

logger = logging.getLogger(__name__)

_LOCATION_MODES = {mode.value for mode in LocationMode}


@dataclass
class ProviderSchedule:
    provider_id: UUID
    entries: List[WeeklyAvailability]
    blocked: List[BlockedInterval]


def _value(field) -> str:
    return field.value if hasattr(field, "value") else str(field)


def validate_entry(entry) -> None:
    """Raise ValidationError naming the day when a weekly window is malformed"""
    day = entry.day_of_week
    if not isinstance(day, int) or not 0 <= day <= 6:
        raise ValidationError(
            f"Invalid day of week {day!r}, expected 0 (Sunday) to 6 (Saturday)",
            day_of_week=day if isinstance(day, int) else None,
        )
    if entry.start_time >= entry.end_time:
        raise ValidationError(
            f"Start time {entry.start_time} must be before end time {entry.end_time} on day {day}",
            day_of_week=day,
        )
    if _value(entry.location_mode) not in _LOCATION_MODES:
        raise ValidationError(f"Invalid location mode {entry.location_mode!r} on day {day}", day_of_week=day)


class AvailabilityService:
    """Per-provider weekly recurring availability and blocked dates"""

    @staticmethod
    def get_provider(db: Session, provider_id: UUID) -> Provider:
        provider = db.query(Provider).filter(Provider.id == provider_id).first()
        if not provider:
            raise NotFound(f"Provider {provider_id} not found")
        return provider

    @staticmethod
    def active_entries(db: Session, provider_id: UUID) -> List[WeeklyAvailability]:
        return db.query(WeeklyAvailability).filter(
            WeeklyAvailability.provider_id == provider_id,
            WeeklyAvailability.is_active == True
        ).order_by(WeeklyAvailability.day_of_week).all()

    @staticmethod
    def set_weekly_schedule(
            db: Session,
            provider_id: UUID,
            entries: Sequence,
            origin: ScheduleOrigin = ScheduleOrigin.MANUAL,
            actor: Optional[Actor] = None
    ) -> List[WeeklyAvailability]:
        """
        Replace all active weekly rows of a provider with `entries`.

        All-or-nothing: every entry is validated before anything is written,
        and the deactivation of old rows plus the insert of new ones commit
        together. Old rows are soft-removed (is_active=False) for audit.
        """
        provider = AvailabilityService.get_provider(db, provider_id)
        if actor is not None:
            ensure_can_manage_provider(actor, provider)

        seen_days = set()
        for entry in entries:
            validate_entry(entry)
            if entry.day_of_week in seen_days:
                raise ValidationError(
                    f"Day {entry.day_of_week} appears more than once, only one window per day is allowed",
                    day_of_week=entry.day_of_week,
                )
            seen_days.add(entry.day_of_week)

        origin_value = _value(origin)
        try:
            deactivated = db.query(WeeklyAvailability).filter(
                WeeklyAvailability.provider_id == provider.id,
                WeeklyAvailability.is_active == True
            ).update({"is_active": False}, synchronize_session=False)

            new_rows = [
                WeeklyAvailability(
                    provider_id=provider.id,
                    day_of_week=entry.day_of_week,
                    start_time=entry.start_time,
                    end_time=entry.end_time,
                    location_mode=_value(entry.location_mode),
                    origin=origin_value,
                    is_active=True,
                )
                for entry in entries
            ]
            db.add_all(new_rows)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.info(
            f"Replaced weekly schedule for provider {provider.id}: "
            f"{deactivated} rows deactivated, {len(new_rows)} {origin_value} rows written"
        )
        return sorted(new_rows, key=lambda row: row.day_of_week)

    @staticmethod
    def update_day(
            db: Session,
            provider_id: UUID,
            entry,
            actor: Optional[Actor] = None
    ) -> WeeklyAvailability:
        """
        Replace a single day's window. The new row is always `manual`, which is
        how a provider takes an inherited day over without a separate convert step.
        """
        provider = AvailabilityService.get_provider(db, provider_id)
        if actor is not None:
            ensure_can_manage_provider(actor, provider)
        validate_entry(entry)

        try:
            db.query(WeeklyAvailability).filter(
                WeeklyAvailability.provider_id == provider.id,
                WeeklyAvailability.day_of_week == entry.day_of_week,
                WeeklyAvailability.is_active == True
            ).update({"is_active": False}, synchronize_session=False)

            row = WeeklyAvailability(
                provider_id=provider.id,
                day_of_week=entry.day_of_week,
                start_time=entry.start_time,
                end_time=entry.end_time,
                location_mode=_value(entry.location_mode),
                origin=ScheduleOrigin.MANUAL.value,
                is_active=True,
            )
            db.add(row)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.info(f"Provider {provider.id} day {entry.day_of_week} set manually")
        return row

    @staticmethod
    def get_schedule(db: Session, provider_id: UUID) -> ProviderSchedule:
        provider = AvailabilityService.get_provider(db, provider_id)

        blocked = db.query(BlockedInterval).filter(
            BlockedInterval.provider_id == provider.id,
            BlockedInterval.is_active == True
        ).order_by(BlockedInterval.start_date).all()

        return ProviderSchedule(
            provider_id=provider.id,
            entries=AvailabilityService.active_entries(db, provider.id),
            blocked=blocked,
        )

    @staticmethod
    def block_interval(
            db: Session,
            provider_id: UUID,
            start_date: date,
            end_date: Optional[date],
            reason: str,
            actor: Optional[Actor] = None
    ) -> BlockedInterval:
        """Mark a provider unavailable for a date range (inclusive) or a single day"""
        provider = AvailabilityService.get_provider(db, provider_id)
        if actor is not None:
            ensure_can_manage_provider(actor, provider)

        end_date = end_date or start_date
        if end_date < start_date:
            raise ValidationError(f"Blocked interval ends ({end_date}) before it starts ({start_date})")
        if not reason or not reason.strip():
            raise ValidationError("A reason is required to block time off")

        block = BlockedInterval(
            provider_id=provider.id,
            start_date=start_date,
            end_date=end_date,
            reason=reason.strip(),
            is_active=True,
        )
        db.add(block)
        db.commit()
        db.refresh(block)

        logger.info(f"Blocked provider {provider.id} from {start_date} to {end_date}: {block.reason}")
        return block

    @staticmethod
    def remove_block(
            db: Session,
            provider_id: UUID,
            block_id: UUID,
            actor: Optional[Actor] = None
    ) -> BlockedInterval:
        provider = AvailabilityService.get_provider(db, provider_id)
        if actor is not None:
            ensure_can_manage_provider(actor, provider)

        block = db.query(BlockedInterval).filter(
            BlockedInterval.id == block_id,
            BlockedInterval.provider_id == provider.id,
            BlockedInterval.is_active == True
        ).first()
        if not block:
            raise NotFound(f"Blocked interval {block_id} not found")

        block.is_active = False
        db.commit()
        return block

    @staticmethod
    def blocks_covering(db: Session, provider_id: UUID, day: date) -> List[BlockedInterval]:
        return db.query(BlockedInterval).filter(
            BlockedInterval.provider_id == provider_id,
            BlockedInterval.is_active == True,
            BlockedInterval.start_date <= day,
            BlockedInterval.end_date >= day
        ).all()
