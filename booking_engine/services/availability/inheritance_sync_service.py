# ===== booking_engine/services/availability/inheritance_sync_service.py =====
"""
Copies business hours into provider schedules.

Runs only on explicit request (apply for one provider, sync for every provider
that follows the business). Editing business hours never triggers it.
"""
from dataclasses import dataclass, field
from typing import Iterable, List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging

from booking_engine.models.availability import ScheduleOrigin, WeeklyAvailability
from booking_engine.models.provider import Provider
from booking_engine.services.authorization import Actor, ensure_manager
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.business.business_hours_source import (
    BusinessHoursSource,
    OpenHours,
    WeeklyHours,
)

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    business_id: UUID
    provider_ids: List[UUID] = field(default_factory=list)
    rows_written: int = 0
    open_days: List[int] = field(default_factory=list)


class InheritanceSyncService:

    @staticmethod
    def _rewrite_inherited(db: Session, provider: Provider, hours: WeeklyHours) -> int:
        """
        Replace one provider's inherited rows with the current business hours.
        Flushes but does not commit. Days held by an active manual row are skipped.
        """
        db.query(WeeklyAvailability).filter(
            WeeklyAvailability.provider_id == provider.id,
            WeeklyAvailability.is_active == True,
            WeeklyAvailability.origin == ScheduleOrigin.INHERITED.value
        ).delete(synchronize_session=False)

        manual_days = {
            row.day_of_week for row in db.query(WeeklyAvailability.day_of_week).filter(
                WeeklyAvailability.provider_id == provider.id,
                WeeklyAvailability.is_active == True,
                WeeklyAvailability.origin == ScheduleOrigin.MANUAL.value
            ).all()
        }

        written = 0
        for day_of_week, day in enumerate(hours):
            if not isinstance(day, OpenHours):
                continue
            if day_of_week in manual_days:
                logger.debug(f"Provider {provider.id} keeps manual hours on day {day_of_week}")
                continue
            db.add(WeeklyAvailability(
                provider_id=provider.id,
                day_of_week=day_of_week,
                start_time=day.start,
                end_time=day.end,
                location_mode=provider.default_location_mode,
                origin=ScheduleOrigin.INHERITED.value,
                is_active=True,
            ))
            written += 1

        db.flush()
        return written

    @staticmethod
    def _open_days(hours: WeeklyHours) -> List[int]:
        return [index for index, day in enumerate(hours) if day.is_open]

    @staticmethod
    def apply_business_hours(db: Session, provider_id: UUID, actor: Actor) -> SyncReport:
        """Point one provider's schedule at the business hours (owner/dispatcher only)"""
        provider = AvailabilityService.get_provider(db, provider_id)
        ensure_manager(actor, provider.business_id, "apply business hours to a provider")

        hours = BusinessHoursSource.get_weekly_hours(db, provider.business_id)
        try:
            written = InheritanceSyncService._rewrite_inherited(db, provider, hours)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.info(f"Applied business hours to provider {provider.id}: {written} inherited rows")
        return SyncReport(
            business_id=provider.business_id,
            provider_ids=[provider.id],
            rows_written=written,
            open_days=InheritanceSyncService._open_days(hours),
        )

    @staticmethod
    def inherited_providers(db: Session, business_id: UUID) -> List[Provider]:
        """Active providers of the business with at least one active inherited row"""
        inherited = select(WeeklyAvailability.provider_id).where(
            WeeklyAvailability.is_active == True,
            WeeklyAvailability.origin == ScheduleOrigin.INHERITED.value
        )
        return db.query(Provider).filter(
            Provider.business_id == business_id,
            Provider.is_active == True,
            Provider.id.in_(inherited)
        ).order_by(Provider.created_at, Provider.id).all()

    @staticmethod
    def sync_all_inherited(db: Session, business_id: UUID, actor: Actor) -> SyncReport:
        """
        Re-copy business hours into every provider that currently follows them.
        All providers are rewritten in one transaction.
        """
        business = BusinessHoursSource.get_business(db, business_id)
        ensure_manager(actor, business.id, "sync business hours")

        hours = BusinessHoursSource.get_weekly_hours(db, business.id)
        providers: Iterable[Provider] = InheritanceSyncService.inherited_providers(db, business.id)

        report = SyncReport(business_id=business.id, open_days=InheritanceSyncService._open_days(hours))
        try:
            for provider in providers:
                report.rows_written += InheritanceSyncService._rewrite_inherited(db, provider, hours)
                report.provider_ids.append(provider.id)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error(f"Inherited sync failed for business {business.id}, nothing written")
            raise

        logger.info(
            f"Synced business hours for {business.id}: "
            f"{len(report.provider_ids)} providers, {report.rows_written} rows"
        )
        return report
