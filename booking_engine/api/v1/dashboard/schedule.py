"""
Provider Schedule Dashboard Routes
Weekly availability, blocked dates, booking preferences and the per-day view
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date, time
from typing import Optional
from uuid import UUID
import logging

from booking_engine.api.dependencies import get_current_actor
from booking_engine.api.v1.dashboard.common import business_now
from booking_engine.config.database import get_db
from booking_engine.schemas.availability import (
    AdmissibilityOut,
    AvailabilityEntryIn,
    AvailabilityEntryOut,
    BlockIntervalRequest,
    BlockedIntervalOut,
    BookingPreferencesOut,
    BookingPreferencesUpdate,
    DayScheduleRequest,
    ProviderScheduleOut,
    WeeklyScheduleRequest,
)
from booking_engine.schemas.schedule import ScheduleView, SyncReportOut
from booking_engine.services.authorization import Actor, ensure_same_business
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.availability.booking_preferences_service import BookingPreferencesService
from booking_engine.services.availability.inheritance_sync_service import InheritanceSyncService
from booking_engine.services.availability.schedule_view_service import ScheduleViewService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["dashboard-schedule"])


def _visible_provider(db: Session, provider_id: UUID, actor: Actor):
    """Anyone in the business may read a provider's schedule"""
    provider = AvailabilityService.get_provider(db, provider_id)
    ensure_same_business(actor, provider.business_id)
    return provider


def _schedule_out(schedule) -> ProviderScheduleOut:
    return ProviderScheduleOut(
        provider_id=schedule.provider_id,
        entries=[AvailabilityEntryOut.model_validate(e) for e in schedule.entries],
        blocked=[BlockedIntervalOut.model_validate(b) for b in schedule.blocked],
    )


# ============================================================================
# Schedule view
# ============================================================================

@router.get("/{provider_id}/schedule", response_model=ScheduleView)
def get_schedule_view(
        provider_id: UUID,
        start: Optional[date] = Query(None, description="First day, defaults to today in the business timezone"),
        days: int = Query(7, ge=1, le=62),
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    provider = _visible_provider(db, provider_id, actor)
    start = start or business_now(provider.business).date()
    return ScheduleViewService.get_schedule_view(db, provider_id, start, days)


# ============================================================================
# Weekly availability
# ============================================================================

@router.get("/{provider_id}/availability", response_model=ProviderScheduleOut)
def get_availability(
        provider_id: UUID,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    _visible_provider(db, provider_id, actor)
    return _schedule_out(AvailabilityService.get_schedule(db, provider_id))


@router.put("/{provider_id}/availability", response_model=ProviderScheduleOut)
def set_weekly_schedule(
        provider_id: UUID,
        request: WeeklyScheduleRequest,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    """Replace the whole weekly schedule; every entry is validated before anything is written"""
    AvailabilityService.set_weekly_schedule(db, provider_id, request.entries, request.origin, actor=actor)
    return _schedule_out(AvailabilityService.get_schedule(db, provider_id))


@router.patch("/{provider_id}/availability/{day_of_week}", response_model=AvailabilityEntryOut)
def update_day(
        provider_id: UUID,
        day_of_week: int,
        request: DayScheduleRequest,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    """Edit one day; the day becomes manual"""
    entry = AvailabilityEntryIn(day_of_week=day_of_week, **request.model_dump())
    return AvailabilityService.update_day(db, provider_id, entry, actor=actor)


@router.post("/{provider_id}/apply-business-hours", response_model=SyncReportOut)
def apply_business_hours(
        provider_id: UUID,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    report = InheritanceSyncService.apply_business_hours(db, provider_id, actor)
    return SyncReportOut(**report.__dict__)


# ============================================================================
# Blocked dates
# ============================================================================

@router.post("/{provider_id}/blocks", response_model=BlockedIntervalOut, status_code=201)
def block_interval(
        provider_id: UUID,
        request: BlockIntervalRequest,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    return AvailabilityService.block_interval(
        db, provider_id, request.start_date, request.end_date, request.reason, actor=actor
    )


@router.delete("/{provider_id}/blocks/{block_id}", response_model=BlockedIntervalOut)
def remove_block(
        provider_id: UUID,
        block_id: UUID,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    return AvailabilityService.remove_block(db, provider_id, block_id, actor=actor)


# ============================================================================
# Booking preferences
# ============================================================================

@router.get("/{provider_id}/preferences", response_model=BookingPreferencesOut)
def get_preferences(
        provider_id: UUID,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    _visible_provider(db, provider_id, actor)
    return BookingPreferencesService.get_preferences(db, provider_id)


@router.put("/{provider_id}/preferences", response_model=BookingPreferencesOut)
def update_preferences(
        provider_id: UUID,
        request: BookingPreferencesUpdate,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    return BookingPreferencesService.update_preferences(db, provider_id, request, actor=actor)


@router.get("/{provider_id}/admissibility", response_model=AdmissibilityOut)
def check_admissibility(
        provider_id: UUID,
        booking_date: date = Query(..., alias="date"),
        start: time = Query(...),
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    """Would a booking starting at date/start be accepted for this provider right now?"""
    provider = _visible_provider(db, provider_id, actor)
    result = BookingPreferencesService.check_admissibility(
        db, provider.id, booking_date, start, business_now(provider.business)
    )
    return AdmissibilityOut(admissible=result.admissible, reasons=result.reasons)
