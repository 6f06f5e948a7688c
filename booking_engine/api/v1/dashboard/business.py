"""
Business Dashboard Routes
Business hours, inherited schedule sync and service eligibility
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from booking_engine.api.dependencies import get_current_actor, get_eligibility_resolver
from booking_engine.config.database import get_db
from booking_engine.schemas.eligibility import EligibilityResultOut
from booking_engine.schemas.schedule import BusinessHoursOut, BusinessHoursUpdate, DayHours, SyncReportOut
from booking_engine.services.authorization import Actor, ensure_same_business
from booking_engine.services.availability.inheritance_sync_service import InheritanceSyncService
from booking_engine.services.business.business_hours_source import (
    DAY_NAMES,
    BusinessHoursSource,
    OpenHours,
)
from booking_engine.services.eligibility.eligibility_resolver import EligibilityResolver, require_available

logger = logging.getLogger(__name__)
router = APIRouter(tags=["dashboard-business"])


def _hours_out(business_id: UUID, hours) -> BusinessHoursOut:
    days = []
    for index, day in enumerate(hours):
        is_open = isinstance(day, OpenHours)
        days.append(DayHours(
            day_of_week=index,
            day_name=DAY_NAMES[index],
            is_open=is_open,
            open=day.start if is_open else None,
            close=day.end if is_open else None,
        ))
    return BusinessHoursOut(business_id=business_id, days=days)


@router.get("/{business_id}/hours", response_model=BusinessHoursOut)
def get_business_hours(
        business_id: UUID,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    ensure_same_business(actor, business_id)
    return _hours_out(business_id, BusinessHoursSource.get_weekly_hours(db, business_id))


@router.put("/{business_id}/hours", response_model=BusinessHoursOut)
def update_business_hours(
        business_id: UUID,
        request: BusinessHoursUpdate,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    """
    Save business hours. Providers following the business keep their
    current rows until someone calls sync-inherited.
    """
    hours = BusinessHoursSource.update_business_hours(db, business_id, request.business_hours, actor)
    return _hours_out(business_id, hours)


@router.post("/{business_id}/sync-inherited", response_model=SyncReportOut)
def sync_inherited(
        business_id: UUID,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    report = InheritanceSyncService.sync_all_inherited(db, business_id, actor)
    return SyncReportOut(**report.__dict__)


@router.get("/{business_id}/eligibility", response_model=EligibilityResultOut)
async def get_eligible_services(
        business_id: UUID,
        strict: bool = Query(False, description="Return 503 instead of an empty set when nothing could be loaded"),
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor),
        resolver: EligibilityResolver = Depends(get_eligibility_resolver)
):
    ensure_same_business(actor, business_id)
    BusinessHoursSource.get_business(db, business_id)

    result = await resolver.resolve(db, business_id)
    if strict:
        require_available(result)
    return result.to_out(business_id)
