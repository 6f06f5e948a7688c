"""
Booking Lifecycle Dashboard Routes
Status transitions, provider assignment and cancellation policy
"""
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from booking_engine.api.dependencies import get_current_actor, get_notifier
from booking_engine.api.v1.dashboard.common import business_now
from booking_engine.config.database import get_db
from booking_engine.core.errors import NotFound
from booking_engine.models.booking import Booking
from booking_engine.models.business import Business
from booking_engine.schemas.booking import (
    AssignmentOut,
    AssignProviderRequest,
    BookingOut,
    CancellationPolicyOut,
    TransitionRequest,
)
from booking_engine.services.authorization import Actor, ensure_same_business
from booking_engine.services.availability.booking_preferences_service import BookingPreferencesService
from booking_engine.services.booking.booking_state_machine import BookingStateMachine
from booking_engine.services.notification.realtime_notifier import RealtimeNotifier

logger = logging.getLogger(__name__)
router = APIRouter(tags=["dashboard-bookings"])


def _status_hook(background_tasks: BackgroundTasks, notifier: RealtimeNotifier, business_id: UUID):
    """Publish after the response is sent, once the change is durable"""
    def on_status_change(booking_id: UUID, status: str) -> None:
        background_tasks.add_task(notifier.publish, booking_id, status, business_id)
    return on_status_change


def _get_booking(db: Session, booking_id: UUID) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFound(f"Booking {booking_id} not found")
    return booking


@router.post("/{booking_id}/transition", response_model=BookingOut)
def transition_booking(
        booking_id: UUID,
        request: TransitionRequest,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor),
        notifier: RealtimeNotifier = Depends(get_notifier)
):
    return BookingStateMachine.transition(
        db,
        booking_id,
        request.status,
        actor,
        reason=request.reason,
        on_status_change=_status_hook(background_tasks, notifier, actor.business_id),
    )


@router.post("/{booking_id}/assign", response_model=AssignmentOut)
def assign_provider(
        booking_id: UUID,
        request: AssignProviderRequest,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    """Assign, reassign or unassign (provider_id null). Schedule conflicts come back as warnings."""
    result = BookingStateMachine.assign_provider(db, booking_id, request.provider_id, actor)
    return AssignmentOut(booking=BookingOut.model_validate(result.booking), warnings=result.warnings)


@router.post("/{booking_id}/auto-accept", response_model=BookingOut)
def auto_accept_booking(
        booking_id: UUID,
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor),
        notifier: RealtimeNotifier = Depends(get_notifier)
):
    """Confirm the booking if its assignee accepts bookings automatically, otherwise no-op"""
    ensure_same_business(actor, _get_booking(db, booking_id).business_id)
    return BookingStateMachine.apply_auto_accept(
        db,
        booking_id,
        on_status_change=_status_hook(background_tasks, notifier, actor.business_id),
    )


@router.get("/{booking_id}/cancellation-policy", response_model=CancellationPolicyOut)
def get_cancellation_policy(
        booking_id: UUID,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_current_actor)
):
    booking = _get_booking(db, booking_id)
    ensure_same_business(actor, booking.business_id)

    business = db.query(Business).filter(Business.id == booking.business_id).first()
    now = business_now(business)
    allowed, window = BookingPreferencesService.cancellation_allowed(db, booking, now)
    return CancellationPolicyOut(
        booking_id=booking.id,
        cancellation_allowed=allowed,
        cancellation_window_hours=window,
        evaluated_at=now,
    )
