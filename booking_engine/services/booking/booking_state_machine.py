# ===== booking_engine/services/booking/booking_state_machine.py =====
"""
Booking status transitions and provider (re)assignment.

Every write locks the booking row, re-checks the state it read and only then
updates with a compare-and-set on that state. Two concurrent callers cannot
both move the same booking: the second one sees zero updated rows and gets
InvalidTransition carrying the state the booking actually has now.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging

from booking_engine.core.errors import (
    BookingEngineError,
    BookingLocked,
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from booking_engine.models.booking import Booking, BookingStatus, BookingStatusHistory
from booking_engine.models.provider import Provider, ProviderRole
from booking_engine.services.authorization import Actor, ensure_same_business
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.availability.booking_preferences_service import (
    ACTIVE_BOOKING_STATUSES,
    BookingPreferencesService,
    weekday_index,
)

logger = logging.getLogger(__name__)

StatusChangeHook = Callable[[UUID, str], None]

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.DECLINED}),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.IN_PROGRESS,
        BookingStatus.CANCELLED,
        BookingStatus.NO_SHOW,
    }),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.DECLINED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}

# Assignee can still change in these states
REASSIGNABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

# Statuses whose transition stores the caller's reason on the booking
_REASON_STATUSES = frozenset({BookingStatus.DECLINED, BookingStatus.CANCELLED})

SYSTEM_ROLE = "system"


@dataclass
class AssignmentResult:
    booking: Booking
    warnings: List[str] = field(default_factory=list)


def allowed_transitions(status) -> FrozenSet[BookingStatus]:
    return ALLOWED_TRANSITIONS[BookingStatus(status)]


def is_terminal(status) -> bool:
    return not allowed_transitions(status)


def _parse_status(value) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown booking status {value!r}")


def _role_value(actor: Actor) -> str:
    return actor.role.value if hasattr(actor.role, "value") else str(actor.role)


class BookingStateMachine:

    @staticmethod
    def _lock_booking(db: Session, booking_id: UUID) -> Booking:
        booking = db.query(Booking).filter(Booking.id == booking_id).with_for_update().first()
        if not booking:
            raise NotFound(f"Booking {booking_id} not found")
        return booking

    @staticmethod
    def _current_status(db: Session, booking_id: UUID) -> Optional[str]:
        return db.query(Booking.status).filter(Booking.id == booking_id).scalar()

    @staticmethod
    def _notify(on_status_change: Optional[StatusChangeHook], booking: Booking) -> None:
        if on_status_change is None:
            return
        try:
            on_status_change(booking.id, booking.status)
        except Exception as e:
            # The status is already committed; subscribers catch up on next read
            logger.error(f"Status change hook failed for booking {booking.id}: {str(e)}")

    @staticmethod
    def _compare_and_set(db: Session, booking: Booking, expected_status: str, values: Dict) -> None:
        """UPDATE ... WHERE status = expected; zero rows means someone else moved it first"""
        updated = db.query(Booking).filter(
            Booking.id == booking.id,
            Booking.status == expected_status
        ).update(values, synchronize_session=False)

        if updated == 0:
            db.rollback()
            actual = BookingStateMachine._current_status(db, booking.id)
            logger.warning(
                f"Lost update race on booking {booking.id}: expected {expected_status}, found {actual}"
            )
            raise InvalidTransition(
                f"Booking {booking.id} changed concurrently, it is now {actual}",
                current_status=actual,
            )

    @staticmethod
    def transition(
            db: Session,
            booking_id: UUID,
            target_status,
            actor: Actor,
            reason: Optional[str] = None,
            on_status_change: Optional[StatusChangeHook] = None
    ) -> Booking:
        """
        Move a booking along the status graph.

        Owners and dispatchers may move any booking of their business, a
        provider only the bookings assigned to them. Illegal edges raise
        InvalidTransition and leave the stored status unchanged.
        """
        target = _parse_status(target_status)

        try:
            booking = BookingStateMachine._lock_booking(db, booking_id)
            ensure_same_business(actor, booking.business_id)
            if actor.role == ProviderRole.PROVIDER and booking.provider_id != actor.provider_id:
                raise Forbidden("Providers may only update bookings assigned to them")

            current = booking.status
            if target not in allowed_transitions(current):
                raise InvalidTransition(
                    f"Cannot move booking from {current} to {target.value}",
                    current_status=current,
                )
        except BookingEngineError:
            # Release the row lock before surfacing the error
            db.rollback()
            raise

        values = {"status": target.value}
        if target in _REASON_STATUSES and reason:
            values["cancellation_reason"] = reason

        try:
            BookingStateMachine._compare_and_set(db, booking, current, values)
            db.add(BookingStatusHistory(
                booking_id=booking.id,
                event="status",
                from_status=current,
                to_status=target.value,
                from_provider_id=booking.provider_id,
                to_provider_id=booking.provider_id,
                changed_by=actor.provider_id,
                actor_role=_role_value(actor),
                reason=reason,
            ))
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        db.refresh(booking)
        logger.info(f"Booking {booking.id}: {current} -> {booking.status} by {_role_value(actor)} {actor.provider_id}")

        BookingStateMachine._notify(on_status_change, booking)
        return booking

    @staticmethod
    def feasibility_warnings(db: Session, booking: Booking, provider: Provider) -> List[str]:
        """Schedule conflicts for putting `provider` on `booking`. Informational only."""
        warnings = []
        day = booking.booking_date

        if AvailabilityService.blocks_covering(db, provider.id, day):
            warnings.append("provider_blocked")
        else:
            entry = next(
                (e for e in AvailabilityService.active_entries(db, provider.id)
                 if e.day_of_week == weekday_index(day)),
                None
            )
            if entry is None:
                warnings.append("no_schedule")
            elif booking.start_time < entry.start_time or booking.end_time > entry.end_time:
                warnings.append("outside_schedule")

        overlapping = db.query(Booking.id).filter(
            Booking.provider_id == provider.id,
            Booking.id != booking.id,
            Booking.booking_date == day,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.start_time < booking.end_time,
            Booking.end_time > booking.start_time
        ).first()
        if overlapping is not None:
            warnings.append("overlapping_booking")

        return warnings

    @staticmethod
    def assign_provider(
            db: Session,
            booking_id: UUID,
            provider_id: Optional[UUID],
            actor: Actor
    ) -> AssignmentResult:
        """
        Assign, reassign or (with provider_id=None) unassign a booking.

        Checked in order: business scoping, the reassignment lock (in_progress
        and terminal bookings keep their assignee whatever the role), then role
        rules. Schedule conflicts of the new assignee come back as warnings.
        """
        warnings: List[str] = []
        try:
            booking = BookingStateMachine._lock_booking(db, booking_id)
            ensure_same_business(actor, booking.business_id)

            current = booking.status
            if BookingStatus(current) not in REASSIGNABLE_STATUSES:
                raise BookingLocked(
                    f"Booking {booking.id} is {current}, its provider can no longer change",
                    current_status=current,
                )

            if actor.role == ProviderRole.PROVIDER:
                if provider_id is None or provider_id != actor.provider_id:
                    raise Forbidden("Providers may only assign bookings to themselves")
                if booking.provider_id is not None:
                    raise Forbidden("Providers may only claim unassigned bookings")

            if provider_id is not None:
                provider = db.query(Provider).filter(Provider.id == provider_id).first()
                if not provider:
                    raise NotFound(f"Provider {provider_id} not found")
                if provider.business_id != booking.business_id:
                    raise ValidationError("Provider does not belong to the booking's business")
                if not provider.is_active:
                    raise ValidationError(f"Provider {provider_id} is not active")
                warnings = BookingStateMachine.feasibility_warnings(db, booking, provider)
        except BookingEngineError:
            db.rollback()
            raise

        previous_provider = booking.provider_id
        try:
            BookingStateMachine._compare_and_set(db, booking, current, {"provider_id": provider_id})
            db.add(BookingStatusHistory(
                booking_id=booking.id,
                event="assignment",
                from_status=current,
                to_status=current,
                from_provider_id=previous_provider,
                to_provider_id=provider_id,
                changed_by=actor.provider_id,
                actor_role=_role_value(actor),
            ))
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        db.refresh(booking)
        if warnings:
            logger.warning(f"Booking {booking.id} assigned to {provider_id} with warnings: {warnings}")
        logger.info(f"Booking {booking.id} assignee {previous_provider} -> {provider_id}")
        return AssignmentResult(booking=booking, warnings=warnings)

    @staticmethod
    def apply_auto_accept(
            db: Session,
            booking_id: UUID,
            on_status_change: Optional[StatusChangeHook] = None
    ) -> Booking:
        """Confirm a pending booking when its assignee accepts bookings automatically"""
        try:
            booking = BookingStateMachine._lock_booking(db, booking_id)
        except NotFound:
            db.rollback()
            raise

        current = booking.status
        if current != BookingStatus.PENDING.value or booking.provider_id is None:
            db.rollback()
            return booking

        prefs = BookingPreferencesService.get_preferences(db, booking.provider_id)
        if not prefs.auto_accept_bookings:
            db.rollback()
            return booking

        try:
            BookingStateMachine._compare_and_set(
                db, booking, current, {"status": BookingStatus.CONFIRMED.value}
            )
            db.add(BookingStatusHistory(
                booking_id=booking.id,
                event="status",
                from_status=current,
                to_status=BookingStatus.CONFIRMED.value,
                from_provider_id=booking.provider_id,
                to_provider_id=booking.provider_id,
                changed_by=None,
                actor_role=SYSTEM_ROLE,
                reason="auto_accept",
            ))
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        db.refresh(booking)
        logger.info(f"Booking {booking.id} auto-accepted for provider {booking.provider_id}")

        BookingStateMachine._notify(on_status_change, booking)
        return booking

    @staticmethod
    def history(db: Session, booking_id: UUID) -> List[BookingStatusHistory]:
        return db.query(BookingStatusHistory).filter(
            BookingStatusHistory.booking_id == booking_id
        ).order_by(BookingStatusHistory.changed_at, BookingStatusHistory.id).all()
