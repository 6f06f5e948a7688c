import itertools
import uuid
from datetime import time

import pytest

from booking_engine.core.errors import (
    BookingLocked,
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from booking_engine.models import Booking, BookingStatus, BookingStatusHistory, ProviderRole
from booking_engine.schemas.availability import AvailabilityEntryIn
from booking_engine.services.availability.availability_service import AvailabilityService
from booking_engine.services.availability.booking_preferences_service import BookingPreferencesService
from booking_engine.services.booking.booking_state_machine import (
    ALLOWED_TRANSITIONS,
    BookingStateMachine,
    allowed_transitions,
    is_terminal,
)
from conftest import actor_for, make_booking, make_business, make_provider

ILLEGAL_PAIRS = [
    (source, target)
    for source, target in itertools.product(BookingStatus, BookingStatus)
    if target not in ALLOWED_TRANSITIONS[source]
]


def stored_status(db, booking_id):
    db.expire_all()
    return db.query(Booking.status).filter(Booking.id == booking_id).scalar()


def test_graph_shape():
    assert allowed_transitions("pending") == {BookingStatus.CONFIRMED, BookingStatus.DECLINED}
    assert allowed_transitions("confirmed") == {
        BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED, BookingStatus.NO_SHOW
    }
    assert allowed_transitions("in_progress") == {BookingStatus.COMPLETED}
    assert all(is_terminal(s) for s in ("completed", "cancelled", "declined", "no_show"))


@pytest.mark.parametrize("source,target", ILLEGAL_PAIRS)
def test_illegal_transitions_leave_status_unchanged(db, business, owner, provider, source, target):
    booking = make_booking(db, business, provider, status=source)

    with pytest.raises(InvalidTransition) as exc_info:
        BookingStateMachine.transition(db, booking.id, target.value, actor_for(owner))

    assert exc_info.value.current_status == source.value
    assert stored_status(db, booking.id) == source.value


def test_completed_back_to_pending_is_rejected(db, business, owner, provider):
    booking = make_booking(db, business, provider, status=BookingStatus.COMPLETED)

    with pytest.raises(InvalidTransition):
        BookingStateMachine.transition(db, booking.id, "pending", actor_for(owner))

    assert stored_status(db, booking.id) == "completed"


def test_unknown_status_and_booking(db, business, owner):
    booking = make_booking(db, business)

    with pytest.raises(ValidationError):
        BookingStateMachine.transition(db, booking.id, "archived", actor_for(owner))
    with pytest.raises(NotFound):
        BookingStateMachine.transition(db, uuid.uuid4(), "confirmed", actor_for(owner))


def test_decline_records_reason_and_history(db, business, dispatcher, recorder):
    booking = make_booking(db, business)

    result = BookingStateMachine.transition(
        db, booking.id, "declined", actor_for(dispatcher), reason="Fully booked", on_status_change=recorder
    )

    assert result.status == "declined"
    assert result.cancellation_reason == "Fully booked"
    assert recorder.calls == [(booking.id, "declined")]

    history = BookingStateMachine.history(db, booking.id)
    assert len(history) == 1
    assert (history[0].from_status, history[0].to_status) == ("pending", "declined")
    assert history[0].changed_by == dispatcher.id
    assert history[0].actor_role == "dispatcher"


def test_provider_only_moves_own_bookings(db, business, provider, other_provider):
    booking = make_booking(db, business, other_provider, status=BookingStatus.CONFIRMED)

    with pytest.raises(Forbidden):
        BookingStateMachine.transition(db, booking.id, "in_progress", actor_for(provider))

    result = BookingStateMachine.transition(db, booking.id, "in_progress", actor_for(other_provider))
    assert result.status == "in_progress"


def test_other_business_is_forbidden(db, business, provider):
    booking = make_booking(db, business, provider)
    outsider = make_provider(db, make_business(db, name="Elsewhere"), role=ProviderRole.OWNER)

    with pytest.raises(Forbidden):
        BookingStateMachine.transition(db, booking.id, "confirmed", actor_for(outsider))
    with pytest.raises(Forbidden):
        BookingStateMachine.assign_provider(db, booking.id, None, actor_for(outsider))


def test_dispatcher_assigns_then_wrong_provider_cannot_start(db, business, dispatcher, provider, other_provider):
    bk1 = make_booking(db, business)

    result = BookingStateMachine.assign_provider(db, bk1.id, provider.id, actor_for(dispatcher))
    assert result.booking.provider_id == provider.id

    confirmed = BookingStateMachine.transition(db, bk1.id, "confirmed", actor_for(dispatcher))
    assert confirmed.status == "confirmed"

    with pytest.raises(Forbidden):
        BookingStateMachine.transition(db, bk1.id, "in_progress", actor_for(other_provider))
    assert stored_status(db, bk1.id) == "confirmed"


def test_provider_cannot_assign_someone_else(db, business, owner, provider, other_provider):
    booking = make_booking(db, business, other_provider)

    with pytest.raises(Forbidden):
        BookingStateMachine.assign_provider(db, booking.id, other_provider.id, actor_for(provider))
    with pytest.raises(Forbidden):
        BookingStateMachine.assign_provider(db, booking.id, provider.id, actor_for(provider))

    result = BookingStateMachine.assign_provider(db, booking.id, provider.id, actor_for(owner))
    assert result.booking.provider_id == provider.id


def test_provider_can_claim_unassigned_booking(db, business, provider):
    booking = make_booking(db, business)

    result = BookingStateMachine.assign_provider(db, booking.id, provider.id, actor_for(provider))

    assert result.booking.provider_id == provider.id
    events = [h.event for h in BookingStateMachine.history(db, booking.id)]
    assert events == ["assignment"]


@pytest.mark.parametrize("status", [
    BookingStatus.IN_PROGRESS,
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.DECLINED,
    BookingStatus.NO_SHOW,
])
@pytest.mark.parametrize("role_fixture", ["owner", "dispatcher", "provider"])
def test_reassignment_locked_for_every_role(db, business, other_provider, request, status, role_fixture):
    actor_provider = request.getfixturevalue(role_fixture)
    booking = make_booking(db, business, actor_provider if role_fixture == "provider" else other_provider,
                           status=status)

    with pytest.raises(BookingLocked) as exc_info:
        BookingStateMachine.assign_provider(db, booking.id, actor_provider.id, actor_for(actor_provider))

    assert exc_info.value.current_status == status.value


def test_unassign(db, business, owner, provider):
    booking = make_booking(db, business, provider, status=BookingStatus.CONFIRMED)

    result = BookingStateMachine.assign_provider(db, booking.id, None, actor_for(owner))

    assert result.booking.provider_id is None
    assert result.warnings == []


def test_assignment_target_must_be_active_member(db, business, owner):
    booking = make_booking(db, business)
    inactive = make_provider(db, business, is_active=False)
    foreign = make_provider(db, make_business(db, name="Elsewhere"))

    with pytest.raises(ValidationError):
        BookingStateMachine.assign_provider(db, booking.id, inactive.id, actor_for(owner))
    with pytest.raises(ValidationError):
        BookingStateMachine.assign_provider(db, booking.id, foreign.id, actor_for(owner))
    with pytest.raises(NotFound):
        BookingStateMachine.assign_provider(db, booking.id, uuid.uuid4(), actor_for(owner))


def test_schedule_conflicts_are_warnings_not_blocks(db, business, dispatcher, provider):
    AvailabilityService.set_weekly_schedule(db, provider.id, [
        AvailabilityEntryIn(day_of_week=1, start_time=time(12), end_time=time(17)),
    ])
    make_booking(db, business, provider, status=BookingStatus.CONFIRMED, start_time=time(10, 30), end_time=time(11, 30))
    booking = make_booking(db, business)

    result = BookingStateMachine.assign_provider(db, booking.id, provider.id, actor_for(dispatcher))

    assert result.booking.provider_id == provider.id
    assert result.warnings == ["outside_schedule", "overlapping_booking"]


def test_blocked_provider_warning(db, business, dispatcher, provider):
    booking = make_booking(db, business)
    AvailabilityService.block_interval(db, provider.id, booking.booking_date, None, "Vacation")

    result = BookingStateMachine.assign_provider(db, booking.id, provider.id, actor_for(dispatcher))

    assert result.warnings == ["provider_blocked"]


def test_second_writer_sees_actual_state(db, business, owner, provider):
    booking = make_booking(db, business, provider, status=BookingStatus.CONFIRMED)

    BookingStateMachine.transition(db, booking.id, "cancelled", actor_for(owner))
    with pytest.raises(InvalidTransition) as exc_info:
        BookingStateMachine.transition(db, booking.id, "no_show", actor_for(owner))

    assert exc_info.value.current_status == "cancelled"


def test_compare_and_set_loser_gets_current_status(db, business, provider):
    booking = make_booking(db, business, provider, status=BookingStatus.CONFIRMED)

    # Caller read "pending" but the row has already moved on
    with pytest.raises(InvalidTransition) as exc_info:
        BookingStateMachine._compare_and_set(db, booking, "pending", {"status": "confirmed"})

    assert exc_info.value.current_status == "confirmed"
    assert db.query(BookingStatusHistory).count() == 0


def test_auto_accept(db, business, provider, recorder):
    BookingPreferencesService.update_preferences(db, provider.id, {"auto_accept_bookings": True})
    booking = make_booking(db, business, provider)

    result = BookingStateMachine.apply_auto_accept(db, booking.id, on_status_change=recorder)

    assert result.status == "confirmed"
    assert recorder.calls == [(booking.id, "confirmed")]
    history = BookingStateMachine.history(db, booking.id)
    assert history[0].actor_role == "system"
    assert history[0].changed_by is None


def test_auto_accept_noop_without_preference(db, business, provider, recorder):
    booking = make_booking(db, business, provider)
    unassigned = make_booking(db, business)

    assert BookingStateMachine.apply_auto_accept(db, booking.id, on_status_change=recorder).status == "pending"
    assert BookingStateMachine.apply_auto_accept(db, unassigned.id, on_status_change=recorder).status == "pending"
    assert recorder.calls == []


def test_failing_hook_does_not_undo_transition(db, business, owner):
    booking = make_booking(db, business)

    def broken_hook(booking_id, status):
        raise RuntimeError("subscriber offline")

    result = BookingStateMachine.transition(db, booking.id, "confirmed", actor_for(owner), on_status_change=broken_hook)

    assert result.status == "confirmed"
    assert stored_status(db, booking.id) == "confirmed"
