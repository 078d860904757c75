import threading
from datetime import timedelta

import pytest

from barbearia.models.holiday import Holiday
from barbearia.scheduling.errors import (
    InvalidInput,
    InvalidTransition,
    NotFound,
    ProviderIncapable,
    SlotConflict,
    SlotUnavailable,
    TransitionForbidden,
)
from barbearia.scheduling.lifecycle import AppointmentLifecycle
from barbearia.scheduling.store import ProviderPolicy

from fakes import NOW, TODAY, TOMORROW, TZ, civil, fixed_clock, make_store


@pytest.fixture
def store():
    return make_store()


@pytest.fixture
def lifecycle(store):
    return AppointmentLifecycle(store, tz=TZ, clock=fixed_clock)


def test_create_snapshots_service_and_starts_pending(lifecycle, store):
    appt = lifecycle.create(10, 1, 2, civil(TOMORROW, 10, 0), observations="degradê")

    assert appt.id is not None
    assert appt.status == "pending"
    assert appt.service_name_snapshot == "Serviço 2"
    assert appt.service_duration_snapshot == 60
    assert appt.service_price_snapshot == 65.0
    assert appt.payment_method == "local"
    assert appt.payment_status is None
    assert store.appointments[appt.id] is appt


def test_create_honours_auto_confirm(lifecycle, store):
    store.policies[1] = ProviderPolicy(auto_confirm=True, cancellation_cutoff_minutes=120, reschedule_cutoff_minutes=720)

    assert lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0)).status == "confirmed"
    assert lifecycle.create(10, 1, 1, civil(TOMORROW, 11, 0), auto_confirm=False).status == "pending"


def test_overlapping_booking_is_rejected_with_current_availability(lifecycle):
    lifecycle.create(10, 1, 2, civil(TOMORROW, 10, 0))

    with pytest.raises(SlotConflict) as excinfo:
        lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 30))

    availability = excinfo.value.availability
    assert availability is not None
    assert excinfo.value.retryable
    free = {slot.time for slot in availability.slots if slot.available}
    assert "10:30" not in free
    assert "11:00" in free


def test_adjacent_bookings_are_allowed(lifecycle):
    lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))
    second = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 30))

    assert second.id is not None


def test_cancelled_booking_releases_the_slot(lifecycle):
    first = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))
    lifecycle.transition(first.id, "cancelled", "client", actor_id=10)

    again = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))

    assert again.id != first.id


@pytest.mark.parametrize(
    "instant",
    [
        civil(TODAY, 8, 0),  # passado
        civil(TOMORROW, 17, 45),  # passa do fechamento
        civil(TOMORROW, 7, 30),  # antes de abrir
    ],
)
def test_unbookable_instants(lifecycle, instant):
    with pytest.raises(SlotUnavailable):
        lifecycle.create(10, 1, 1, instant)


def test_holiday_is_unavailable(lifecycle, store):
    store.holidays.append(Holiday(day=TOMORROW, name="Carnaval", barber_id=1))

    with pytest.raises(SlotUnavailable):
        lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))


def test_provider_must_offer_the_service(lifecycle, store):
    store.add_user(2, "barber")
    store.add_service(3, barber_id=2)

    with pytest.raises(ProviderIncapable):
        lifecycle.create(10, 1, 3, civil(TOMORROW, 10, 0))


def test_unknown_service_and_provider(lifecycle):
    with pytest.raises(NotFound):
        lifecycle.create(10, 1, 99, civil(TOMORROW, 10, 0))
    with pytest.raises(NotFound):
        lifecycle.create(10, 99, 1, civil(TOMORROW, 10, 0))


def test_invalid_payment_method(lifecycle):
    with pytest.raises(InvalidInput):
        lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0), payment_method="cheque")


def test_any_barber_picks_the_first_free_one(lifecycle, store):
    store.add_user(2, "barber")
    for weekday in range(6):
        store.set_hours(2, weekday)
    lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))

    appt = lifecycle.create(11, None, 1, civil(TOMORROW, 10, 0))

    assert appt.barber_id == 2


def test_any_barber_when_everyone_is_busy(lifecycle, store):
    store.add_user(2, "barber")
    lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))

    # barbeiro 2 sem horário configurado
    with pytest.raises(SlotConflict) as excinfo:
        lifecycle.create(11, None, 1, civil(TOMORROW, 10, 0))

    availability = excinfo.value.availability
    assert availability is not None
    assert availability.barber_id == 1
    assert "10:30" in {slot.time for slot in availability.slots if slot.available}


def test_concurrent_bookings_for_the_same_slot(store):
    lifecycle = AppointmentLifecycle(store, tz=TZ, clock=fixed_clock)
    barrier = threading.Barrier(8)
    outcomes = []

    def attempt(client_id):
        barrier.wait()
        try:
            lifecycle.create(client_id, 1, 1, civil(TOMORROW, 14, 0))
            outcomes.append("ok")
        except SlotConflict:
            outcomes.append("conflict")

    threads = [threading.Thread(target=attempt, args=(100 + i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("conflict") == 7
    assert len(store.appointments) == 1


# =========================
# TRANSIÇÕES
# =========================
def test_happy_path_to_completed(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))

    for target in ("confirmed", "in_progress", "completed"):
        appt = lifecycle.transition(appt.id, target, "barber", actor_id=1)

    assert appt.status == "completed"
    assert appt.completed_at is not None


@pytest.mark.parametrize("terminal", ["completed", "cancelled"])
def test_terminal_states_are_absorbing(lifecycle, terminal):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))
    if terminal == "completed":
        for target in ("confirmed", "in_progress", "completed"):
            lifecycle.transition(appt.id, target, "admin")
    else:
        lifecycle.transition(appt.id, "cancelled", "admin")

    for target in ("pending", "confirmed", "in_progress", "completed", "cancelled"):
        if target == terminal:
            continue
        with pytest.raises(InvalidTransition):
            lifecycle.transition(appt.id, target, "admin")


def test_skipping_states_is_invalid(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))

    with pytest.raises(InvalidTransition):
        lifecycle.transition(appt.id, "completed", "barber", actor_id=1)
    with pytest.raises(InvalidTransition):
        lifecycle.transition(appt.id, "in_progress", "barber", actor_id=1)


def test_same_status_is_a_no_op(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))
    updated_at = appt.updated_at

    same = lifecycle.transition(appt.id, "pending", "barber", actor_id=1)

    assert same.status == "pending"
    assert same.updated_at == updated_at


def test_same_status_still_checks_the_role(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))

    with pytest.raises(TransitionForbidden):
        lifecycle.transition(appt.id, "pending", "client", actor_id=10)


@pytest.mark.parametrize("terminal", ["completed", "cancelled"])
def test_repeating_a_terminal_status_changes_nothing(lifecycle, terminal):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))
    targets = ("confirmed", "in_progress", "completed") if terminal == "completed" else ("cancelled",)
    for target in targets:
        appt = lifecycle.transition(appt.id, target, "admin")
    updated_at = appt.updated_at

    same = lifecycle.transition(appt.id, terminal, "admin")

    assert same.status == terminal
    assert same.updated_at == updated_at


def test_cancel_records_who_and_why(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))

    cancelled = lifecycle.transition(appt.id, "cancelled", "client", actor_id=10, reason="imprevisto")

    assert cancelled.cancelled_by == "client"
    assert cancelled.cancel_reason == "imprevisto"
    assert cancelled.cancelled_at == NOW


def test_client_can_only_cancel_own_appointments(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))

    with pytest.raises(TransitionForbidden):
        lifecycle.transition(appt.id, "confirmed", "client", actor_id=10)
    with pytest.raises(TransitionForbidden):
        lifecycle.transition(appt.id, "cancelled", "client", actor_id=11)


def test_barber_cannot_touch_another_agenda(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))

    with pytest.raises(TransitionForbidden):
        lifecycle.transition(appt.id, "confirmed", "barber", actor_id=2)


def test_unknown_status_or_role(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))

    with pytest.raises(InvalidInput):
        lifecycle.transition(appt.id, "done", "barber")
    with pytest.raises(InvalidInput):
        lifecycle.transition(appt.id, "cancelled", "guest")


def test_cancellation_cutoff_applies_to_confirmed_bookings(lifecycle):
    # 1h à frente, prazo padrão de 120 min
    appt = lifecycle.create(10, 1, 1, civil(TODAY, 10, 0))
    lifecycle.transition(appt.id, "confirmed", "barber", actor_id=1)

    with pytest.raises(TransitionForbidden):
        lifecycle.transition(appt.id, "cancelled", "client", actor_id=10)

    cancelled = lifecycle.transition(appt.id, "cancelled", "admin")
    assert cancelled.status == "cancelled"


def test_cutoff_does_not_apply_to_pending_bookings(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TODAY, 10, 0))

    assert lifecycle.transition(appt.id, "cancelled", "client", actor_id=10).status == "cancelled"


def test_zero_cutoff_disables_the_rule(lifecycle, store):
    store.policies[1] = ProviderPolicy(auto_confirm=True, cancellation_cutoff_minutes=0, reschedule_cutoff_minutes=720)
    appt = lifecycle.create(10, 1, 1, civil(TODAY, 9, 30))

    assert lifecycle.transition(appt.id, "cancelled", "client", actor_id=10).status == "cancelled"


# =========================
# REAGENDAMENTO
# =========================
def test_reschedule_to_a_free_slot(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))

    moved = lifecycle.reschedule(appt.id, civil(TOMORROW, 15, 0))

    assert moved.appointment_time == civil(TOMORROW, 15, 0)


def test_reschedule_may_overlap_its_own_old_interval(lifecycle):
    appt = lifecycle.create(10, 1, 2, civil(TOMORROW, 10, 0))

    moved = lifecycle.reschedule(appt.id, civil(TOMORROW, 10, 30), "client", actor_id=10)

    assert moved.appointment_time == civil(TOMORROW, 10, 30)


def test_reschedule_onto_another_booking(lifecycle):
    lifecycle.create(10, 1, 1, civil(TOMORROW, 15, 0))
    appt = lifecycle.create(11, 1, 1, civil(TOMORROW, 10, 0))

    with pytest.raises(SlotConflict) as excinfo:
        lifecycle.reschedule(appt.id, civil(TOMORROW, 15, 0))

    assert excinfo.value.availability is not None
    assert lifecycle.get(appt.id).appointment_time == civil(TOMORROW, 10, 0)


def test_reschedule_rejects_terminal_and_in_progress(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))
    lifecycle.transition(appt.id, "confirmed", "admin")
    lifecycle.transition(appt.id, "in_progress", "admin")

    with pytest.raises(InvalidTransition):
        lifecycle.reschedule(appt.id, civil(TOMORROW, 15, 0))


def test_reschedule_into_the_past(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))

    with pytest.raises(SlotUnavailable):
        lifecycle.reschedule(appt.id, NOW - timedelta(hours=1))


def test_client_reschedule_inside_cutoff_is_forbidden(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TODAY, 10, 0))

    with pytest.raises(TransitionForbidden):
        lifecycle.reschedule(appt.id, civil(TOMORROW, 10, 0), "client", actor_id=10)


def test_reschedule_window_is_wider_than_cancellation(lifecycle):
    # 8h à frente: fora do prazo de cancelamento (2h), dentro do de reagendamento (12h)
    appt = lifecycle.create(10, 1, 1, civil(TODAY, 17, 0))
    lifecycle.transition(appt.id, "confirmed", "barber", actor_id=1)

    with pytest.raises(TransitionForbidden):
        lifecycle.reschedule(appt.id, civil(TOMORROW, 10, 0), "client", actor_id=10)

    assert lifecycle.transition(appt.id, "cancelled", "client", actor_id=10).status == "cancelled"


def test_reschedule_cutoff_comes_from_the_barber_policy(lifecycle, store):
    store.policies[1] = ProviderPolicy(auto_confirm=False, cancellation_cutoff_minutes=120, reschedule_cutoff_minutes=60)
    appt = lifecycle.create(10, 1, 1, civil(TODAY, 17, 0))

    moved = lifecycle.reschedule(appt.id, civil(TODAY, 16, 0), "client", actor_id=10)

    assert moved.appointment_time == civil(TODAY, 16, 0)

# =========================
# PAGAMENTO
# =========================
def test_record_payment_updates_the_appointment(lifecycle, store):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))

    paid = lifecycle.record_payment(appt.id, "pix")

    assert paid.payment_status == "paid"
    assert paid.payment_method == "pix"
    assert store.payments[0].amount == 40.0
    assert store.payments[0].paid_at == NOW


def test_cancelled_appointment_cannot_be_paid(lifecycle):
    appt = lifecycle.create(10, 1, 1, civil(TOMORROW, 10, 0))
    lifecycle.transition(appt.id, "cancelled", "admin")

    with pytest.raises(InvalidTransition):
        lifecycle.record_payment(appt.id, "cash")

    refunded = lifecycle.record_payment(appt.id, "cash", status="refunded")
    assert refunded.payment_status == "refunded"
