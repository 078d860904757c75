from datetime import date, datetime
from typing import Any, Callable, Optional

from sqlmodel import SQLModel

from barbearia.models.appointment import Appointment, AppointmentRead
from barbearia.scheduling.availability import AvailabilityResolver, AvailabilityResult
from barbearia.scheduling.clock import as_utc, utcnow
from barbearia.scheduling.errors import SchedulingError
from barbearia.scheduling.lifecycle import AppointmentLifecycle
from barbearia.scheduling.payment_state import payment_state_label, resolve_payment_state
from barbearia.scheduling.store import SchedulingStore


class ErrorInfo(SQLModel):
    kind: str
    message: str
    retryable: bool = False
    availability: Optional[AvailabilityResult] = None


class OperationResult(SQLModel):
    ok: bool
    data: Optional[Any] = None
    error: Optional[ErrorInfo] = None


def present_appointment(appointment: Appointment) -> AppointmentRead:
    state = resolve_payment_state(appointment)
    return AppointmentRead.model_validate(
        appointment,
        update={
            "appointment_time": as_utc(appointment.appointment_time),
            "payment_state": state.value,
            "payment_state_label": payment_state_label(state),
        },
    )


class SchedulingFacade:
    """Porta de entrada da agenda para a camada HTTP.

    Não tem regra de negócio: compõe ``AvailabilityResolver`` e
    ``AppointmentLifecycle`` e converte ``SchedulingError`` em
    ``OperationResult`` com ``ErrorInfo`` tipado.
    """

    def __init__(
        self,
        store: SchedulingStore,
        availability: Optional[AvailabilityResolver] = None,
        lifecycle: Optional[AppointmentLifecycle] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.availability = availability or AvailabilityResolver(store, clock=clock)
        self.lifecycle = lifecycle or AppointmentLifecycle(store, availability=self.availability, clock=clock)

    @staticmethod
    def _run(operation: Callable[[], Any]) -> OperationResult:
        try:
            return OperationResult(ok=True, data=operation())
        except SchedulingError as exc:
            return OperationResult(
                ok=False,
                error=ErrorInfo(
                    kind=exc.kind,
                    message=exc.message,
                    retryable=exc.retryable,
                    availability=exc.availability,
                ),
            )

    def list_available_times(self, barber_id: int, service_id: int, day: date) -> OperationResult:
        return self._run(lambda: self.availability.resolve(barber_id, service_id, day))

    def book_appointment(
        self,
        client_id: int,
        service_id: int,
        instant: datetime,
        barber_id: Optional[int] = None,
        payment_method: str = "local",
        observations: Optional[str] = None,
    ) -> OperationResult:
        return self._run(
            lambda: present_appointment(
                self.lifecycle.create(
                    client_id,
                    barber_id,
                    service_id,
                    instant,
                    payment_method=payment_method,
                    observations=observations,
                )
            )
        )

    def change_appointment_status(
        self,
        appointment_id: int,
        status: str,
        actor_role: str,
        actor_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> OperationResult:
        return self._run(
            lambda: present_appointment(
                self.lifecycle.transition(appointment_id, status, actor_role, actor_id=actor_id, reason=reason)
            )
        )

    def reschedule_appointment(
        self,
        appointment_id: int,
        instant: datetime,
        actor_role: str,
        actor_id: Optional[int] = None,
    ) -> OperationResult:
        return self._run(
            lambda: present_appointment(
                self.lifecycle.reschedule(appointment_id, instant, actor_role, actor_id=actor_id)
            )
        )

    def record_payment(
        self,
        appointment_id: int,
        method: str,
        status: str = "paid",
        amount: Optional[float] = None,
    ) -> OperationResult:
        return self._run(
            lambda: present_appointment(self.lifecycle.record_payment(appointment_id, method, status, amount))
        )

    def get_appointment(self, appointment_id: int) -> OperationResult:
        return self._run(lambda: present_appointment(self.lifecycle.get(appointment_id)))

    def list_appointments(
        self, client_id: Optional[int] = None, barber_id: Optional[int] = None
    ) -> OperationResult:
        return self._run(
            lambda: [present_appointment(a) for a in self.lifecycle.list_for(client_id=client_id, barber_id=barber_id)]
        )
