import logging
from contextlib import nullcontext
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable, List, Optional

from barbearia.core.logs import audit
from barbearia.models.appointment import Appointment
from barbearia.models.payment import Payment
from barbearia.models.service import Service
from barbearia.models.user import User
from barbearia.scheduling.availability import (
    LOOKBACK,
    AvailabilityResolver,
    AvailabilityResult,
    find_overlap,
    interval_problem,
    provider_can_perform,
)
from barbearia.scheduling.clock import as_utc, business_tz, utcnow
from barbearia.scheduling.errors import (
    InvalidInput,
    InvalidTransition,
    NotFound,
    ProviderIncapable,
    SchedulingError,
    SlotConflict,
    SlotUnavailable,
    TransitionForbidden,
)
from barbearia.scheduling.states import (
    RESCHEDULABLE_STATUSES,
    ROLE_TARGETS,
    ActorRole,
    AppointmentStatus,
    PaymentMethod,
    PaymentStatus,
    can_transition,
)
from barbearia.scheduling.store import SchedulingStore

logger = logging.getLogger(__name__)


def _parse(enum_cls, value, what: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidInput(f"{what} inválido: {value!r}") from None


class AppointmentLifecycle:
    """Único ponto de mutação de agendamentos.

    Criação e reagendamento revalidam o conflito dentro de
    ``store.provider_lock``, mesmo que o cliente já tenha consultado a
    disponibilidade. Transições seguem ``ALLOWED_TRANSITIONS``; papel do ator
    e prazo de cancelamento chegam como parâmetros/política, nunca da sessão.
    """

    def __init__(
        self,
        store: SchedulingStore,
        availability: Optional[AvailabilityResolver] = None,
        tz: Optional[tzinfo] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.tz = tz or business_tz()
        self.clock = clock
        self.availability = availability or AvailabilityResolver(store, tz=self.tz, clock=clock)

    # =========================
    # CRIAR
    # =========================
    def create(
        self,
        client_id: int,
        barber_id: Optional[int],
        service_id: int,
        instant: datetime,
        auto_confirm: Optional[bool] = None,
        payment_method: str = PaymentMethod.LOCAL.value,
        observations: Optional[str] = None,
        final_price: Optional[float] = None,
    ) -> Appointment:
        method = _parse(PaymentMethod, payment_method, "payment_method")
        instant = as_utc(instant)

        service = self.store.get_service(service_id)
        if service is None or not service.active:
            raise NotFound(f"Serviço {service_id} não encontrado ou inativo")

        if barber_id is not None:
            provider = self.store.get_provider(barber_id)
            if provider is None:
                raise NotFound(f"Barbeiro {barber_id} não encontrado")
            if not provider_can_perform(service, barber_id):
                raise ProviderIncapable(f"Barbeiro {barber_id} não realiza o serviço {service.name}")
            providers = [provider]
        else:
            providers = [p for p in self.store.list_providers() if provider_can_perform(service, p.id)]
            if not providers:
                raise ProviderIncapable(f"Nenhum barbeiro realiza o serviço {service.name}")

        if instant < self.clock():
            raise SlotUnavailable("Não é possível agendar no passado")

        errors: List[SchedulingError] = []
        for provider in providers:
            try:
                return self._book(
                    provider,
                    client_id,
                    service,
                    instant,
                    auto_confirm,
                    method,
                    observations,
                    final_price,
                )
            except (SlotConflict, SlotUnavailable) as exc:
                errors.append(exc)

        if len(providers) == 1:
            raise errors[0]
        # agenda do primeiro barbeiro apto, para o cliente escolher outro horário
        raise SlotConflict("Nenhum barbeiro livre nesse horário", availability=errors[0].availability)

    def _book(
        self,
        provider: User,
        client_id: int,
        service: Service,
        instant: datetime,
        auto_confirm: Optional[bool],
        method: PaymentMethod,
        observations: Optional[str],
        final_price: Optional[float],
    ) -> Appointment:
        end = instant + timedelta(minutes=service.duration_minutes)
        if auto_confirm is None:
            auto_confirm = self.store.get_provider_policy(provider.id).auto_confirm
        status = AppointmentStatus.CONFIRMED if auto_confirm else AppointmentStatus.PENDING

        try:
            with self.store.provider_lock(provider.id):
                self._check_interval(provider.id, instant, end)
                now = self.clock()
                appt = self.store.insert_appointment(
                    Appointment(
                        client_id=client_id,
                        barber_id=provider.id,
                        service_id=service.id,
                        appointment_time=instant,
                        service_name_snapshot=service.name,
                        service_price_snapshot=service.price,
                        service_duration_snapshot=service.duration_minutes,
                        status=status.value,
                        payment_method=method.value,
                        final_price=final_price,
                        observations=observations,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except (SlotConflict, SlotUnavailable) as exc:
            exc.availability = self._current_availability(provider.id, service.id, instant)
            raise

        logger.info("Agendamento %s criado (barber=%s, %s)", appt.id, provider.id, instant.isoformat())
        audit(
            "APPOINTMENT_CREATED",
            appointment_id=appt.id,
            client_id=client_id,
            barber_id=provider.id,
            service_id=service.id,
            appointment_time=instant.isoformat(),
            status=status.value,
        )
        return appt

    def _check_interval(
        self, barber_id: int, start: datetime, end: datetime, exclude_id: Optional[int] = None
    ) -> None:
        day = start.astimezone(self.tz).date()
        hours = self.store.get_working_hours(barber_id, day.weekday())
        holidays = {h.day for h in self.store.list_holidays(barber_id, day)}
        blocks = self.store.list_time_blocks(barber_id, start, end)

        problem = interval_problem(start, end, hours, self.tz, blocks, holidays)
        if problem is not None:
            raise SlotUnavailable(f"Horário indisponível ({problem})")

        existing = self.store.list_appointments(
            barber_id,
            start - LOOKBACK,
            end,
            exclude_status=[AppointmentStatus.CANCELLED.value],
        )
        clash = find_overlap(start, end, existing, exclude_id=exclude_id)
        if clash is not None:
            raise SlotConflict(f"Horário conflita com o agendamento {clash.id}")

    def _current_availability(self, barber_id: int, service_id: int, instant: datetime) -> AvailabilityResult:
        day: date = instant.astimezone(self.tz).date()
        return self.availability.resolve(barber_id, service_id, day)

    # =========================
    # TRANSIÇÕES DE STATUS
    # =========================
    def get(self, appointment_id: int) -> Appointment:
        appt = self.store.get_appointment(appointment_id)
        if appt is None:
            raise NotFound(f"Agendamento {appointment_id} não encontrado")
        return appt

    def _lock_for(self, appt: Appointment):
        if appt.barber_id is None:
            return nullcontext()
        return self.store.provider_lock(appt.barber_id)

    @staticmethod
    def _check_ownership(appt: Appointment, role: ActorRole, actor_id: Optional[int]) -> None:
        if actor_id is None:
            return
        if role == ActorRole.CLIENT and appt.client_id != actor_id:
            raise TransitionForbidden("Agendamento pertence a outro cliente")
        if role == ActorRole.BARBER and appt.barber_id != actor_id:
            raise TransitionForbidden("Agendamento pertence à agenda de outro barbeiro")

    def _within_cutoff(self, appt: Appointment, rescheduling: bool = False) -> bool:
        if appt.barber_id is None:
            return False
        policy = self.store.get_provider_policy(appt.barber_id)
        cutoff = policy.reschedule_cutoff_minutes if rescheduling else policy.cancellation_cutoff_minutes
        if cutoff <= 0:
            return False
        return as_utc(appt.appointment_time) - self.clock() < timedelta(minutes=cutoff)

    def transition(
        self,
        appointment_id: int,
        target_status: str,
        actor_role: str,
        actor_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Appointment:
        target = _parse(AppointmentStatus, target_status, "status")
        role = _parse(ActorRole, actor_role, "papel")

        appt = self.get(appointment_id)
        self._check_ownership(appt, role, actor_id)

        with self._lock_for(appt):
            appt = self.get(appointment_id)
            current = AppointmentStatus(appt.status)

            if target not in ROLE_TARGETS[role]:
                raise TransitionForbidden(f"Papel {role.value} não pode mudar status para {target.value}")

            # repetir o status atual não altera nada, inclusive em estado terminal
            if current == target:
                return appt

            if not can_transition(current, target):
                raise InvalidTransition(f"Transição {current.value} -> {target.value} não permitida")

            if (
                target == AppointmentStatus.CANCELLED
                and current == AppointmentStatus.CONFIRMED
                and role != ActorRole.ADMIN
                and self._within_cutoff(appt)
            ):
                raise TransitionForbidden("Prazo para cancelamento encerrado")

            now = self.clock()
            changes = {}
            if target == AppointmentStatus.CANCELLED:
                changes.update(cancelled_at=now, cancelled_by=role.value, cancel_reason=reason or "Cancelado")
            elif target == AppointmentStatus.COMPLETED:
                changes.update(completed_at=now)

            appt = self.store.update_appointment_status(appointment_id, target.value, now, **changes)

        logger.info("Agendamento %s: %s -> %s (%s)", appointment_id, current.value, target.value, role.value)
        audit(
            "APPOINTMENT_STATUS_CHANGED",
            appointment_id=appointment_id,
            from_status=current.value,
            to_status=target.value,
            actor_role=role.value,
            actor_id=actor_id,
        )
        return appt

    # =========================
    # REAGENDAR
    # =========================
    def reschedule(
        self,
        appointment_id: int,
        new_instant: datetime,
        actor_role: str = ActorRole.ADMIN.value,
        actor_id: Optional[int] = None,
    ) -> Appointment:
        role = _parse(ActorRole, actor_role, "papel")
        new_instant = as_utc(new_instant)

        appt = self.get(appointment_id)
        self._check_ownership(appt, role, actor_id)

        if new_instant < self.clock():
            raise SlotUnavailable("Não é possível reagendar para o passado")

        old_instant = as_utc(appt.appointment_time)
        end = new_instant + timedelta(minutes=appt.service_duration_snapshot)
        try:
            with self._lock_for(appt):
                appt = self.get(appointment_id)
                if AppointmentStatus(appt.status) not in RESCHEDULABLE_STATUSES:
                    raise InvalidTransition(f"Não é possível reagendar no status {appt.status}")
                if role != ActorRole.ADMIN and self._within_cutoff(appt, rescheduling=True):
                    raise TransitionForbidden("Prazo para reagendamento encerrado")
                if appt.barber_id is not None:
                    self._check_interval(appt.barber_id, new_instant, end, exclude_id=appt.id)
                appt = self.store.update_appointment_instant(appointment_id, new_instant, self.clock())
        except (SlotConflict, SlotUnavailable) as exc:
            exc.availability = self._current_availability(appt.barber_id, appt.service_id, new_instant)
            raise

        logger.info("Agendamento %s reagendado para %s", appointment_id, new_instant.isoformat())
        audit(
            "APPOINTMENT_RESCHEDULED",
            appointment_id=appointment_id,
            from_time=old_instant.isoformat(),
            to_time=new_instant.isoformat(),
            actor_role=role.value,
        )
        return appt

    # =========================
    # PAGAMENTO
    # =========================
    def record_payment(
        self,
        appointment_id: int,
        method: str,
        status: str = PaymentStatus.PAID.value,
        amount: Optional[float] = None,
    ) -> Appointment:
        payment_method = _parse(PaymentMethod, method, "payment_method")
        payment_status = _parse(PaymentStatus, status, "payment_status")

        appt = self.get(appointment_id)
        with self._lock_for(appt):
            appt = self.get(appointment_id)
            if appt.status == AppointmentStatus.CANCELLED.value and payment_status == PaymentStatus.PAID:
                raise InvalidTransition("Agendamento cancelado não pode receber pagamento")

            now = self.clock()
            if amount is None:
                amount = appt.final_price if appt.final_price is not None else appt.service_price_snapshot
            payment = Payment(
                appointment_id=appointment_id,
                method=payment_method.value,
                amount=amount,
                status=payment_status.value,
                created_at=now,
                paid_at=now if payment_status == PaymentStatus.PAID else None,
            )
            appt = self.store.record_payment(appointment_id, payment, now)

        audit(
            "PAYMENT_RECORDED",
            appointment_id=appointment_id,
            method=payment_method.value,
            status=payment_status.value,
            amount=amount,
        )
        return appt

    def list_for(self, client_id: Optional[int] = None, barber_id: Optional[int] = None) -> List[Appointment]:
        return self.store.find_appointments(client_id=client_id, barber_id=barber_id)
