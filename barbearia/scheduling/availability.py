import logging
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Callable, Collection, Iterable, List, Optional

from sqlmodel import SQLModel

from barbearia.core import config
from barbearia.models.appointment import Appointment
from barbearia.models.business_hours import BusinessHours
from barbearia.models.service import Service
from barbearia.models.time_block import TimeBlock
from barbearia.scheduling import time_grid
from barbearia.scheduling.clock import as_utc, business_tz, civil_day_bounds, civil_to_utc, overlaps, utcnow
from barbearia.scheduling.errors import DataSourceUnavailable, InvalidInput
from barbearia.scheduling.states import AppointmentStatus
from barbearia.scheduling.store import SchedulingStore

logger = logging.getLogger(__name__)

# nenhum serviço dura mais que isso; janela extra ao buscar agendamentos
# que começaram antes do intervalo consultado
LOOKBACK = timedelta(hours=24)

FALLBACK_LABEL = "Verificar disponibilidade"
OCCUPIED_LABEL = "Ocupado"

# motivos para lista vazia
REASON_SERVICE_UNAVAILABLE = "service_unavailable"
REASON_PROVIDER_INCAPABLE = "provider_incapable"
REASON_CLOSED = "closed"
REASON_HOLIDAY = "holiday"

# motivos de bloqueio de um slot
BLOCK_BREAK = "break"
BLOCK_INSUFFICIENT_TIME = "insufficient_time"


class TimeSlot(SQLModel):
    time: str  # HH:MM no fuso civil
    date: date
    instant: datetime  # UTC
    available: bool
    appointment_id: Optional[int] = None
    blocked: bool = False
    block_reason: Optional[str] = None
    verified: bool = True
    label: Optional[str] = None


class AvailabilityResult(SQLModel):
    barber_id: int
    service_id: int
    day: date
    duration_minutes: Optional[int] = None
    slot_minutes: Optional[int] = None
    degraded: bool = False
    reason: Optional[str] = None
    slots: List[TimeSlot] = []


def provider_can_perform(service: Service, barber_id: int) -> bool:
    return service.active and (service.barber_id is None or service.barber_id == barber_id)


def find_overlap(
    start: datetime,
    end: datetime,
    appointments: Iterable[Appointment],
    exclude_id: Optional[int] = None,
) -> Optional[Appointment]:
    """Primeiro agendamento não cancelado cujo intervalo cruza [start, end)."""
    for appt in appointments:
        if exclude_id is not None and appt.id == exclude_id:
            continue
        if appt.status == AppointmentStatus.CANCELLED.value:
            continue
        appt_start = as_utc(appt.appointment_time)
        appt_end = appt_start + timedelta(minutes=appt.service_duration_snapshot)
        if overlaps(appt_start, appt_end, start, end):
            return appt
    return None


def interval_problem(
    start: datetime,
    end: datetime,
    hours: Optional[BusinessHours],
    tz: tzinfo,
    blocks: Iterable[TimeBlock] = (),
    holidays: Collection[date] = (),
) -> Optional[str]:
    """Motivo pelo qual [start, end) não cabe na agenda do dia, ou None."""
    day = start.astimezone(tz).date()
    if day in holidays:
        return REASON_HOLIDAY
    if hours is None or hours.is_closed or not hours.open_time or not hours.close_time:
        return REASON_CLOSED

    day_open = civil_to_utc(day, hours.open_time, tz)
    day_close = civil_to_utc(day, hours.close_time, tz)
    if start < day_open or end > day_close:
        return BLOCK_INSUFFICIENT_TIME

    if hours.break_start and hours.break_end:
        if overlaps(start, end, civil_to_utc(day, hours.break_start, tz), civil_to_utc(day, hours.break_end, tz)):
            return BLOCK_BREAK

    for block in blocks:
        if overlaps(start, end, as_utc(block.start_time), as_utc(block.end_time)):
            return block.reason
    return None


class AvailabilityResolver:
    """Horários livres/ocupados de um (barbeiro, serviço, dia).

    Se a leitura do banco falhar, devolve a grade de contingência (slots
    fixos, todos "disponíveis" e marcados ``verified=False``) em vez de
    propagar o erro. Quem agendar a partir dela passa pela revalidação do
    ``AppointmentLifecycle.create``.
    """

    def __init__(
        self,
        store: SchedulingStore,
        slot_minutes: Optional[int] = None,
        tz: Optional[tzinfo] = None,
        clock: Callable[[], datetime] = utcnow,
        fallback_enabled: Optional[bool] = None,
        window_start: Optional[time] = None,
        window_end: Optional[time] = None,
    ):
        self.store = store
        self.slot_minutes = slot_minutes if slot_minutes is not None else config.SLOT_MINUTES
        self.tz = tz or business_tz()
        self.clock = clock
        self.fallback_enabled = (
            fallback_enabled if fallback_enabled is not None else config.AVAILABILITY_FALLBACK_ENABLED
        )
        self.window_start = window_start or config.DISPLAY_WINDOW_START
        self.window_end = window_end or config.DISPLAY_WINDOW_END

    def resolve(self, barber_id: int, service_id: int, day: date) -> AvailabilityResult:
        if barber_id is None or service_id is None or day is None:
            raise InvalidInput("barber_id, service_id e day são obrigatórios")
        if self.slot_minutes <= 0:
            raise InvalidInput(f"slot_minutes deve ser positivo (recebido {self.slot_minutes})")

        try:
            return self._resolve(barber_id, service_id, day)
        except DataSourceUnavailable as exc:
            if not self.fallback_enabled:
                raise
            logger.warning(
                "Falha ao ler disponibilidade (barber=%s service=%s day=%s): %s; usando grade de contingência",
                barber_id,
                service_id,
                day,
                exc,
            )
            return self.fallback(barber_id, service_id, day)

    def _resolve(self, barber_id: int, service_id: int, day: date) -> AvailabilityResult:
        result = AvailabilityResult(barber_id=barber_id, service_id=service_id, day=day)

        service = self.store.get_service(service_id)
        if service is None or not service.active:
            result.reason = REASON_SERVICE_UNAVAILABLE
            return result

        if self.store.get_provider(barber_id) is None or not provider_can_perform(service, barber_id):
            result.reason = REASON_PROVIDER_INCAPABLE
            return result

        result.duration_minutes = service.duration_minutes
        result.slot_minutes = self.slot_minutes

        if self.store.list_holidays(barber_id, day):
            result.reason = REASON_HOLIDAY
            return result

        hours = self.store.get_working_hours(barber_id, day.weekday())
        if hours is None or hours.is_closed:
            result.reason = REASON_CLOSED
            return result

        candidates = time_grid.generate(day, hours, self.slot_minutes, self.tz, now=self.clock())
        if not candidates:
            return result

        day_start, day_end = civil_day_bounds(day, self.tz)
        appointments = self.store.list_appointments(
            barber_id,
            day_start - LOOKBACK,
            day_end,
            exclude_status=[AppointmentStatus.CANCELLED.value],
        )
        blocks = self.store.list_time_blocks(barber_id, day_start, day_end)

        duration = timedelta(minutes=service.duration_minutes)
        seen = set()
        for start in candidates:
            if start in seen:
                continue
            seen.add(start)
            slot = self._build_slot(start, start + duration, hours, appointments, blocks)
            if self._in_window(slot):
                result.slots.append(slot)

        return result

    def _build_slot(
        self,
        start: datetime,
        end: datetime,
        hours: BusinessHours,
        appointments: List[Appointment],
        blocks: List[TimeBlock],
    ) -> TimeSlot:
        civil = start.astimezone(self.tz)
        slot = TimeSlot(time=civil.strftime("%H:%M"), date=civil.date(), instant=start, available=True)

        occupying = find_overlap(start, end, appointments)
        if occupying is not None:
            slot.available = False
            slot.appointment_id = occupying.id
            slot.label = OCCUPIED_LABEL
            return slot

        problem = interval_problem(start, end, hours, self.tz, blocks)
        if problem is not None:
            slot.available = False
            slot.blocked = True
            slot.block_reason = problem
        return slot

    def _in_window(self, slot: TimeSlot) -> bool:
        civil_time = slot.instant.astimezone(self.tz).time()
        return self.window_start <= civil_time < self.window_end

    def fallback(self, barber_id: int, service_id: int, day: date) -> AvailabilityResult:
        """Grade fixa (08h-18h, 30 em 30 min por padrão), toda disponível e não verificada."""
        result = AvailabilityResult(
            barber_id=barber_id,
            service_id=service_id,
            day=day,
            slot_minutes=config.FALLBACK_SLOT_MINUTES,
            degraded=True,
        )
        step = timedelta(minutes=config.FALLBACK_SLOT_MINUTES)
        current = datetime.combine(day, self.window_start, tzinfo=self.tz)
        end = datetime.combine(day, self.window_end, tzinfo=self.tz)
        while current < end:
            result.slots.append(
                TimeSlot(
                    time=current.strftime("%H:%M"),
                    date=day,
                    instant=as_utc(current),
                    available=True,
                    verified=False,
                    label=FALLBACK_LABEL,
                )
            )
            current += step
        return result
