import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterable, Iterator, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlmodel import Session, select

from barbearia.core import config
from barbearia.models.appointment import Appointment
from barbearia.models.barber_settings import BarberSettings
from barbearia.models.business_hours import BusinessHours
from barbearia.models.holiday import Holiday
from barbearia.models.payment import Payment
from barbearia.models.service import Service
from barbearia.models.time_block import TimeBlock
from barbearia.models.user import User
from barbearia.scheduling.clock import to_db
from barbearia.scheduling.errors import DataSourceUnavailable, NotFound
from barbearia.scheduling.store import ProviderPolicy

logger = logging.getLogger(__name__)


class SqlSchedulingStore:
    """``SchedulingStore`` sobre uma ``Session`` do SQLModel.

    ``provider_lock`` abre uma transação cuja primeira escrita é o
    incremento de ``BarberSettings.lock_version`` do barbeiro: no PostgreSQL
    isso segura o lock da linha (``SELECT ... FOR UPDATE``), no SQLite o lock
    de escrita do banco. Escritas feitas dentro do lock só são confirmadas na
    saída do bloco; fora dele cada escrita faz commit na hora.
    """

    def __init__(self, session: Session):
        self.session = session
        self._locked = False

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except (DBAPIError, PoolTimeoutError) as exc:
            if isinstance(exc, IntegrityError):
                raise
            self.session.rollback()
            logger.error("Falha de acesso ao banco: %s", exc)
            raise DataSourceUnavailable("Banco de dados indisponível") from exc

    def _commit_unless_locked(self) -> None:
        if self._locked:
            self.session.flush()
        else:
            self.session.commit()

    # =========================
    # LEITURAS
    # =========================
    def get_service(self, service_id: int) -> Optional[Service]:
        with self._guard():
            return self.session.get(Service, service_id)

    def get_provider(self, barber_id: int) -> Optional[User]:
        with self._guard():
            user = self.session.get(User, barber_id)
        if user is None or user.role != "barber":
            return None
        return user

    def list_providers(self) -> List[User]:
        with self._guard():
            return list(self.session.exec(select(User).where(User.role == "barber").order_by(User.id)).all())

    def get_working_hours(self, barber_id: int, weekday: int) -> Optional[BusinessHours]:
        with self._guard():
            return self.session.exec(
                select(BusinessHours).where(
                    BusinessHours.barber_id == barber_id,
                    BusinessHours.weekday == weekday,
                )
            ).first()

    def list_holidays(self, barber_id: int, day: date) -> List[Holiday]:
        with self._guard():
            return list(
                self.session.exec(
                    select(Holiday).where(
                        Holiday.day == day,
                        or_(Holiday.barber_id == None, Holiday.barber_id == barber_id),  # noqa: E711
                    )
                ).all()
            )

    def list_time_blocks(self, barber_id: int, start: datetime, end: datetime) -> List[TimeBlock]:
        with self._guard():
            return list(
                self.session.exec(
                    select(TimeBlock).where(
                        TimeBlock.barber_id == barber_id,
                        TimeBlock.start_time < to_db(end),
                        TimeBlock.end_time > to_db(start),
                    )
                ).all()
            )

    def list_appointments(
        self,
        barber_id: int,
        start: datetime,
        end: datetime,
        exclude_status: Iterable[str] = (),
    ) -> List[Appointment]:
        query = select(Appointment).where(
            Appointment.barber_id == barber_id,
            Appointment.appointment_time >= to_db(start),
            Appointment.appointment_time < to_db(end),
        )
        excluded = list(exclude_status)
        if excluded:
            query = query.where(Appointment.status.not_in(excluded))
        with self._guard():
            return list(self.session.exec(query.order_by(Appointment.appointment_time)).all())

    def find_appointments(
        self, client_id: Optional[int] = None, barber_id: Optional[int] = None
    ) -> List[Appointment]:
        query = select(Appointment)
        if client_id is not None:
            query = query.where(Appointment.client_id == client_id)
        if barber_id is not None:
            query = query.where(Appointment.barber_id == barber_id)
        with self._guard():
            return list(self.session.exec(query.order_by(Appointment.appointment_time)).all())

    def get_appointment(self, appointment_id: int) -> Optional[Appointment]:
        with self._guard():
            return self.session.get(Appointment, appointment_id, populate_existing=True)

    def get_provider_policy(self, barber_id: int) -> ProviderPolicy:
        with self._guard():
            settings = self.session.get(BarberSettings, barber_id)
        if settings is None:
            return ProviderPolicy(
                auto_confirm=config.DEFAULT_AUTO_CONFIRM,
                cancellation_cutoff_minutes=config.DEFAULT_CANCELLATION_CUTOFF_MINUTES,
                reschedule_cutoff_minutes=config.DEFAULT_RESCHEDULE_CUTOFF_MINUTES,
            )
        return ProviderPolicy(
            auto_confirm=settings.auto_confirm,
            cancellation_cutoff_minutes=settings.cancellation_cutoff_minutes,
            reschedule_cutoff_minutes=settings.reschedule_cutoff_minutes,
        )

    # =========================
    # ESCRITAS
    # =========================
    def _require_appointment(self, appointment_id: int) -> Appointment:
        appt = self.get_appointment(appointment_id)
        if appt is None:
            raise NotFound(f"Agendamento {appointment_id} não encontrado")
        return appt

    def insert_appointment(self, appointment: Appointment) -> Appointment:
        appointment.appointment_time = to_db(appointment.appointment_time)
        appointment.created_at = to_db(appointment.created_at)
        appointment.updated_at = to_db(appointment.updated_at)
        with self._guard():
            self.session.add(appointment)
            self._commit_unless_locked()
        return appointment

    def update_appointment_status(
        self, appointment_id: int, status: str, updated_at: datetime, **changes
    ) -> Appointment:
        appt = self._require_appointment(appointment_id)
        appt.status = status
        appt.updated_at = to_db(updated_at)
        for field, value in changes.items():
            if isinstance(value, datetime):
                value = to_db(value)
            setattr(appt, field, value)
        with self._guard():
            self.session.add(appt)
            self._commit_unless_locked()
        return appt

    def update_appointment_instant(
        self, appointment_id: int, instant: datetime, updated_at: datetime
    ) -> Appointment:
        appt = self._require_appointment(appointment_id)
        appt.appointment_time = to_db(instant)
        appt.updated_at = to_db(updated_at)
        with self._guard():
            self.session.add(appt)
            self._commit_unless_locked()
        return appt

    def record_payment(self, appointment_id: int, payment: Payment, updated_at: datetime) -> Appointment:
        appt = self._require_appointment(appointment_id)
        payment.appointment_id = appointment_id
        payment.created_at = to_db(payment.created_at)
        if payment.paid_at is not None:
            payment.paid_at = to_db(payment.paid_at)
        appt.payment_method = payment.method
        appt.payment_status = payment.status
        appt.updated_at = to_db(updated_at)
        with self._guard():
            self.session.add(payment)
            self.session.add(appt)
            self._commit_unless_locked()
        return appt

    # =========================
    # SERIALIZAÇÃO POR BARBEIRO
    # =========================
    def _ensure_settings_row(self, barber_id: int) -> None:
        if self.session.get(BarberSettings, barber_id) is not None:
            return
        self.session.add(
            BarberSettings(
                barber_id=barber_id,
                auto_confirm=config.DEFAULT_AUTO_CONFIRM,
                cancellation_cutoff_minutes=config.DEFAULT_CANCELLATION_CUTOFF_MINUTES,
                reschedule_cutoff_minutes=config.DEFAULT_RESCHEDULE_CUTOFF_MINUTES,
            )
        )
        try:
            self.session.commit()
        except IntegrityError:
            # outra requisição criou a linha primeiro
            self.session.rollback()

    @contextmanager
    def provider_lock(self, barber_id: int) -> Iterator[None]:
        if self._locked:
            raise RuntimeError("provider_lock não é reentrante")

        with self._guard():
            self._ensure_settings_row(barber_id)
            settings = self.session.get(
                BarberSettings, barber_id, with_for_update=True, populate_existing=True
            )
            settings.lock_version += 1
            self.session.add(settings)
            self.session.flush()

        self._locked = True
        try:
            yield
            with self._guard():
                self.session.commit()
        except BaseException:
            self.session.rollback()
            raise
        finally:
            self._locked = False
