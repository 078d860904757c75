"""
Fronteira de dados da agenda.

O núcleo de agendamento só conversa com o banco através de
``SchedulingStore``. Toda implementação precisa garantir que o bloco
executado dentro de ``provider_lock(barber_id)`` seja serializado por
barbeiro: a leitura dos agendamentos existentes e a escrita do novo
agendamento formam uma unidade atômica (verifica-e-grava). Sem isso dois
``create`` concorrentes para o mesmo horário podem ambos passar.

Erros de infraestrutura (conexão, timeout) devem sair como
``DataSourceUnavailable``.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import ContextManager, Iterable, List, Optional, Protocol

from barbearia.models.appointment import Appointment
from barbearia.models.business_hours import BusinessHours
from barbearia.models.holiday import Holiday
from barbearia.models.payment import Payment
from barbearia.models.service import Service
from barbearia.models.time_block import TimeBlock
from barbearia.models.user import User


@dataclass(frozen=True)
class ProviderPolicy:
    auto_confirm: bool
    cancellation_cutoff_minutes: int
    reschedule_cutoff_minutes: int


class SchedulingStore(Protocol):
    def get_service(self, service_id: int) -> Optional[Service]: ...

    def get_provider(self, barber_id: int) -> Optional[User]: ...

    def list_providers(self) -> List[User]: ...

    def get_working_hours(self, barber_id: int, weekday: int) -> Optional[BusinessHours]: ...

    def list_holidays(self, barber_id: int, day: date) -> List[Holiday]: ...

    def list_time_blocks(self, barber_id: int, start: datetime, end: datetime) -> List[TimeBlock]: ...

    def list_appointments(
        self,
        barber_id: int,
        start: datetime,
        end: datetime,
        exclude_status: Iterable[str] = (),
    ) -> List[Appointment]: ...

    def find_appointments(
        self, client_id: Optional[int] = None, barber_id: Optional[int] = None
    ) -> List[Appointment]: ...

    def get_appointment(self, appointment_id: int) -> Optional[Appointment]: ...

    def insert_appointment(self, appointment: Appointment) -> Appointment: ...

    def update_appointment_status(
        self, appointment_id: int, status: str, updated_at: datetime, **changes
    ) -> Appointment: ...

    def update_appointment_instant(
        self, appointment_id: int, instant: datetime, updated_at: datetime
    ) -> Appointment: ...

    def record_payment(self, appointment_id: int, payment: Payment, updated_at: datetime) -> Appointment: ...

    def get_provider_policy(self, barber_id: int) -> ProviderPolicy: ...

    def provider_lock(self, barber_id: int) -> ContextManager[None]: ...
