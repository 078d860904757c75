from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


class Appointment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    client_id: int = Field(foreign_key="user.id", index=True)
    # None = "qualquer barbeiro" (o agendador sempre atribui um)
    barber_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
    service_id: int = Field(foreign_key="service.id", index=True)

    # sempre UTC, gravado sem tzinfo
    appointment_time: datetime = Field(sa_type=DateTime(timezone=False), index=True)

    # SNAPSHOT DO SERVIÇO
    service_name_snapshot: str
    service_price_snapshot: float
    service_duration_snapshot: int

    # STATUS DO AGENDAMENTO
    status: str = Field(default="pending", index=True)
    # pending | confirmed | in_progress | completed | cancelled

    # PAGAMENTO
    payment_method: str = Field(default="local")
    # advance | local | cash | card | pix
    payment_status: Optional[str] = Field(default=None, index=True)
    # None (sem registro) | paid | pending | failed | refunded

    final_price: Optional[float] = None
    observations: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime(timezone=False), index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime(timezone=False))

    cancelled_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=False), index=True)
    cancelled_by: Optional[str] = None
    cancel_reason: Optional[str] = None
    completed_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=False))


class AppointmentCreate(SQLModel):
    service_id: int
    barber_id: Optional[int] = None
    # sem fuso = horário civil da barbearia
    appointment_time: datetime
    payment_method: str = "local"
    observations: Optional[str] = None


class AppointmentStatusUpdate(SQLModel):
    status: str
    reason: Optional[str] = None


class AppointmentReschedule(SQLModel):
    appointment_time: datetime


class AppointmentRead(SQLModel):
    id: int
    client_id: int
    barber_id: Optional[int]
    service_id: int
    appointment_time: datetime
    service_name_snapshot: str
    service_price_snapshot: float
    service_duration_snapshot: int
    status: str
    payment_method: str
    payment_status: Optional[str]
    final_price: Optional[float]
    observations: Optional[str]
    created_at: datetime
    updated_at: datetime
    cancelled_at: Optional[datetime]
    cancelled_by: Optional[str]
    cancel_reason: Optional[str]
    completed_at: Optional[datetime]

    # derivados (PaymentStateResolver)
    payment_state: str
    payment_state_label: str
