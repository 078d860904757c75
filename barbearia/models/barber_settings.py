from typing import Optional
from sqlmodel import SQLModel, Field


class BarberSettingsBase(SQLModel):
    auto_confirm: bool = False
    cancellation_cutoff_minutes: int = Field(default=120, ge=0)
    reschedule_cutoff_minutes: int = Field(default=720, ge=0)


class BarberSettings(BarberSettingsBase, table=True):
    barber_id: int = Field(foreign_key="user.id", primary_key=True)

    # incrementado no início de toda escrita na agenda do barbeiro;
    # serializa criação/reagendamento concorrentes
    lock_version: int = 0


class BarberSettingsUpdate(BarberSettingsBase):
    pass
