from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


class TimeBlock(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    barber_id: int = Field(foreign_key="user.id", index=True)

    # UTC, gravado sem tzinfo
    start_time: datetime = Field(sa_type=DateTime(timezone=False), index=True)
    end_time: datetime = Field(sa_type=DateTime(timezone=False), index=True)

    reason: str = "Bloqueio"


class TimeBlockCreate(SQLModel):
    # sem fuso = horário civil da barbearia
    start_time: datetime
    end_time: datetime
    reason: str = "Bloqueio"
