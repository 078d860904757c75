from typing import Optional
from datetime import date
from sqlmodel import SQLModel, Field


class Holiday(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    day: date = Field(index=True)
    name: str

    # None = barbearia inteira fechada
    barber_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)


class HolidayCreate(SQLModel):
    day: date
    name: str
    barber_id: Optional[int] = None
