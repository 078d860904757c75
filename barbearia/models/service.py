from typing import Optional
from sqlmodel import SQLModel, Field


class Service(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    name: str
    duration_minutes: int = Field(gt=0)
    price: float
    active: bool = True
    category: str = "geral"

    # None = qualquer barbeiro da casa executa
    barber_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)
