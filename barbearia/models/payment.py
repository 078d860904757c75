from typing import Optional
from datetime import datetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


class Payment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    appointment_id: int = Field(foreign_key="appointment.id", index=True)

    provider: str = "manual"
    method: str  # advance | local | cash | card | pix

    amount: float

    status: str = Field(default="pending", index=True)
    # pending | paid | failed | refunded

    created_at: datetime = Field(default_factory=datetime.utcnow, sa_type=DateTime(timezone=False))
    paid_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=False))


class PaymentCreate(SQLModel):
    method: str
    status: str = "paid"
    amount: Optional[float] = None
