from typing import Optional
from datetime import time
from sqlmodel import SQLModel, Field


class BusinessHoursBase(SQLModel):
    is_closed: bool = False

    open_time: Optional[time] = None
    close_time: Optional[time] = None

    # opcional: pausa (almoço)
    break_start: Optional[time] = None
    break_end: Optional[time] = None

    def validation_error(self) -> Optional[str]:
        """Mensagem de erro se a configuração do dia for inválida, senão None."""
        if self.is_closed:
            return None
        if self.open_time is None or self.close_time is None:
            return "open_time e close_time são obrigatórios quando is_closed=false"
        if self.close_time <= self.open_time:
            return "close_time deve ser maior que open_time"
        if (self.break_start is None) != (self.break_end is None):
            return "break_start e break_end devem ser informados juntos"
        if self.break_start and self.break_end:
            if self.break_end <= self.break_start:
                return "break_end deve ser maior que break_start"
            if self.break_start <= self.open_time or self.break_end >= self.close_time:
                return "A pausa deve estar dentro do horário de funcionamento"
        return None


class BusinessHours(BusinessHoursBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    barber_id: int = Field(foreign_key="user.id", index=True)

    # 0=segunda ... 6=domingo
    weekday: int = Field(index=True)


class BusinessHoursUpdate(BusinessHoursBase):
    pass
