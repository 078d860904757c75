from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Collection, List, Optional

from barbearia.models.business_hours import BusinessHours
from barbearia.scheduling.errors import InvalidInput


def generate(
    day: date,
    hours: Optional[BusinessHours],
    slot_minutes: int,
    tz: tzinfo,
    holidays: Collection[date] = (),
    now: Optional[datetime] = None,
) -> List[datetime]:
    """Horários candidatos (UTC, em ordem) para um dia civil.

    Percorre de ``open_time`` até ``close_time`` (exclusivo) em passos de
    ``slot_minutes`` no fuso civil, pulando a pausa. Dia fechado, sem
    horário configurado ou feriado devolve lista vazia. Horários anteriores
    a ``now`` são descartados.
    """
    if slot_minutes <= 0:
        raise InvalidInput(f"slot_minutes deve ser positivo (recebido {slot_minutes})")

    if hours is None or hours.is_closed or not hours.open_time or not hours.close_time:
        return []
    if day in holidays:
        return []

    step = timedelta(minutes=slot_minutes)
    current = datetime.combine(day, hours.open_time, tzinfo=tz)
    day_end = datetime.combine(day, hours.close_time, tzinfo=tz)

    break_start = break_end = None
    if hours.break_start and hours.break_end:
        break_start = datetime.combine(day, hours.break_start, tzinfo=tz)
        break_end = datetime.combine(day, hours.break_end, tzinfo=tz)

    instants: List[datetime] = []
    while current < day_end:
        in_break = break_start is not None and break_start <= current < break_end
        if not in_break:
            instant = current.astimezone(timezone.utc)
            if now is None or instant >= now:
                instants.append(instant)
        current += step

    return instants
