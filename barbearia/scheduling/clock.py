from datetime import date, datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Tuple
from zoneinfo import ZoneInfo

from barbearia.core import config


@lru_cache(maxsize=None)
def get_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def business_tz() -> ZoneInfo:
    return get_zone(config.BUSINESS_TIMEZONE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Datetime "ingênuo" vindo do banco é UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_db(value: datetime) -> datetime:
    """UTC sem tzinfo, formato gravado nas colunas DateTime."""
    return as_utc(value).replace(tzinfo=None)


def civil_to_utc(day: date, at: time, tz: tzinfo) -> datetime:
    return datetime.combine(day, at, tzinfo=tz).astimezone(timezone.utc)


def civil_day_bounds(day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """[início, fim) do dia civil, em UTC."""
    start = datetime.combine(day, time(0, 0), tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Retorna True se [a_start, a_end) sobrepõe [b_start, b_end)."""
    return a_start < b_end and b_start < a_end
