"""
Janelas de tempo por academia.

Converte datas do calendário local (fuso IANA da academia) em intervalos UTC
semiabertos ``[inicio, fim)``. Todas as comparações no banco são feitas em UTC.
"""
from __future__ import annotations

import datetime as dt
import logging
import re
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.config import settings
from app.core.errors import InvalidInput

logger = logging.getLogger(__name__)

UTC = dt.timezone.utc
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")

Bounds = Tuple[dt.datetime, dt.datetime]


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Fuso %r desconhecido; usando %s", name, settings.TIMEZONE)
    return ZoneInfo(settings.TIMEZONE)


def as_utc(value: dt.datetime) -> dt.datetime:
    """Datetime sem fuso é tratado como UTC (é assim que o SQLite devolve)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def now_utc() -> dt.datetime:
    return dt.datetime.now(UTC)


def parse_local_date(value: str | dt.date, field: str) -> dt.date:
    if isinstance(value, dt.date) and not isinstance(value, dt.datetime):
        return value
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise InvalidInput(f"{field} deve estar no formato YYYY-MM-DD", field=field)
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        raise InvalidInput(f"{field} inválido", field=field)


def parse_local_time(value: str | dt.time, field: str) -> dt.time:
    if isinstance(value, dt.time):
        return value
    if not isinstance(value, str) or not _TIME_RE.match(value):
        raise InvalidInput(f"{field} deve estar no formato HH:MM", field=field)
    try:
        return dt.time.fromisoformat(value)
    except ValueError:
        raise InvalidInput(f"{field} inválido", field=field)


def local_instant(day: dt.date, at: dt.time, tz: ZoneInfo) -> dt.datetime:
    """Data + hora locais da academia -> instante UTC."""
    return dt.datetime.combine(day, at.replace(tzinfo=None), tzinfo=tz).astimezone(UTC)


def _day_bounds(day: dt.date, tz: ZoneInfo) -> Bounds:
    start = dt.datetime.combine(day, dt.time.min, tzinfo=tz)
    end = dt.datetime.combine(day + dt.timedelta(days=1), dt.time.min, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)


def day_bounds_utc(value: str | dt.date, tz: ZoneInfo, field: str = "data") -> Bounds:
    return _day_bounds(parse_local_date(value, field), tz)


def today_bounds_utc(tz: ZoneInfo, now: Optional[dt.datetime] = None) -> Bounds:
    current = as_utc(now) if now is not None else now_utc()
    return _day_bounds(current.astimezone(tz).date(), tz)


def parse_instant(value: str, tz: ZoneInfo, field: str) -> dt.datetime:
    try:
        parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        raise InvalidInput(f"Parâmetro {field} inválido", field=field)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed.astimezone(UTC)


def _bound(value: Optional[str], tz: ZoneInfo, field: str, boundary: str) -> Optional[dt.datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, str) and _DATE_RE.match(value):
        start, end = day_bounds_utc(value, tz, field)
        return start if boundary == "start" else end
    return parse_instant(value, tz, field)


def optional_bounds_utc(
    from_: Optional[str],
    to: Optional[str],
    tz: ZoneInfo,
) -> Tuple[Optional[dt.datetime], Optional[dt.datetime]]:
    start = _bound(from_, tz, "from", "start")
    end = _bound(to, tz, "to", "end")
    if start is not None and end is not None and end < start:
        raise InvalidInput("to deve ser maior ou igual a from", field="to")
    return start, end


def range_bounds_utc(
    from_: Optional[str],
    to: Optional[str],
    tz: ZoneInfo,
    now: Optional[dt.datetime] = None,
) -> Tuple[Optional[dt.datetime], Optional[dt.datetime]]:
    """Limites de um filtro ``from``/``to``; sem nenhum dos dois, vale o dia de hoje."""
    start, end = optional_bounds_utc(from_, to, tz)
    if start is None and end is None:
        return today_bounds_utc(tz, now)
    return start, end


def weekday_sunday_first(day: dt.date) -> int:
    """0=Domingo ... 6=Sábado (convenção usada em dias_semana)."""
    return day.isoweekday() % 7
