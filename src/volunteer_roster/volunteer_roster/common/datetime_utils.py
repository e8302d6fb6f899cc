from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

DateLike = Union[date, str]
TimeLike = Union[time, timedelta, str]


@dataclass(frozen=True)
class NormalizedInterval:
    """An event's [start, end) in the caller's local frame, rollover applied."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


def parse_iso_date(value: DateLike, *, field: str = "date") -> date:
    """Parse YYYY-MM-DD string into date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Data inválida: {value!r}", field=field)


def parse_wall_time(value: TimeLike, *, field: str = "time") -> time:
    """Parse a wall-clock time.

    Accepts datetime.time, 'HH:MM', 'HH:MM:SS' (seconds may carry a fraction)
    and the timedelta mysql-connector returns for TIME columns.
    """

    if isinstance(value, time):
        return value.replace(tzinfo=None)

    if isinstance(value, timedelta):
        total_seconds = int(value.total_seconds())
        if total_seconds < 0 or total_seconds >= 86400:
            raise ValidationError(f"Hora inválida: {value!r}", field=field)
        return time(total_seconds // 3600, (total_seconds % 3600) // 60, total_seconds % 60)

    if isinstance(value, str):
        text = value.strip()[:8]
        for fmt in ("%H:%M:%S", "%H:%M"):
            try:
                return datetime.strptime(text, fmt).time()
            except ValueError:
                continue

    raise ValidationError(f"Hora inválida: {value!r}", field=field)


def get_zone(name: Optional[str]) -> Optional[ZoneInfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Fuso horário desconhecido: {name!r}", field="timezone")


def normalize_interval(
    day: DateLike,
    start: TimeLike,
    end: TimeLike,
    *,
    storage_tz: Optional[str] = None,
    local_tz: Optional[str] = None,
) -> NormalizedInterval:
    """Combine a stored date with its wall-clock start/end.

    An end earlier than the start means the event crosses midnight, so the
    end moves to the next calendar day. When both zones are given the pair is
    read in the storage zone and converted to the local zone.
    """

    d = parse_iso_date(day)
    start_dt = datetime.combine(d, parse_wall_time(start, field="start_time"))
    end_dt = datetime.combine(d, parse_wall_time(end, field="end_time"))
    if end_dt < start_dt:
        end_dt += timedelta(days=1)

    src = get_zone(storage_tz)
    dst = get_zone(local_tz)
    if src is not None and dst is not None:
        start_dt = start_dt.replace(tzinfo=src).astimezone(dst)
        end_dt = end_dt.replace(tzinfo=src).astimezone(dst)

    return NormalizedInterval(start=start_dt, end=end_dt)


def try_normalize(
    item: Any,
    *,
    storage_tz: Optional[str] = None,
    local_tz: Optional[str] = None,
) -> Optional[NormalizedInterval]:
    """Normalize anything with date/start_time/end_time attributes.

    Malformed rows are reported as a data-quality warning and yield None so
    callers can leave them out of comparisons.
    """

    try:
        return normalize_interval(
            item.date,
            item.start_time,
            item.end_time,
            storage_tz=storage_tz,
            local_tz=local_tz,
        )
    except ValidationError as e:
        logger.warning(
            "data quality: skipping event id=%s (%s): %s",
            getattr(item, "event_id", None),
            getattr(item, "name", "?"),
            e,
        )
        return None


def format_hhmm(value: TimeLike) -> str:
    try:
        return parse_wall_time(value).strftime("%H:%M")
    except ValidationError:
        return str(value)[:5]


def today_local(local_tz: Optional[str] = None) -> date:
    return now_local(local_tz).date()


def now_local(local_tz: Optional[str] = None) -> datetime:
    """Current wall clock, in `local_tz` when one is configured.

    Note: Wrapped so tests can patch/mocked easier.
    """
    zone = get_zone(local_tz)
    if zone is None:
        return datetime.now()
    return datetime.now(zone)
