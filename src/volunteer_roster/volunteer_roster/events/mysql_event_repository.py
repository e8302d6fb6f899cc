from __future__ import annotations

import logging
from datetime import date, time
from typing import Any, Optional, Sequence

from ..core.enums import EventStatus
from ..core.exceptions import ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, normalize_mysql_time
from .model import Event
from .repository import EventRepository

logger = logging.getLogger(__name__)

_COLUMNS = """
    event_id, name, date, start_time, end_time, location, status, color, notes,
    principal_timeline_id, kids_timeline_id
"""


def _opt_int(value) -> Optional[int]:
    return int(value) if value is not None else None


def _row_to_event(r: dict) -> Event:
    return Event(
        event_id=int(r["event_id"]),
        name=r["name"],
        date=r["date"],
        start_time=_time_or_raw(r["start_time"]),
        end_time=_time_or_raw(r["end_time"]),
        location=r.get("location"),
        status=EventStatus(r["status"]),
        color=r.get("color"),
        notes=r.get("notes"),
        principal_timeline_id=_opt_int(r.get("principal_timeline_id")),
        kids_timeline_id=_opt_int(r.get("kids_timeline_id")),
    )


def _time_or_raw(value: Any):
    # Unreadable TIME values stay raw; interval normalization skips the row later.
    try:
        return normalize_mysql_time(value)
    except ValidationError:
        return value


def _to_events(rows) -> list[Event]:
    events = []
    for r in rows:
        try:
            events.append(_row_to_event(r))
        except ValueError as e:
            logger.warning("data quality: skipping event row id=%s: %s", r.get("event_id"), e)
    return events


def _event_params(event: Event) -> tuple:
    return (
        event.name,
        event.date,
        event.start_time,
        event.end_time,
        event.location,
        event.status.value,
        event.color,
        event.notes,
        event.principal_timeline_id,
        event.kids_timeline_id,
    )


class MySQLEventRepository(EventRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, event_id: int) -> Optional[Event]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM events WHERE event_id=%s", (int(event_id),))
            r = fetchone(cur)
        found = _to_events([r] if r else [])
        return found[0] if found else None

    def get_many(self, event_ids: Sequence[int]) -> Sequence[Event]:
        ids = sorted({int(e) for e in event_ids})
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM events WHERE event_id IN ({in_clause(ids)}) ORDER BY date, start_time, event_id",
                tuple(ids),
            )
            return _to_events(fetchall(cur))

    def list_range(self, *, start: date, end: date) -> Sequence[Event]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM events
                WHERE date BETWEEN %s AND %s
                ORDER BY date ASC, start_time ASC, event_id ASC
                """,
                (start, end),
            )
            return _to_events(fetchall(cur))

    def insert(self, event: Event) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO events(name, date, start_time, end_time, location, status, color, notes,
                                   principal_timeline_id, kids_timeline_id)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _event_params(event),
            )
            return int(cur.lastrowid)

    def update(self, event: Event) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE events
                SET name=%s, date=%s, start_time=%s, end_time=%s, location=%s, status=%s, color=%s,
                    notes=%s, principal_timeline_id=%s, kids_timeline_id=%s
                WHERE event_id=%s
                """,
                _event_params(event) + (int(event.event_id),),
            )
            return cur.rowcount > 0

    def update_schedule(self, *, event_id: int, day: date, start_time: time, end_time: time) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE events SET date=%s, start_time=%s, end_time=%s WHERE event_id=%s",
                (day, start_time, end_time, int(event_id)),
            )
            return cur.rowcount > 0

    def delete(self, event_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM events WHERE event_id=%s", (int(event_id),))
            return cur.rowcount > 0
