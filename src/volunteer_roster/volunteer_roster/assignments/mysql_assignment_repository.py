from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_optional_bool, db_cursor, fetchall, fetchone, in_clause
from .model import EventDepartmentAssignment, EventVolunteerAssignment
from .repository import AssignmentRepository


def _row_to_volunteer_assignment(r: dict) -> EventVolunteerAssignment:
    return EventVolunteerAssignment(
        event_id=int(r["event_id"]),
        volunteer_id=int(r["volunteer_id"]),
        department_id=int(r["department_id"]),
        present=as_optional_bool(r.get("present")),
    )


def _ids(values: Sequence[int]) -> list[int]:
    return sorted({int(v) for v in values})


class MySQLAssignmentRepository(AssignmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_event_departments(self, event_ids: Sequence[int]) -> Sequence[EventDepartmentAssignment]:
        ids = _ids(event_ids)
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT event_id, department_id
                FROM event_departments
                WHERE event_id IN ({in_clause(ids)})
                ORDER BY event_id, department_id
                """,
                tuple(ids),
            )
            return [
                EventDepartmentAssignment(event_id=int(r["event_id"]), department_id=int(r["department_id"]))
                for r in fetchall(cur)
            ]

    def list_event_volunteers(self, event_ids: Sequence[int]) -> Sequence[EventVolunteerAssignment]:
        ids = _ids(event_ids)
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT event_id, volunteer_id, department_id, present
                FROM event_volunteers
                WHERE event_id IN ({in_clause(ids)})
                ORDER BY event_id, department_id, volunteer_id
                """,
                tuple(ids),
            )
            return [_row_to_volunteer_assignment(r) for r in fetchall(cur)]

    def list_for_volunteers(self, volunteer_ids: Sequence[int]) -> Sequence[EventVolunteerAssignment]:
        ids = _ids(volunteer_ids)
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT event_id, volunteer_id, department_id, present
                FROM event_volunteers
                WHERE volunteer_id IN ({in_clause(ids)})
                """,
                tuple(ids),
            )
            return [_row_to_volunteer_assignment(r) for r in fetchall(cur)]

    def get_volunteer_assignment(
        self, *, event_id: int, volunteer_id: int, department_id: int
    ) -> Optional[EventVolunteerAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT event_id, volunteer_id, department_id, present
                FROM event_volunteers
                WHERE event_id=%s AND volunteer_id=%s AND department_id=%s
                """,
                (int(event_id), int(volunteer_id), int(department_id)),
            )
            r = fetchone(cur)
            return _row_to_volunteer_assignment(r) if r else None

    def replace_event_departments(self, *, event_id: int, department_ids: Sequence[int]) -> None:
        ids = _ids(department_ids)
        with db_cursor(self._conn_factory) as (_, cur):
            if ids:
                cur.execute(
                    f"DELETE FROM event_departments WHERE event_id=%s AND department_id NOT IN ({in_clause(ids)})",
                    (int(event_id), *ids),
                )
                cur.executemany(
                    "INSERT IGNORE INTO event_departments(event_id, department_id) VALUES(%s,%s)",
                    [(int(event_id), d) for d in ids],
                )
            else:
                cur.execute("DELETE FROM event_departments WHERE event_id=%s", (int(event_id),))

    def replace_event_volunteers(self, *, event_id: int, pairs: Sequence[tuple[int, int]]) -> None:
        wanted = sorted({(int(v), int(d)) for v, d in pairs})
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT volunteer_id, department_id FROM event_volunteers WHERE event_id=%s",
                (int(event_id),),
            )
            existing = {(int(r["volunteer_id"]), int(r["department_id"])) for r in fetchall(cur)}

            stale = existing - set(wanted)
            if stale:
                cur.executemany(
                    "DELETE FROM event_volunteers WHERE event_id=%s AND volunteer_id=%s AND department_id=%s",
                    [(int(event_id), v, d) for v, d in sorted(stale)],
                )
            fresh = [p for p in wanted if p not in existing]
            if fresh:
                cur.executemany(
                    "INSERT INTO event_volunteers(event_id, volunteer_id, department_id, present) VALUES(%s,%s,%s,NULL)",
                    [(int(event_id), v, d) for v, d in fresh],
                )

    def set_present(self, *, event_id: int, volunteer_id: int, department_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE event_volunteers
                SET present=1
                WHERE event_id=%s AND volunteer_id=%s AND department_id=%s
                """,
                (int(event_id), int(volunteer_id), int(department_id)),
            )
            return cur.rowcount > 0

    def list_unprocessed_event_ids(self) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT DISTINCT event_id FROM event_volunteers WHERE present IS NULL ORDER BY event_id")
            return [int(r["event_id"]) for r in fetchall(cur)]

    def mark_absent(self, event_ids: Sequence[int]) -> Sequence[EventVolunteerAssignment]:
        ids = _ids(event_ids)
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            # Lock the rows we are about to flip so the returned list matches the update.
            cur.execute(
                f"""
                SELECT event_id, volunteer_id, department_id
                FROM event_volunteers
                WHERE event_id IN ({in_clause(ids)}) AND present IS NULL
                FOR UPDATE
                """,
                tuple(ids),
            )
            rows = fetchall(cur)
            cur.execute(
                f"UPDATE event_volunteers SET present=0 WHERE event_id IN ({in_clause(ids)}) AND present IS NULL",
                tuple(ids),
            )
            return [
                EventVolunteerAssignment(
                    event_id=int(r["event_id"]),
                    volunteer_id=int(r["volunteer_id"]),
                    department_id=int(r["department_id"]),
                    present=False,
                )
                for r in rows
            ]
