from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import VolunteerStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, load_list
from .model import Volunteer
from .repository import VolunteerRepository

_COLUMNS = "v.volunteer_id, v.name, v.email, v.phone, v.initials, v.status, v.skills, v.availability, v.user_id"


def _row_to_volunteer(r: dict) -> Volunteer:
    return Volunteer(
        volunteer_id=int(r["volunteer_id"]),
        name=r["name"],
        email=r.get("email"),
        phone=r.get("phone"),
        initials=r.get("initials"),
        status=VolunteerStatus(r["status"]),
        skills=tuple(load_list(r.get("skills"))),
        availability=tuple(load_list(r.get("availability"))),
        user_id=int(r["user_id"]) if r.get("user_id") is not None else None,
    )


class MySQLVolunteerRepository(VolunteerRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, volunteer_id: int) -> Optional[Volunteer]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM volunteers v WHERE v.volunteer_id=%s", (int(volunteer_id),))
            r = fetchone(cur)
            return _row_to_volunteer(r) if r else None

    def get_many(self, volunteer_ids: Sequence[int]) -> Sequence[Volunteer]:
        ids = sorted({int(v) for v in volunteer_ids})
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM volunteers v WHERE v.volunteer_id IN ({in_clause(ids)})", tuple(ids))
            return [_row_to_volunteer(r) for r in fetchall(cur)]

    def list_active(self, *, department_id: Optional[int] = None) -> Sequence[Volunteer]:
        with db_cursor(self._conn_factory) as (_, cur):
            if department_id is None:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM volunteers v WHERE v.status=%s ORDER BY v.name",
                    (VolunteerStatus.ACTIVE.value,),
                )
            else:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS}
                    FROM volunteers v
                    JOIN volunteer_departments vd ON vd.volunteer_id = v.volunteer_id
                    WHERE v.status=%s AND vd.department_id=%s
                    ORDER BY v.name
                    """,
                    (VolunteerStatus.ACTIVE.value, int(department_id)),
                )
            return [_row_to_volunteer(r) for r in fetchall(cur)]
