from __future__ import annotations

from typing import Optional

from ..core.enums import DepartmentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, load_list
from .model import Department
from .repository import DepartmentRepository

_COLUMNS = """
    department_id, name, description, leader_name, leader_contact,
    skills_required, meeting_days, status
"""


def _row_to_department(r: dict) -> Department:
    return Department(
        department_id=int(r["department_id"]),
        name=r["name"],
        description=r.get("description"),
        leader_name=r.get("leader_name"),
        leader_contact=r.get("leader_contact"),
        skills_required=tuple(load_list(r.get("skills_required"))),
        meeting_days=tuple(load_list(r.get("meeting_days"))),
        status=DepartmentStatus(r["status"]),
    )


class MySQLDepartmentRepository(DepartmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, department_id: int) -> Optional[Department]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM departments WHERE department_id=%s", (int(department_id),))
            r = fetchone(cur)
            return _row_to_department(r) if r else None

    def count_active(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM departments WHERE status=%s", (DepartmentStatus.ACTIVE.value,))
            r = fetchone(cur)
            return int(r["n"]) if r else 0
