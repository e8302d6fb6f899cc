from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .assignments.mysql_assignment_repository import MySQLAssignmentRepository
from .assignments.repository import AssignmentRepository
from .attendance.absence import AbsenceProcessor
from .attendance.scanner import ScanSession, ScanSessionRegistry
from .attendance.service import AttendanceService, AttendanceWriter, PrivilegedAttendanceWriter
from .attendance.token import make_serializer
from .core.constants import (
    DEFAULT_STORAGE_TIMEZONE,
    DEFAULT_TOKEN_MAX_AGE_SECONDS,
    SCAN_ERROR_DISPLAY_SECONDS,
    SCAN_SESSION_IDLE_SECONDS,
    SCAN_SUCCESS_DISPLAY_SECONDS,
)
from .dashboard.ranking import RankingService
from .dashboard.service import DashboardService
from .database.connection import DBConfig, DatabaseConnection
from .departments.mysql_department_repository import MySQLDepartmentRepository
from .departments.repository import DepartmentRepository
from .events.mysql_event_repository import MySQLEventRepository
from .events.repository import EventRepository
from .events.service import EventService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService
from .volunteers.mysql_volunteer_repository import MySQLVolunteerRepository
from .volunteers.repository import VolunteerRepository


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    departments_repo: DepartmentRepository
    volunteers_repo: VolunteerRepository
    events_repo: EventRepository
    assignments_repo: AssignmentRepository

    auth_service: AuthService
    event_service: EventService
    attendance_writer: AttendanceWriter
    attendance_service: AttendanceService
    absence_processor: AbsenceProcessor
    dashboard_service: DashboardService
    ranking_service: RankingService
    scan_sessions: ScanSessionRegistry


def _setting(settings: Any, name: str, default):
    if settings is None:
        return default
    return getattr(settings, name, default)


def wire(
    *,
    users_repo: UserRepository,
    departments_repo: DepartmentRepository,
    volunteers_repo: VolunteerRepository,
    events_repo: EventRepository,
    assignments_repo: AssignmentRepository,
    settings: Any = None,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build services on top of any set of repositories (MySQL in the app, in-memory in tests)."""

    storage_tz = _setting(settings, "STORAGE_TIMEZONE", DEFAULT_STORAGE_TIMEZONE)
    local_tz = _setting(settings, "LOCAL_TIMEZONE", storage_tz)
    require_signed = bool(_setting(settings, "REQUIRE_SIGNED_TOKENS", False))
    token_secret = _setting(settings, "ATTENDANCE_TOKEN_SECRET", "")
    if require_signed and not token_secret:
        token_secret = _setting(settings, "SECRET_KEY", "")
    success_seconds = float(_setting(settings, "SCAN_SUCCESS_DISPLAY_SECONDS", SCAN_SUCCESS_DISPLAY_SECONDS))
    error_seconds = float(_setting(settings, "SCAN_ERROR_DISPLAY_SECONDS", SCAN_ERROR_DISPLAY_SECONDS))

    auth_service = AuthService(
        users_repo,
        secret_key=str(_setting(settings, "SECRET_KEY", "dev-secret-key")),
        max_age_seconds=int(_setting(settings, "ACCESS_TOKEN_MAX_AGE", 12 * 3600)),
    )
    event_service = EventService(
        events_repo, assignments_repo, volunteers_repo, storage_tz=storage_tz, local_tz=local_tz
    )
    attendance_writer = PrivilegedAttendanceWriter(auth_service, assignments_repo)
    attendance_service = AttendanceService(
        attendance_writer,
        volunteers_repo,
        serializer=make_serializer(token_secret),
        token_max_age=int(_setting(settings, "ATTENDANCE_TOKEN_MAX_AGE", DEFAULT_TOKEN_MAX_AGE_SECONDS)),
        require_signed_tokens=require_signed,
    )
    absence_processor = AbsenceProcessor(events_repo, assignments_repo, storage_tz=storage_tz)
    dashboard_service = DashboardService(event_service, volunteers_repo, departments_repo, local_tz=local_tz)
    ranking_service = RankingService(volunteers_repo, assignments_repo, departments_repo)
    scan_sessions = ScanSessionRegistry(
        lambda: ScanSession(success_seconds=success_seconds, error_seconds=error_seconds),
        idle_seconds=float(_setting(settings, "SCAN_SESSION_IDLE_SECONDS", SCAN_SESSION_IDLE_SECONDS)),
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        departments_repo=departments_repo,
        volunteers_repo=volunteers_repo,
        events_repo=events_repo,
        assignments_repo=assignments_repo,
        auth_service=auth_service,
        event_service=event_service,
        attendance_writer=attendance_writer,
        attendance_service=attendance_service,
        absence_processor=absence_processor,
        dashboard_service=dashboard_service,
        ranking_service=ranking_service,
        scan_sessions=scan_sessions,
    )


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    return wire(
        users_repo=MySQLUserRepository(conn),
        departments_repo=MySQLDepartmentRepository(conn),
        volunteers_repo=MySQLVolunteerRepository(conn),
        events_repo=MySQLEventRepository(conn),
        assignments_repo=MySQLAssignmentRepository(conn),
        settings=settings,
        conn=conn,
    )
