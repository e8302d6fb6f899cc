"""Role-scoped dashboard aggregation.

`build_dashboard` is pure: it gets events already joined with their
assignments and folds them into day buckets, stats and lists. DashboardService
only fetches the inputs through the repositories, fresh on every call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import format_hhmm, parse_wall_time, today_local
from ..core.constants import CHART_WINDOW_DAYS, UPCOMING_LIST_LIMIT, UPCOMING_WINDOW_DAYS
from ..core.exceptions import ValidationError
from ..departments.repository import DepartmentRepository
from ..events.model import EventDetail
from ..events.service import EventService
from ..volunteers.repository import VolunteerRepository
from .scope import ScopeFilter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DayBucket:
    date: date
    scheduled_volunteers: int = 0
    involved_departments: int = 0
    event_names: Sequence[str] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "scheduled_volunteers": self.scheduled_volunteers,
            "involved_departments": self.involved_departments,
            "event_names": list(self.event_names),
        }


@dataclass(frozen=True)
class DashboardStats:
    active_volunteers: int
    departments: int
    schedules_today: int
    upcoming_schedules: int
    annual_attendance: Optional[int] = None

    def to_dict(self) -> dict:
        out = {
            "active_volunteers": self.active_volunteers,
            "departments": self.departments,
            "schedules_today": self.schedules_today,
            "upcoming_schedules": self.upcoming_schedules,
        }
        if self.annual_attendance is not None:
            out["annual_attendance"] = self.annual_attendance
        return out


@dataclass(frozen=True)
class Dashboard:
    today: date
    stats: DashboardStats
    buckets: Sequence[DayBucket]
    today_events: Sequence[EventDetail]
    upcoming_events: Sequence[EventDetail]
    attendance_rate: float = 0.0

    def to_dict(self) -> dict:
        return {
            "today": self.today.isoformat(),
            "stats": self.stats.to_dict(),
            "chart": [b.to_dict() for b in self.buckets],
            "today_events": [_event_summary(d) for d in self.today_events],
            "upcoming_events": [_event_summary(d) for d in self.upcoming_events],
            "attendance_rate": self.attendance_rate,
        }


def _event_summary(detail: EventDetail) -> dict:
    e = detail.event
    return {
        "id": detail.event_id,
        "name": e.name,
        "date": e.date.isoformat(),
        "start_time": format_hhmm(e.start_time),
        "end_time": format_hhmm(e.end_time),
        "status": e.status.value,
        "department_ids": list(detail.department_ids),
        "volunteers": [
            {
                "volunteer_id": a.volunteer_id,
                "department_id": a.department_id,
                "present": a.present,
                "name": detail.volunteer_name(a.volunteer_id),
            }
            for a in detail.volunteers
        ],
    }


def _start_key(detail: EventDetail):
    try:
        start = parse_wall_time(detail.event.start_time)
    except ValidationError:
        logger.warning("data quality: event id=%s has an unreadable start time", detail.event_id)
        start = None
    # Unreadable start times sort last.
    return (detail.event.date, start is None, start, detail.event_id)


def build_dashboard(
    events: Sequence[EventDetail],
    scope: ScopeFilter,
    today: date,
    *,
    active_volunteers: int = 0,
    active_departments: int = 0,
    chart_days: int = CHART_WINDOW_DAYS,
    upcoming_days: int = UPCOMING_WINDOW_DAYS,
    upcoming_limit: int = UPCOMING_LIST_LIMIT,
) -> Dashboard:
    """Fold scoped events into dashboard data.

    Windows: today is its own view; upcoming is (today, today + upcoming_days];
    the chart covers the chart_days days ending on today, one bucket per day
    even when empty. Leaders get annual_attendance, counting only present
    assignments credited to their department.
    """

    chart_start = today - timedelta(days=chart_days - 1)
    upcoming_end = today + timedelta(days=upcoming_days)
    year_start = date(today.year, 1, 1)

    visible = [d for d in events if scope.includes_event(d.department_ids, d.volunteers)]

    scheduled: dict[date, int] = {}
    involved: dict[date, set[int]] = {}
    names: dict[date, list[str]] = {}
    chart_total = 0
    chart_present = 0
    annual = 0
    today_events: list[EventDetail] = []
    upcoming: list[EventDetail] = []

    for detail in sorted(visible, key=_start_key):
        day = detail.event.date
        scoped = [a for a in detail.volunteers if scope.includes_assignment(a)]

        if day == today:
            today_events.append(detail)
        elif today < day <= upcoming_end:
            upcoming.append(detail)

        if chart_start <= day <= today:
            scheduled[day] = scheduled.get(day, 0) + len(scoped)
            involved.setdefault(day, set()).update(scope.involved_departments(detail.department_ids, detail.volunteers))
            names.setdefault(day, []).append(detail.event.name)
            chart_total += len(scoped)
            chart_present += sum(1 for a in scoped if a.is_present)

        if not scope.is_global and year_start <= day <= today:
            annual += sum(1 for a in scoped if a.is_present)

    buckets = []
    for offset in range(chart_days):
        day = chart_start + timedelta(days=offset)
        buckets.append(
            DayBucket(
                date=day,
                scheduled_volunteers=scheduled.get(day, 0),
                involved_departments=len(involved.get(day, ())),
                event_names=tuple(names.get(day, ())),
            )
        )

    stats = DashboardStats(
        active_volunteers=int(active_volunteers),
        departments=int(active_departments) if scope.is_global else 1,
        schedules_today=len(today_events),
        upcoming_schedules=len(upcoming),
        annual_attendance=None if scope.is_global else annual,
    )

    return Dashboard(
        today=today,
        stats=stats,
        buckets=tuple(buckets),
        today_events=tuple(today_events),
        upcoming_events=tuple(upcoming[:upcoming_limit]),
        attendance_rate=(chart_present / chart_total) if chart_total else 0.0,
    )


class DashboardService:
    def __init__(
        self,
        event_service: EventService,
        volunteers: VolunteerRepository,
        departments: DepartmentRepository,
        *,
        local_tz: Optional[str] = None,
    ):
        self._event_service = event_service
        self._local_tz = local_tz
        self._volunteers = volunteers
        self._departments = departments

    def build_dashboard(self, scope: ScopeFilter, *, today: Optional[date] = None) -> Dashboard:
        today = today or today_local(self._local_tz)
        start = min(date(today.year, 1, 1), today - timedelta(days=CHART_WINDOW_DAYS - 1))
        end = today + timedelta(days=UPCOMING_WINDOW_DAYS)

        events = self._event_service.list_range(start=start, end=end)
        details = self._event_service.load_details(events)

        active_volunteers = len(self._volunteers.list_active(department_id=scope.department_id))
        active_departments = self._departments.count_active() if scope.is_global else 1

        return build_dashboard(
            details,
            scope,
            today,
            active_volunteers=active_volunteers,
            active_departments=active_departments,
        )
