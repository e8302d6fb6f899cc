from __future__ import annotations

from datetime import date, time, timedelta

import pytest

from fakes import make_volunteer
from volunteer_roster.assignments.model import EventVolunteerAssignment
from volunteer_roster.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from volunteer_roster.dashboard.ranking import rank_volunteers
from volunteer_roster.dashboard.scope import ScopeFilter
from volunteer_roster.dashboard.service import build_dashboard
from volunteer_roster.events.model import Event, EventDetail

TODAY = date(2024, 6, 10)


def _detail(event_id, day, departments=(), volunteers=(), start=time(9, 0), name=None):
    event = Event(
        event_id=event_id,
        name=name or f"Evento {event_id}",
        date=day,
        start_time=start,
        end_time=time(23, 0),
    )
    return EventDetail(
        event=event,
        department_ids=tuple(departments),
        volunteers=tuple(EventVolunteerAssignment(event_id, v, d, p) for v, d, p in volunteers),
    )


def test_empty_window_has_thirty_zero_buckets():
    dash = build_dashboard([], ScopeFilter.global_(), TODAY)

    assert len(dash.buckets) == 30
    assert dash.buckets[0].date == TODAY - timedelta(days=29)
    assert dash.buckets[-1].date == TODAY
    assert all(b.scheduled_volunteers == 0 and b.involved_departments == 0 for b in dash.buckets)
    assert all((b2.date - b1.date).days == 1 for b1, b2 in zip(dash.buckets, dash.buckets[1:]))
    assert dash.attendance_rate == 0.0


def test_leader_sees_only_their_department_assignments():
    events = [_detail(1, TODAY, [1, 2], [(10, 1, None), (11, 1, None), (12, 2, None)])]

    admin = build_dashboard(events, ScopeFilter.global_(), TODAY)
    leader = build_dashboard(events, ScopeFilter.department(1), TODAY)

    assert admin.buckets[-1].scheduled_volunteers == 3
    assert admin.buckets[-1].involved_departments == 2
    assert leader.buckets[-1].scheduled_volunteers == 2
    assert leader.buckets[-1].involved_departments == 1
    assert leader.buckets[-1].event_names == ("Evento 1",)


def test_event_of_other_department_is_invisible_to_leader():
    events = [_detail(1, TODAY, [2], [(12, 2, None)])]
    leader = build_dashboard(events, ScopeFilter.department(1), TODAY)

    assert leader.stats.schedules_today == 0
    assert leader.buckets[-1].involved_departments == 0
    assert leader.buckets[-1].event_names == ()


def test_today_and_upcoming_windows():
    events = [
        _detail(1, TODAY, [1], start=time(18, 0)),
        _detail(2, TODAY, [1], start=time(8, 0)),
        _detail(3, TODAY + timedelta(days=1), [1]),
        _detail(4, TODAY + timedelta(days=7), [1]),
        _detail(5, TODAY + timedelta(days=8), [1]),
        _detail(6, TODAY - timedelta(days=1), [1]),
    ]
    dash = build_dashboard(events, ScopeFilter.global_(), TODAY, active_departments=4)

    assert [d.event_id for d in dash.today_events] == [2, 1]
    assert [d.event_id for d in dash.upcoming_events] == [3, 4]
    assert dash.stats.schedules_today == 2
    assert dash.stats.upcoming_schedules == 2
    assert dash.stats.departments == 4
    assert dash.stats.annual_attendance is None


def test_upcoming_list_is_capped_but_count_is_not():
    events = [_detail(i, TODAY + timedelta(days=1), [1], start=time(0, i)) for i in range(1, 13)]
    dash = build_dashboard(events, ScopeFilter.global_(), TODAY)

    assert len(dash.upcoming_events) == 10
    assert dash.stats.upcoming_schedules == 12


def test_annual_attendance_credits_the_assignment_department():
    events = [
        _detail(1, date(2024, 2, 4), [1], [(10, 1, True), (11, 1, False)]),
        # Volunteer 10 belongs to department 1 but helped department 2 here
        _detail(2, date(2024, 3, 3), [1, 2], [(10, 2, True), (11, 1, True)]),
        _detail(3, date(2023, 12, 31), [1], [(10, 1, True)]),
    ]
    leader = build_dashboard(events, ScopeFilter.department(1), TODAY)

    assert leader.stats.annual_attendance == 2
    assert leader.stats.departments == 1


def test_attendance_rate_over_chart_window():
    events = [_detail(1, TODAY - timedelta(days=3), [1], [(10, 1, True), (11, 1, False), (12, 2, True), (13, 1, None)])]

    assert build_dashboard(events, ScopeFilter.department(1), TODAY).attendance_rate == pytest.approx(1 / 3)
    assert build_dashboard(events, ScopeFilter.global_(), TODAY).attendance_rate == pytest.approx(2 / 4)


def test_scope_for_principal(admin, leader, volunteer_user):
    assert ScopeFilter.for_principal(admin).is_global
    assert ScopeFilter.for_principal(leader) == ScopeFilter.department(1)
    with pytest.raises(AuthorizationError):
        ScopeFilter.for_principal(volunteer_user)
    with pytest.raises(AuthorizationError):
        ScopeFilter.for_principal(None)


def test_dashboard_service_reads_through_the_store(container, store, leader):
    store.assignments.set_present(event_id=1, volunteer_id=10, department_id=1)

    admin_dash = container.dashboard_service.build_dashboard(ScopeFilter.global_(), today=TODAY)
    leader_dash = container.dashboard_service.build_dashboard(ScopeFilter.for_principal(leader), today=TODAY)

    assert admin_dash.stats.active_volunteers == 3
    assert admin_dash.stats.departments == 2
    assert admin_dash.buckets[-1].scheduled_volunteers == 3
    assert leader_dash.stats.active_volunteers == 2
    assert leader_dash.stats.annual_attendance == 1
    assert leader_dash.to_dict()["today_events"][0]["volunteers"][0]["name"] == "Ana Souza"


def test_rank_volunteers_counts_only_department_assignments():
    volunteers = [make_volunteer(10, "Ana Souza"), make_volunteer(11, "Bruno Lima"), make_volunteer(14, "Davi Reis")]
    assignments = [
        EventVolunteerAssignment(1, 10, 1, True),
        EventVolunteerAssignment(2, 10, 1, False),
        EventVolunteerAssignment(3, 10, 2, True),
        EventVolunteerAssignment(1, 11, 1, True),
        EventVolunteerAssignment(2, 11, 1, True),
    ]

    ranked = rank_volunteers(volunteers, assignments, 1)

    assert [r.volunteer_id for r in ranked] == [11, 10, 14]
    assert ranked[1].total_scheduled == 2
    assert ranked[1].percentage == 50.0
    assert ranked[2].percentage == 0.0
    assert len(rank_volunteers(volunteers, assignments, 1, limit=2)) == 2


def test_ranking_service_scoping(container, store, leader, admin):
    store.assignments.set_present(event_id=1, volunteer_id=11, department_id=1)

    ranked = container.ranking_service.department_ranking(ScopeFilter.for_principal(leader))
    assert [r.volunteer_id for r in ranked] == [11, 10]

    with pytest.raises(ValidationError):
        container.ranking_service.department_ranking(ScopeFilter.for_principal(admin))
    kids = container.ranking_service.department_ranking(ScopeFilter.for_principal(admin), department_id=2)
    assert [r.volunteer_id for r in kids] == [12]

    with pytest.raises(NotFoundError):
        container.ranking_service.department_ranking(ScopeFilter.for_principal(admin), department_id=42)
