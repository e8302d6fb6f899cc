from __future__ import annotations

from datetime import date, datetime, time
from types import SimpleNamespace

import pytest

from fakes import (
    InMemoryAssignments,
    InMemoryDepartments,
    InMemoryEvents,
    InMemoryUsers,
    InMemoryVolunteers,
    make_user,
    make_volunteer,
)
from volunteer_roster.assignments.model import EventDepartmentAssignment, EventVolunteerAssignment, VolunteerDepartment
from volunteer_roster.container import wire
from volunteer_roster.core.enums import DepartmentStatus, EventStatus, Role
from volunteer_roster.departments.model import Department
from volunteer_roster.events.model import Event
from volunteer_roster.main import create_app
from volunteer_roster.users.model import Principal

WORSHIP = 1
KIDS = 2


@pytest.fixture
def fixed_now():
    # In the middle of the 09:00-10:00 service on 2024-06-10
    return datetime(2024, 6, 10, 9, 30, 0)


@pytest.fixture
def settings():
    return SimpleNamespace(
        SECRET_KEY="test-secret",
        STORAGE_TIMEZONE=None,
        LOCAL_TIMEZONE=None,
        ACCESS_TOKEN_MAX_AGE=3600,
        ATTENDANCE_TOKEN_SECRET="",
        ATTENDANCE_TOKEN_MAX_AGE=300,
        REQUIRE_SIGNED_TOKENS=False,
        SCAN_SUCCESS_DISPLAY_SECONDS=2.5,
        SCAN_ERROR_DISPLAY_SECONDS=4.0,
    )


@pytest.fixture
def store():
    """Two departments, three volunteers and one confirmed service on 2024-06-10."""

    service = Event(
        event_id=1,
        name="Culto de Domingo",
        date=date(2024, 6, 10),
        start_time=time(9, 0),
        end_time=time(10, 0),
        status=EventStatus.CONFIRMED,
    )
    return SimpleNamespace(
        events=InMemoryEvents([service]),
        assignments=InMemoryAssignments(
            departments=[EventDepartmentAssignment(1, WORSHIP), EventDepartmentAssignment(1, KIDS)],
            volunteers=[
                EventVolunteerAssignment(1, 10, WORSHIP, present=False),
                EventVolunteerAssignment(1, 11, WORSHIP),
                EventVolunteerAssignment(1, 12, KIDS),
            ],
        ),
        volunteers=InMemoryVolunteers(
            [make_volunteer(10, "Ana Souza"), make_volunteer(11, "Bruno Lima"), make_volunteer(12, "Carla Dias")],
            [VolunteerDepartment(10, WORSHIP), VolunteerDepartment(11, WORSHIP), VolunteerDepartment(12, KIDS)],
        ),
        departments=InMemoryDepartments(
            [
                Department(WORSHIP, "Louvor"),
                Department(KIDS, "Kids"),
                Department(3, "Recepção", status=DepartmentStatus.INACTIVE),
            ]
        ),
        users=InMemoryUsers(
            [
                make_user(1, "admin", Role.ADMIN),
                make_user(2, "lider", Role.LEADER, WORSHIP),
                make_user(3, "kids", Role.LEADER, KIDS),
                make_user(4, "ana", Role.VOLUNTEER),
                make_user(5, "antigo", Role.LEADER, WORSHIP, is_active=False),
            ]
        ),
    )


@pytest.fixture
def container(store, settings):
    return wire(
        users_repo=store.users,
        departments_repo=store.departments,
        volunteers_repo=store.volunteers,
        events_repo=store.events,
        assignments_repo=store.assignments,
        settings=settings,
    )


@pytest.fixture
def admin():
    return Principal(user_id=1, name="Admin", role=Role.ADMIN)


@pytest.fixture
def leader():
    return Principal(user_id=2, name="Lider", role=Role.LEADER, department_id=WORSHIP)


@pytest.fixture
def kids_leader():
    return Principal(user_id=3, name="Kids", role=Role.LEADER, department_id=KIDS)


@pytest.fixture
def volunteer_user():
    return Principal(user_id=4, name="Ana", role=Role.VOLUNTEER)


@pytest.fixture
def app(container):
    flask_app = create_app(settings_module="config.testing", container=container)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()
