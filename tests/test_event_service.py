from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

import pytest

from fakes import InMemoryEvents
from volunteer_roster.common.datetime_utils import now_local
from volunteer_roster.container import wire
from volunteer_roster.core.enums import EventStatus
from volunteer_roster.core.exceptions import AuthorizationError, BackendError, ConflictError, NotFoundError, ValidationError
from volunteer_roster.events import service as event_service_module
from volunteer_roster.events.model import Event
from volunteer_roster.events.service import EventService


def _draft(name="Ensaio", day=date(2024, 6, 10), start="10:00", end="11:00", event_id=None):
    return Event(event_id=event_id, name=name, date=day, start_time=start, end_time=end)


def test_save_event_inserts_back_to_back_event(container, store, admin):
    saved = container.event_service.save_event(admin, _draft(), department_ids=[1])

    assert saved.event_id == 2
    assert store.events.get_by_id(2).start_time == time(10, 0)
    assert (2, 1) in store.assignments.departments


def test_save_event_rejects_overlap_without_writing(container, store, admin):
    with pytest.raises(ConflictError) as exc:
        container.event_service.save_event(admin, _draft(start="09:30", end="10:30"))

    assert exc.value.conflicting.event_id == 1
    assert "Culto de Domingo" in str(exc.value)
    assert store.events.writes == 0


def test_save_event_overlapping_previous_day_rollover(container, store, admin):
    store.events.rows[5] = Event(
        event_id=5, name="Vigília", date=date(2024, 6, 9), start_time=time(22, 0), end_time=time(2, 0)
    )

    with pytest.raises(ConflictError):
        container.event_service.save_event(admin, _draft(start="01:00", end="01:30"))


def test_update_does_not_conflict_with_itself(container, store, admin):
    current = store.events.get_by_id(1)
    container.event_service.save_event(admin, replace(current, name="Culto da Manhã", end_time=time(10, 30)))

    assert store.events.get_by_id(1).name == "Culto da Manhã"


def test_only_admins_write_events(container, store, leader):
    with pytest.raises(AuthorizationError):
        container.event_service.save_event(leader, _draft())
    with pytest.raises(AuthorizationError):
        container.event_service.delete_event(leader, 1)


def test_start_equal_to_end_is_rejected(container, admin):
    with pytest.raises(ValidationError):
        container.event_service.save_event(admin, _draft(start="10:00", end="10:00"))


def test_volunteer_outside_event_departments_is_rejected(container, admin):
    with pytest.raises(ValidationError):
        container.event_service.save_event(admin, _draft(), department_ids=[1], volunteer_pairs=[(12, 2)])


def test_double_booking_check_passes_for_free_volunteers(container, store, admin):
    saved = container.event_service.save_event(
        admin,
        _draft(day=date(2024, 6, 11)),
        department_ids=[1],
        volunteer_pairs=[(10, 1)],
        check_double_booking=True,
    )

    assert store.assignments.get_volunteer_assignment(event_id=saved.event_id, volunteer_id=10, department_id=1)


def test_double_booking_only_flags_overlapping_events(container):
    clashes = container.event_service.find_volunteer_double_bookings(
        _draft(start="09:30", end="09:45", event_id=99), [10, 12]
    )
    assert set(clashes) == {10, 12}
    assert clashes[10].event_id == 1

    later = container.event_service.find_volunteer_double_bookings(_draft(start="10:00", end="11:00", event_id=99), [10])
    assert later == {}


def test_move_keeps_duration_and_commits(container, store, admin):
    outcome = container.event_service.move_event(admin, 1, new_date="2024-06-12", new_start="18:30")

    assert outcome.applied
    moved = store.events.get_by_id(1)
    assert moved.date == date(2024, 6, 12)
    assert (moved.start_time, moved.end_time) == (time(18, 30), time(19, 30))


def test_move_into_conflict_reverts_to_original(container, store, admin):
    store.events.rows[2] = Event(
        event_id=2, name="Reunião", date=date(2024, 6, 12), start_time=time(18, 0), end_time=time(19, 0)
    )
    writes_before = store.events.writes

    outcome = container.event_service.move_event(admin, 1, new_date="2024-06-12", new_start="18:30")

    assert not outcome.applied
    assert outcome.error_kind == "conflict"
    assert outcome.conflicting.event_id == 2
    assert outcome.event.start_time == time(9, 0)
    assert store.events.get_by_id(1).date == date(2024, 6, 10)
    assert store.events.writes == writes_before


def test_resize_past_midnight_is_allowed(container, store, admin):
    outcome = container.event_service.resize_event(admin, 1, new_end="00:30")

    assert outcome.applied
    assert store.events.get_by_id(1).end_time == time(0, 30)


def test_resize_by_leader_reverts(container, store, leader):
    outcome = container.event_service.resize_event(leader, 1, new_end="11:00")

    assert not outcome.applied
    assert outcome.error_kind == "authorization"
    assert outcome.to_dict()["end_time"] == "10:00"


class _FlakyEvents(InMemoryEvents):
    def update_schedule(self, **kwargs):
        raise BackendError("update failed", payload={"error": "Tempo esgotado"})


def test_backend_failure_reverts_with_backend_message(store, settings, admin):
    events = _FlakyEvents(list(store.events.rows.values()))
    c = wire(
        users_repo=store.users,
        departments_repo=store.departments,
        volunteers_repo=store.volunteers,
        events_repo=events,
        assignments_repo=store.assignments,
        settings=settings,
    )
    outcome = c.event_service.resize_event(admin, 1, new_end="10:30")

    assert not outcome.applied
    assert outcome.error_kind == "backend"
    assert outcome.reason == "Tempo esgotado"


class _RacingEvents(InMemoryEvents):
    """Another writer slips in an overlapping event between our check and our insert."""

    def insert(self, event):
        if not any(e.name == "Concorrente" for e in self.rows.values()):
            rival = Event(
                event_id=None,
                name="Concorrente",
                date=event.date,
                start_time=event.start_time,
                end_time=event.end_time,
            )
            super().insert(rival)
        return super().insert(event)


def test_concurrent_insert_is_undone_after_write(store, settings, admin):
    events = _RacingEvents(list(store.events.rows.values()))
    c = wire(
        users_repo=store.users,
        departments_repo=store.departments,
        volunteers_repo=store.volunteers,
        events_repo=events,
        assignments_repo=store.assignments,
        settings=settings,
    )

    with pytest.raises(ConflictError):
        c.event_service.save_event(admin, _draft(start="15:00", end="16:00"))

    names = sorted(e.name for e in events.rows.values())
    assert names == ["Concorrente", "Culto de Domingo"]


def test_get_active_event(container, fixed_now):
    detail = container.event_service.get_active_event(now=fixed_now)

    assert detail.event_id == 1
    assert detail.volunteer_name(10) == "Ana Souza"
    assert container.event_service.get_active_event(now=datetime(2024, 6, 10, 10, 0)) is None


def test_pending_events_are_never_active(container, store, fixed_now):
    store.events.rows[1] = replace(store.events.get_by_id(1), status=EventStatus.PENDING)
    assert container.event_service.get_active_event(now=fixed_now) is None


def test_admin_deletes_event(container, store, admin):
    container.event_service.delete_event(admin, 1)

    assert store.events.get_by_id(1) is None
    with pytest.raises(NotFoundError):
        container.event_service.delete_event(admin, 1)


SAO_PAULO = "America/Sao_Paulo"
# 09:30 in Sao Paulo
LIVE_INSTANT = datetime(2024, 6, 10, 12, 30, tzinfo=timezone.utc)


def _zoned_service(store, *, storage_tz=SAO_PAULO, local_tz=SAO_PAULO):
    return EventService(store.events, store.assignments, store.volunteers, storage_tz=storage_tz, local_tz=local_tz)


def test_active_event_reads_the_clock_in_the_configured_zone(store, monkeypatch):
    def clock(zone=None):
        # A UTC host: the naive clock reads 12:30
        return LIVE_INSTANT.astimezone(ZoneInfo(zone)) if zone else LIVE_INSTANT.replace(tzinfo=None)

    monkeypatch.setattr(event_service_module, "now_local", clock)

    assert _zoned_service(store).get_active_event().event_id == 1
    assert _zoned_service(store, local_tz=None).get_active_event().event_id == 1


def test_active_event_accepts_aware_and_local_naive_now(store):
    svc = _zoned_service(store)

    assert svc.get_active_event(now=LIVE_INSTANT).event_id == 1
    assert svc.get_active_event(now=datetime(2024, 6, 10, 9, 30)).event_id == 1
    assert svc.get_active_event(now=datetime(2024, 6, 10, 12, 30)) is None
    assert _zoned_service(store, local_tz=None).get_active_event(now=LIVE_INSTANT).event_id == 1


def test_now_local_carries_the_zone():
    assert now_local(SAO_PAULO).tzinfo == ZoneInfo(SAO_PAULO)
    assert now_local().tzinfo is None
