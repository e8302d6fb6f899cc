from __future__ import annotations

import json

import pytest

from fakes import FakeClock
from volunteer_roster.attendance.scanner import ScanSession
from volunteer_roster.attendance.service import AttendanceService, ScannerContext
from volunteer_roster.core.enums import Role, ScanOutcome
from volunteer_roster.core.exceptions import (
    AlreadyConfirmedError,
    AuthenticationError,
    AuthorizationError,
    BackendError,
    NotFoundError,
)
from volunteer_roster.users.model import Principal


def _token(v, e, d) -> str:
    return json.dumps({"vId": v, "eId": e, "dId": d})


def _ctx(container, principal, event_id=1):
    credential = container.auth_service.issue_access_token(principal) if principal else None
    return ScannerContext(event_id=event_id, principal=principal, credential=credential)


def test_end_to_end_scan_marks_present_and_repeat_is_ignored(container, store, leader):
    # Event 1 on 2024-06-10 09:00-10:00, volunteer 10 under department 1 with present=False
    clock = FakeClock()
    session = ScanSession(clock=clock)
    ctx = _ctx(container, leader)

    result = container.attendance_service.scan(session, _token(10, 1, 1), ctx)

    assert result.kind == ScanOutcome.SUCCESS
    assert result.message == "Ana Souza"
    assert store.assignments.present(1, 10, 1) is True

    clock.advance(1.0)
    assert container.attendance_service.scan(session, _token(10, 1, 1), ctx) is None
    assert store.assignments.set_present_calls == 1


def test_confirming_twice_is_idempotent(container, store, leader):
    ctx = _ctx(container, leader)

    first = container.attendance_service.confirm_attendance(_token(11, 1, 1), ctx)
    second = container.attendance_service.confirm_attendance(_token(11, 1, 1), ctx)

    assert first.ok and second.ok
    assert second.already_confirmed
    assert store.assignments.present(1, 11, 1) is True
    assert store.assignments.set_present_calls == 1


def test_leader_cannot_confirm_other_department(container, store, leader):
    result = container.attendance_service.confirm_attendance(_token(12, 1, 2), _ctx(container, leader))

    assert result.kind == ScanOutcome.ERROR
    assert "não pertence ao seu departamento" in result.message
    assert store.assignments.present(1, 12, 2) is None
    assert store.assignments.set_present_calls == 0


def test_admin_may_confirm_any_department(container, store, admin):
    result = container.attendance_service.confirm_attendance(_token(12, 1, 2), _ctx(container, admin))

    assert result.ok
    assert store.assignments.present(1, 12, 2) is True


def test_token_from_previous_event_is_rejected(container, store, leader):
    result = container.attendance_service.confirm_attendance(_token(11, 1, 1), _ctx(container, leader, event_id=7))

    assert result.message == "Evento incorreto."
    assert store.assignments.set_present_calls == 0


def test_scan_without_session_is_rejected(container, store, leader):
    ctx = ScannerContext(event_id=1, principal=leader, credential=None)
    result = container.attendance_service.confirm_attendance(_token(11, 1, 1), ctx)

    assert result.message == "Sessão inválida."


def test_incomplete_token_is_reported(container, leader):
    result = container.attendance_service.confirm_attendance('{"vId": 11}', _ctx(container, leader))

    assert not result.ok
    assert result.message == "QR Code incompleto."


def test_volunteer_not_scheduled_is_reported(container, store, leader):
    result = container.attendance_service.confirm_attendance(_token(12, 1, 1), _ctx(container, leader))

    assert result.message == "Este voluntário não está escalado para este evento neste departamento."


def test_unknown_volunteer_name_falls_back(container, store, leader):
    del store.volunteers.rows[11]
    result = container.attendance_service.confirm_attendance(_token(11, 1, 1), _ctx(container, leader))

    assert result.message == "Voluntário"


class _BrokenWriter:
    def __init__(self, error):
        self.error = error

    def mark_present(self, volunteer_id, event_id, department_id, credential):
        raise self.error


def _service_with_writer(container, writer):
    return AttendanceService(writer, container.volunteers_repo)


def test_backend_payload_message_is_surfaced(container, leader):
    svc = _service_with_writer(container, _BrokenWriter(BackendError("boom", payload={"error": "Banco indisponível"})))
    assert svc.confirm_attendance(_token(11, 1, 1), _ctx(container, leader)).message == "Banco indisponível"


def test_backend_without_payload_gets_generic_message(container, leader):
    svc = _service_with_writer(container, _BrokenWriter(BackendError("boom")))
    assert svc.confirm_attendance(_token(11, 1, 1), _ctx(container, leader)).message == "Erro ao confirmar."


# -- privileged writer, called directly as the HTTP endpoint does --------------------------------


def test_writer_rejects_leader_of_other_department(container, store, kids_leader):
    credential = container.auth_service.issue_access_token(kids_leader)

    with pytest.raises(AuthorizationError):
        container.attendance_writer.mark_present(11, 1, 1, credential)
    assert store.assignments.present(1, 11, 1) is None


def test_writer_rejects_volunteers_and_bad_credentials(container, volunteer_user):
    with pytest.raises(AuthorizationError):
        container.attendance_writer.mark_present(11, 1, 1, container.auth_service.issue_access_token(volunteer_user))
    with pytest.raises(AuthenticationError):
        container.attendance_writer.mark_present(11, 1, 1, "forged")
    with pytest.raises(AuthenticationError):
        container.attendance_writer.mark_present(11, 1, 1, None)


def test_writer_rereads_the_user_behind_the_credential(container, store):
    # Credential issued before the account was disabled
    stale = Principal(user_id=5, name="Antigo", role=Role.LEADER, department_id=1)
    with pytest.raises(AuthenticationError):
        container.attendance_writer.mark_present(11, 1, 1, container.auth_service.issue_access_token(stale))


def test_writer_reports_already_confirmed_and_missing_rows(container, store, leader):
    credential = container.auth_service.issue_access_token(leader)

    container.attendance_writer.mark_present(11, 1, 1, credential)
    with pytest.raises(AlreadyConfirmedError):
        container.attendance_writer.mark_present(11, 1, 1, credential)
    with pytest.raises(NotFoundError):
        container.attendance_writer.mark_present(99, 1, 1, credential)


def test_name_lookup_failure_after_write_still_reports_success(container, store, leader, monkeypatch):
    def down(volunteer_id):
        raise BackendError("down")

    monkeypatch.setattr(store.volunteers, "get_by_id", down)
    session = ScanSession(clock=FakeClock())

    result = container.attendance_service.scan(session, _token(11, 1, 1), _ctx(container, leader))

    assert result.ok
    assert result.message == "Voluntário"
    assert store.assignments.present(1, 11, 1) is True
    assert session.current is result
