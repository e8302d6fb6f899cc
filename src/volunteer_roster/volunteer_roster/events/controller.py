from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify, request

from ..common.datetime_utils import format_hhmm
from ..common.http import error_response, make_guards
from ..common.validators import optional_text
from ..core.enums import EventStatus
from ..core.exceptions import DomainError, ValidationError
from ..container import Container
from .model import Event, EventDetail
from .service import conflict_message

_OUTCOME_STATUS = {"conflict": 409, "authorization": 403, "validation": 400, "backend": 500}


def _optional_int(value) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Identificador inválido: {value!r}")


def _draft_from_json(data: dict, *, event_id: Optional[int]) -> Event:
    try:
        status = EventStatus(data.get("status") or EventStatus.PENDING.value)
    except ValueError:
        raise ValidationError("Status inválido", field="status")
    return Event(
        event_id=event_id,
        name=data.get("name", ""),
        date=data.get("date", ""),
        start_time=data.get("start_time", ""),
        end_time=data.get("end_time", ""),
        status=status,
        location=optional_text(data.get("location")),
        color=optional_text(data.get("color")),
        notes=optional_text(data.get("notes")),
        principal_timeline_id=_optional_int(data.get("principal_timeline_id")),
        kids_timeline_id=_optional_int(data.get("kids_timeline_id")),
    )


def _assignments_from_json(data: dict):
    department_ids = data.get("department_ids")
    if department_ids is not None:
        department_ids = [_optional_int(d) for d in department_ids]
    volunteers = data.get("volunteers")
    pairs = None
    if volunteers is not None:
        pairs = []
        for item in volunteers:
            vid = _optional_int(item.get("volunteer_id"))
            did = _optional_int(item.get("department_id"))
            if vid is None or did is None:
                raise ValidationError("Escala de voluntário incompleta", field="volunteers")
            pairs.append((vid, did))
    return department_ids, pairs


def event_to_dict(event: Event) -> dict:
    return {
        "id": event.event_id,
        "name": event.name,
        "date": event.date.isoformat() if hasattr(event.date, "isoformat") else str(event.date),
        "start_time": format_hhmm(event.start_time),
        "end_time": format_hhmm(event.end_time),
        "status": event.status.value,
        "location": event.location,
        "color": event.color,
        "notes": event.notes,
        "principal_timeline_id": event.principal_timeline_id,
        "kids_timeline_id": event.kids_timeline_id,
    }


def detail_to_dict(detail: EventDetail) -> dict:
    out = event_to_dict(detail.event)
    out["department_ids"] = list(detail.department_ids)
    out["volunteers"] = [
        {
            "volunteer_id": a.volunteer_id,
            "department_id": a.department_id,
            "present": a.present,
            "name": detail.volunteer_name(a.volunteer_id),
        }
        for a in detail.volunteers
    ]
    return out


def register(app: Flask, container: Container) -> None:
    login_required, admin_required = make_guards(container)
    events = container.event_service

    @app.route("/api/events/conflicts", methods=["POST"], endpoint="api_event_conflicts")
    @login_required
    def api_event_conflicts(principal):
        data = request.get_json(silent=True) or {}
        try:
            other = events.check_conflict(_draft_from_json(data, event_id=_optional_int(data.get("id"))))
        except DomainError as e:
            return error_response(e)

        if other is None:
            return jsonify({"success": True, "conflict": False}), 200

        return jsonify(
            {
                "success": True,
                "conflict": True,
                "message": conflict_message(other),
                "conflicting_event": event_to_dict(other),
            }
        ), 200

    @app.route("/api/events", methods=["POST"], endpoint="api_event_create")
    @admin_required
    def api_event_create(principal):
        data = request.get_json(silent=True) or {}
        try:
            department_ids, pairs = _assignments_from_json(data)
            saved = events.save_event(
                principal,
                _draft_from_json(data, event_id=None),
                department_ids=department_ids,
                volunteer_pairs=pairs,
                check_double_booking=bool(data.get("check_double_booking")),
            )
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "message": "Evento salvo.", "event": event_to_dict(saved)}), 201

    @app.route("/api/events/<int:event_id>", methods=["PUT"], endpoint="api_event_update")
    @admin_required
    def api_event_update(principal, event_id: int):
        data = request.get_json(silent=True) or {}
        try:
            department_ids, pairs = _assignments_from_json(data)
            saved = events.save_event(
                principal,
                _draft_from_json(data, event_id=event_id),
                department_ids=department_ids,
                volunteer_pairs=pairs,
                check_double_booking=bool(data.get("check_double_booking")),
            )
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "message": "Evento atualizado.", "event": event_to_dict(saved)}), 200

    @app.route("/api/events/<int:event_id>", methods=["DELETE"], endpoint="api_event_delete")
    @admin_required
    def api_event_delete(principal, event_id: int):
        try:
            events.delete_event(principal, event_id)
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "message": "Evento excluído."}), 200

    def _outcome_response(outcome):
        body = {"success": outcome.applied, **outcome.to_dict()}
        status = 200 if outcome.applied else _OUTCOME_STATUS.get(outcome.error_kind, 400)
        return jsonify(body), status

    @app.route("/api/events/<int:event_id>/move", methods=["POST"], endpoint="api_event_move")
    @login_required
    def api_event_move(principal, event_id: int):
        data = request.get_json(silent=True) or {}
        try:
            outcome = events.move_event(
                principal, event_id, new_date=data.get("date"), new_start=data.get("start_time")
            )
        except DomainError as e:
            return error_response(e)
        return _outcome_response(outcome)

    @app.route("/api/events/<int:event_id>/resize", methods=["POST"], endpoint="api_event_resize")
    @login_required
    def api_event_resize(principal, event_id: int):
        data = request.get_json(silent=True) or {}
        try:
            outcome = events.resize_event(principal, event_id, new_end=data.get("end_time"))
        except DomainError as e:
            return error_response(e)
        return _outcome_response(outcome)

    @app.route("/api/events/active", methods=["GET"], endpoint="api_event_active")
    @login_required
    def api_event_active(principal):
        try:
            detail = events.get_active_event()
        except DomainError as e:
            return error_response(e)
        if detail is None:
            return jsonify({"success": True, "event": None}), 200
        return jsonify({"success": True, "event": detail_to_dict(detail)}), 200
