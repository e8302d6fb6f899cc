from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..common.http import bearer_credential, error_response, make_guards, status_for
from ..common.validators import require_positive_int
from ..core.constants import GENERIC_BACKEND_ERROR
from ..core.exceptions import BackendError, DomainError, ValidationError
from ..container import Container
from .service import MARKED_MESSAGE, ScannerContext
from .token import token_from_dict

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    login_required, admin_required = make_guards(container)

    @app.route("/api/attendance/mark", methods=["POST"], endpoint="api_attendance_mark")
    def api_attendance_mark():
        """Privileged write. Errors use the {"error": ...} body the scanning devices read."""

        data = request.get_json(silent=True) or {}
        try:
            token = token_from_dict(data)
            container.attendance_writer.mark_present(
                token.volunteer_id, token.event_id, token.department_id, bearer_credential()
            )
        except BackendError as e:
            logger.error("mark attendance failed: %s", e)
            return jsonify({"error": e.backend_message or GENERIC_BACKEND_ERROR}), 500
        except DomainError as e:
            return jsonify({"error": str(e)}), status_for(e)
        return jsonify({"success": True, "message": MARKED_MESSAGE}), 200

    @app.route("/api/attendance/scan", methods=["POST"], endpoint="api_attendance_scan")
    @login_required
    def api_attendance_scan(principal):
        data = request.get_json(silent=True) or {}
        session_id = str(data.get("session_id") or "").strip()
        try:
            if not session_id:
                raise ValidationError("Sessão de leitura não informada", field="session_id")
            event_id = require_positive_int(data.get("event_id"), "event_id")
        except ValidationError as e:
            return error_response(e)

        ctx = ScannerContext(event_id=event_id, principal=principal, credential=bearer_credential())
        scan_session = container.scan_sessions.get(f"{principal.user_id}:{session_id}")
        result = container.attendance_service.scan(scan_session, data.get("token"), ctx)
        if result is None:
            return jsonify({"success": False, "ignored": True, "message": "Leitura ignorada."}), 200
        return jsonify({"ignored": False, **result.to_dict()}), 200

    @app.route("/api/attendance/scan/close", methods=["POST"], endpoint="api_attendance_scan_close")
    @login_required
    def api_attendance_scan_close(principal):
        data = request.get_json(silent=True) or {}
        container.scan_sessions.close(f"{principal.user_id}:{data.get('session_id') or ''}")
        return jsonify({"success": True}), 200

    @app.route("/api/attendance/process-absences", methods=["POST"], endpoint="api_attendance_process_absences")
    @admin_required
    def api_attendance_process_absences(principal):
        try:
            report = container.absence_processor.run()
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "message": "Frequência processada.", **report.to_dict()}), 200
