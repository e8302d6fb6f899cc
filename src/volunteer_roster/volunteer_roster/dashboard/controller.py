from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import error_response, make_guards
from ..core.exceptions import DomainError, ValidationError
from ..container import Container
from .scope import ScopeFilter


def register(app: Flask, container: Container) -> None:
    login_required, _ = make_guards(container)

    @app.route("/api/dashboard", methods=["GET"], endpoint="api_dashboard")
    @login_required
    def api_dashboard(principal):
        try:
            scope = ScopeFilter.for_principal(principal)
            raw_today = request.args.get("today")
            today = parse_iso_date(raw_today, field="today") if raw_today else None
            dashboard = container.dashboard_service.build_dashboard(scope, today=today)
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, **dashboard.to_dict()}), 200

    @app.route("/api/dashboard/ranking", methods=["GET"], endpoint="api_dashboard_ranking")
    @login_required
    def api_dashboard_ranking(principal):
        try:
            scope = ScopeFilter.for_principal(principal)
            department_id = request.args.get("department_id")
            try:
                department_id = int(department_id) if department_id else None
            except ValueError:
                raise ValidationError("Departamento inválido", field="department_id")
            ranked = container.ranking_service.department_ranking(scope, department_id=department_id)
        except DomainError as e:
            return error_response(e)
        return jsonify({"success": True, "ranking": [r.to_dict() for r in ranked]}), 200
