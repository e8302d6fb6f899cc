from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify, request, session

from ..common.http import current_principal, error_response
from ..core.exceptions import AuthenticationError, ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    app.permanent_session_lifetime = timedelta(days=7)

    @app.route("/login", methods=["POST"], endpoint="login")
    def login():
        data = request.get_json(silent=True) or request.form
        try:
            principal = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))
        except (AuthenticationError, ValidationError) as e:
            return error_response(e)

        token = container.auth_service.issue_access_token(principal)

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        session["principal"] = principal.to_session()
        session["access_token"] = token

        return jsonify({"success": True, "user": principal.to_session(), "access_token": token}), 200

    @app.route("/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"success": True, "message": "Sessão encerrada."}), 200

    @app.route("/api/me", methods=["GET"], endpoint="api_me")
    def me():
        principal = current_principal(container)
        if principal is None:
            return jsonify({"success": False, "message": "Faça login para continuar"}), 401
        return jsonify({"success": True, "user": principal.to_session()}), 200
