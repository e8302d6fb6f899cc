from __future__ import annotations

import logging
from functools import wraps
from typing import Optional

from flask import jsonify, request, session

from ..core.constants import GENERIC_BACKEND_ERROR
from ..core.exceptions import (
    AlreadyConfirmedError,
    AuthenticationError,
    AuthorizationError,
    BackendError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from ..users.model import Principal

logger = logging.getLogger(__name__)

_STATUS = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (AlreadyConfirmedError, 409),
)


def status_for(error: DomainError) -> int:
    for cls, status in _STATUS:
        if isinstance(error, cls):
            return status
    return 500


def error_response(error: DomainError, **extra):
    status = status_for(error)
    if status == 500:
        if isinstance(error, BackendError):
            logger.error("backend failure on %s %s: %s", request.method, request.path, error)
        message = GENERIC_BACKEND_ERROR
    else:
        message = str(error)
    body = {"success": False, "message": message}
    if isinstance(error, ValidationError) and error.field:
        body["field"] = error.field
    body.update(extra)
    return jsonify(body), status


def bearer_credential() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return session.get("access_token")


def current_principal(container) -> Optional[Principal]:
    """Caller from the bearer header, else from the login session."""

    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        try:
            return container.auth_service.resolve_credential(header[7:].strip())
        except AuthenticationError:
            return None
    return Principal.from_session(session.get("principal"))


def make_guards(container):
    """login_required / admin_required bound to a container."""

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            principal = current_principal(container)
            if principal is None:
                return jsonify({"success": False, "message": "Faça login para continuar"}), 401
            return view(principal, *args, **kwargs)

        return wrapper

    def admin_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            principal = current_principal(container)
            if principal is None:
                return jsonify({"success": False, "message": "Faça login para continuar"}), 401
            if not principal.is_admin:
                logger.warning("admin route %s denied to user_id=%s", request.path, principal.user_id)
                return jsonify({"success": False, "message": "Acesso negado"}), 403
            return view(principal, *args, **kwargs)

        return wrapper

    return login_required, admin_required
