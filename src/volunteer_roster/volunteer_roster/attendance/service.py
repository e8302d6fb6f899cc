from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from itsdangerous import URLSafeTimedSerializer

from ..assignments.model import EventVolunteerAssignment
from ..assignments.repository import AssignmentRepository
from ..core.constants import FALLBACK_VOLUNTEER_NAME, GENERIC_CONFIRM_ERROR
from ..core.enums import ScanOutcome
from ..core.exceptions import (
    AlreadyConfirmedError,
    AuthenticationError,
    AuthorizationError,
    BackendError,
    NotFoundError,
    TokenFormatError,
    ValidationError,
)
from ..users.model import Principal
from ..users.service import AuthService
from ..volunteers.repository import VolunteerRepository
from .scanner import ScanResult, ScanSession
from .token import AttendanceToken, parse_token

logger = logging.getLogger(__name__)

WRONG_EVENT_MESSAGE = "Evento incorreto."
WRONG_DEPARTMENT_MESSAGE = "Este voluntário não pertence ao seu departamento para este evento."
INVALID_SESSION_MESSAGE = "Sessão inválida."
NOT_SCHEDULED_MESSAGE = "Este voluntário não está escalado para este evento neste departamento."
ALREADY_CONFIRMED_MESSAGE = "Este voluntário já teve a presença confirmada."
MARKED_MESSAGE = "Presença marcada com sucesso."


class AttendanceWriter(Protocol):
    """The only path allowed to flip an assignment to present."""

    def mark_present(
        self, volunteer_id: int, event_id: int, department_id: int, credential: Optional[str]
    ) -> EventVolunteerAssignment:
        raise NotImplementedError


class PrivilegedAttendanceWriter(AttendanceWriter):
    """Server-side write: re-validates everything against live data.

    Client-side checks in AttendanceService only fail fast; this is where the
    caller's credential and department binding are actually enforced.
    """

    def __init__(self, auth: AuthService, assignments: AssignmentRepository):
        self._auth = auth
        self._assignments = assignments

    def mark_present(
        self, volunteer_id: int, event_id: int, department_id: int, credential: Optional[str]
    ) -> EventVolunteerAssignment:
        principal = self._auth.resolve_credential(credential)

        if not principal.is_admin:
            if not principal.is_leader or principal.department_id != int(department_id):
                logger.warning(
                    "attendance write denied: user_id=%s role=%s bound_department=%s event=%s token_department=%s",
                    principal.user_id,
                    principal.role.value,
                    principal.department_id,
                    event_id,
                    department_id,
                )
                raise AuthorizationError(
                    "Permissão negada. Você só pode marcar presença para o seu próprio departamento."
                )

        current = self._assignments.get_volunteer_assignment(
            event_id=int(event_id), volunteer_id=int(volunteer_id), department_id=int(department_id)
        )
        if current is None:
            raise NotFoundError(NOT_SCHEDULED_MESSAGE)
        if current.is_present:
            raise AlreadyConfirmedError(ALREADY_CONFIRMED_MESSAGE)

        if not self._assignments.set_present(
            event_id=int(event_id), volunteer_id=int(volunteer_id), department_id=int(department_id)
        ):
            raise NotFoundError(NOT_SCHEDULED_MESSAGE)

        logger.info(
            "attendance confirmed: event=%s volunteer=%s department=%s by user_id=%s",
            event_id,
            volunteer_id,
            department_id,
            principal.user_id,
        )
        return EventVolunteerAssignment(
            event_id=int(event_id),
            volunteer_id=int(volunteer_id),
            department_id=int(department_id),
            present=True,
        )


@dataclass(frozen=True)
class ScannerContext:
    """Who is scanning, against which event, and with what credential."""

    event_id: int
    principal: Optional[Principal]
    credential: Optional[str]
    volunteer_names: dict = field(default_factory=dict)


class AttendanceService:
    def __init__(
        self,
        writer: AttendanceWriter,
        volunteers: VolunteerRepository,
        *,
        serializer: Optional[URLSafeTimedSerializer] = None,
        token_max_age: Optional[int] = None,
        require_signed_tokens: bool = False,
    ):
        self._writer = writer
        self._volunteers = volunteers
        self._serializer = serializer
        self._token_max_age = token_max_age
        self._require_signed = bool(require_signed_tokens)

    def parse(self, raw) -> AttendanceToken:
        return parse_token(
            raw,
            serializer=self._serializer,
            max_age=self._token_max_age,
            require_signature=self._require_signed,
        )

    def _volunteer_name(self, ctx: ScannerContext, volunteer_id: int) -> str:
        name = ctx.volunteer_names.get(volunteer_id)
        if name:
            return name
        # Runs after the write: a failed lookup must not turn a confirmed scan into an error.
        try:
            volunteer = self._volunteers.get_by_id(volunteer_id)
        except BackendError as e:
            logger.warning("volunteer name lookup failed for id=%s: %s", volunteer_id, e)
            return FALLBACK_VOLUNTEER_NAME
        return volunteer.name if volunteer and volunteer.name else FALLBACK_VOLUNTEER_NAME

    def _check(self, token: AttendanceToken, ctx: ScannerContext) -> None:
        if token.event_id != int(ctx.event_id):
            raise ValidationError(WRONG_EVENT_MESSAGE, field="event_id")

        principal = ctx.principal
        is_admin = principal is not None and principal.is_admin
        if not is_admin:
            bound = principal.department_id if principal is not None else None
            if token.department_id != bound:
                logger.warning(
                    "scan rejected: event=%s scanner_department=%s token_department=%s",
                    ctx.event_id,
                    bound,
                    token.department_id,
                )
                raise AuthorizationError(WRONG_DEPARTMENT_MESSAGE)

        if principal is None or not ctx.credential:
            raise AuthenticationError(INVALID_SESSION_MESSAGE)

    def confirm_attendance(self, raw, ctx: ScannerContext) -> ScanResult:
        """Validate a scanned token and, when every check passes, ask the writer to mark presence.

        A token whose assignment is already present counts as success: the
        state is terminal and confirming it again changes nothing.
        """

        def error(message: str, token: Optional[AttendanceToken] = None) -> ScanResult:
            return ScanResult(
                kind=ScanOutcome.ERROR,
                message=message,
                volunteer_id=token.volunteer_id if token else None,
                event_id=token.event_id if token else None,
            )

        try:
            token = self.parse(raw)
        except TokenFormatError as e:
            return error(str(e))

        try:
            self._check(token, ctx)
        except (ValidationError, AuthorizationError, AuthenticationError) as e:
            return error(str(e), token)

        already = False
        try:
            self._writer.mark_present(token.volunteer_id, token.event_id, token.department_id, ctx.credential)
        except AlreadyConfirmedError:
            already = True
        except (AuthenticationError, AuthorizationError, NotFoundError, ValidationError) as e:
            return error(str(e), token)
        except BackendError as e:
            logger.error("attendance write failed for event=%s volunteer=%s: %s", token.event_id, token.volunteer_id, e)
            return error(e.backend_message or GENERIC_CONFIRM_ERROR, token)

        return ScanResult(
            kind=ScanOutcome.SUCCESS,
            message=self._volunteer_name(ctx, token.volunteer_id),
            volunteer_id=token.volunteer_id,
            event_id=token.event_id,
            already_confirmed=already,
        )

    def scan(self, session: ScanSession, raw, ctx: ScannerContext) -> Optional[ScanResult]:
        """confirm_attendance behind the session's single-flight guard (None when ignored)."""

        return session.submit(raw, lambda payload: self.confirm_attendance(payload, ctx))
