from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class TokenFormatError(ValidationError):
    """Raised when a scanned attendance token does not have the expected shape."""


class ConflictError(DomainError):
    """Raised when an event interval overlaps an existing event."""

    def __init__(self, message: str, *, conflicting: Any = None):
        super().__init__(message)
        self.conflicting = conflicting


class AuthenticationError(DomainError):
    """Raised when there is no live session or credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class AlreadyConfirmedError(DomainError):
    """Raised by the attendance writer when presence was already confirmed."""


class NotFoundError(DomainError):
    """Raised when a referenced row does not exist."""


class BackendError(DomainError):
    """Raised when the store or a privileged operation fails.

    `payload` keeps the backend's structured error body when there is one.
    """

    def __init__(self, message: str, *, payload: Optional[dict] = None):
        super().__init__(message)
        self.payload = payload or {}

    @property
    def backend_message(self) -> Optional[str]:
        msg = self.payload.get("error")
        return str(msg) if msg else None
