from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role tag supplied by the identity provider."""

    ADMIN = "admin"
    LEADER = "leader"
    VOLUNTEER = "volunteer"


class EventStatus(str, Enum):
    """Event status as stored in the events table."""

    PENDING = "Pendente"
    CONFIRMED = "Confirmado"
    CANCELLED = "Cancelado"


class DepartmentStatus(str, Enum):
    ACTIVE = "Ativo"
    INACTIVE = "Inativo"


class VolunteerStatus(str, Enum):
    ACTIVE = "Ativo"
    INACTIVE = "Inativo"
    PENDING = "Pendente"


class ScanOutcome(str, Enum):
    """Kind of banner shown after a scan."""

    SUCCESS = "success"
    ERROR = "error"
