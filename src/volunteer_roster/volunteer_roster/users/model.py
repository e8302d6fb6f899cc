from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: a login backing the identity provider.

    Note: plain data object (no DB access code here).
    """

    user_id: int
    full_name: str
    username: str
    password_hash: str
    role: Role
    department_id: Optional[int]
    is_active: bool = True


@dataclass(frozen=True)
class Principal:
    """The authenticated caller: role tag plus, for leaders, a bound department."""

    user_id: int
    name: str
    role: Role
    department_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_leader(self) -> bool:
        return self.role == Role.LEADER

    def to_session(self) -> dict:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "role": self.role.value,
            "department_id": self.department_id,
        }

    @classmethod
    def from_session(cls, data) -> Optional["Principal"]:
        if not data or data.get("user_id") is None:
            return None
        try:
            role = Role(data.get("role"))
        except ValueError:
            return None
        dept = data.get("department_id")
        return cls(
            user_id=int(data["user_id"]),
            name=str(data.get("name") or ""),
            role=role,
            department_id=int(dept) if dept is not None else None,
        )
