from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..assignments.model import EventVolunteerAssignment
from ..core.exceptions import AuthorizationError
from ..users.model import Principal


@dataclass(frozen=True)
class ScopeFilter:
    """Visibility boundary for aggregation: everything, or one department.

    Aggregation code asks the scope what to include instead of branching on
    the caller's role.
    """

    department_id: Optional[int] = None

    @classmethod
    def global_(cls) -> "ScopeFilter":
        return cls(department_id=None)

    @classmethod
    def department(cls, department_id: int) -> "ScopeFilter":
        return cls(department_id=int(department_id))

    @classmethod
    def for_principal(cls, principal: Optional[Principal]) -> "ScopeFilter":
        if principal is None:
            raise AuthorizationError("Acesso negado")
        if principal.is_admin:
            return cls.global_()
        if principal.is_leader and principal.department_id is not None:
            return cls.department(principal.department_id)
        raise AuthorizationError("Acesso negado")

    @property
    def is_global(self) -> bool:
        return self.department_id is None

    def includes_assignment(self, assignment: EventVolunteerAssignment) -> bool:
        return self.is_global or assignment.department_id == self.department_id

    def includes_event(
        self,
        department_ids: Iterable[int],
        assignments: Iterable[EventVolunteerAssignment] = (),
    ) -> bool:
        """An event is visible to a department when it is involved or has its volunteers scheduled."""

        if self.is_global:
            return True
        if self.department_id in {int(d) for d in department_ids}:
            return True
        return any(a.department_id == self.department_id for a in assignments)

    def involved_departments(
        self,
        department_ids: Iterable[int],
        assignments: Iterable[EventVolunteerAssignment] = (),
    ) -> set[int]:
        if self.is_global:
            return {int(d) for d in department_ids}
        if self.includes_event(department_ids, assignments):
            return {int(self.department_id)}
        return set()
