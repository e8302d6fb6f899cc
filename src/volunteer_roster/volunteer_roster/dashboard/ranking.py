from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from ..assignments.model import EventVolunteerAssignment
from ..assignments.repository import AssignmentRepository
from ..departments.repository import DepartmentRepository
from ..core.constants import RANKING_LIMIT
from ..core.exceptions import NotFoundError, ValidationError
from ..volunteers.model import Volunteer
from ..volunteers.repository import VolunteerRepository
from .scope import ScopeFilter


@dataclass(frozen=True)
class RankedVolunteer:
    volunteer_id: int
    name: str
    initials: Optional[str]
    total_present: int
    total_scheduled: int

    @property
    def percentage(self) -> float:
        if not self.total_scheduled:
            return 0.0
        return self.total_present / self.total_scheduled * 100

    def to_dict(self) -> dict:
        return {
            "volunteer_id": self.volunteer_id,
            "name": self.name,
            "initials": self.initials,
            "total_present": self.total_present,
            "total_scheduled": self.total_scheduled,
            "percentage": round(self.percentage),
        }


def rank_volunteers(
    volunteers: Iterable[Volunteer],
    assignments: Iterable[EventVolunteerAssignment],
    department_id: int,
    limit: int = RANKING_LIMIT,
) -> list[RankedVolunteer]:
    """Top members of a department by confirmed presences.

    Only assignments credited to this department count, even for members
    who also helped elsewhere. Ties keep the input order.
    """

    present: dict[int, int] = {}
    scheduled: dict[int, int] = {}
    for a in assignments:
        if a.department_id != department_id:
            continue
        scheduled[a.volunteer_id] = scheduled.get(a.volunteer_id, 0) + 1
        if a.is_present:
            present[a.volunteer_id] = present.get(a.volunteer_id, 0) + 1

    ranked = [
        RankedVolunteer(
            volunteer_id=v.volunteer_id,
            name=v.name,
            initials=v.initials,
            total_present=present.get(v.volunteer_id, 0),
            total_scheduled=scheduled.get(v.volunteer_id, 0),
        )
        for v in volunteers
    ]
    ranked.sort(key=lambda r: r.total_present, reverse=True)
    return ranked[: max(int(limit), 0)]


class RankingService:
    def __init__(
        self, volunteers: VolunteerRepository, assignments: AssignmentRepository, departments: DepartmentRepository
    ):
        self._volunteers = volunteers
        self._assignments = assignments
        self._departments = departments

    def department_ranking(
        self, scope: ScopeFilter, *, department_id: Optional[int] = None, limit: int = RANKING_LIMIT
    ) -> Sequence[RankedVolunteer]:
        # Leaders are pinned to their own department; admins must pick one.
        target = scope.department_id if not scope.is_global else department_id
        if target is None:
            raise ValidationError("Informe o departamento", field="department_id")
        if scope.is_global and self._departments.get_by_id(int(target)) is None:
            raise NotFoundError("Departamento não encontrado")

        members = list(self._volunteers.list_active(department_id=int(target)))
        if not members:
            return []
        assignments = self._assignments.list_for_volunteers([v.volunteer_id for v in members])
        return rank_volunteers(members, assignments, int(target), limit=limit)
