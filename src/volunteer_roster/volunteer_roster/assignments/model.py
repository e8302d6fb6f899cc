from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class EventDepartmentAssignment:
    """A department is involved in an event. Unique per pair."""

    event_id: int
    department_id: int


@dataclass(frozen=True)
class EventVolunteerAssignment:
    """A volunteer scheduled at an event for a specific department.

    present: None until processed, False after the absence sweep, True once
    attendance is confirmed. True is terminal.
    """

    event_id: int
    volunteer_id: int
    department_id: int
    present: Optional[bool] = None

    @property
    def key(self) -> tuple[int, int, int]:
        return (self.event_id, self.volunteer_id, self.department_id)

    @property
    def is_present(self) -> bool:
        return self.present is True


@dataclass(frozen=True)
class VolunteerDepartment:
    """Home department membership of a volunteer."""

    volunteer_id: int
    department_id: int
