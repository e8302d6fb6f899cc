from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..core.enums import DepartmentStatus


@dataclass(frozen=True)
class Department:
    department_id: int
    name: str
    leader_name: Optional[str] = None
    leader_contact: Optional[str] = None
    skills_required: Sequence[str] = field(default_factory=tuple)
    meeting_days: Sequence[str] = field(default_factory=tuple)
    status: DepartmentStatus = DepartmentStatus.ACTIVE
    description: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == DepartmentStatus.ACTIVE
