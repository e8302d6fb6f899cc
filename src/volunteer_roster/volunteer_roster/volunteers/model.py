from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..core.enums import VolunteerStatus


@dataclass(frozen=True)
class Volunteer:
    volunteer_id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    initials: Optional[str] = None
    status: VolunteerStatus = VolunteerStatus.PENDING
    skills: Sequence[str] = field(default_factory=tuple)
    availability: Sequence[str] = field(default_factory=tuple)
    user_id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status == VolunteerStatus.ACTIVE
