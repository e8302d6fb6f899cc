from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Volunteer


class VolunteerRepository(Protocol):
    def get_by_id(self, volunteer_id: int) -> Optional[Volunteer]:
        raise NotImplementedError

    def get_many(self, volunteer_ids: Sequence[int]) -> Sequence[Volunteer]:
        raise NotImplementedError

    def list_active(self, *, department_id: Optional[int] = None) -> Sequence[Volunteer]:
        """Active volunteers; with department_id, only that department's members."""

        raise NotImplementedError
