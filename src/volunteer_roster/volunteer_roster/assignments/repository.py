from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import EventDepartmentAssignment, EventVolunteerAssignment


class AssignmentRepository(Protocol):
    """Contract against the durable store for the many-to-many assignment tables.

    Implementations never cache: every call reads current rows.
    """

    def list_event_departments(self, event_ids: Sequence[int]) -> Sequence[EventDepartmentAssignment]:
        raise NotImplementedError

    def list_event_volunteers(self, event_ids: Sequence[int]) -> Sequence[EventVolunteerAssignment]:
        raise NotImplementedError

    def list_for_volunteers(self, volunteer_ids: Sequence[int]) -> Sequence[EventVolunteerAssignment]:
        """Every assignment of the given volunteers (used for double-booking checks)."""

        raise NotImplementedError

    def get_volunteer_assignment(
        self, *, event_id: int, volunteer_id: int, department_id: int
    ) -> Optional[EventVolunteerAssignment]:
        raise NotImplementedError

    def replace_event_departments(self, *, event_id: int, department_ids: Sequence[int]) -> None:
        raise NotImplementedError

    def replace_event_volunteers(self, *, event_id: int, pairs: Sequence[tuple[int, int]]) -> None:
        """Make (volunteer_id, department_id) pairs the event's roster.

        Rows that stay keep their present flag.
        """

        raise NotImplementedError

    def set_present(self, *, event_id: int, volunteer_id: int, department_id: int) -> bool:
        """Flip present to True by composite key. Returns False when no row matched."""

        raise NotImplementedError

    def list_unprocessed_event_ids(self) -> Sequence[int]:
        """Distinct event ids that still have assignments with present NULL."""

        raise NotImplementedError

    def mark_absent(self, event_ids: Sequence[int]) -> Sequence[EventVolunteerAssignment]:
        """Set present=False where present IS NULL; returns the rows that changed."""

        raise NotImplementedError
