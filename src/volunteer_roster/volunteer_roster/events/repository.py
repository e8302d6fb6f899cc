from __future__ import annotations

from datetime import date, time
from typing import Optional, Protocol, Sequence

from .model import Event


class EventRepository(Protocol):
    def get_by_id(self, event_id: int) -> Optional[Event]:
        raise NotImplementedError

    def get_many(self, event_ids: Sequence[int]) -> Sequence[Event]:
        raise NotImplementedError

    def list_range(self, *, start: date, end: date) -> Sequence[Event]:
        """Events whose stored date is within [start, end], ordered by date, start_time, id."""

        raise NotImplementedError

    def insert(self, event: Event) -> int:
        """Create an event. Returns event_id."""

        raise NotImplementedError

    def update(self, event: Event) -> bool:
        raise NotImplementedError

    def update_schedule(self, *, event_id: int, day: date, start_time: time, end_time: time) -> bool:
        """Change only date/start/end (drag-move and resize commits)."""

        raise NotImplementedError

    def delete(self, event_id: int) -> bool:
        raise NotImplementedError
