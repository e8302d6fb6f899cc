from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, time
from typing import Optional, Sequence

from ..assignments.model import EventVolunteerAssignment
from ..core.enums import EventStatus


@dataclass(frozen=True)
class Event:
    """Domain entity: a scheduled occurrence with a date and wall-clock range.

    start_time/end_time are stored in the fixed storage timezone. An end
    earlier than the start means the event runs past midnight.
    """

    event_id: Optional[int]
    name: str
    date: date
    start_time: time
    end_time: time
    status: EventStatus = EventStatus.PENDING
    location: Optional[str] = None
    color: Optional[str] = None
    notes: Optional[str] = None
    principal_timeline_id: Optional[int] = None
    kids_timeline_id: Optional[int] = None

    def with_schedule(self, *, day: date, start_time: time, end_time: time) -> "Event":
        return replace(self, date=day, start_time=start_time, end_time=end_time)

    def describe(self) -> str:
        return f'"{self.name}" ({self.date:%Y-%m-%d} {self.start_time:%H:%M}-{self.end_time:%H:%M})'


@dataclass(frozen=True)
class EventDetail:
    """Read-model: an event joined with its department and volunteer assignments."""

    event: Event
    department_ids: Sequence[int] = field(default_factory=tuple)
    volunteers: Sequence[EventVolunteerAssignment] = field(default_factory=tuple)
    volunteer_names: dict = field(default_factory=dict)

    @property
    def event_id(self) -> int:
        return int(self.event.event_id or 0)

    def volunteer_name(self, volunteer_id: int) -> Optional[str]:
        return self.volunteer_names.get(int(volunteer_id))
