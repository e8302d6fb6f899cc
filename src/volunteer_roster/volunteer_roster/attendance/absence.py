from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..assignments.repository import AssignmentRepository
from ..common.datetime_utils import get_zone, try_normalize
from ..core.enums import EventStatus
from ..events.repository import EventRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AbsenceReport:
    """Outcome of one sweep: absentee count per ended event."""

    processed_at: datetime
    absences_by_event: dict = field(default_factory=dict)
    event_names: dict = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.absences_by_event.values())

    def messages(self) -> list[str]:
        return [
            f'A frequência para "{self.event_names.get(eid, "Evento Desconhecido")}" foi processada. '
            f"{count} voluntário(s) receberam falta."
            for eid, count in sorted(self.absences_by_event.items())
        ]

    def to_dict(self) -> dict:
        return {
            "processed_at": self.processed_at.isoformat(),
            "total": self.total,
            "events": [
                {"event_id": eid, "name": self.event_names.get(eid), "absences": count}
                for eid, count in sorted(self.absences_by_event.items())
            ],
        }


class AbsenceProcessor:
    """Marks as absent everyone still unprocessed on confirmed events that have ended.

    Intended to be run periodically (cron via scripts/process_absences.py).
    Assignments already present are never touched.
    """

    def __init__(
        self,
        events: EventRepository,
        assignments: AssignmentRepository,
        *,
        storage_tz: Optional[str] = None,
    ):
        self._events = events
        self._assignments = assignments
        self._storage_tz = storage_tz

    def _storage_now(self, now: Optional[datetime]) -> datetime:
        # Event times are wall-clock values in the storage zone.
        zone = get_zone(self._storage_tz)
        if now is None:
            now = datetime.now(zone) if zone else datetime.now()
        if now.tzinfo is not None and zone is not None:
            now = now.astimezone(zone)
        return now.replace(tzinfo=None)

    def run(self, now: Optional[datetime] = None) -> AbsenceReport:
        current = self._storage_now(now)

        pending_ids = list(self._assignments.list_unprocessed_event_ids())
        if not pending_ids:
            logger.info("absence sweep: nothing to process")
            return AbsenceReport(processed_at=current)

        ended = []
        for event in self._events.get_many(pending_ids):
            if event.status != EventStatus.CONFIRMED:
                continue
            interval = try_normalize(event)
            if interval is not None and interval.end < current:
                ended.append(event)

        if not ended:
            logger.info("absence sweep: no ended events among %d pending", len(pending_ids))
            return AbsenceReport(processed_at=current)

        changed = self._assignments.mark_absent([int(e.event_id) for e in ended])
        counts = Counter(a.event_id for a in changed)
        names = {int(e.event_id): e.name for e in ended if e.event_id in counts}

        report = AbsenceReport(processed_at=current, absences_by_event=dict(counts), event_names=names)
        for line in report.messages():
            logger.info("absence sweep: %s", line)
        return report
