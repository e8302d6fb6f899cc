from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence

from ..assignments.repository import AssignmentRepository
from ..common.datetime_utils import format_hhmm, get_zone, now_local, parse_iso_date, parse_wall_time, try_normalize
from ..common.validators import require_non_empty
from ..core.enums import EventStatus
from ..core.exceptions import (
    AuthorizationError,
    BackendError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ..users.model import Principal
from ..volunteers.repository import VolunteerRepository
from .conflicts import conflicts, find_conflict, normalize_event
from .model import Event, EventDetail
from .repository import EventRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RescheduleOutcome:
    """Result of an interactive move/resize.

    When `applied` is False, `event` carries the pre-operation coordinates the
    editor must snap back to.
    """

    applied: bool
    event: Event
    reason: Optional[str] = None
    conflicting: Optional[Event] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> dict:
        out = {
            "applied": self.applied,
            "event_id": self.event.event_id,
            "date": self.event.date.strftime("%Y-%m-%d"),
            "start_time": format_hhmm(self.event.start_time),
            "end_time": format_hhmm(self.event.end_time),
        }
        if self.reason:
            out["message"] = self.reason
        if self.conflicting is not None:
            out["conflicting_event_id"] = self.conflicting.event_id
        return out


def conflict_message(other: Event) -> str:
    return (
        f'Conflito de horário com o evento "{other.name}" '
        f"({other.date:%d/%m/%Y} {format_hhmm(other.start_time)}-{format_hhmm(other.end_time)})."
    )


class EventService:
    def __init__(
        self,
        events: EventRepository,
        assignments: AssignmentRepository,
        volunteers: VolunteerRepository,
        *,
        storage_tz: Optional[str] = None,
        local_tz: Optional[str] = None,
    ):
        self._events = events
        self._assignments = assignments
        self._volunteers = volunteers
        self._storage_tz = storage_tz
        self._local_tz = local_tz
        self._clock_zone = local_tz or storage_tz

    # ------------------------------------------------------------------ reads

    def get(self, event_id: int) -> Event:
        event = self._events.get_by_id(int(event_id))
        if not event:
            raise NotFoundError("Evento não encontrado")
        return event

    def list_range(self, *, start: date, end: date) -> Sequence[Event]:
        return self._events.list_range(start=start, end=end)

    def _neighbours(self, day: date) -> Sequence[Event]:
        # One day on each side catches events rolling over midnight in either direction.
        return self._events.list_range(start=day - timedelta(days=1), end=day + timedelta(days=1))

    def check_conflict(self, draft: Event) -> Optional[Event]:
        """Conflicting stored event for a draft, or None. Re-reads the store every call."""
        return find_conflict(
            draft,
            self._neighbours(parse_iso_date(draft.date)),
            exclude_event_id=draft.event_id,
            storage_tz=self._storage_tz,
            local_tz=self._local_tz,
        )

    def load_details(self, events: Sequence[Event]) -> list[EventDetail]:
        ids = [int(e.event_id) for e in events if e.event_id is not None]
        if not ids:
            return []

        depts: dict[int, list[int]] = defaultdict(list)
        for ed in self._assignments.list_event_departments(ids):
            depts[ed.event_id].append(ed.department_id)

        vols: dict[int, list] = defaultdict(list)
        volunteer_ids: set[int] = set()
        for ev in self._assignments.list_event_volunteers(ids):
            vols[ev.event_id].append(ev)
            volunteer_ids.add(ev.volunteer_id)

        names = {v.volunteer_id: v.name for v in self._volunteers.get_many(sorted(volunteer_ids))}

        out: list[EventDetail] = []
        for e in events:
            if e.event_id is None:
                continue
            eid = int(e.event_id)
            out.append(
                EventDetail(
                    event=e,
                    department_ids=tuple(depts.get(eid, ())),
                    volunteers=tuple(vols.get(eid, ())),
                    volunteer_names={v.volunteer_id: names[v.volunteer_id] for v in vols.get(eid, ()) if v.volunteer_id in names},
                )
            )
        return out

    def get_active_event(self, *, now: Optional[datetime] = None) -> Optional[EventDetail]:
        """The confirmed event whose interval contains `now` (earliest start first)."""

        now = now or now_local(self._clock_zone)
        candidates = []
        for e in self._neighbours(now.date()):
            if e.status != EventStatus.CONFIRMED:
                continue
            interval = try_normalize(e, storage_tz=self._storage_tz, local_tz=self._local_tz)
            if interval is None:
                continue
            current = now
            if interval.start.tzinfo is not None and now.tzinfo is None:
                # naive `now` is local wall clock
                current = now.replace(tzinfo=interval.start.tzinfo)
            elif interval.start.tzinfo is None and now.tzinfo is not None:
                storage = get_zone(self._storage_tz)
                current = (now.astimezone(storage) if storage else now).replace(tzinfo=None)
            if interval.start <= current < interval.end:
                candidates.append((interval.start, int(e.event_id or 0), e))

        if not candidates:
            return None
        candidates.sort(key=lambda c: (c[0], c[1]))
        details = self.load_details([candidates[0][2]])
        return details[0] if details else None

    def find_volunteer_double_bookings(self, event: Event, volunteer_ids: Iterable[int]) -> dict[int, Event]:
        """Volunteers already scheduled into another overlapping event."""

        wanted = normalize_event(event, storage_tz=self._storage_tz, local_tz=self._local_tz)
        assignments = [
            a for a in self._assignments.list_for_volunteers(sorted({int(v) for v in volunteer_ids}))
            if a.event_id != event.event_id
        ]
        if not assignments:
            return {}

        others = {int(e.event_id): e for e in self._events.get_many(sorted({a.event_id for a in assignments}))}
        clashes: dict[int, Event] = {}
        for a in sorted(assignments, key=lambda a: (a.volunteer_id, a.event_id)):
            other = others.get(a.event_id)
            if other is None or a.volunteer_id in clashes:
                continue
            interval = try_normalize(other, storage_tz=self._storage_tz, local_tz=self._local_tz)
            if interval is not None and conflicts(interval, wanted):
                clashes[a.volunteer_id] = other
        return clashes

    # ----------------------------------------------------------------- writes

    @staticmethod
    def _require_admin(principal: Optional[Principal]) -> None:
        if principal is None or not principal.is_admin:
            raise AuthorizationError("Você não tem permissão para alterar eventos")

    def _validate(self, draft: Event) -> Event:
        name = require_non_empty(draft.name, "name")
        draft_day = parse_iso_date(draft.date)
        start = parse_wall_time(draft.start_time, field="start_time")
        end = parse_wall_time(draft.end_time, field="end_time")
        if start == end:
            raise ValidationError("O horário de término deve ser diferente do início", field="end_time")
        cleaned = Event(
            event_id=draft.event_id,
            name=name,
            date=draft_day,
            start_time=start,
            end_time=end,
            status=EventStatus(draft.status),
            location=draft.location,
            color=draft.color,
            notes=draft.notes,
            principal_timeline_id=draft.principal_timeline_id,
            kids_timeline_id=draft.kids_timeline_id,
        )
        normalize_event(cleaned, storage_tz=self._storage_tz, local_tz=self._local_tz)
        return cleaned

    def _raise_if_conflicting(self, draft: Event) -> None:
        other = self.check_conflict(draft)
        if other is not None:
            raise ConflictError(conflict_message(other), conflicting=other)

    def _revalidate_after_write(self, written: Event, previous: Optional[Event]) -> None:
        """Narrow re-check after the write; undo our own write if someone raced us in."""

        other = self.check_conflict(written)
        if other is None:
            return

        logger.warning(
            "concurrent conflict detected after writing event id=%s against id=%s; undoing",
            written.event_id,
            other.event_id,
        )
        if previous is None:
            self._events.delete(int(written.event_id))
        else:
            self._events.update(previous)
        raise ConflictError(conflict_message(other), conflicting=other)

    def save_event(
        self,
        principal: Optional[Principal],
        draft: Event,
        *,
        department_ids: Optional[Sequence[int]] = None,
        volunteer_pairs: Optional[Sequence[tuple[int, int]]] = None,
        check_double_booking: bool = False,
    ) -> Event:
        """Validate, conflict-check and persist an event plus its assignments."""

        self._require_admin(principal)
        cleaned = self._validate(draft)

        previous = None
        if cleaned.event_id is not None:
            previous = self.get(int(cleaned.event_id))

        if volunteer_pairs and department_ids is not None:
            allowed = {int(d) for d in department_ids}
            for volunteer_id, department_id in volunteer_pairs:
                if int(department_id) not in allowed:
                    raise ValidationError(
                        f"Voluntário {volunteer_id} escalado em departamento fora do evento",
                        field="volunteer_ids",
                    )

        self._raise_if_conflicting(cleaned)

        if check_double_booking and volunteer_pairs:
            clashes = self.find_volunteer_double_bookings(cleaned, [v for v, _ in volunteer_pairs])
            if clashes:
                volunteer_id, other = next(iter(clashes.items()))
                raise ConflictError(
                    f"Voluntário {volunteer_id} já está escalado em {other.describe()}",
                    conflicting=other,
                )

        if previous is None:
            event_id = self._events.insert(cleaned)
            written = replace(cleaned, event_id=int(event_id))
        else:
            if not self._events.update(cleaned):
                raise NotFoundError("Evento não encontrado")
            written = cleaned

        self._revalidate_after_write(written, previous)

        if department_ids is not None:
            self._assignments.replace_event_departments(event_id=int(written.event_id), department_ids=department_ids)
        if volunteer_pairs is not None:
            self._assignments.replace_event_volunteers(event_id=int(written.event_id), pairs=volunteer_pairs)

        logger.info("saved event id=%s %s", written.event_id, written.describe())
        return written

    def delete_event(self, principal: Optional[Principal], event_id: int) -> None:
        self._require_admin(principal)
        if not self._events.delete(int(event_id)):
            raise NotFoundError("Evento não encontrado")

    # ------------------------------------------------------- move and resize

    def move_event(
        self, principal: Optional[Principal], event_id: int, *, new_date, new_start
    ) -> RescheduleOutcome:
        """Drag-move: keep the duration, shift the start."""

        original = self.get(event_id)
        try:
            day = parse_iso_date(new_date, field="date")
            start = parse_wall_time(new_start, field="start_time")
            duration = normalize_event(original).duration
        except ValidationError as e:
            return RescheduleOutcome(applied=False, event=original, reason=str(e), error_kind="validation")

        end = (datetime.combine(day, start) + duration).time()
        return self._reschedule(principal, original, original.with_schedule(day=day, start_time=start, end_time=end))

    def resize_event(self, principal: Optional[Principal], event_id: int, *, new_end) -> RescheduleOutcome:
        """Resize: keep date and start, change the end."""

        original = self.get(event_id)
        try:
            end = parse_wall_time(new_end, field="end_time")
        except ValidationError as e:
            return RescheduleOutcome(applied=False, event=original, reason=str(e), error_kind="validation")
        return self._reschedule(
            principal, original, original.with_schedule(day=original.date, start_time=original.start_time, end_time=end)
        )

    def _reschedule(self, principal: Optional[Principal], original: Event, proposed: Event) -> RescheduleOutcome:
        """Commit the new coordinates or report a revert to the original ones.

        Nothing is written unless every check passes, so a revert never has to
        undo a partial commit.
        """

        try:
            self._require_admin(principal)
            cleaned = self._validate(proposed)
            self._raise_if_conflicting(cleaned)
            ok = self._events.update_schedule(
                event_id=int(original.event_id),
                day=cleaned.date,
                start_time=cleaned.start_time,
                end_time=cleaned.end_time,
            )
            if not ok:
                raise NotFoundError("Evento não encontrado")
            self._revalidate_after_write(cleaned, original)
        except ConflictError as e:
            return RescheduleOutcome(
                applied=False, event=original, reason=str(e), conflicting=e.conflicting, error_kind="conflict"
            )
        except AuthorizationError as e:
            return RescheduleOutcome(applied=False, event=original, reason=str(e), error_kind="authorization")
        except (ValidationError, NotFoundError) as e:
            return RescheduleOutcome(applied=False, event=original, reason=str(e), error_kind="validation")
        except BackendError as e:
            logger.error("reschedule of event id=%s failed: %s", original.event_id, e)
            return RescheduleOutcome(
                applied=False,
                event=original,
                reason=e.backend_message or "Falha ao atualizar o evento.",
                error_kind="backend",
            )
        return RescheduleOutcome(applied=True, event=cleaned)
