"""Interval conflict checks between events.

Every event is normalized first (see common.datetime_utils.normalize_interval),
so an event crossing midnight is compared with its real next-day end.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..common.datetime_utils import NormalizedInterval, normalize_interval, try_normalize
from .model import Event


def conflicts(existing: NormalizedInterval, candidate: NormalizedInterval) -> bool:
    """Open-interval overlap. Back-to-back intervals do not conflict."""
    return candidate.start < existing.end and candidate.end > existing.start


def normalize_event(
    event: Event, *, storage_tz: Optional[str] = None, local_tz: Optional[str] = None
) -> NormalizedInterval:
    """Normalize an event that must be well formed (raises ValidationError)."""
    return normalize_interval(
        event.date, event.start_time, event.end_time, storage_tz=storage_tz, local_tz=local_tz
    )


def find_conflict(
    candidate: Event,
    existing_events: Iterable[Event],
    exclude_event_id: Optional[int] = None,
    *,
    storage_tz: Optional[str] = None,
    local_tz: Optional[str] = None,
) -> Optional[Event]:
    """Return the earliest-starting existing event overlapping `candidate`.

    Ties on start go to the lowest event id. The excluded id (the event being
    edited) is skipped, and malformed stored events are left out with a
    data-quality warning. A malformed candidate raises ValidationError.
    """

    wanted = normalize_event(candidate, storage_tz=storage_tz, local_tz=local_tz)

    best: Optional[tuple[NormalizedInterval, Event]] = None
    for other in existing_events:
        if exclude_event_id is not None and other.event_id == exclude_event_id:
            continue
        interval = try_normalize(other, storage_tz=storage_tz, local_tz=local_tz)
        if interval is None or not conflicts(interval, wanted):
            continue
        if best is None or (interval.start, other.event_id or 0) < (best[0].start, best[1].event_id or 0):
            best = (interval, other)

    return best[1] if best else None


def check_conflict(
    event: Event,
    existing_events: Iterable[Event],
    *,
    storage_tz: Optional[str] = None,
    local_tz: Optional[str] = None,
) -> Optional[Event]:
    """find_conflict with the event's own id excluded."""
    return find_conflict(
        event, existing_events, exclude_event_id=event.event_id, storage_tz=storage_tz, local_tz=local_tz
    )
