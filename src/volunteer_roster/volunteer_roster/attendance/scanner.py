from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.constants import (
    SCAN_ERROR_DISPLAY_SECONDS,
    SCAN_SESSION_IDLE_SECONDS,
    SCAN_SESSION_LIMIT,
    SCAN_SUCCESS_DISPLAY_SECONDS,
)
from ..core.enums import ScanOutcome


@dataclass(frozen=True)
class ScanResult:
    kind: ScanOutcome
    message: str
    volunteer_id: Optional[int] = None
    event_id: Optional[int] = None
    already_confirmed: bool = False

    @property
    def ok(self) -> bool:
        return self.kind == ScanOutcome.SUCCESS

    def to_dict(self) -> dict:
        return {
            "success": self.ok,
            "message": self.message,
            "volunteer_id": self.volunteer_id,
            "event_id": self.event_id,
            "already_confirmed": self.already_confirmed,
        }


class ScanSession:
    """Single-flight guard for one scanning screen.

    While a result is on display every new scan is dropped. The result clears
    itself after its display window, so the next scan goes through.
    """

    def __init__(
        self,
        *,
        success_seconds: float = SCAN_SUCCESS_DISPLAY_SECONDS,
        error_seconds: float = SCAN_ERROR_DISPLAY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._success_seconds = float(success_seconds)
        self._error_seconds = float(error_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._busy = False
        self._result: Optional[ScanResult] = None
        self._expires_at = 0.0

    def _expire_locked(self) -> None:
        if self._result is not None and self._clock() >= self._expires_at:
            self._result = None

    @property
    def current(self) -> Optional[ScanResult]:
        with self._lock:
            self._expire_locked()
            return self._result

    def submit(self, raw, handler: Callable[[object], ScanResult]) -> Optional[ScanResult]:
        """Run `handler(raw)` unless a result is displayed or a scan is in flight.

        Returns None when the scan was ignored.
        """

        with self._lock:
            self._expire_locked()
            if self._busy or self._result is not None:
                return None
            self._busy = True

        try:
            result = handler(raw)
        finally:
            with self._lock:
                self._busy = False

        window = self._success_seconds if result.ok else self._error_seconds
        with self._lock:
            self._result = result
            self._expires_at = self._clock() + window
        return result

    @property
    def idle(self) -> bool:
        """Nothing in flight and nothing on display."""
        with self._lock:
            self._expire_locked()
            return not self._busy and self._result is None

    def clear(self) -> None:
        with self._lock:
            self._result = None


class ScanSessionRegistry:
    """ScanSession per scanning screen, keyed by the id the client sends.

    Screens that stop scanning without closing are dropped once idle for
    `idle_seconds`; past `limit` entries the least recently used idle
    session goes first.
    """

    def __init__(
        self,
        factory: Callable[[], ScanSession] = ScanSession,
        *,
        idle_seconds: float = SCAN_SESSION_IDLE_SECONDS,
        limit: int = SCAN_SESSION_LIMIT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factory = factory
        self._idle_seconds = float(idle_seconds)
        self._limit = int(limit)
        self._clock = clock
        self._lock = threading.Lock()
        # session id -> (session, last used); oldest first
        self._sessions: OrderedDict[str, tuple[ScanSession, float]] = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get(self, session_id: str) -> ScanSession:
        with self._lock:
            now = self._clock()
            entry = self._sessions.pop(session_id, None)
            self._purge_locked(now)
            session = entry[0] if entry else self._factory()
            self._sessions[session_id] = (session, now)
            return session

    def close(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def _purge_locked(self, now: float) -> None:
        for key, (session, last_used) in list(self._sessions.items()):
            if now - last_used < self._idle_seconds:
                break
            if session.idle:
                del self._sessions[key]

        overflow = len(self._sessions) - self._limit + 1
        if overflow <= 0:
            return
        for key, (session, _) in list(self._sessions.items()):
            if overflow <= 0:
                break
            if session.idle:
                del self._sessions[key]
                overflow -= 1
