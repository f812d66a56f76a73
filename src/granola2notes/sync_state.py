"""Process-wide sync status, shared with whoever polls it."""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

log = logging.getLogger(__name__)

STOPPED_MESSAGE = "Sync stopped by user"


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass
class Progress:
    total: int = 0
    processed: int = 0


@dataclass
class SyncStatus:
    """In-memory status of the current or most recent sync run.

    ``try_begin`` hands out a run number and every later update names it.
    Once a stop has forced the status idle and another run has started,
    late updates from the abandoned run are dropped.
    """

    state: RunState = RunState.IDLE
    last_sync_time: datetime | None = None
    last_sync_count: int = 0
    last_error: str | None = None
    progress: Progress = field(default_factory=Progress)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
    _runs: itertools.count = field(default_factory=lambda: itertools.count(1), repr=False, compare=False)
    _current_run: int = field(default=0, repr=False, compare=False)

    @property
    def is_running(self) -> bool:
        return self.state is RunState.RUNNING

    def try_begin(self) -> int | None:
        """Enter Running and return the run number; None if already running."""
        with self._lock:
            if self.state is RunState.RUNNING:
                return None
            self._current_run = next(self._runs)
            self.state = RunState.RUNNING
            self.last_error = None
            self.progress = Progress()
            return self._current_run

    def owns(self, run: int) -> bool:
        return run == self._current_run

    def set_total(self, run: int, total: int) -> None:
        if self.owns(run):
            self.progress = Progress(total=total, processed=0)

    def advance(self, run: int) -> None:
        if self.owns(run):
            self.progress.processed += 1

    def record_error(self, run: int, message: str) -> None:
        if self.owns(run):
            self.last_error = message

    def complete(self, run: int, count: int) -> None:
        """Completed; a per-document error recorded during the run is kept."""
        with self._lock:
            if not self.owns(run):
                return
            self.state = RunState.COMPLETED
            self.last_sync_time = datetime.now(tz=timezone.utc)
            self.last_sync_count = count

    def fail(self, run: int, message: str) -> None:
        with self._lock:
            if not self.owns(run):
                return
            self.state = RunState.FAILED
            self.last_error = message
            self.last_sync_count = 0

    def mark_stopped(self, run: int) -> None:
        with self._lock:
            if not self.owns(run):
                return
            self.state = RunState.STOPPED
            self.last_error = STOPPED_MESSAGE

    def force_idle(self) -> None:
        """Drop out of Running without waiting for the run to notice."""
        with self._lock:
            if self.state is RunState.RUNNING:
                self.state = RunState.IDLE

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "is_running": self.is_running,
            "last_sync_time": self.last_sync_time.isoformat() if self.last_sync_time else None,
            "last_sync_count": self.last_sync_count,
            "last_error": self.last_error,
            "progress": {"total": self.progress.total, "processed": self.progress.processed},
        }
