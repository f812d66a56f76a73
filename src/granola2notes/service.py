"""Control surface: start, stop, poll and reconfigure syncs."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from .config import Config, load_config, save_config
from .granola_client import GranolaClient
from .note_store import NoteStore, make_store
from .sync_engine import ClientFactory, run_sync
from .sync_state import SyncStatus

log = logging.getLogger(__name__)


class SyncService:
    """Owns the status, the note store and the recurring-sync timer.

    ``start`` runs the sync on a worker thread and returns at once. Each run
    gets its own cancel event, so a stop only ever affects the run that was
    in flight when it was requested.
    """

    def __init__(
        self,
        config: Config,
        *,
        config_path: Path | None = None,
        store: NoteStore | None = None,
        client_factory: ClientFactory = GranolaClient,
    ) -> None:
        self.config = config
        self.config_path = config_path
        self.sync_status = SyncStatus()
        self._store = store
        self._client_factory = client_factory
        self._cancel = threading.Event()
        self._worker: threading.Thread | None = None
        self._timer: threading.Timer | None = None
        self._auto_sync = False
        self._lock = threading.Lock()

    @property
    def store(self) -> NoteStore:
        if self._store is None:
            self._store = make_store(self.config)
        return self._store

    def status(self) -> dict:
        return {**self.sync_status.to_dict(), "settings": self.config.to_dict()}

    def _claim_run(self) -> tuple[int, threading.Event] | None:
        # The cancel event is swapped only by the caller that wins Running
        with self._lock:
            run = self.sync_status.try_begin()
            if run is None:
                return None
            self._cancel = threading.Event()
            return run, self._cancel

    def _sync(self, run: int, cancel: threading.Event) -> int:
        return run_sync(
            self.config, self.sync_status, self.store, cancel,
            client_factory=self._client_factory, run=run,
        )

    def run_once(self) -> int:
        """Run a sync on the calling thread. 0 if one is already running."""
        claimed = self._claim_run()
        if claimed is None:
            log.info("Sync already in progress")
            return 0
        return self._sync(*claimed)

    def start(self) -> bool:
        """Launch a sync in the background. False if one is already running."""
        claimed = self._claim_run()
        if claimed is None:
            log.info("Sync already in progress")
            return False
        self._worker = threading.Thread(
            target=self._run_safely, args=claimed, name="granola-sync", daemon=True,
        )
        self._worker.start()
        return True

    def _run_safely(self, run: int, cancel: threading.Event) -> None:
        try:
            self._sync(run, cancel)
        except Exception:
            log.error("Sync worker crashed", exc_info=True)

    def stop(self) -> None:
        """Cancel the current run and any scheduled one."""
        with self._lock:
            self._auto_sync = False
            self._cancel.set()
        self.clear_auto_sync()
        self.sync_status.force_idle()
        log.info("Sync stop requested")

    def update_config(self, partial: dict) -> Config:
        """Merge ``partial`` into the config, persist it and reschedule."""
        updated = self.config.merged(partial)
        self.apply_config(updated)
        save_config(updated, self.config_path)
        log.info("Config updated: %s", ", ".join(sorted(partial)) or "no changes")
        return updated

    def apply_config(self, config: Config) -> None:
        store_changed = (
            config.note_store != self.config.note_store
            or config.notes_account != self.config.notes_account
            or config.notes_dir != self.config.notes_dir
        )
        self.config = config
        if store_changed:
            self._store = None
        if self._auto_sync:
            self._arm_timer()

    def reload_config(self) -> None:
        try:
            config = load_config(self.config_path)
        except (OSError, ValueError):
            log.error("Could not reload config, keeping the current one", exc_info=True)
            return
        self.apply_config(config)
        log.info("Reloaded config from %s", self.config_path or "default location")

    def delete_all(self) -> int:
        """Clear the destination folder straight away."""
        return self.store.delete_all(self.config.notes_folder)

    def schedule_auto_sync(self) -> bool:
        """Turn on recurring syncs. False when the interval disables them."""
        with self._lock:
            self._auto_sync = True
        return self._arm_timer()

    def _arm_timer(self) -> bool:
        interval = self.config.auto_sync_seconds
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            # A stop may have landed since the caller decided to re-arm
            if not self._auto_sync:
                return False
            if interval <= 0:
                log.info("Auto-sync disabled")
                return False
            self._timer = threading.Timer(interval, self._auto_sync_tick)
            self._timer.daemon = True
            self._timer.start()
        log.debug("Next auto-sync in %ds", interval)
        return True

    def clear_auto_sync(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _auto_sync_tick(self) -> None:
        # Overlap is prevented by the Running guard, not by the timer
        if not self._auto_sync:
            return
        self.start()
        self._arm_timer()
