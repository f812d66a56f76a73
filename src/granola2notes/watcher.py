"""Daemon mode: recurring syncs plus a watchdog reload of the config file."""

from __future__ import annotations

import logging
import signal
import threading
import time
from pathlib import Path

from watchdog.events import FileModifiedEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .service import SyncService

log = logging.getLogger(__name__)

_DEBOUNCE_SECONDS = 2.0


class _ConfigEventHandler(FileSystemEventHandler):
    """Reloads the service config when the YAML file is edited."""

    def __init__(self, service: SyncService, config_path: Path):
        super().__init__()
        self._service = service
        self._config_path = config_path
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def on_modified(self, event: FileModifiedEvent) -> None:  # type: ignore[override]
        if event.is_directory:
            return
        # Only react to the config file itself
        if Path(str(event.src_path)).name != self._config_path.name:
            return

        log.debug("Config file modified, reloading in %.1fs", _DEBOUNCE_SECONDS)
        self._schedule_reload()

    on_created = on_modified

    def _schedule_reload(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(_DEBOUNCE_SECONDS, self._do_reload)
            self._timer.daemon = True
            self._timer.start()

    def _do_reload(self) -> None:
        try:
            self._service.reload_config()
        except Exception:
            log.error("Config reload failed", exc_info=True)


def watch(service: SyncService, config_path: Path) -> None:
    """Sync now, then keep syncing on the configured interval until interrupted."""
    log.info("Running initial sync...")
    service.run_once()

    if not service.schedule_auto_sync():
        log.warning("auto_sync_seconds is 0; only config reloads will happen")

    config_path = Path(config_path).expanduser()
    observer = None
    if config_path.parent.exists():
        observer = Observer()
        observer.schedule(
            _ConfigEventHandler(service, config_path), str(config_path.parent), recursive=False,
        )
    else:
        log.info("Config directory %s does not exist, not watching it", config_path.parent)

    stop_event = threading.Event()

    def _shutdown(signum: int, frame: object) -> None:
        sig_name = signal.Signals(signum).name
        log.info("Received %s, shutting down...", sig_name)
        stop_event.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    if observer is not None:
        observer.start()
    log.info(
        "Auto-sync every %ds (Ctrl+C to stop)", service.config.auto_sync_seconds,
    )

    try:
        while not stop_event.is_set():
            time.sleep(1)
    finally:
        service.stop()
        if observer is not None:
            observer.stop()
            observer.join()
        log.info("Watcher stopped")
