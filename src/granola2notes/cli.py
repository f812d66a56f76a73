"""Command-line interface for granola2notes."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import _DEFAULT_CONFIG_PATH, load_config
from .errors import PublishError
from .service import SyncService
from .sync_state import RunState
from .watcher import watch


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="granola2notes",
        description="Sync Granola meeting notes to Apple Notes (or a folder of text files)",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help=f"Path to config YAML (default: {_DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sync and exit (no auto-sync)",
    )
    parser.add_argument(
        "--delete-all",
        action="store_true",
        help="Delete every note in the destination folder and exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        raise SystemExit(1) from None

    service = SyncService(config, config_path=args.config)

    if args.delete_all:
        try:
            deleted = service.delete_all()
        except PublishError as e:
            print(f"Error: {e}", file=sys.stderr)
            raise SystemExit(1) from None
        print(f"Deleted {deleted} note(s)")
    elif args.once:
        written = service.run_once()
        status = service.sync_status
        if status.state is RunState.COMPLETED:
            print(f"Synced {written} note(s)")
        else:
            print(f"Sync {status.state.value}: {status.last_error}", file=sys.stderr)
            raise SystemExit(1)
    else:
        watch(service, args.config or _DEFAULT_CONFIG_PATH)
