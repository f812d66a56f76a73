"""Orchestrator: fetch -> transcript -> convert -> stage -> clear -> publish."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from .config import Config
from .credentials import load_access_token
from .errors import FetchError, GranolaSyncError, PublishError
from .granola_client import GranolaClient, build_folder_map
from .models import Document, Folder, FormattedNote
from .note_store import NoteStore
from .note_writer import build_note
from .sync_state import SyncStatus

log = logging.getLogger(__name__)

ClientFactory = Callable[..., GranolaClient]


def run_sync(
    config: Config,
    status: SyncStatus,
    store: NoteStore,
    cancel: threading.Event,
    *,
    client_factory: ClientFactory = GranolaClient,
    run: int | None = None,
) -> int:
    """Run one full-replace sync pass. Returns the number of notes published.

    Pass ``run`` when the caller already claimed Running via
    ``status.try_begin()``; otherwise the claim happens here, and the call
    does nothing (returning 0) if another run holds the Running state.
    ``cancel`` is polled before each document, before the destination is
    cleared and before each publish; in-flight calls are never interrupted.
    """
    if run is None:
        run = status.try_begin()
    if run is None:
        log.info("Sync already in progress")
        return 0

    log.info("Starting Granola sync...")
    try:
        token = load_access_token(config)
        with client_factory(token, config.api_base_url) as client:
            staged = _stage_notes(config, status, run, client, cancel)
        if staged is None:
            return 0

        if cancel.is_set():
            log.info("Sync stopped by user before publishing")
            status.mark_stopped(run)
            return 0

        published = _publish(config, store, staged, cancel)
        if published is None:
            status.mark_stopped(run)
            return 0

        status.complete(run, published)
        log.info("Sync complete: %d of %d notes published", published, len(staged))
        return published

    except Exception as e:
        log.error("Granola sync failed", exc_info=True)
        status.fail(run, str(e) or e.__class__.__name__)
        return 0


def _stage_notes(
    config: Config,
    status: SyncStatus,
    run: int,
    client: GranolaClient,
    cancel: threading.Event,
) -> list[FormattedNote] | None:
    """Fetch and render every document. None means the run ended early."""
    documents = client.fetch_all_documents()
    if not documents:
        log.error("No documents found")
        status.fail(run, "No documents found")
        return None

    folder_map: dict[str, Folder] = {}
    if config.include_folder_tags:
        folder_map = _load_folder_map(client)

    to_sync = documents
    if config.test_mode:
        to_sync = documents[: config.test_mode_limit]
        log.info("Test mode: syncing %d of %d documents", len(to_sync), len(documents))

    log.info("Found %d documents, syncing %d", len(documents), len(to_sync))
    status.set_total(run, len(to_sync))

    staged: list[FormattedNote] = []
    for doc in to_sync:
        if cancel.is_set():
            log.info("Sync stopped by user")
            status.mark_stopped(run)
            return None
        try:
            staged.append(_process_document(config, client, doc, folder_map))
        except Exception as e:
            log.error("Failed to process document %s (%s)", doc.id, doc.title, exc_info=True)
            status.record_error(run, f"{doc.title or doc.id}: {e}")
        finally:
            status.advance(run)
        log.debug("Processed %d/%d documents", status.progress.processed, len(to_sync))

    return staged


def _load_folder_map(client: GranolaClient) -> dict[str, Folder]:
    try:
        folders = client.fetch_folders()
    except FetchError:
        log.warning("Could not fetch folders, continuing without folder tags", exc_info=True)
        return {}
    return build_folder_map(folders or [])


def _process_document(
    config: Config,
    client: GranolaClient,
    doc: Document,
    folder_map: dict[str, Folder],
) -> FormattedNote:
    if config.include_full_transcript:
        try:
            doc.transcript = client.fetch_transcript(doc.id)
        except FetchError:
            log.warning("Transcript unavailable for %s", doc.id, exc_info=True)
            doc.transcript = []
    return build_note(doc, config, folder_map)


def _publish(
    config: Config,
    store: NoteStore,
    staged: list[FormattedNote],
    cancel: threading.Event,
) -> int | None:
    """Clear the folder and create every staged note. None if cancelled."""
    folder = config.notes_folder
    try:
        deleted = store.delete_all(folder)
        log.info("Cleared %d existing notes", deleted)
    except GranolaSyncError:
        log.error("Could not clear the destination folder", exc_info=True)

    published = 0
    for i, note in enumerate(staged, start=1):
        if cancel.is_set():
            log.info("Sync stopped by user during publish")
            return None
        try:
            if store.create(folder, note.title, note.body, filename=note.filename):
                published += 1
                log.info("Published %d/%d: %s", i, len(staged), note.title)
        except PublishError:
            log.error("Failed to publish %s (%s)", note.document_id, note.title, exc_info=True)
    return published
