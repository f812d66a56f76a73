"""Shared fixtures for granola2notes tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from granola2notes.config import Config
from granola2notes.models import Document, SpeakerSource, TranscriptFragment
from granola2notes.note_store import NoteStore, StoredNote


def text(value: str) -> dict:
    return {"type": "text", "text": value}


def paragraph(value: str) -> dict:
    return {"type": "paragraph", "content": [text(value)]}


def item(value: str, *nested: dict) -> dict:
    return {"type": "listItem", "content": [paragraph(value), *nested]}


def bullets(*items: dict) -> dict:
    return {"type": "bulletList", "content": list(items)}


def doc_tree(*nodes: dict) -> dict:
    return {"type": "doc", "content": list(nodes)}


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_config() -> Config:
    return Config(credential_path=".config/Granola/supabase.json")


@pytest.fixture
def sample_document(fixed_now: datetime) -> Document:
    return Document(
        id="doc-123",
        title="Team Standup",
        created_at=fixed_now,
        updated_at=fixed_now,
        content=doc_tree(
            {"type": "heading", "attrs": {"level": 2}, "content": [text("Agenda")]},
            bullets(item("Roadmap"), item("Hiring")),
        ),
        people=[
            {"name": "Alice Smith", "email": "alice@example.com"},
            {"email": "bob.jones@example.com"},
        ],
        calendar_attendees=[
            {"email": "alice@example.com", "displayName": "Alice S."},
            {"email": "carol@example.com", "displayName": "Carol"},
        ],
    )


@pytest.fixture
def sample_fragments(fixed_now: datetime) -> list[TranscriptFragment]:
    return [
        TranscriptFragment(SpeakerSource.MICROPHONE, "Hello", fixed_now),
        TranscriptFragment(SpeakerSource.SYSTEM, "Hi there", fixed_now.replace(second=5)),
    ]


@pytest.fixture
def make_doc(fixed_now):
    def _make(doc_id="d1", title="Test Meeting", **kwargs):
        kwargs.setdefault("content", doc_tree(paragraph(f"Notes for {doc_id}")))
        return Document(
            id=doc_id,
            title=title,
            created_at=fixed_now,
            updated_at=fixed_now,
            **kwargs,
        )
    return _make


class RecordingStore(NoteStore):
    """In-memory note store that records every call."""

    def __init__(self, fail_titles: set[str] | None = None):
        self.notes: dict[str, list[StoredNote]] = {}
        self.calls: list[tuple] = []
        self.fail_titles = fail_titles or set()

    def enumerate(self, folder):
        self.calls.append(("enumerate", folder))
        return list(self.notes.get(folder, []))

    def create(self, folder, title, body, *, filename=None):
        self.calls.append(("create", folder, title))
        if title in self.fail_titles:
            from granola2notes.errors import PublishError
            raise PublishError(f"refused {title}")
        self.notes.setdefault(folder, []).append(StoredNote(name=title, body=body))
        return True

    def delete_all(self, folder):
        self.calls.append(("delete_all", folder))
        return len(self.notes.pop(folder, []))


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


class FakeClient:
    """Stands in for GranolaClient; built by the client_factory hook."""

    def __init__(self, documents, folders=None, transcripts=None, transcript_error=None):
        self.documents = documents
        self.folders = folders
        self.transcripts = transcripts or {}
        self.transcript_error = transcript_error
        self.transcript_calls: list[str] = []
        self.closed = False

    def factory(self, token, base_url=None):
        self.token = token
        return self

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.closed = True

    def fetch_all_documents(self):
        if isinstance(self.documents, Exception):
            raise self.documents
        return list(self.documents)

    def fetch_folders(self):
        if isinstance(self.folders, Exception):
            raise self.folders
        return self.folders

    def fetch_transcript(self, document_id):
        self.transcript_calls.append(document_id)
        if self.transcript_error:
            raise self.transcript_error
        return self.transcripts.get(document_id, [])
