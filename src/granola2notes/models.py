"""Data models for Granola documents and the notes built from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

UNTITLED = "Untitled Granola Note"


class NodeKind(str, Enum):
    """ProseMirror node types the content transformer knows about."""

    DOC = "doc"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    BULLET_LIST = "bulletList"
    LIST_ITEM = "listItem"
    TEXT = "text"


class SpeakerSource(str, Enum):
    MICROPHONE = "microphone"
    SYSTEM = "system"
    OTHER = "other"

    @classmethod
    def parse(cls, value: object) -> SpeakerSource:
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


@dataclass
class TranscriptFragment:
    source: SpeakerSource
    text: str
    start: datetime | None = None


@dataclass
class SpeakerTurn:
    """Consecutive fragments from one source, merged into a single block."""

    source: SpeakerSource
    start: datetime | None
    text: str

    @property
    def label(self) -> str:
        return "Me" if self.source is SpeakerSource.MICROPHONE else "Them"


@dataclass
class Folder:
    id: str
    title: str
    document_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, folder_id: str, raw: dict) -> Folder:
        doc_ids = raw.get("document_ids") or []
        return cls(
            id=str(raw.get("id") or folder_id),
            title=str(raw.get("title") or ""),
            document_ids=[str(d) for d in doc_ids if d] if isinstance(doc_ids, list) else [],
        )


def parse_timestamp(value: str | int | float | None) -> datetime | None:
    """Parse an ISO string or epoch number into an aware datetime."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # Epoch millis or seconds
        if value > 1e12:
            value = value / 1000
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return parse_timestamp(float(text))
        except ValueError:
            pass
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


@dataclass
class Document:
    id: str
    title: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    content: dict | None = None
    people: list[dict] = field(default_factory=list)
    calendar_attendees: list[dict] = field(default_factory=list)
    transcript: list[TranscriptFragment] = field(default_factory=list)

    @classmethod
    def from_api(cls, raw: dict) -> Document:
        """Build a document from one entry of the get-documents ``docs`` array."""
        content = None
        panel = raw.get("last_viewed_panel")
        if isinstance(panel, dict) and isinstance(panel.get("content"), dict):
            content = panel["content"]

        # people is a list in the API, but older payloads nest it under attendees
        people = raw.get("people") or []
        if isinstance(people, dict):
            people = people.get("attendees") or []

        calendar_attendees: list = []
        gcal = raw.get("google_calendar_event")
        if isinstance(gcal, dict):
            calendar_attendees = gcal.get("attendees") or []

        title = raw.get("title")
        return cls(
            id=str(raw.get("id") or ""),
            title=title if isinstance(title, str) else None,
            created_at=parse_timestamp(raw.get("created_at")),
            updated_at=parse_timestamp(raw.get("updated_at")),
            content=content,
            people=[p for p in people if isinstance(p, dict)] if isinstance(people, list) else [],
            calendar_attendees=[
                a for a in calendar_attendees if isinstance(a, dict)
            ] if isinstance(calendar_attendees, list) else [],
        )


@dataclass
class FormattedNote:
    """A document rendered for the note store, staged until publish."""

    document_id: str
    title: str
    filename: str
    body: str
