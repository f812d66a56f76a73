"""Merge raw transcript fragments into readable speaker turns."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from .models import SpeakerSource, SpeakerTurn, TranscriptFragment, parse_timestamp

log = logging.getLogger(__name__)

NO_TRANSCRIPT = "*No transcript content available*"

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)
_WHITESPACE_RE = re.compile(r"\s+")


def parse_fragments(payload: object) -> list[TranscriptFragment]:
    """Turn a get-document-transcript response into fragments."""
    if isinstance(payload, dict):
        payload = payload.get("segments", payload.get("entries"))
    if not isinstance(payload, list):
        return []

    fragments: list[TranscriptFragment] = []
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        text = entry.get("text")
        fragments.append(
            TranscriptFragment(
                source=SpeakerSource.parse(entry.get("source")),
                text=text if isinstance(text, str) else "",
                start=parse_timestamp(entry.get("start_timestamp")),
            )
        )
    return fragments


def merge_fragments(fragments: list[TranscriptFragment] | None) -> list[SpeakerTurn]:
    """Group time-ordered fragments into turns, one per continuous speaker run."""
    if not fragments:
        return []

    # sorted() is stable, so fragments sharing a timestamp keep source order
    ordered = sorted(fragments, key=lambda f: f.start or _EPOCH)

    turns: list[SpeakerTurn] = []
    current_source: SpeakerSource | None = None
    current_start: datetime | None = None
    current_text: list[str] = []

    def flush() -> None:
        text = _WHITESPACE_RE.sub(" ", " ".join(current_text)).strip()
        if text and current_source is not None:
            turns.append(SpeakerTurn(source=current_source, start=current_start, text=text))

    for fragment in ordered:
        if current_source is not None and fragment.source is not current_source:
            flush()
            current_source = None
            current_text = []
        if current_source is None:
            current_source = fragment.source
            current_start = fragment.start
        if fragment.text and fragment.text.strip():
            current_text.append(fragment.text)
    flush()

    return turns


def format_clock(value: datetime | None) -> str:
    """HH:MM:SS in local time; a missing timestamp shows the epoch."""
    return (value or _EPOCH).astimezone().strftime("%H:%M:%S")


def transcript_to_markdown(fragments: list[TranscriptFragment] | None) -> str:
    turns = merge_fragments(fragments)
    if not turns:
        return NO_TRANSCRIPT
    return "\n\n".join(
        f"**{turn.label}** *({format_clock(turn.start)})*: {turn.text}" for turn in turns
    )
