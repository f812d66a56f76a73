"""Assemble the plain-text note published for each Granola document."""

from __future__ import annotations

import logging

from .config import Config
from .errors import TransformError
from .metadata import (
    extract_attendee_names,
    folder_names_for,
    generate_attendee_tags,
    generate_folder_tags,
    granola_url,
    make_filename,
    make_title,
)
from .models import Document, Folder, FormattedNote, NodeKind
from .prosemirror import markdown_to_plain_text, prosemirror_to_markdown
from .transcript import transcript_to_markdown

log = logging.getLogger(__name__)

MARKER_HEADER = "--- Granola Note ---"
MARKER_PREFIX = "granola_id: "


def marker_line(doc_id: str) -> str:
    """The line that ties a published note back to its document."""
    return f"{MARKER_PREFIX}{doc_id}"


def render_content(doc: Document) -> str:
    """Plain text of the document's notes panel."""
    content = doc.content
    if not isinstance(content, dict) or content.get("type") != NodeKind.DOC:
        raise TransformError(f"Document {doc.id} has no usable content tree", doc.id)
    return markdown_to_plain_text(prosemirror_to_markdown(content)).strip()


def build_metadata_section(doc: Document, tags: list[str], config: Config) -> str:
    title = doc.title or ""
    lines = [
        MARKER_HEADER,
        marker_line(doc.id),
        'title: "{}"'.format(title.replace('"', '\\"')),
    ]
    url = granola_url(doc.id, config)
    if url:
        lines.append(f"granola_url: {url}")
    if doc.created_at:
        lines.append(f"created_at: {doc.created_at.isoformat()}")
    if doc.updated_at:
        lines.append(f"updated_at: {doc.updated_at.isoformat()}")
    if tags:
        lines.append(f"tags: {', '.join(tags)}")
    lines.append("---")
    return "\n".join(lines)


def build_note(
    doc: Document,
    config: Config,
    folder_map: dict[str, Folder] | None = None,
) -> FormattedNote:
    """Render ``doc`` into a FormattedNote ready for the note store.

    The exact title goes on the first line, so stores that derive a note's
    name from its body still get the right one. The metadata block (with
    the ``granola_id`` marker) sits after the content.
    """
    title = make_title(doc)
    content = render_content(doc)

    attendee_tags = generate_attendee_tags(extract_attendee_names(doc), config)
    folder_tags = generate_folder_tags(folder_names_for(doc, folder_map or {}, config), config)
    tags = attendee_tags + [t for t in folder_tags if t not in attendee_tags]

    sections = [title]
    if content:
        sections.append(content)
    sections.append(build_metadata_section(doc, tags, config))

    if config.include_full_transcript:
        transcript = markdown_to_plain_text(transcript_to_markdown(doc.transcript))
        sections.append("---\n\nTRANSCRIPT\n\n" + transcript)

    return FormattedNote(
        document_id=doc.id,
        title=title,
        filename=make_filename(doc, config),
        body="\n\n".join(sections) + "\n",
    )
