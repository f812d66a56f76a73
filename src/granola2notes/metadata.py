"""Filenames, titles, attendee names and tags derived from document metadata."""

from __future__ import annotations

import logging
import re
from datetime import datetime

from .config import Config
from .models import UNTITLED, Document, Folder

log = logging.getLogger(__name__)

# Longest token first so YYYY is never read as two YYs
_DATE_TOKEN_RE = re.compile(r"YYYY|YY|MM|DD|HH|mm|ss")
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE_RE = re.compile(r"\s+")
_TAG_STRIP_RE = re.compile(r"[^\w\s-]", re.ASCII)
_SLASHES_RE = re.compile(r"/+")
_EMAIL_SEPARATORS_RE = re.compile(r"[._]")

GRANOLA_NOTE_URL = "https://notes.granola.ai/d/{id}"


def format_date(value: datetime | None, fmt: str) -> str:
    """Render ``value`` in local time using YYYY/YY/MM/DD/HH/mm/ss tokens."""
    if value is None:
        return ""
    local = value.astimezone()
    tokens = {
        "YYYY": f"{local.year:04d}",
        "YY": f"{local.year % 100:02d}",
        "MM": f"{local.month:02d}",
        "DD": f"{local.day:02d}",
        "HH": f"{local.hour:02d}",
        "mm": f"{local.minute:02d}",
        "ss": f"{local.second:02d}",
    }
    return _DATE_TOKEN_RE.sub(lambda m: tokens[m.group(0)], fmt)


def make_title(doc: Document) -> str:
    return (doc.title or UNTITLED).strip() or UNTITLED


def make_filename(doc: Document, config: Config) -> str:
    """Apply the filename template and strip characters illegal in filenames."""
    date_fmt = config.date_format
    values = {
        "{title}": doc.title or UNTITLED,
        "{id}": doc.id or "unknown_id",
        "{created_date}": format_date(doc.created_at, date_fmt),
        "{updated_date}": format_date(doc.updated_at, date_fmt),
        "{created_time}": format_date(doc.created_at, "HH-mm-ss"),
        "{updated_time}": format_date(doc.updated_at, "HH-mm-ss"),
        "{created_datetime}": format_date(doc.created_at, f"{date_fmt}_HH-mm-ss"),
        "{updated_datetime}": format_date(doc.updated_at, f"{date_fmt}_HH-mm-ss"),
    }
    filename = config.filename_template
    for placeholder, value in values.items():
        filename = filename.replace(placeholder, value)

    if config.note_prefix:
        filename = config.note_prefix + filename

    filename = _INVALID_FILENAME_CHARS.sub("", filename)
    return _WHITESPACE_RE.sub("_", filename)


def _name_from_email(email: str) -> str:
    return _EMAIL_SEPARATORS_RE.sub(" ", email.split("@")[0])


def _text(value: object) -> str | None:
    """``value`` if it is a non-empty string; anything else counts as missing."""
    return value if isinstance(value, str) and value else None


def _person_name(person: dict) -> str | None:
    name = _text(person.get("name")) or _text(person.get("display_name"))
    if name:
        return name

    details = person.get("details")
    if isinstance(details, dict) and isinstance(details.get("person"), dict):
        structured = details["person"].get("name")
        if isinstance(structured, dict):
            full = _text(structured.get("fullName"))
            given = _text(structured.get("givenName"))
            family = _text(structured.get("familyName"))
            if full:
                return full
            if given and family:
                return f"{given} {family}"
            return given

    email = _text(person.get("email"))
    return _name_from_email(email) if email else None


def extract_attendee_names(doc: Document) -> list[str]:
    """Resolve display names for everyone on the meeting, deduplicated."""
    names: list[str] = []
    seen_emails: set[str] = set()

    for person in doc.people:
        name = _person_name(person)
        if name and name not in names:
            names.append(name)
            email = _text(person.get("email"))
            if email:
                seen_emails.add(email)

    # Calendar invitees fill in whoever Granola didn't capture
    for attendee in doc.calendar_attendees:
        email = _text(attendee.get("email"))
        if email and email in seen_emails:
            continue

        display_name = _text(attendee.get("displayName"))
        if display_name and display_name not in names:
            names.append(display_name)
            if email:
                seen_emails.add(email)
        elif email:
            local_part = email.split("@")[0]
            if not any(local_part in name for name in names):
                names.append(_name_from_email(email))
                seen_emails.add(email)

    return names


def _clean_tag_name(name: str) -> str:
    cleaned = _TAG_STRIP_RE.sub("", name).strip()
    return _WHITESPACE_RE.sub("-", cleaned).lower()


def _build_tags(names: list[str], template: str, exclude: str | None = None) -> list[str]:
    tags: list[str] = []
    excluded = exclude.strip().lower() if exclude else None
    for name in names:
        if not name:
            continue
        if excluded and name.strip().lower() == excluded:
            continue
        clean_name = _clean_tag_name(name)
        if not clean_name:
            continue
        tag = _SLASHES_RE.sub("/", template.replace("{name}", clean_name)).strip("/")
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def generate_attendee_tags(attendees: list[str], config: Config) -> list[str]:
    if not config.include_attendee_tags or not attendees:
        return []
    exclude = config.my_name if config.exclude_my_name_from_tags else None
    return _build_tags(attendees, config.attendee_tag_template, exclude)


def generate_folder_tags(folder_names: list[str], config: Config) -> list[str]:
    if not config.include_folder_tags or not folder_names:
        return []
    return _build_tags(folder_names, config.folder_tag_template)


def folder_names_for(doc: Document, folder_map: dict[str, Folder], config: Config) -> list[str]:
    if not config.include_folder_tags:
        return []
    folder = folder_map.get(doc.id)
    if folder and folder.title:
        return [folder.title]
    return []


def granola_url(doc_id: str, config: Config) -> str | None:
    if not config.include_granola_url or not doc_id:
        return None
    return GRANOLA_NOTE_URL.format(id=doc_id)
