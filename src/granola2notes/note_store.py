"""Destinations for published notes.

A note store only knows how to list, create and clear notes in a folder.
There is no update: a sync deletes everything in the folder and recreates
it. Notes are tied back to their document by the ``granola_id:`` marker
line in the body, found by scanning every note.
"""

from __future__ import annotations

import logging
import re
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from .config import Config
from .errors import PublishError
from .note_writer import marker_line

log = logging.getLogger(__name__)

CREATE_TIMEOUT = 15
FOLDER_TIMEOUT = 30


@dataclass
class StoredNote:
    name: str
    body: str


class NoteStore(ABC):
    @abstractmethod
    def enumerate(self, folder: str) -> list[StoredNote]:
        """Every note currently in ``folder``."""

    @abstractmethod
    def create(self, folder: str, title: str, body: str, *, filename: str | None = None) -> bool:
        """Create one note. Raises PublishError when the store refuses."""

    @abstractmethod
    def delete_all(self, folder: str) -> int:
        """Delete every note in ``folder`` and return how many were removed."""

    def find_by_document_id(self, folder: str, document_id: str) -> StoredNote | None:
        """Linear scan for the note whose body carries ``document_id``'s marker."""
        needle = marker_line(document_id)
        for note in self.enumerate(folder):
            if any(line.strip() == needle for line in _marker_candidates(note.body)):
                return note
        return None


_TAG_RE = re.compile(r"<[^>]+>")


def _marker_candidates(body: str) -> list[str]:
    # Apple Notes hands bodies back as HTML, one <div> per line
    return _TAG_RE.sub("\n", body).splitlines()


_FOLDER_PREAMBLE = """
        set targetAccount to account accountName
        if folderName is not "" then
            try
                set targetFolder to folder folderName of targetAccount
            on error
                %s
            end try
        else
            set targetFolder to targetAccount
        end if
"""

_CREATE_SCRIPT = """
on run argv
    set accountName to item 1 of argv
    set folderName to item 2 of argv
    set noteTitle to item 3 of argv
    set noteBody to item 4 of argv

    -- Unix newlines become AppleScript returns
    set AppleScript's text item delimiters to (ASCII character 10)
    set bodyLines to text items of noteBody
    set AppleScript's text item delimiters to return
    set noteBody to bodyLines as string
    set AppleScript's text item delimiters to ""

    tell application "Notes"
%s
        set newNote to make new note at targetFolder with properties {name:noteTitle}
        delay 0.1
        set body of newNote to noteBody
        delay 0.1
        set name of newNote to noteTitle
    end tell
    return "OK"
end run
""" % (_FOLDER_PREAMBLE % 'set targetFolder to make new folder at targetAccount with properties {name:folderName}')

_ENUMERATE_SCRIPT = """
on run argv
    set accountName to item 1 of argv
    set folderName to item 2 of argv
    set output to ""
    tell application "Notes"
%s
        repeat with aNote in notes of targetFolder
            set output to output & (name of aNote) & (ASCII character 31) & (body of aNote) & (ASCII character 30)
        end repeat
    end tell
    return output
end run
""" % (_FOLDER_PREAMBLE % 'return ""')

_DELETE_SCRIPT = """
on run argv
    set accountName to item 1 of argv
    set folderName to item 2 of argv
    tell application "Notes"
%s
        set initialCount to count of notes of targetFolder
        repeat
            set allNotes to notes of targetFolder
            if (count of allNotes) is 0 then exit repeat
            try
                delete item 1 of allNotes
            on error
                exit repeat
            end try
        end repeat
        return initialCount
    end tell
end run
""" % (_FOLDER_PREAMBLE % 'return "ERROR: Folder not found"')

_RECORD_SEP = "\x1e"
_FIELD_SEP = "\x1f"


class AppleNotesStore(NoteStore):
    """Apple Notes, driven through ``osascript``.

    Scripts are fed on stdin and every value travels as an argv item, so
    titles and bodies never need AppleScript string escaping. Each call has
    a fixed timeout and is not retried.
    """

    def __init__(self, account: str = "iCloud") -> None:
        self.account = account

    def _run_script(self, script: str, args: list[str], timeout: float) -> str:
        try:
            result = subprocess.run(
                ["osascript", "-", *args],
                input=script,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=True,
            )
        except subprocess.TimeoutExpired as e:
            raise PublishError(f"osascript timed out after {timeout}s") from e
        except subprocess.CalledProcessError as e:
            raise PublishError(f"osascript failed: {(e.stderr or '').strip()}") from e
        except OSError as e:
            raise PublishError(f"Could not run osascript: {e}") from e
        return result.stdout

    def enumerate(self, folder: str) -> list[StoredNote]:
        output = self._run_script(_ENUMERATE_SCRIPT, [self.account, folder], FOLDER_TIMEOUT)
        notes: list[StoredNote] = []
        for record in output.rstrip("\n").split(_RECORD_SEP):
            if not record.strip():
                continue
            name, _, body = record.partition(_FIELD_SEP)
            notes.append(StoredNote(name=name.strip(), body=body))
        return notes

    def create(self, folder: str, title: str, body: str, *, filename: str | None = None) -> bool:
        normalized = body.replace("\r\n", "\n").replace("\r", "\n")
        self._run_script(_CREATE_SCRIPT, [self.account, folder, title, normalized], CREATE_TIMEOUT)
        log.debug("Created Apple Note %r in %r", title, folder or self.account)
        return True

    def delete_all(self, folder: str) -> int:
        log.info(
            "Deleting notes in folder %r of account %r",
            folder or "root", self.account,
        )
        output = self._run_script(_DELETE_SCRIPT, [self.account, folder], FOLDER_TIMEOUT).strip()
        if output.startswith("ERROR:"):
            log.warning(output)
            return 0
        try:
            return int(output)
        except ValueError:
            return 0


_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


class DirectoryNoteStore(NoteStore):
    """Plain ``.txt`` files, one subdirectory per folder."""

    suffix = ".txt"

    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser()

    def _folder_dir(self, folder: str) -> Path:
        return self.root / folder if folder else self.root

    def enumerate(self, folder: str) -> list[StoredNote]:
        folder_dir = self._folder_dir(folder)
        if not folder_dir.is_dir():
            return []
        notes: list[StoredNote] = []
        for path in sorted(folder_dir.glob(f"*{self.suffix}")):
            try:
                body = path.read_text(encoding="utf-8")
            except OSError:
                log.warning("Could not read %s", path, exc_info=True)
                continue
            notes.append(StoredNote(name=path.stem, body=body))
        return notes

    def _free_path(self, folder_dir: Path, stem: str) -> Path:
        path = folder_dir / f"{stem}{self.suffix}"
        counter = 2
        while path.exists():
            path = folder_dir / f"{stem} ({counter}){self.suffix}"
            counter += 1
        return path

    def create(self, folder: str, title: str, body: str, *, filename: str | None = None) -> bool:
        stem = _INVALID_FILENAME_CHARS.sub("", filename or title).strip() or "untitled"
        folder_dir = self._folder_dir(folder)
        try:
            folder_dir.mkdir(parents=True, exist_ok=True)
            path = self._free_path(folder_dir, stem)
            path.write_text(body, encoding="utf-8")
        except OSError as e:
            raise PublishError(f"Could not write note {title!r}: {e}") from e
        log.debug("Wrote %s (%d chars)", path, len(body))
        return True

    def delete_all(self, folder: str) -> int:
        folder_dir = self._folder_dir(folder)
        if not folder_dir.is_dir():
            return 0
        deleted = 0
        for path in folder_dir.glob(f"*{self.suffix}"):
            try:
                path.unlink()
            except OSError as e:
                raise PublishError(f"Could not delete {path}: {e}") from e
            deleted += 1
        log.info("Deleted %d notes from %s", deleted, folder_dir)
        return deleted


def make_store(config: Config) -> NoteStore:
    if config.note_store == "directory":
        return DirectoryNoteStore(Path(config.notes_dir))
    return AppleNotesStore(config.notes_account)
