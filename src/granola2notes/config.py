"""Configuration loading, defaults and persistence."""

from __future__ import annotations

import logging
import sys
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path

import yaml

log = logging.getLogger(__name__)

_DEFAULT_CONFIG_DIR = Path.home() / ".config" / "granola2notes"
_DEFAULT_CONFIG_PATH = _DEFAULT_CONFIG_DIR / "config.yaml"

_MACOS_CREDENTIAL_PATH = "Library/Application Support/Granola/supabase.json"

NOTE_STORES = ("apple_notes", "directory")


def default_credential_path() -> str:
    """Where the Granola desktop app keeps its tokens, relative to home."""
    if sys.platform == "win32":
        return "AppData/Roaming/Granola/supabase.json"
    if sys.platform.startswith("linux"):
        return ".config/Granola/supabase.json"
    return _MACOS_CREDENTIAL_PATH


@dataclass
class Config:
    note_prefix: str = ""
    credential_path: str = ""
    filename_template: str = "{title}"
    date_format: str = "YYYY-MM-DD"
    auto_sync_seconds: int = 300
    include_full_transcript: bool = False
    skip_existing_notes: bool = False
    include_attendee_tags: bool = False
    exclude_my_name_from_tags: bool = True
    my_name: str = ""
    include_folder_tags: bool = False
    include_granola_url: bool = False
    attendee_tag_template: str = "person/{name}"
    folder_tag_template: str = "folder/{name}"
    note_store: str = "apple_notes"
    notes_account: str = "iCloud"
    notes_folder: str = ""
    notes_dir: str = "~/Granola Notes"
    test_mode: bool = False
    test_mode_limit: int = 10
    preserve_titles_on_update: bool = True
    api_base_url: str = "https://api.granola.ai"

    def __post_init__(self) -> None:
        if not self.credential_path:
            self.credential_path = default_credential_path()

    def credential_paths(self) -> list[Path]:
        """Candidate token files, configured location first."""
        home = Path.home()
        candidates = [
            home / Path(self.credential_path).expanduser(),
            home / _MACOS_CREDENTIAL_PATH,
            home / "Users" / home.name / _MACOS_CREDENTIAL_PATH,
        ]
        unique: list[Path] = []
        for path in candidates:
            if path not in unique:
                unique.append(path)
        return unique

    def merged(self, partial: dict) -> Config:
        """Return a copy with ``partial`` applied, validating names and types."""
        known = {f.name: f for f in fields(self)}
        changes: dict = {}
        for key, value in partial.items():
            if key not in known:
                raise ValueError(f"Unknown config option: {key}")
            expected = type(getattr(self, key))
            if expected is bool and not isinstance(value, bool):
                raise ValueError(f"'{key}' must be true or false")
            if expected is int and (isinstance(value, bool) or not isinstance(value, int)):
                raise ValueError(f"'{key}' must be an integer")
            if expected is str:
                if value is None:
                    value = ""
                if not isinstance(value, str):
                    raise ValueError(f"'{key}' must be a string")
            changes[key] = value

        updated = replace(self, **changes)
        if updated.note_store not in NOTE_STORES:
            raise ValueError(
                f"'note_store' must be one of {', '.join(NOTE_STORES)}, got {updated.note_store!r}"
            )
        if updated.auto_sync_seconds < 0 or updated.test_mode_limit < 0:
            raise ValueError("'auto_sync_seconds' and 'test_mode_limit' must not be negative")
        return updated

    def to_dict(self) -> dict:
        return asdict(self)


def load_config(config_path: Path | None = None) -> Config:
    """Load config from YAML; a missing file means all defaults."""
    path = config_path or _DEFAULT_CONFIG_PATH
    path = Path(path).expanduser()

    if not path.exists():
        log.info("No config file at %s, using defaults", path)
        return Config()

    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not raw or not isinstance(raw, dict):
        raise ValueError(f"Invalid config file: {path}")

    known = {f.name for f in fields(Config)}
    unknown = sorted(set(raw) - known)
    if unknown:
        log.warning("Ignoring unknown config option(s) in %s: %s", path, ", ".join(unknown))

    return Config().merged({k: v for k, v in raw.items() if k in known})


def save_config(config: Config, config_path: Path | None = None) -> Path:
    """Write the config as YAML. Returns the path written."""
    path = Path(config_path or _DEFAULT_CONFIG_PATH).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    log.debug("Saved config to %s", path)
    return path
