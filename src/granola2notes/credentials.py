"""Read the Granola access token the desktop app left on disk."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .config import Config
from .errors import CredentialError

log = logging.getLogger(__name__)

# Newer app versions write workos_tokens; older ones cognito_tokens
_TOKEN_FIELDS = ("workos_tokens", "cognito_tokens")


def load_access_token(config: Config) -> str:
    """Return the first access token found across the candidate paths."""
    for path in config.credential_paths():
        if not path.exists():
            continue
        try:
            token = read_token_file(path)
        except (OSError, ValueError):
            log.warning("Could not read credentials from %s", path, exc_info=True)
            continue
        if token:
            log.info("Loaded credentials from %s", path)
            return token

    raise CredentialError("No valid Granola credentials found in any of the expected locations")


def read_token_file(path: Path) -> str | None:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        return None

    for field_name in _TOKEN_FIELDS:
        token = _access_token(data.get(field_name))
        if token:
            return token
    return None


def _access_token(value: object) -> str | None:
    # Double-encoded: the token block is usually a JSON string, sometimes an object
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    if isinstance(value, dict):
        token = value.get("access_token")
        if isinstance(token, str) and token:
            return token
    return None
