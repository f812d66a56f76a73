"""Exceptions raised while syncing."""

from __future__ import annotations


class GranolaSyncError(Exception):
    """Base class for all sync errors."""


class CredentialError(GranolaSyncError):
    """No usable Granola access token was found."""


class FetchError(GranolaSyncError):
    """A request to the Granola API failed or returned garbage."""


class TransformError(GranolaSyncError):
    """A document could not be turned into a note."""

    def __init__(self, message: str, document_id: str | None = None):
        super().__init__(message)
        self.document_id = document_id


class PublishError(GranolaSyncError):
    """The note store rejected a create or delete."""
