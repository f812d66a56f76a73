"""Sync Granola meeting notes into Apple Notes."""

__version__ = "0.1.0"
