"""Artifacts Server: a museum artifact catalogue with owner-only edits and per-user likes."""

__version__ = "1.0.0"
