"""
Exception types raised by fast-recall.

Only ``DuplicateIdError`` and ``NotFoundError`` ever reach callers.
``CorruptSnapshotError`` is raised while reading a snapshot file and is
always caught by the component that owns the file, which then starts empty.
"""

from __future__ import annotations


class FastRecallError(Exception):
    """Base class for all fast-recall errors."""


class DuplicateIdError(FastRecallError, KeyError):
    """A record with this id already exists in the document store."""

    def __init__(self, id: str) -> None:
        super().__init__(id)
        self.id = id

    def __str__(self) -> str:
        return f"memory {self.id!r} already exists"


class NotFoundError(FastRecallError, KeyError):
    """No record with this id exists in the document store."""

    def __init__(self, id: str) -> None:
        super().__init__(id)
        self.id = id

    def __str__(self) -> str:
        return f"memory {self.id!r} not found"


class CorruptSnapshotError(FastRecallError, ValueError):
    """A snapshot file exists but cannot be parsed."""
