"""
Document store: the authoritative collection of memory records.

The whole store lives in memory and round-trips through a single JSON
snapshot that is rewritten after every mutating call.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from .errors import DuplicateIdError, NotFoundError
from .index import InvertedIndex
from .intelligence import tokenize
from .snapshot import load_or_empty, sorted_list, write_snapshot

logger = logging.getLogger(__name__)

#: Record type used when the caller does not provide one.
DEFAULT_TYPE: str = "general"


@dataclass(frozen=True)
class MemoryRecord:
    """
    A stored memory.

    ``keywords`` is the tokenization of ``content`` at write time and is
    never recomputed.
    """

    id: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    keywords: frozenset[str] = frozenset()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "metadata": self.metadata,
            "keywords": sorted_list(self.keywords),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemoryRecord:
        return cls(
            id=str(data["id"]),
            content=str(data["content"]),
            metadata=dict(data.get("metadata") or {}),
            keywords=frozenset(data.get("keywords") or ()),
        )


def make_record(
    id: str, content: str, metadata: dict[str, Any] | None = None
) -> MemoryRecord:
    """Build a record, stamping ``created_at`` and a default ``type``."""
    meta: dict[str, Any] = {"created_at": time.time(), "type": DEFAULT_TYPE}
    if metadata:
        meta.update(metadata)
    return MemoryRecord(id=id, content=content, metadata=meta, keywords=tokenize(content))


class DocumentStore:
    """
    Insertion-ordered collection of ``MemoryRecord`` persisted as JSON.

    Parameters
    ----------
    path:
        Snapshot file.  ``None`` keeps the store in memory only.
    index:
        Inverted index kept in step with every add / replace / remove.
        Optional; without one the store is a plain record collection.
    """

    def __init__(
        self,
        path: str | os.PathLike[str] | None = None,
        index: InvertedIndex | None = None,
    ) -> None:
        self.path = path
        self.index = index
        self._records: dict[str, MemoryRecord] = {}
        self._positions: dict[str, int] = {}
        self._next_position = 0
        self._load()

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def add(
        self, id: str, content: str, metadata: dict[str, Any] | None = None
    ) -> MemoryRecord:
        """
        Store a new record and index it.

        Raises ``DuplicateIdError`` when *id* is taken.  Both snapshots are
        written before returning; if that fails the record is withdrawn and
        the ``OSError`` propagates.
        """
        return self.add_many([(id, content, metadata)])[0]

    def add_many(
        self, items: Iterable[tuple[str, str, dict[str, Any] | None]]
    ) -> list[MemoryRecord]:
        """
        Store several ``(id, content, metadata)`` records with one write.

        Every id is checked before anything is stored, so a duplicate leaves
        the store untouched.
        """
        records = [make_record(id, content, metadata) for id, content, metadata in items]
        seen: set[str] = set()
        for record in records:
            if record.id in self._records or record.id in seen:
                raise DuplicateIdError(record.id)
            seen.add(record.id)
        if not records:
            return []

        for record in records:
            self._insert(record)
        try:
            self._persist()
        except OSError:
            for record in records:
                self._discard(record.id)
            self._restore_snapshots()
            raise
        return records

    def replace(
        self, id: str, content: str, metadata: dict[str, Any] | None = None
    ) -> MemoryRecord:
        """
        Replace the record *id* wholesale, keeping its position.

        Raises ``NotFoundError`` when *id* is unknown.
        """
        old = self.get(id)
        record = make_record(id, content, metadata)
        self._records[id] = record
        if self.index is not None:
            self.index.remove_document(id, persist=False)
            self.index.index_document(id, record.keywords, persist=False)
        try:
            self._persist()
        except OSError:
            self._records[id] = old
            if self.index is not None:
                self.index.remove_document(id, persist=False)
                self.index.index_document(id, old.keywords, persist=False)
            self._restore_snapshots()
            raise
        return record

    def remove(self, id: str) -> bool:
        """Delete the record *id* and purge it from the index."""
        record = self.get(id)
        position = self._positions[id]
        self._discard(id)
        try:
            self._persist()
        except OSError:
            self._records[id] = record
            self._positions[id] = position
            self._records = dict(
                sorted(self._records.items(), key=lambda kv: self._positions[kv[0]])
            )
            if self.index is not None:
                self.index.index_document(id, record.keywords, persist=False)
            self._restore_snapshots()
            raise
        return True

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def get(self, id: str) -> MemoryRecord:
        """Return the record *id*; raises ``NotFoundError``."""
        try:
            return self._records[id]
        except KeyError:
            raise NotFoundError(id) from None

    def all(self) -> Iterator[MemoryRecord]:
        """Iterate records in insertion order.  Each call starts over."""
        return iter(list(self._records.values()))

    def position(self, id: str) -> int:
        """Insertion rank of *id*; used to break ties deterministically."""
        try:
            return self._positions[id]
        except KeyError:
            raise NotFoundError(id) from None

    def stats(self) -> dict[str, int]:
        return {"total": len(self._records)}

    def __contains__(self, id: object) -> bool:
        return id in self._records

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> None:
        """Write the store snapshot.  No-op for an in-memory store."""
        if self.path is None:
            return
        write_snapshot(
            self.path, {"records": [r.to_dict() for r in self._records.values()]}
        )

    def _persist(self) -> None:
        # Index first: search skips an indexed id the store lacks, but never
        # finds a stored record the index lacks.
        if self.index is not None:
            self.index.save()
        self.save()

    def _restore_snapshots(self) -> None:
        """Rewrite both snapshots from the rolled-back in-memory state."""
        try:
            self._persist()
        except OSError as exc:
            logger.error("Could not restore snapshots after a failed write: %s", exc)

    def _load(self) -> None:
        data = load_or_empty(self.path, "document store")
        if data is None:
            return
        try:
            records = [MemoryRecord.from_dict(item) for item in data["records"]]
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Corrupt document store snapshot, starting empty: %s", exc)
            return
        for record in records:
            if record.id in self._records:
                logger.warning("Duplicate id %r in snapshot, keeping the last", record.id)
                self._records[record.id] = record
                continue
            self._records[record.id] = record
            self._positions[record.id] = self._next_position
            self._next_position += 1
        logger.info("Loaded document store: %d records", len(self._records))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _insert(self, record: MemoryRecord) -> None:
        self._records[record.id] = record
        self._positions[record.id] = self._next_position
        self._next_position += 1
        if self.index is not None:
            self.index.index_document(record.id, record.keywords, persist=False)

    def _discard(self, id: str) -> None:
        self._records.pop(id, None)
        self._positions.pop(id, None)
        if self.index is not None:
            self.index.remove_document(id, persist=False)
