"""
Inverted keyword index: term -> ids of the documents containing it.

The index is advisory.  It narrows the set of documents that have to be
scored, but the document store stays authoritative: ids found here that the
store no longer holds are skipped by the caller.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Set
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .snapshot import load_or_empty, sorted_list, write_snapshot

if TYPE_CHECKING:
    from .store import MemoryRecord

logger = logging.getLogger(__name__)


@dataclass
class Posting:
    """Per-term entry: the documents containing *term*."""

    term: str
    docs: set[str] = field(default_factory=set)
    #: Cumulative insertions.  Not decremented when documents are removed.
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"docs": sorted_list(self.docs), "count": self.count}

    @classmethod
    def from_dict(cls, term: str, data: dict[str, Any]) -> Posting:
        return cls(term=term, docs=set(data["docs"]), count=int(data["count"]))


class InvertedIndex:
    """
    Token -> document-id index persisted as a JSON snapshot.

    Parameters
    ----------
    path:
        Snapshot file.  ``None`` keeps the index in memory only.
    """

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self.path = path
        self._postings: dict[str, Posting] = {}
        self._load()

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def index_document(
        self, doc_id: str, tokens: Iterable[str], persist: bool = True
    ) -> None:
        """Add *doc_id* to the posting of every token in *tokens*."""
        for token in tokens:
            posting = self._postings.get(token)
            if posting is None:
                posting = self._postings[token] = Posting(term=token)
            posting.docs.add(doc_id)
            posting.count += 1
        if persist:
            self.save()

    def remove_document(self, doc_id: str, persist: bool = True) -> None:
        """Remove *doc_id* everywhere; drop postings left with no documents."""
        emptied = []
        for term, posting in self._postings.items():
            posting.docs.discard(doc_id)
            if not posting.docs:
                emptied.append(term)
        for term in emptied:
            del self._postings[term]
        if persist:
            self.save()

    def rebuild(self, records: Iterable[MemoryRecord]) -> None:
        """Discard every posting and re-index *records*, saving once."""
        self._postings.clear()
        n = 0
        for record in records:
            self.index_document(record.id, record.keywords, persist=False)
            n += 1
        self.save()
        logger.info("Rebuilt index: %d documents, %d terms", n, len(self._postings))

    def clear(self) -> None:
        """Drop every posting (in memory only)."""
        self._postings.clear()

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def candidates(self, query_tokens: Set[str]) -> set[str]:
        """Ids of every document sharing at least one token with the query."""
        found: set[str] = set()
        for token in query_tokens:
            posting = self._postings.get(token)
            if posting is not None:
                found |= posting.docs
        return found

    def postings(self, term: str) -> Posting | None:
        """Return the posting for *term*, or ``None``."""
        return self._postings.get(term)

    def terms(self) -> list[str]:
        return list(self._postings)

    def stats(self) -> dict[str, int]:
        return {"termCount": len(self._postings)}

    def __len__(self) -> int:
        return len(self._postings)

    def __contains__(self, term: object) -> bool:
        return term in self._postings

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> None:
        """Write the index snapshot.  No-op for an in-memory index."""
        if self.path is None:
            return
        ordered = sorted(self._postings.items())
        write_snapshot(
            self.path,
            {"postings": [[term, posting.to_dict()] for term, posting in ordered]},
        )

    def _load(self) -> None:
        data = load_or_empty(self.path, "index")
        if data is None:
            return
        try:
            postings = {
                term: Posting.from_dict(term, entry)
                for term, entry in data["postings"]
            }
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Corrupt index snapshot, starting empty: %s", exc)
            return
        # Postings without documents must not survive a load.
        self._postings = {t: p for t, p in postings.items() if p.docs}
        logger.info("Loaded index: %d terms", len(self._postings))
