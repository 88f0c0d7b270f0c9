"""
MemoryManager: high-level API for storing and recalling text memories.

This is the object applications construct once and pass around; it owns
the document store, the inverted index and the result cache.

Usage example::

    from fast_recall import MemoryManager, Settings

    memory = MemoryManager(Settings().with_home("./my_memory"))

    # Store something worth remembering
    memory.add("lang", "The user prefers Python for scripting.")

    # Later, recall it
    found = memory.search("python scripting")
    for r in found["results"]:
        print(r["id"], r["score"], r["content"])
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .cache import LRUCache
from .config import MAX_RESULT_LIMIT, TARGET_LATENCY_MS, Settings
from .index import InvertedIndex
from .intelligence import jaccard, query_fingerprint, tokenize
from .store import DocumentStore, MemoryRecord

logger = logging.getLogger(__name__)


@dataclass
class ImportReport:
    """Outcome of ``MemoryManager.import_directory``."""

    added: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class MemoryManager:
    """
    Fast keyword recall over a local JSON-backed memory store.

    Responsibilities
    ----------------
    * **Add** – Tokenizes text once at write time, stores the record and
      updates the inverted index; both snapshots are on disk before the
      call returns.
    * **Search** – Serves repeated queries from the LRU cache; otherwise
      narrows candidates through the index, ranks them by Jaccard overlap
      with the query and caches the ranked payload.
    * **Manage** – Replace, delete, list, bulk-import and rebuild the
      index.

    Parameters
    ----------
    settings:
        Data directory and tuning knobs.  Defaults to ``Settings.from_env()``.
    _store, _index, _cache:
        Pre-built components, used by tests to run fully in memory.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        _store: DocumentStore | None = None,
        _index: InvertedIndex | None = None,
        _cache: LRUCache | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        # Components define __len__, so compare against None explicitly.
        if _store is not None:
            if _store.index is None:
                _store.index = _index if _index is not None else InvertedIndex()
            self.index = _store.index
            self.store = _store
        else:
            if _index is None:
                _index = InvertedIndex(self.settings.index_path)
            self.index = _index
            self.store = DocumentStore(self.settings.documents_path, index=self.index)
        if _cache is None:
            _cache = LRUCache(
                self.settings.cache_path,
                capacity=self.settings.cache_size,
                max_age=self.settings.cache_max_age,
            )
        self.cache = _cache

        self.retrieval_count = 0
        self.total_retrieval_ms = 0.0

        if self.settings.use_index and len(self.index) == 0 and len(self.store) > 0:
            logger.warning(
                "Index is empty but the store holds %d records; rebuilding",
                len(self.store),
            )
            self.rebuild_index()

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def add(
        self,
        id: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> MemoryRecord:
        """
        Store *content* under *id*.

        Raises
        ------
        DuplicateIdError
            When *id* already exists.  Use ``replace`` to overwrite.
        OSError
            When the snapshots cannot be written; nothing is stored.
        """
        record = self.store.add(id, content, metadata)
        logger.debug("Added memory %s (%d keywords)", id, len(record.keywords))
        return record

    def replace(
        self,
        id: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> MemoryRecord:
        """Overwrite the existing memory *id*.  Raises ``NotFoundError``."""
        return self.store.replace(id, content, metadata)

    def delete(self, id: str) -> None:
        """Delete memory *id*.  Raises ``NotFoundError``."""
        self.store.remove(id)

    def rebuild_index(self) -> int:
        """Re-index every stored record; returns the resulting term count."""
        self.index.rebuild(self.store.all())
        return len(self.index)

    def clear_cache(self) -> None:
        """Empty the result cache, leaving records and index alone."""
        self.cache.clear()

    def flush(self) -> None:
        """Write the cache snapshot (store and index are always current)."""
        self.cache.flush()

    def import_directory(
        self,
        root: str | Path,
        pattern: str = "*.md",
        id_prefix: str = "",
    ) -> ImportReport:
        """
        Add every file under *root* matching *pattern* as a memory.

        Directories are walked breadth-first with an explicit queue;
        symlinked directories are not followed.  The memory id is
        ``id_prefix`` plus the file stem; files whose id is already stored
        are skipped.  Metadata records the parent directory
        name as ``type`` and the file path as ``source``.  Everything is
        written in one batch.
        """
        root = Path(root)
        report = ImportReport()
        batch: list[tuple[str, str, dict[str, Any]]] = []
        pending: set[str] = set()

        queue: deque[Path] = deque([root])
        while queue:
            directory = queue.popleft()
            for entry in sorted(directory.iterdir()):
                if entry.is_dir():
                    if entry.is_symlink():
                        logger.debug("Skipping symlinked directory %s", entry)
                    else:
                        queue.append(entry)
                    continue
                if not entry.is_file() or not entry.match(pattern):
                    continue
                mem_id = f"{id_prefix}{entry.stem}"
                if mem_id in self.store or mem_id in pending:
                    report.skipped.append(mem_id)
                    continue
                content = entry.read_text(encoding="utf-8")
                meta = {"type": entry.parent.name, "source": str(entry)}
                batch.append((mem_id, content, meta))
                pending.add(mem_id)

        self.store.add_many(batch)
        report.added = [mem_id for mem_id, _, _ in batch]
        logger.info(
            "Imported %d files from %s (%d skipped)",
            len(report.added),
            root,
            len(report.skipped),
        )
        return report

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def search(self, query: str, limit: int | None = None) -> dict[str, Any]:
        """
        Return the memories most relevant to *query*.

        Parameters
        ----------
        query:
            Free text.  Latin words and CJK bigrams are matched.
        limit:
            Maximum number of results; defaults to the configured limit and
            is capped at ``MAX_RESULT_LIMIT``.

        Returns
        -------
        dict
            ``query``, ``results`` (list of ``{"id", "content", "score"}``
            ordered by descending score), ``durationMs`` and ``cached``.
        """
        start = time.perf_counter()
        limit = self._clamp_limit(limit)
        key = query_fingerprint(query, limit)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %r", query)
            return self._finish(cached, start, cached=True)

        payload = {"query": query, "results": self._rank(query, limit)}
        self.cache.set(key, payload)
        return self._finish(payload, start, cached=False)

    def get(self, id: str) -> MemoryRecord:
        """Return memory *id*.  Raises ``NotFoundError``."""
        return self.store.get(id)

    def count(self) -> int:
        """Return the total number of stored memories."""
        return len(self.store)

    def list_all(self, limit: int = 100) -> list[dict[str, Any]]:
        """
        Return up to *limit* stored memories in insertion order.

        Each dict has keys: ``id``, ``content``, ``metadata``.
        """
        memories = []
        for record in self.store.all():
            if len(memories) >= limit:
                break
            memories.append(
                {"id": record.id, "content": record.content, "metadata": record.metadata}
            )
        return memories

    def stats(self) -> dict[str, Any]:
        """Counts for every component plus retrieval latency figures."""
        avg = (
            self.total_retrieval_ms / self.retrieval_count
            if self.retrieval_count
            else 0.0
        )
        return {
            "documents": self.store.stats(),
            "index": self.index.stats(),
            "cache": self.cache.stats(),
            "retrievals": {
                "total": self.retrieval_count,
                "avgDurationMs": round(avg, 3),
                "targetMet": avg < TARGET_LATENCY_MS if self.retrieval_count else None,
            },
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _rank(self, query: str, limit: int) -> list[dict[str, Any]]:
        query_tokens = tokenize(query)
        if not query_tokens:
            return []

        if self.settings.use_index:
            candidate_ids = self.index.candidates(query_tokens)
        else:
            candidate_ids = {record.id for record in self.store.all()}

        scored: list[tuple[float, int, MemoryRecord]] = []
        for doc_id in candidate_ids:
            if doc_id not in self.store:
                logger.warning("Stale index reference to %s, skipping", doc_id)
                continue
            record = self.store.get(doc_id)
            score = jaccard(query_tokens, record.keywords)
            if score > 0:
                scored.append((score, self.store.position(doc_id), record))

        scored.sort(key=lambda item: (-item[0], item[1]))
        return [
            {"id": record.id, "content": record.content, "score": score}
            for score, _, record in scored[:limit]
        ]

    def _clamp_limit(self, limit: int | None) -> int:
        if limit is None:
            limit = self.settings.default_limit
        return max(0, min(int(limit), MAX_RESULT_LIMIT))

    def _finish(
        self, payload: dict[str, Any], start: float, cached: bool
    ) -> dict[str, Any]:
        duration_ms = (time.perf_counter() - start) * 1000.0
        self.retrieval_count += 1
        self.total_retrieval_ms += duration_ms
        return {**payload, "durationMs": round(duration_ms, 3), "cached": cached}
