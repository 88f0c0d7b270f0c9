"""
fast-recall: a small, self-contained keyword memory store.

Adds short text records and recalls the most relevant ones for a free-text
query, using an inverted keyword index and an LRU result cache over
human-readable JSON snapshot files.
"""

from .cache import LRUCache
from .config import Settings
from .errors import DuplicateIdError, FastRecallError, NotFoundError
from .index import InvertedIndex
from .intelligence import jaccard, tokenize
from .memory import MemoryManager
from .store import DocumentStore, MemoryRecord

__all__ = [
    "DocumentStore",
    "DuplicateIdError",
    "FastRecallError",
    "InvertedIndex",
    "LRUCache",
    "MemoryManager",
    "MemoryRecord",
    "NotFoundError",
    "Settings",
    "jaccard",
    "tokenize",
]
