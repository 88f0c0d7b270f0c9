"""
Shared pytest fixtures for fast-recall tests.

File-backed fixtures live under pytest's ``tmp_path`` so every test gets its
own data directory; in-memory fixtures pass ``path=None`` components to the
manager so nothing touches the filesystem at all.
"""

from __future__ import annotations

import pytest

from fast_recall.cache import LRUCache
from fast_recall.config import Settings
from fast_recall.index import InvertedIndex
from fast_recall.memory import MemoryManager
from fast_recall.store import DocumentStore


class FakeClock:
    """Manually advanced time source for cache expiry tests."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings(tmp_path) -> Settings:
    """Settings rooted in a fresh temporary data directory."""
    return Settings(home=tmp_path / "data")


@pytest.fixture()
def manager(settings: Settings) -> MemoryManager:
    """MemoryManager persisting to the temporary data directory."""
    return MemoryManager(settings)


@pytest.fixture()
def memory_manager(tmp_path) -> MemoryManager:
    """MemoryManager whose store, index and cache never touch disk."""
    index = InvertedIndex()
    return MemoryManager(
        Settings(home=tmp_path / "unused"),
        _store=DocumentStore(index=index),
        _cache=LRUCache(capacity=100),
    )
