"""Tests for the MCP server tools."""

from __future__ import annotations

import json

import pytest

import fast_recall.mcp_server as mcp_module
from fast_recall.config import Settings
from fast_recall.memory import MemoryManager


@pytest.fixture(autouse=True)
def _isolated_manager(tmp_path, monkeypatch):
    """
    Replace the module-level _manager with a fresh manager rooted in a
    temporary directory so tests don't share state.
    """
    manager = MemoryManager(Settings(home=tmp_path / "data"))
    monkeypatch.setattr(mcp_module, "_manager", manager)
    return manager


class TestMCPTools:
    def test_add_memory_returns_confirmation(self):
        result = mcp_module.add_memory("m1", "Alice likes Python.")
        assert "Stored memory m1" in result

    def test_add_memory_sets_type_and_tags(self, _isolated_manager):
        mcp_module.add_memory("m1", "Bing search skill", memory_type="skill", tags=["search"])
        meta = _isolated_manager.get("m1").metadata
        assert meta["type"] == "skill"
        assert meta["tags"] == ["search"]

    def test_add_memory_duplicate(self):
        mcp_module.add_memory("m1", "first")
        result = mcp_module.add_memory("m1", "second")
        assert "already exists" in result

    def test_add_memory_replace(self, _isolated_manager):
        mcp_module.add_memory("m1", "first")
        result = mcp_module.add_memory("m1", "second", replace=True)
        assert "Replaced" in result
        assert _isolated_manager.get("m1").content == "second"

    def test_search_memories_empty(self):
        assert "No memories found" in mcp_module.search_memories("anything")

    def test_search_memories_returns_json(self):
        mcp_module.add_memory("t1", "康仔是数字生命致力于秒级记忆检索")
        mcp_module.add_memory("t2", "秒级记忆检索目标响应时间小于10毫秒")
        data = json.loads(mcp_module.search_memories("检索"))
        assert data["query"] == "检索"
        assert {r["id"] for r in data["results"]} == {"t1", "t2"}
        assert data["cached"] is False

    def test_search_memories_limit(self):
        for i in range(6):
            mcp_module.add_memory(f"m{i}", f"Distinct fact about subject{i}.")
        data = json.loads(mcp_module.search_memories("fact", limit=3))
        assert len(data["results"]) == 3

    def test_search_memories_second_call_is_cached(self):
        mcp_module.add_memory("m1", "The sky is blue.")
        mcp_module.search_memories("sky")
        data = json.loads(mcp_module.search_memories("sky"))
        assert data["cached"] is True

    def test_list_memories_empty(self):
        assert "No memories stored" in mcp_module.list_memories()

    def test_list_memories_limit(self):
        for i in range(5):
            mcp_module.add_memory(f"m{i}", f"Entry {i}.")
        data = json.loads(mcp_module.list_memories(limit=2))
        assert [m["id"] for m in data] == ["m0", "m1"]

    def test_delete_memory(self, _isolated_manager):
        mcp_module.add_memory("m1", "To be deleted.")
        result = mcp_module.delete_memory("m1")
        assert "Deleted" in result
        assert _isolated_manager.count() == 0

    def test_delete_unknown_memory(self):
        assert "not found" in mcp_module.delete_memory("nope")

    def test_memory_stats(self):
        mcp_module.add_memory("m1", "Fact one.")
        mcp_module.add_memory("m2", "Fact two.")
        stats = json.loads(mcp_module.memory_stats())
        assert stats["documents"]["total"] == 2

    def test_clear_cache(self, _isolated_manager):
        mcp_module.add_memory("m1", "The sky is blue.")
        mcp_module.search_memories("sky")
        assert "cleared" in mcp_module.clear_cache()
        assert len(_isolated_manager.cache) == 0
        assert _isolated_manager.count() == 1
