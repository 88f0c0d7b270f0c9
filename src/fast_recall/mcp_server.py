"""
MCP (Model Context Protocol) server for fast-recall.

Exposes a MemoryManager as a set of assistant tools so that an assistant
can remember facts and recall them quickly across sessions.

Run as a stdio server:
    python -m fast_recall.mcp_server

Or via the installed entry-point:
    fast-recall-mcp

Configuration comes from the ``FAST_RECALL_*`` environment variables
described in ``fast_recall.config``.
"""

from __future__ import annotations

import json
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import Settings
from .errors import DuplicateIdError, NotFoundError
from .memory import MemoryManager

# Built on first use and reused by every tool call.
_manager: MemoryManager | None = None


def _get_manager() -> MemoryManager:
    global _manager
    if _manager is None:
        _manager = MemoryManager(Settings.from_env())
    return _manager


# ---------------------------------------------------------------------------
# FastMCP server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "fast-recall",
    instructions=(
        "Fast local keyword memory. "
        "Use `add_memory` to save a fact under a short unique id. "
        "Use `search_memories` to recall what is known about a topic; "
        "English words and Chinese text are both matched. "
        "Use `list_memories` to browse entries, `delete_memory` to remove "
        "one, `memory_stats` for counts and latency, and `clear_cache` "
        "after bulk edits to drop cached search results."
    ),
)


@mcp.tool()
def add_memory(
    memory_id: str,
    content: str,
    memory_type: str = "general",
    tags: list[str] | None = None,
    replace: bool = False,
) -> str:
    """
    Store a fact for later recall.

    Args:
        memory_id:   Unique id for the memory (e.g. "user_language").
        content:     The text to remember.
        memory_type: Free-form category such as "identity", "goal", "skill".
        tags:        Optional list of tags.
        replace:     Overwrite an existing memory with the same id.

    Returns:
        A confirmation message, or an error message if the id is taken.
    """
    manager = _get_manager()
    metadata: dict[str, Any] = {"type": memory_type}
    if tags:
        metadata["tags"] = list(tags)
    try:
        if replace and memory_id in manager.store:
            record = manager.replace(memory_id, content, metadata)
            return f"Replaced memory {record.id}."
        record = manager.add(memory_id, content, metadata)
    except DuplicateIdError:
        return f"Memory {memory_id} already exists; pass replace=true to overwrite it."
    return f"Stored memory {record.id} ({len(record.keywords)} keywords)."


@mcp.tool()
def search_memories(query: str, limit: int = 5) -> str:
    """
    Recall the memories most relevant to a query.

    Results are ranked by keyword overlap (Jaccard similarity) with the
    query; repeated queries are answered from a result cache.

    Args:
        query: Free-text question or topic.
        limit: Maximum number of memories to return (default 5).

    Returns:
        JSON object with fields query, results (id, content, score),
        durationMs and cached.
    """
    found = _get_manager().search(query, limit=limit)
    if not found["results"]:
        return "No memories found."
    found["results"] = [
        {**r, "score": round(r["score"], 4)} for r in found["results"]
    ]
    return json.dumps(found, indent=2, ensure_ascii=False)


@mcp.tool()
def list_memories(limit: int = 50) -> str:
    """
    List stored memories in the order they were added.

    Args:
        limit: Maximum number of entries to return (default 50).

    Returns:
        JSON array of memory entries with id, content, and metadata.
    """
    memories = _get_manager().list_all(limit=limit)
    if not memories:
        return "No memories stored."
    return json.dumps(memories, indent=2, ensure_ascii=False)


@mcp.tool()
def delete_memory(memory_id: str) -> str:
    """
    Delete a stored memory by its id.

    Args:
        memory_id: The id of the memory to delete.

    Returns:
        A confirmation message.
    """
    try:
        _get_manager().delete(memory_id)
    except NotFoundError:
        return f"Memory {memory_id} not found."
    return f"Deleted memory {memory_id}."


@mcp.tool()
def memory_stats() -> str:
    """
    Report memory, index, cache and retrieval-latency statistics.

    Returns:
        JSON object.
    """
    return json.dumps(_get_manager().stats(), indent=2)


@mcp.tool()
def clear_cache() -> str:
    """
    Drop every cached search result.  Stored memories are kept.

    Returns:
        A confirmation message.
    """
    _get_manager().clear_cache()
    return "Search cache cleared."


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the MCP server over stdio."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
