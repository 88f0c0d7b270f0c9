"""
Command-line interface for fast-recall.

Sub-commands
------------
add     – Store a piece of text under an id.
search  – Recall the memories most relevant to a query.
index   – Rebuild the keyword index from every stored memory.
import  – Bulk-add the files of a directory tree.
list    – List stored memories.
delete  – Delete a memory by its id.
stats   – Print store, index, cache and latency statistics.
clear   – Empty the result cache (memories and index are kept).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from .config import Settings
from .errors import DuplicateIdError, NotFoundError
from .memory import MemoryManager


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fast-recall",
        description="Fast local keyword memory for assistants.",
    )
    parser.add_argument(
        "--home",
        default=None,
        metavar="PATH",
        help="Data directory (default: $FAST_RECALL_HOME or ~/.cache/fast-recall).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output to stderr.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    # add
    p_add = sub.add_parser("add", help="Store text in memory.")
    p_add.add_argument("id", help="Unique memory id.")
    p_add.add_argument("text", nargs="?", help="Text to store (reads stdin if omitted).")
    p_add.add_argument("--type", default=None, help="Memory type (default: general).")
    p_add.add_argument(
        "--tag",
        action="append",
        default=[],
        dest="tags",
        metavar="TAG",
        help="Tag to attach; may be repeated.",
    )
    p_add.add_argument(
        "--replace",
        action="store_true",
        help="Overwrite the memory if the id already exists.",
    )

    # search
    p_search = sub.add_parser("search", help="Recall relevant memories.")
    p_search.add_argument("query", nargs="+", help="Free-text query.")
    p_search.add_argument(
        "-n",
        type=int,
        default=None,
        metavar="N",
        help="Number of results to return (default: 20).",
    )
    p_search.add_argument(
        "--json",
        action="store_true",
        dest="as_json",
        help="Output results as JSON.",
    )

    # index
    sub.add_parser("index", help="Rebuild the keyword index.")

    # import
    p_import = sub.add_parser("import", help="Add every matching file under a directory.")
    p_import.add_argument("directory", help="Directory to walk.")
    p_import.add_argument(
        "--pattern",
        default="*.md",
        metavar="GLOB",
        help="File name pattern (default: *.md).",
    )
    p_import.add_argument("--prefix", default="", help="Prefix for generated ids.")

    # list
    p_list = sub.add_parser("list", help="List stored memories.")
    p_list.add_argument(
        "--limit",
        type=int,
        default=100,
        metavar="N",
        help="Maximum number of memories to show (default: 100).",
    )
    p_list.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON.")

    # delete
    p_delete = sub.add_parser("delete", help="Delete a memory by id.")
    p_delete.add_argument("id", help="Memory id to delete.")

    # stats
    p_stats = sub.add_parser("stats", help="Print statistics.")
    p_stats.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON.")

    # clear
    sub.add_parser("clear", help="Empty the result cache.")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    settings = Settings.from_env()
    if args.home:
        settings = settings.with_home(args.home)
    manager = MemoryManager(settings)

    try:
        return _run(manager, args)
    except (DuplicateIdError, NotFoundError) as exc:
        print(f"Error: {exc}.", file=sys.stderr)
        return 1


def _run(manager: MemoryManager, args: argparse.Namespace) -> int:
    if args.command == "add":
        text = args.text
        if text is None:
            text = sys.stdin.read()
        if not text.strip():
            print("Error: no text provided.", file=sys.stderr)
            return 1
        metadata: dict = {}
        if args.type:
            metadata["type"] = args.type
        if args.tags:
            metadata["tags"] = args.tags
        if args.replace and args.id in manager.store:
            record = manager.replace(args.id, text, metadata)
            print(f"Replaced memory {record.id} ({len(record.keywords)} keywords).")
        else:
            record = manager.add(args.id, text, metadata)
            print(f"Stored memory {record.id} ({len(record.keywords)} keywords).")

    elif args.command == "search":
        found = manager.search(" ".join(args.query), limit=args.n)
        if args.as_json:
            print(json.dumps(found, indent=2, ensure_ascii=False))
            return 0
        if not found["results"]:
            print("No memories found.")
            return 0
        for i, r in enumerate(found["results"], 1):
            print(f"[{i}] (score={r['score']:.3f}) id={r['id']}")
            print(f"    {r['content'][:200]}")
            print()
        if found["cached"]:
            origin = "cache"
        else:
            origin = "index" if manager.settings.use_index else "scan"
        print(f"{len(found['results'])} result(s) in {found['durationMs']:.2f}ms ({origin})")

    elif args.command == "index":
        terms = manager.rebuild_index()
        print(f"Indexed {manager.count()} memories, {terms} terms.")

    elif args.command == "import":
        try:
            report = manager.import_directory(
                args.directory, pattern=args.pattern, id_prefix=args.prefix
            )
        except FileNotFoundError:
            print(f"Error: no such directory: {args.directory}", file=sys.stderr)
            return 1
        print(f"Imported {len(report.added)} file(s), skipped {len(report.skipped)}.")

    elif args.command == "list":
        memories = manager.list_all(limit=args.limit)
        if args.as_json:
            print(json.dumps(memories, indent=2, ensure_ascii=False))
            return 0
        if not memories:
            print("No memories stored.")
            return 0
        for m in memories:
            print(f"id={m['id']} type={m['metadata'].get('type', 'general')}")
            print(f"    {m['content'][:120]}")
            print()

    elif args.command == "delete":
        manager.delete(args.id)
        print(f"Deleted memory {args.id}.")

    elif args.command == "stats":
        stats = manager.stats()
        if args.as_json:
            print(json.dumps(stats, indent=2))
            return 0
        cache = stats["cache"]
        print(f"memories:  {stats['documents']['total']}")
        print(f"terms:     {stats['index']['termCount']}")
        print(f"cache:     {cache['size']}/{cache['capacity']} "
              f"(hit rate {cache['hitRate']:.2%})")

    elif args.command == "clear":
        manager.clear_cache()
        print("Cache cleared.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
