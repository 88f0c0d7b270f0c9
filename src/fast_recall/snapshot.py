"""
JSON snapshot files: the (de)serialization boundary of every component.

Each component persists itself as one human-readable JSON document that is
rewritten in full on every save.  Sets and maps never reach ``json``
directly; callers convert them to sorted lists and lists of ``[key, value]``
pairs first (``pairs`` / ``sorted_list``) so the on-disk format does not
depend on the in-memory container types.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from .errors import CorruptSnapshotError

logger = logging.getLogger(__name__)

#: Format version written into every snapshot.
SNAPSHOT_VERSION: int = 1


def read_snapshot(path: str | os.PathLike[str]) -> dict[str, Any] | None:
    """
    Load the snapshot at *path*.

    Returns ``None`` when the file does not exist.  Raises
    ``CorruptSnapshotError`` when it exists but is not a JSON object of a
    known version.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as exc:
        raise CorruptSnapshotError(f"{path}: {exc}") from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CorruptSnapshotError(f"{path}: {exc}") from exc

    if not isinstance(data, dict):
        raise CorruptSnapshotError(f"{path}: top level is not an object")
    if data.get("version") != SNAPSHOT_VERSION:
        raise CorruptSnapshotError(
            f"{path}: unsupported snapshot version {data.get('version')!r}"
        )
    return data


def write_snapshot(path: str | os.PathLike[str], data: Mapping[str, Any]) -> None:
    """
    Atomically replace the snapshot at *path* with *data*.

    The document is written to a temporary file in the same directory and
    moved into place, so readers see either the old or the new snapshot.
    ``OSError`` propagates to the caller.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"version": SNAPSHOT_VERSION, **data}

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def load_or_empty(path: str | os.PathLike[str] | None, what: str) -> dict[str, Any] | None:
    """
    ``read_snapshot`` with the start-clean policy applied.

    A corrupt file is logged and treated like a missing one.
    """
    if path is None:
        return None
    try:
        return read_snapshot(path)
    except CorruptSnapshotError as exc:
        logger.warning("Corrupt %s snapshot, starting empty: %s", what, exc)
        return None


def pairs(mapping: Mapping[str, Any]) -> list[list[Any]]:
    """Convert a mapping to a list of ``[key, value]`` pairs, keeping order."""
    return [[key, value] for key, value in mapping.items()]


def sorted_list(items: Iterable[str]) -> list[str]:
    """Convert a set of strings to a sorted list."""
    return sorted(items)
