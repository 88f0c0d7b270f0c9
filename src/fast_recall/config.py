"""
Runtime settings.

Every setting has a default and can be overridden from the environment:

    FAST_RECALL_HOME           - data directory (default: ~/.cache/fast-recall)
    FAST_RECALL_CACHE_SIZE     - result cache capacity (default: 1000)
    FAST_RECALL_CACHE_MAX_AGE  - result cache entry lifetime in seconds (default: 86400)
    FAST_RECALL_DEFAULT_LIMIT  - results returned by a search (default: 20)
    FAST_RECALL_USE_INDEX      - narrow searches with the inverted index (default: true)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from .cache import DEFAULT_CAPACITY, DEFAULT_MAX_AGE

DEFAULT_HOME = Path.home() / ".cache" / "fast-recall"

#: Results returned by ``search`` when no limit is given.
DEFAULT_LIMIT: int = 20

#: Hard upper bound on the ``limit`` of a search.
MAX_RESULT_LIMIT: int = 100

#: Average retrieval latency, in milliseconds, the store aims to stay under.
TARGET_LATENCY_MS: float = 10.0

DOCUMENTS_FILE = "documents.json"
INDEX_FILE = "index.json"
CACHE_FILE = "cache.json"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    home: Path = field(default_factory=lambda: DEFAULT_HOME)
    cache_size: int = DEFAULT_CAPACITY
    cache_max_age: float = DEFAULT_MAX_AGE
    default_limit: int = DEFAULT_LIMIT
    use_index: bool = True

    @property
    def documents_path(self) -> Path:
        return self.home / DOCUMENTS_FILE

    @property
    def index_path(self) -> Path:
        return self.home / INDEX_FILE

    @property
    def cache_path(self) -> Path:
        return self.home / CACHE_FILE

    def with_home(self, home: str | os.PathLike[str]) -> Settings:
        return replace(self, home=Path(home).expanduser())

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``FAST_RECALL_*`` environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            home=Path(env.get("FAST_RECALL_HOME", str(defaults.home))).expanduser(),
            cache_size=int(env.get("FAST_RECALL_CACHE_SIZE", defaults.cache_size)),
            cache_max_age=float(
                env.get("FAST_RECALL_CACHE_MAX_AGE", defaults.cache_max_age)
            ),
            default_limit=int(
                env.get("FAST_RECALL_DEFAULT_LIMIT", defaults.default_limit)
            ),
            use_index=_parse_bool(
                env.get("FAST_RECALL_USE_INDEX"), defaults.use_index
            ),
        )


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"not a boolean: {value!r}")
