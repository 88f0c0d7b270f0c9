"""
Keyword extraction, similarity scoring and query fingerprinting.

These pure functions are the whole "intelligence" of the store:
  - Tokenization of mixed latin / CJK text into a keyword set
  - Jaccard similarity between two keyword sets
  - A stable fingerprint of a query, used as the result-cache key
"""

from __future__ import annotations

import hashlib
import unicodedata
from collections.abc import Set
from itertools import groupby

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

#: Words dropped from every token set.  English function words plus the
#: most frequent Chinese function words and filler terms.
STOP_WORDS: frozenset[str] = frozenset(
    {
        # English
        "the", "is", "a", "of", "and", "to", "in", "that", "it", "for", "with",
        # Chinese
        "的", "是", "了", "在", "和", "与", "或", "等", "这", "那", "有", "没有",
        "不", "也", "都", "就", "要", "会", "可以", "能够", "于", "把", "被",
        "为", "以", "之", "其", "但", "却", "我们", "你们", "他们", "自己",
        "什么", "怎么", "致力于", "实现", "支持", "使用", "目标", "响应",
        "时间", "小于",
    }
)

#: Minimum length of a latin-alphabet token.
MIN_LATIN_LENGTH: int = 2

# ---------------------------------------------------------------------------
# Tokenization
# ---------------------------------------------------------------------------


def tokenize(text: str) -> frozenset[str]:
    """
    Turn *text* into a deduplicated set of keyword tokens.

    Strategy:
      1. NFKC-normalize (fullwidth forms become ASCII) and lower-case.
      2. Keep maximal runs of latin letters, accented ones included, of
         at least two characters.
      3. Strip latin letters, digits, whitespace and punctuation; over what
         is left (CJK and other non-latin letters) emit every 2-character
         window.  Without a dictionary, bigrams stand in for words.
      4. Drop stop words from both halves and return the union.

    Empty or whitespace-only input yields an empty set.
    """
    if not text or not text.strip():
        return frozenset()

    lowered = unicodedata.normalize("NFKC", text).lower()
    tokens: set[str] = set()
    for latin, chars in groupby(lowered, key=_is_latin):
        run = "".join(chars)
        if latin and len(run) >= MIN_LATIN_LENGTH and run not in STOP_WORDS:
            tokens.add(run)

    residual = "".join(
        ch for ch in lowered if not _is_latin(ch) and _is_residual_char(ch)
    )
    for i in range(len(residual) - 1):
        bigram = residual[i : i + 2]
        if bigram not in STOP_WORDS:
            tokens.add(bigram)

    return frozenset(tokens)


def _is_latin(ch: str) -> bool:
    return ch.isalpha() and unicodedata.name(ch, "").startswith("LATIN ")


def _is_residual_char(ch: str) -> bool:
    """True for characters that take part in bigram extraction."""
    if ch.isspace():
        return False
    # P* punctuation, S* symbols, N* numbers, C* control/format.
    return unicodedata.category(ch)[0] not in "PSNC"


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------


def jaccard(a: Set[str], b: Set[str]) -> float:
    """
    Jaccard index of two token sets: ``|a ∩ b| / |a ∪ b|``.

    Returns 0.0 when either set is empty.
    """
    if not a or not b:
        return 0.0
    inter = len(a & b)
    if inter == 0:
        return 0.0
    return inter / len(a | b)


# ---------------------------------------------------------------------------
# Fingerprinting
# ---------------------------------------------------------------------------


def query_fingerprint(query: str, limit: int) -> str:
    """Return the cache key for *query* asked with result limit *limit*."""
    digest = hashlib.md5(f"{limit}\x00{query}".encode("utf-8")).hexdigest()
    return f"query:{digest}"
