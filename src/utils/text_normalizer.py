"""Text normalization utilities for extracted document text.

This module handles three distinct concerns:

1. **Decoding** -- Turns uploaded bytes into ``str``, tolerating a UTF-8
   byte-order mark (common in files saved by Windows editors).

2. **Markup stripping** -- Best-effort removal of ``<...>`` tags and
   whitespace collapsing, used when a word-processor payload cannot be
   parsed as a real document.

3. **Concept name matching** -- Optional fuzzy matching via rapidfuzz so
   the merger can fold near-duplicate concept names ("Photosynthesis" vs
   "photosynthesis") when configured to.  Exact matching stays the default.
"""

import re

from rapidfuzz import fuzz, process

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def decode_text(data: bytes, encoding: str = "utf-8") -> str:
    """Decode *data* strictly, dropping a leading byte-order mark.

    Raises:
        UnicodeDecodeError: If *data* is not valid in *encoding*.
    """
    # "utf-8-sig" removes the BOM when present and is otherwise identical.
    if encoding.lower().replace("_", "-") == "utf-8":
        encoding = "utf-8-sig"
    return data.decode(encoding)


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space and trim the ends."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_markup(text: str) -> str:
    """Replace anything that looks like a markup tag with a space, then collapse.

    Args:
        text: Raw text that may contain XML/HTML tags.

    Returns:
        Tag-free text with single-space separators.
    """
    return collapse_whitespace(_TAG_RE.sub(" ", text))


def fuzzy_match(
    query: str,
    candidates: list[str],
    threshold: float = 0.9,
) -> tuple[str, float] | None:
    """Find the best fuzzy match for a query among candidates.

    Uses rapidfuzz ``token_sort_ratio`` on case-folded strings, so word
    order and casing differences do not prevent a match.

    Args:
        query: The string to match.
        candidates: List of candidate strings to match against.
        threshold: Minimum similarity score (0.0--1.0) to accept a match.

    Returns:
        A (best_match, score) tuple if a match meets the threshold, else None.
    """
    if not candidates:
        return None

    result = process.extractOne(
        query,
        candidates,
        scorer=fuzz.token_sort_ratio,
        processor=str.casefold,
        score_cutoff=threshold * 100,  # rapidfuzz uses 0-100 scale internally
    )
    if result is None:
        return None

    match, score, _ = result
    return match, score / 100.0
