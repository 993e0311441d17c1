"""Text normalization utilities for chat messages and song titles.

Two concerns live here:

1. **Cleaning** -- lowercasing, punctuation stripping, and tokenization so
   the keyword matcher, mood classifier, and content filter all see the
   same normalized text.

2. **Fuzzy matching** -- rapidfuzz ``token_sort_ratio`` lookups used by the
   keyword matcher when neither the exact nor the lemmatized phrase hits.
"""

import re

from rapidfuzz import fuzz, process

_NON_WORD_RE = re.compile(r"[^\w\s']+")
_WHITESPACE_RE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Lowercase *text*, replace punctuation with spaces, collapse whitespace.

    Apostrophes survive so that contractions ("don't") stay one token.
    """
    cleaned = _NON_WORD_RE.sub(" ", text.lower())
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def tokenize(text: str) -> list[str]:
    """Split cleaned text into whitespace tokens."""
    cleaned = clean_text(text)
    return cleaned.split(" ") if cleaned else []


def contains_word(text: str, term: str) -> bool:
    """Return ``True`` if *term* appears in *text* on word boundaries."""
    return re.search(rf"\b{re.escape(term)}\b", text) is not None


def fuzzy_match(
    query: str,
    candidates: list[str],
    threshold: float = 0.9,
) -> tuple[str, float] | None:
    """Find the best fuzzy match for *query* among *candidates*.

    Args:
        query: The string to match.
        candidates: Candidate strings to match against.
        threshold: Minimum similarity (0.0--1.0) to accept a match.

    Returns:
        A ``(best_match, score)`` tuple with score in 0.0--1.0, else None.
    """
    if not candidates or not query:
        return None

    result = process.extractOne(
        query,
        candidates,
        scorer=fuzz.token_sort_ratio,
        score_cutoff=threshold * 100,  # rapidfuzz uses 0-100 scale
    )
    if result is None:
        return None
    match, score, _ = result
    return match, score / 100.0
