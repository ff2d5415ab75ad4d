"""
Lexical scoring: token-set overlap and keyword matching.

Both measures work on normalized text: lowercased, punctuation removed,
whitespace collapsed.
"""

import re
from typing import Iterable, Optional

_PUNCT_RE = re.compile(r"[^\w\s]")
_SPACE_RE = re.compile(r"\s+")

# Tokens this short carry no signal ("a", "is", "my")
MIN_TOKEN_LENGTH = 3


def normalize_text(text: str, punctuation: str = " ") -> str:
    """Lowercase, replace punctuation with ``punctuation``, collapse whitespace."""
    text = _PUNCT_RE.sub(punctuation, text.lower())
    return _SPACE_RE.sub(" ", text).strip()


def query_tokens(text: str, limit: Optional[int] = None) -> list[str]:
    """Distinct tokens of at least MIN_TOKEN_LENGTH chars, in first-seen order."""
    seen: set[str] = set()
    tokens = []
    for word in normalize_text(text).split(" "):
        if len(word) < MIN_TOKEN_LENGTH or word in seen:
            continue
        seen.add(word)
        tokens.append(word)
        if limit is not None and len(tokens) >= limit:
            break
    return tokens


def jaccard_similarity(text1: str, text2: str) -> float:
    """
    Jaccard coefficient of the two texts' word sets.

    Punctuation is dropped (not replaced), so "don't" and "dont" match.
    Returns 0.0 when both texts have no words.
    """
    set1 = {w for w in normalize_text(text1, punctuation="").split(" ") if w}
    set2 = {w for w in normalize_text(text2, punctuation="").split(" ") if w}
    if not set1 and not set2:
        return 0.0
    intersection = set1 & set2
    return len(intersection) / len(set1 | set2)


def keyword_match_score(
    query: str,
    content: str,
    keywords: Iterable[str] = (),
    *,
    content_weight: float = 0.3,
    manual_weight: float = 0.7,
) -> float:
    """
    Score how well an item's curated keywords and body text cover a query.

    Each query token counts toward the content fraction when it occurs in the
    normalized content, and toward the manual fraction when it is a substring
    of a curated keyword or a curated keyword is a substring of it.

    Without curated keywords the score is the content fraction alone.

    Args:
        query: Free-text query
        content: Item body text
        keywords: Manually curated keywords
        content_weight: Weight of the content fraction when keywords exist
        manual_weight: Weight of the manual fraction when keywords exist

    Returns:
        Score in [0, 1]
    """
    tokens = query_tokens(query)
    if not tokens:
        return 0.0

    normalized_content = normalize_text(content)
    content_hits = sum(1 for t in tokens if t in normalized_content)
    content_fraction = content_hits / len(tokens)

    curated = [k.lower().strip() for k in keywords if k and k.strip()]
    if not curated:
        return content_fraction

    manual_hits = sum(
        1 for t in tokens
        if any(t in k or k in t for k in curated)
    )
    manual_fraction = manual_hits / len(tokens)

    return content_weight * content_fraction + manual_weight * manual_fraction
