"""Fuzzy text matching — edit distance, similarity and query relevance.

Handles:
- Levenshtein edit distance (rapidfuzz)
- Length-normalized, case-insensitive similarity in [0, 1]
- Query relevance against a listing's title / author / description
- School-name normalization used for registry lookups
"""
import re
import unicodedata
from typing import Optional

from rapidfuzz.distance import Levenshtein

# Relevance weights. Title outranks author, author outranks description.
TITLE_CONTAINS_SCORE = 10.0
TITLE_FUZZY_WEIGHT = 8.0
AUTHOR_CONTAINS_SCORE = 6.0
AUTHOR_FUZZY_WEIGHT = 4.0
DESCRIPTION_CONTAINS_SCORE = 3.0


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit insert/delete/substitute costs."""
    return Levenshtein.distance(a, b)


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """Case-insensitive similarity: 1.0 for equal strings, 0.0 when only one is empty.

    Normalized by the longer string: ``(L - distance) / L``.
    """
    a = (a or "").lower()
    b = (b or "").lower()
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return Levenshtein.normalized_similarity(a, b)


def text_relevance(
    query: Optional[str],
    title: Optional[str],
    author: Optional[str],
    description: Optional[str] = None,
) -> float:
    """Score how well a free-text query matches a listing's text fields."""
    if not query:
        return 0.0

    q = query.lower()
    title_lower = (title or "").lower()
    author_lower = (author or "").lower()
    score = 0.0

    if q in title_lower:
        score += TITLE_CONTAINS_SCORE
    else:
        score += similarity(q, title_lower) * TITLE_FUZZY_WEIGHT

    if q in author_lower:
        score += AUTHOR_CONTAINS_SCORE
    else:
        score += similarity(q, author_lower) * AUTHOR_FUZZY_WEIGHT

    if description and q in description.lower():
        score += DESCRIPTION_CONTAINS_SCORE

    return score


_PUNCTUATION = re.compile(r"[^\w\s]+")
_WHITESPACE = re.compile(r"\s+")


def normalize_school_name(name: Optional[str]) -> str:
    """'St. Xavier’s Högskola, Delhi' → 'st xavier s hogskola delhi'."""
    if not name:
        return ""
    folded = unicodedata.normalize("NFKD", name)
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch))
    folded = _PUNCTUATION.sub(" ", folded.lower()).replace("_", " ")
    return _WHITESPACE.sub(" ", folded).strip()
