"""
Text Similarity Module
======================

Folds free-text wine names into a comparable form and scores how close
two names are using Levenshtein edit distance.
"""

from __future__ import annotations

import re
import unicodedata

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(value: str) -> str:
    """
    Normalize a name for comparison.

    Lower-cases, strips diacritics, drops everything outside ``[a-z0-9 ]``
    and collapses whitespace.

    Args:
        value: Raw text

    Returns:
        Normalized text (possibly empty)
    """
    decomposed = unicodedata.normalize("NFD", value.lower())
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    stripped = _NON_ALNUM.sub("", stripped)
    return _WHITESPACE.sub(" ", stripped).strip()


def levenshtein_distance(s1: str, s2: str) -> int:
    """
    Calculate the Levenshtein distance between two strings.

    Args:
        s1: First string
        s2: Second string

    Returns:
        Edit distance
    """
    if len(s1) < len(s2):
        s1, s2 = s2, s1

    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def similarity(a: str, b: str) -> float:
    """
    Similarity ratio between two names.

    Args:
        a: First name
        b: Second name

    Returns:
        Score between 0.0 and 1.0; two empty names count as identical
    """
    norm_a = normalize_text(a)
    norm_b = normalize_text(b)

    if norm_a == norm_b:
        return 1.0

    max_len = max(len(norm_a), len(norm_b))
    distance = levenshtein_distance(norm_a, norm_b)
    return 1.0 - (distance / max_len)
