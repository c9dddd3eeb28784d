from __future__ import annotations

import re
import unicodedata
from typing import List, Optional

from rapidfuzz.distance import Levenshtein

_SEPARATORS = re.compile(r"[\W_]+", re.UNICODE)

# query length -> allowed edits; shorter queries get no fuzzy matching at all
FUZZY_MIN_LENGTH = 4
LONG_QUERY_LENGTH = 8

MAX_GRAM = 3


def fold_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(value: Optional[str]) -> str:
    """Lowercase, accent-folded form with separators collapsed to single spaces.

    "Mont-Royal" -> "mont royal", "  Québec " -> "quebec".
    """
    if not value:
        return ""
    folded = fold_accents(value).casefold()
    return _SEPARATORS.sub(" ", folded).strip()


def tokenize(normalized: str) -> List[str]:
    return normalized.split()


def char_grams(normalized: str, size: int) -> set[str]:
    if len(normalized) < size:
        return set()
    return {normalized[i : i + size] for i in range(len(normalized) - size + 1)}


def edit_budget(query_length: int) -> int:
    if query_length < FUZZY_MIN_LENGTH:
        return 0
    if query_length < LONG_QUERY_LENGTH:
        return 1
    return 2


def bounded_edit_distance(a: str, b: str, budget: int) -> Optional[int]:
    """Levenshtein distance between a and b, or None when it exceeds budget."""
    if budget < 0:
        return None
    distance = Levenshtein.distance(a, b, score_cutoff=budget)
    return distance if distance <= budget else None
