from __future__ import annotations

from collections import defaultdict
from typing import Dict, FrozenSet, List, Set, Tuple

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from app.services.catalog import CityCatalog, CityRecord
from app.services.text import MAX_GRAM, char_grams, edit_budget


class TextIndex:
    """Candidate generation over a catalog's normalized names.

    Two structures are built once:
      - character n-grams (1..MAX_GRAM) -> record ids; a name containing the query
        contains every one of its grams, so intersecting posting lists never drops
        a substring (and therefore prefix or word-prefix) match.
      - terms (word tokens and whole names) bucketed by length, for fuzzy lookup
        within the edit budget without scanning records.
    """

    def __init__(self, catalog: CityCatalog) -> None:
        self._catalog = catalog

        grams: Dict[str, Set[int]] = defaultdict(set)
        terms: Dict[str, Set[int]] = defaultdict(set)
        for record_id, record in enumerate(catalog):
            for size in range(1, MAX_GRAM + 1):
                for gram in char_grams(record.normalized_name, size):
                    grams[gram].add(record_id)
            terms[record.normalized_name].add(record_id)
            for token in record.tokens:
                terms[token].add(record_id)

        self._grams: Dict[str, FrozenSet[int]] = {k: frozenset(v) for k, v in grams.items()}
        self._terms: Dict[str, FrozenSet[int]] = {k: frozenset(v) for k, v in terms.items()}

        by_length: Dict[int, List[str]] = defaultdict(list)
        for term in sorted(self._terms):
            by_length[len(term)].append(term)
        self._terms_by_length: Dict[int, Tuple[str, ...]] = {k: tuple(v) for k, v in by_length.items()}

    def _substring_ids(self, query: str) -> Set[int]:
        size = min(len(query), MAX_GRAM)
        postings = [self._grams.get(gram) for gram in char_grams(query, size)]
        if not postings or any(p is None for p in postings):
            return set()
        postings.sort(key=len)
        result = set(postings[0])
        for posting in postings[1:]:
            result &= posting
            if not result:
                break
        return result

    def _fuzzy_ids(self, query: str) -> Set[int]:
        budget = edit_budget(len(query))
        result: Set[int] = set()
        if budget == 0:
            return result
        for length in range(len(query) - budget, len(query) + budget + 1):
            bucket = self._terms_by_length.get(length)
            if not bucket:
                continue
            matches = process.extract(
                query,
                bucket,
                scorer=Levenshtein.distance,
                processor=None,
                score_cutoff=budget,
                limit=None,
            )
            for term, _distance, _position in matches:
                result |= self._terms[term]
        return result

    def candidates(self, normalized_query: str) -> List[CityRecord]:
        """Records worth scoring for the query, in catalog order.

        Over-selects: callers must still score and drop zero-relevance entries.
        """
        if not normalized_query:
            raise ValueError("normalized_query must be non-empty")

        ids = self._substring_ids(normalized_query) | self._fuzzy_ids(normalized_query)
        return [self._catalog[i] for i in sorted(ids)]
