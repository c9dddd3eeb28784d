"""Suggestion pipeline: validate -> retrieve candidates -> score -> rank -> truncate."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple, Union

from app.services.catalog import CityCatalog, CityRecord
from app.services.index import TextIndex
from app.services.scoring import ScoringWeights, score_candidate
from app.services.validation import DEFAULT_LIMIT, MAX_LIMIT, ErrorKind, Query, validate_params

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Suggestion:
    city: CityRecord
    score: float

    def sort_key(self) -> Tuple[float, float, str, float, float]:
        # total order: score desc, importance desc, name asc, then position
        return (-self.score, -self.city.importance, self.city.name, self.city.latitude, self.city.longitude)


@dataclass(frozen=True)
class Served:
    query: Query
    suggestions: Tuple[Suggestion, ...] = ()


@dataclass(frozen=True)
class Rejected:
    errors: Dict[str, ErrorKind] = field(default_factory=dict)
    suggestions: Tuple[Suggestion, ...] = ()


SuggestResult = Union[Served, Rejected]


class SuggestionEngine:
    """Read-only suggestion service over an injected catalog.

    The catalog and its index are built once in the constructor and never
    mutated, so a single engine can serve concurrent requests without locking.
    """

    def __init__(
        self,
        catalog: CityCatalog,
        *,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
        weights: Optional[ScoringWeights] = None,
    ) -> None:
        if default_limit < 1 or max_limit < default_limit:
            raise ValueError("Expected 1 <= default_limit <= max_limit")
        self.catalog = catalog
        self.index = TextIndex(catalog)
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.weights = weights or ScoringWeights()

    def rank(self, query: Query) -> List[Suggestion]:
        scored: List[Suggestion] = []
        for candidate in self.index.candidates(query.normalized_text):
            score = score_candidate(
                query.normalized_text,
                candidate,
                coordinate=query.coordinate,
                max_importance=self.catalog.max_importance,
                weights=self.weights,
            )
            if score > 0.0:
                scored.append(Suggestion(city=candidate, score=score))

        scored.sort(key=Suggestion.sort_key)
        return scored[: query.limit]

    def suggest(self, params: Mapping[str, Optional[str]]) -> SuggestResult:
        validation = validate_params(params, default_limit=self.default_limit, max_limit=self.max_limit)
        if not validation.ok:
            logger.debug("Rejected suggestion request errors=%s", dict(validation.errors))
            return Rejected(errors=dict(validation.errors))

        query = validation.query
        suggestions = self.rank(query)
        logger.debug("Served q=%r results=%d", query.normalized_text, len(suggestions))
        return Served(query=query, suggestions=tuple(suggestions))
