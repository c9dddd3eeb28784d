from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from app.services.catalog import CityRecord
from app.services.text import bounded_edit_distance, edit_budget

# (floor, span) of each textual tier; the tiers do not overlap so a better kind of
# match always outranks a worse one regardless of coverage
EXACT_SCORE = 1.0
PREFIX_TIER = (0.75, 0.2)
WORD_PREFIX_TIER = (0.55, 0.2)
SUBSTRING_TIER = (0.35, 0.2)
FUZZY_TIER = (0.10, 0.2)

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class ScoringWeights:
    geo_weight: float = 0.3
    geo_scale_km: float = 100.0
    # small enough to stay below any coverage difference between two names
    importance_weight: float = 1e-5


def _tier(tier: Tuple[float, float], closeness: float) -> float:
    floor, span = tier
    return floor + span * closeness


def _fuzzy_distance(query: str, candidate: CityRecord) -> Optional[int]:
    budget = edit_budget(len(query))
    if budget == 0:
        return None
    best: Optional[int] = None
    for term in (candidate.normalized_name,) + candidate.tokens:
        distance = bounded_edit_distance(query, term, budget)
        if distance is not None and (best is None or distance < best):
            best = distance
    return best


def text_similarity(query: str, candidate: CityRecord) -> float:
    """Textual relevance in [0, 1] between a normalized query and a city.

    exact > name prefix > word prefix > substring > fuzzy; 0.0 means no match.
    """
    name = candidate.normalized_name
    if not query:
        return 0.0
    if query == name:
        return EXACT_SCORE

    coverage = len(query) / len(name) if len(query) < len(name) else 1.0
    if name.startswith(query):
        return _tier(PREFIX_TIER, coverage)
    if f" {query}" in f" {name}":
        return _tier(WORD_PREFIX_TIER, coverage)
    if query in name:
        return _tier(SUBSTRING_TIER, coverage)

    distance = _fuzzy_distance(query, candidate)
    if distance is None:
        return 0.0
    budget = edit_budget(len(query))
    return _tier(FUZZY_TIER, 1.0 - distance / (budget + 1))


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometers between two WGS84 coords."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def geo_proximity(coordinate: Tuple[float, float], candidate: CityRecord, scale_km: float) -> float:
    """1.0 at the query point, 0.5 at scale_km, tending to 0 further away."""
    distance = haversine_km(coordinate[0], coordinate[1], candidate.latitude, candidate.longitude)
    return 1.0 / (1.0 + distance / scale_km)


def score_candidate(
    query: str,
    candidate: CityRecord,
    *,
    coordinate: Optional[Tuple[float, float]] = None,
    max_importance: float = 0.0,
    weights: ScoringWeights = ScoringWeights(),
) -> float:
    """Combined score in (0, 1], or 0.0 when the name does not match the query.

    Proximity and importance are only ever added on top of a positive textual
    score, so a coordinate can reorder matches but never create one.
    """
    text = text_similarity(query, candidate)
    if text <= 0.0:
        return 0.0

    total = text
    ceiling = 1.0 + weights.importance_weight
    if coordinate is not None:
        total += weights.geo_weight * geo_proximity(coordinate, candidate, weights.geo_scale_km)
        ceiling += weights.geo_weight
    if max_importance > 0:
        total += weights.importance_weight * min(candidate.importance / max_importance, 1.0)
    return total / ceiling
