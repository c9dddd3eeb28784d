"""Request parameter validation for the suggestion endpoint.

Every field is checked independently and all violations are collected, so a
caller sees the complete list of problems from a single request.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from app.services.text import normalize_text

DEFAULT_LIMIT = 10
MAX_LIMIT = 100

# plain ASCII decimal degrees: no exponent, underscores, nan/inf or non-ASCII digits
_DECIMAL = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)", re.ASCII)


class ErrorKind(str, Enum):
    MISSING_QUERY = "MissingQuery"
    INVALID_COORDINATE = "InvalidCoordinate"
    INVALID_LIMIT = "InvalidLimit"


@dataclass(frozen=True)
class Query:
    raw_text: str
    normalized_text: str
    coordinate: Optional[Tuple[float, float]] = None
    limit: int = DEFAULT_LIMIT


@dataclass(frozen=True)
class ValidationResult:
    query: Optional[Query] = None
    errors: Dict[str, ErrorKind] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.query is not None and not self.errors


def _parse_degrees(raw: str, bound: float) -> Optional[float]:
    text = raw.strip()
    if not _DECIMAL.fullmatch(text):
        return None
    value = float(text)
    if not -bound <= value <= bound:
        return None
    return value


def _validate_coordinate(
    params: Mapping[str, Optional[str]], errors: Dict[str, ErrorKind]
) -> Optional[Tuple[float, float]]:
    raw_lat = params.get("latitude")
    raw_lon = params.get("longitude")
    if raw_lat is None and raw_lon is None:
        return None

    # a lone value is reported against the missing partner
    lat = _parse_degrees(raw_lat, 90.0) if raw_lat is not None else None
    lon = _parse_degrees(raw_lon, 180.0) if raw_lon is not None else None
    if lat is None:
        errors["latitude"] = ErrorKind.INVALID_COORDINATE
    if lon is None:
        errors["longitude"] = ErrorKind.INVALID_COORDINATE
    if lat is None or lon is None:
        return None
    return lat, lon


def _validate_limit(
    raw: Optional[str], errors: Dict[str, ErrorKind], *, default_limit: int, max_limit: int
) -> int:
    if raw is None:
        return default_limit
    text = raw.strip()
    if not (text.isascii() and text.isdigit()) or int(text) <= 0:
        errors["limit"] = ErrorKind.INVALID_LIMIT
        return default_limit
    return min(int(text), max_limit)


def validate_params(
    params: Mapping[str, Optional[str]],
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> ValidationResult:
    """Turn raw query-string parameters into a Query or a set of field errors.

    Keys: q (required), latitude + longitude (optional, together), limit (optional,
    capped at max_limit). A key that is present with a blank value counts as
    supplied, so `limit=` is an InvalidLimit rather than the default.
    """
    errors: Dict[str, ErrorKind] = {}

    raw_text = params.get("q") or ""
    normalized = normalize_text(raw_text)
    if not normalized:
        errors["q"] = ErrorKind.MISSING_QUERY

    coordinate = _validate_coordinate(params, errors)
    limit = _validate_limit(params.get("limit"), errors, default_limit=default_limit, max_limit=max_limit)

    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(
        query=Query(raw_text=raw_text, normalized_text=normalized, coordinate=coordinate, limit=limit)
    )
