"""Immutable city catalog and its GeoNames TSV loaders."""

from __future__ import annotations

import csv
import io
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import aiohttp

from app.services.text import normalize_text, tokenize

logger = logging.getLogger(__name__)

# GeoNames stores Canadian provinces as numeric FIPS codes
CA_PROVINCES: dict[str, str] = {
    "01": "AB",
    "02": "BC",
    "03": "MB",
    "04": "NB",
    "05": "NL",
    "07": "NS",
    "08": "ON",
    "09": "PE",
    "10": "QC",
    "11": "SK",
    "12": "YT",
    "13": "NT",
    "14": "NU",
}

COUNTRY_NAMES: dict[str, str] = {
    "CA": "Canada",
    "US": "USA",
}

REQUIRED_COLUMNS = ("name", "lat", "long")


@dataclass(frozen=True)
class CityRecord:
    name: str
    latitude: float
    longitude: float
    importance: float = 0.0
    region: str = ""
    country: str = ""
    normalized_name: str = field(init=False, repr=False)
    tokens: Tuple[str, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("City name must be a non-empty string")
        for label, value, bound in (("latitude", self.latitude, 90.0), ("longitude", self.longitude, 180.0)):
            if not math.isfinite(value) or not -bound <= value <= bound:
                raise ValueError(f"{label} {value!r} out of range for {self.name!r}")
        if not math.isfinite(self.importance) or self.importance < 0:
            raise ValueError(f"importance must be non-negative for {self.name!r}")

        normalized = normalize_text(self.name)
        if not normalized:
            raise ValueError(f"City name {self.name!r} has no searchable characters")
        object.__setattr__(self, "normalized_name", normalized)
        object.__setattr__(self, "tokens", tuple(tokenize(normalized)))

    @property
    def display_name(self) -> str:
        return ", ".join(part for part in (self.name, self.region, self.country) if part)


class CityCatalog(Sequence[CityRecord]):
    """Read-only, ordered collection of cities shared by every request."""

    def __init__(self, records: Iterable[CityRecord]) -> None:
        self._records: Tuple[CityRecord, ...] = tuple(records)
        self._max_importance = max((r.importance for r in self._records), default=0.0)

    def __getitem__(self, index):  # type: ignore[override]
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CityRecord]:
        return iter(self._records)

    @property
    def max_importance(self) -> float:
        return self._max_importance


def _region_code(country_code: str, admin1: str) -> str:
    if country_code == "CA":
        return CA_PROVINCES.get(admin1, admin1)
    return admin1


def _row_to_record(row: dict[str, Optional[str]]) -> CityRecord:
    population_raw = (row.get("population") or "").strip()
    population = float(population_raw) if population_raw else 0.0
    country_code = (row.get("country") or "").strip().upper()

    return CityRecord(
        name=(row.get("name") or "").strip(),
        latitude=float(row.get("lat") or "nan"),
        longitude=float(row.get("long") or "nan"),
        importance=population,
        region=_region_code(country_code, (row.get("admin1") or "").strip()),
        country=COUNTRY_NAMES.get(country_code, country_code),
    )


def parse_catalog(text: str, *, min_population: float = 0.0, source: str = "<memory>") -> CityCatalog:
    """Parse a GeoNames-style TSV dump (header row first) into a catalog.

    Malformed rows are skipped with a warning; cities under min_population are dropped.
    """
    reader = csv.DictReader(io.StringIO(text), delimiter="\t", quoting=csv.QUOTE_NONE)
    header = reader.fieldnames or []
    missing = [column for column in REQUIRED_COLUMNS if column not in header]
    if missing:
        raise ValueError(f"Catalog {source} is missing columns: {', '.join(missing)}")

    records: List[CityRecord] = []
    skipped = 0
    filtered = 0
    for line_no, row in enumerate(reader, start=2):
        if None in row or any(row.get(column) is None for column in REQUIRED_COLUMNS):
            logger.warning("Skipping malformed row %s:%d (column count)", source, line_no)
            skipped += 1
            continue
        try:
            record = _row_to_record(row)
        except ValueError as e:
            logger.warning("Skipping malformed row %s:%d (%s)", source, line_no, e)
            skipped += 1
            continue
        if record.importance < min_population:
            filtered += 1
            continue
        records.append(record)

    logger.info(
        "Loaded %d cities from %s (skipped=%d, below_min_population=%d)",
        len(records),
        source,
        skipped,
        filtered,
    )
    return CityCatalog(records)


def load_catalog(path: Path, *, min_population: float = 0.0) -> CityCatalog:
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")
    return parse_catalog(path.read_text(encoding="utf-8"), min_population=min_population, source=str(path))


async def fetch_catalog(
    session: aiohttp.ClientSession,
    url: str,
    *,
    min_population: float = 0.0,
    user_agent: Optional[str] = None,
    timeout_s: float = 20.0,
) -> CityCatalog:
    """Download a GeoNames-style TSV dump once and parse it."""
    headers = {"User-Agent": user_agent} if user_agent else None
    timeout = aiohttp.ClientTimeout(total=timeout_s)

    async with session.get(url, headers=headers, timeout=timeout) as resp:
        resp.raise_for_status()
        text = await resp.text(encoding="utf-8")

    return parse_catalog(text, min_population=min_population, source=url)
