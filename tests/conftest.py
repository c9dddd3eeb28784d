from __future__ import annotations

import pytest

from app.services.catalog import CityCatalog, CityRecord
from app.services.suggestions import SuggestionEngine

CITIES = [
    CityRecord(name="Montreal", latitude=45.5017, longitude=-73.5673, importance=0.9),
    CityRecord(name="Mont-Royal", latitude=45.51675, longitude=-73.64918, importance=0.2),
    CityRecord(name="Montgomery", latitude=32.36681, longitude=-86.29997, importance=0.5),
    CityRecord(name="Québec", latitude=46.81228, longitude=-71.21454, importance=0.6),
    CityRecord(name="Toronto", latitude=43.70011, longitude=-79.41630, importance=0.95),
    CityRecord(name="Vancouver", latitude=49.24966, longitude=-123.11934, importance=0.7),
    CityRecord(name="Vaughan", latitude=43.83610, longitude=-79.49827, importance=0.4),
    CityRecord(name="Valdosta", latitude=30.83334, longitude=-83.28032, importance=0.1),
    CityRecord(name="Vallejo", latitude=38.10409, longitude=-122.25664, importance=0.15),
    CityRecord(name="Savannah", latitude=32.08354, longitude=-81.09983, importance=0.3),
    CityRecord(name="Laval", latitude=45.56995, longitude=-73.69200, importance=0.5),
    CityRecord(name="Nashville", latitude=36.16589, longitude=-86.78444, importance=0.6),
    CityRecord(name="Portland", latitude=45.52345, longitude=-122.67621, importance=0.5),
    CityRecord(name="Portland", latitude=43.66147, longitude=-70.25533, importance=0.1),
]


@pytest.fixture
def catalog() -> CityCatalog:
    return CityCatalog(CITIES)


@pytest.fixture
def engine(catalog: CityCatalog) -> SuggestionEngine:
    return SuggestionEngine(catalog)