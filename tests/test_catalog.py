from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import aiohttp
import pytest
from aiohttp import test_utils, web

from app.config import BUNDLED_CATALOG
from app.services.catalog import CityCatalog, CityRecord, fetch_catalog, load_catalog, parse_catalog

HEADER = "id\tname\tascii\talt_name\tlat\tlong\tfeat_class\tfeat_code\tcountry\tcc2\tadmin1\tadmin2\tadmin3\tadmin4\tpopulation\televation\tdem\ttz\tmodified_at"


def _row(*, name, lat, lon, country, admin1, population, geo_id="1"):
    return "\t".join(
        [geo_id, name, name, "", lat, lon, "P", "PPL", country, "", admin1, "", "", "", population, "", "0", "UTC", "2012-01-01"]
    )


SAMPLE = "\n".join(
    [
        HEADER,
        _row(name="Montréal", lat="45.50884", lon="-73.58781", country="CA", admin1="10", population="3268513"),
        _row(name="Boston", lat="42.35843", lon="-71.05977", country="US", admin1="MA", population="617594"),
        _row(name="Avalon", lat="39.10122", lon="-74.71766", country="US", admin1="NJ", population="1334"),
        _row(name="Broken", lat="north", lon="-71.0", country="US", admin1="MA", population="9000"),
        _row(name="Nowhere", lat="95.0", lon="10.0", country="US", admin1="MA", population="9000"),
        "2\tTruncated\tTruncated",
    ]
)


def test_city_record_derives_normalized_fields():
    record = CityRecord(name="Mont-Royal", latitude=45.51675, longitude=-73.64918, region="QC", country="Canada")
    assert record.normalized_name == "mont royal"
    assert record.tokens == ("mont", "royal")
    assert record.display_name == "Mont-Royal, QC, Canada"
    assert CityRecord(name="Laval", latitude=45.5, longitude=-73.7).display_name == "Laval"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"name": "X", "latitude": 90.5, "longitude": 0.0},
        {"name": "X", "latitude": 0.0, "longitude": -181.0},
        {"name": "X", "latitude": float("nan"), "longitude": 0.0},
        {"name": "X", "latitude": 0.0, "longitude": 0.0, "importance": -1.0},
        {"name": "  ", "latitude": 0.0, "longitude": 0.0},
        {"name": "---", "latitude": 0.0, "longitude": 0.0},
    ],
)
def test_city_record_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        CityRecord(**kwargs)


def test_city_record_is_immutable():
    record = CityRecord(name="Laval", latitude=45.5, longitude=-73.7)
    with pytest.raises(AttributeError):
        record.name = "Other"  # type: ignore[misc]


def test_catalog_is_a_read_only_sequence():
    catalog = CityCatalog(
        [
            CityRecord(name="A", latitude=0.0, longitude=0.0, importance=3.0),
            CityRecord(name="B", latitude=0.0, longitude=0.0, importance=7.0),
        ]
    )
    assert len(catalog) == 2
    assert [r.name for r in catalog] == ["A", "B"]
    assert catalog[1].name == "B"
    assert catalog.max_importance == 7.0
    assert CityCatalog([]).max_importance == 0.0


def test_parse_catalog_maps_regions_and_skips_bad_rows(caplog):
    with caplog.at_level(logging.WARNING, logger="app.services.catalog"):
        catalog = parse_catalog(SAMPLE)

    assert [r.name for r in catalog] == ["Montréal", "Boston", "Avalon"]
    montreal = catalog[0]
    assert montreal.display_name == "Montréal, QC, Canada"
    assert montreal.importance == 3268513
    assert catalog[1].display_name == "Boston, MA, USA"
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 3


def test_parse_catalog_filters_by_population():
    catalog = parse_catalog(SAMPLE, min_population=5000)
    assert [r.name for r in catalog] == ["Montréal", "Boston"]


def test_parse_catalog_requires_core_columns():
    with pytest.raises(ValueError, match="lat"):
        parse_catalog("id\tname\tlong\n1\tX\t0.0")


def test_load_catalog_reads_file(tmp_path: Path):
    path = tmp_path / "cities.tsv"
    path.write_text(SAMPLE, encoding="utf-8")
    assert len(load_catalog(path, min_population=5000)) == 2


def test_load_catalog_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_catalog(tmp_path / "missing.tsv")


def test_bundled_catalog_loads():
    catalog = load_catalog(BUNDLED_CATALOG, min_population=5000)
    names = {r.name for r in catalog}
    assert {"Montréal", "Mont-Royal", "Québec"} <= names
    assert "Avalon" not in names
    assert all(r.importance >= 5000 for r in catalog)


async def _serve(text: str, path: str = "/cities.tsv"):
    async def handler(request: web.Request) -> web.Response:
        return web.Response(text=text, content_type="text/tab-separated-values")

    web_app = web.Application()
    web_app.router.add_get(path, handler)
    server = test_utils.TestServer(web_app)
    await server.start_server()
    return server


def test_fetch_catalog_downloads_tsv():
    async def scenario():
        server = await _serve(SAMPLE)
        try:
            async with aiohttp.ClientSession() as session:
                return await fetch_catalog(
                    session, str(server.make_url("/cities.tsv")), min_population=5000, user_agent="tests"
                )
        finally:
            await server.close()

    catalog = asyncio.run(scenario())
    assert [r.name for r in catalog] == ["Montréal", "Boston"]


def test_fetch_catalog_raises_on_http_error():
    async def scenario():
        server = await _serve(SAMPLE)
        try:
            async with aiohttp.ClientSession() as session:
                await fetch_catalog(session, str(server.make_url("/missing.tsv")))
        finally:
            await server.close()

    with pytest.raises(aiohttp.ClientResponseError):
        asyncio.run(scenario())
