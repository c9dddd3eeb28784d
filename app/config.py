from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BUNDLED_CATALOG = Path(__file__).resolve().parent / "data" / "cities_canada-usa.tsv"


class Settings(BaseSettings):
    """App configuration (env-friendly).

    Tip: create a .env file (it is already in .gitignore) and override settings there.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_name: str = "City Suggestions API"
    version: str = "0.1.0"
    log_level: str = "INFO"

    # GeoNames-style TSV; catalog_url wins over catalog_path when set
    catalog_path: Path = BUNDLED_CATALOG
    catalog_url: Optional[AnyHttpUrl] = None
    min_population: int = Field(5000, ge=0)

    user_agent: str = "city-suggestions/0.1.0"
    http_timeout_s: float = 20.0

    default_limit: int = Field(10, ge=1)
    max_limit: int = Field(100, ge=1)

    geo_weight: float = Field(0.3, ge=0.0)
    geo_scale_km: float = Field(100.0, gt=0.0)

    cache_ttl_s: float = 120.0
    cache_max_size: int = 512

    # A valid query with no match: 404 (legacy clients) or 200 with an empty list.
    not_found_on_empty: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
