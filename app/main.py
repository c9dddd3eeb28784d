from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import aiohttp
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import Settings, get_settings
from app.logging_config import setup_logger
from app.models import SuggestionOut, SuggestionsResponse
from app.services.cache import TTLCache, make_cache_key
from app.services.catalog import CityCatalog, fetch_catalog, load_catalog
from app.services.scoring import ScoringWeights
from app.services.suggestions import Rejected, SuggestionEngine, SuggestResult

logger = logging.getLogger(__name__)

SUGGEST_PARAMS = ("q", "latitude", "longitude", "limit")


def build_engine(catalog: CityCatalog, settings: Settings) -> SuggestionEngine:
    return SuggestionEngine(
        catalog,
        default_limit=settings.default_limit,
        max_limit=settings.max_limit,
        weights=ScoringWeights(geo_weight=settings.geo_weight, geo_scale_km=settings.geo_scale_km),
    )


async def load_configured_catalog(settings: Settings) -> CityCatalog:
    if settings.catalog_url is None:
        return load_catalog(settings.catalog_path, min_population=settings.min_population)

    async with aiohttp.ClientSession() as session:
        return await fetch_catalog(
            session,
            str(settings.catalog_url),
            min_population=settings.min_population,
            user_agent=settings.user_agent,
            timeout_s=settings.http_timeout_s,
        )


def render_result(result: SuggestResult, *, not_found_on_empty: bool) -> JSONResponse:
    if isinstance(result, Rejected):
        body = SuggestionsResponse(errors={name: kind.value for name, kind in result.errors.items()})
        return JSONResponse(status_code=400, content=body.model_dump())

    body = SuggestionsResponse(suggestions=[SuggestionOut.from_suggestion(s) for s in result.suggestions])
    status_code = 404 if not_found_on_empty and not body.suggestions else 200
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def create_app(engine: Optional[SuggestionEngine] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the API. Without an engine the catalog is loaded during startup."""
    settings = settings or get_settings()
    setup_logger(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if engine is None:
            logger.info("Loading city catalog (url=%s path=%s)", settings.catalog_url, settings.catalog_path)
            app.state.engine = build_engine(await load_configured_catalog(settings), settings)
        else:
            app.state.engine = engine
        app.state.cache = TTLCache[SuggestResult](ttl_s=settings.cache_ttl_s, max_size=settings.cache_max_size)
        logger.info("API startup complete: %d cities indexed", len(app.state.engine.catalog))
        yield
        logger.info("API shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        description="Type-ahead city suggestions with optional geographic bias.",
        lifespan=lifespan,
    )

    @app.get("/", tags=["Root"])
    async def root():
        return {"ok": True, "service": settings.app_name, "version": settings.version}

    @app.get("/health", tags=["Healthcheck"])
    async def health(request: Request):
        state = request.app.state
        return {"ok": True, "cities": len(state.engine.catalog), "cache": state.cache.stats()}

    @app.get("/suggestions", response_model=SuggestionsResponse, tags=["Suggestions"])
    def suggestions(request: Request) -> JSONResponse:
        params: Dict[str, Optional[str]] = {key: request.query_params.get(key) for key in SUGGEST_PARAMS}
        cache: TTLCache[SuggestResult] = request.app.state.cache
        cache_key = make_cache_key(params, SUGGEST_PARAMS)

        result = cache.get(cache_key)
        if result is None:
            result = request.app.state.engine.suggest(params)
            cache.set(cache_key, result)
        return render_result(result, not_found_on_empty=settings.not_found_on_empty)

    return app


app = create_app()
