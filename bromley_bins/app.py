"""
Bromley bin collection HTTP API.

Entrypoint: bromley-bins-api (or python -m bromley_bins.app), listening on $PORT.
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, PlainTextResponse

from .config import Settings, load_settings, configure_logging
from .collection_dates import now_london
from .data_fetchers.base_fetcher import BinDataFetcher, PageFetcher, body_text_contains
from .data_fetchers.bromley_bin_data import READY_MARKER
from .data_fetchers.fetcher_factory import create_fetcher
from .data_fetchers.playwright_fetcher import PlaywrightPageFetcher
from .data_models import ErrorResult, schedule_as_dict
from .queries import get_bins_for_tomorrow, get_next_collections
from .scheduler import create_prewarm_scheduler

logger = logging.getLogger(__name__)

# Canned response for client development against bins_for_tomorrow
TEST_BINS_FOR_TOMORROW = [
    "Food Waste",
    "Mixed Recycling (Cans, Plastics & Glass)",
    "Paper & Cardboard",
    "Non-Recyclable Refuse",
    "Bulky Waste",
    "Batteries, small electrical items and textiles",
]


def _as_json(result):
    if isinstance(result, ErrorResult):
        return result.as_dict()
    return result


def create_app(settings: Optional[Settings] = None, cache: Optional[BinDataFetcher] = None,
               page_fetcher: Optional[PageFetcher] = None, start_scheduler: bool = True,
               clock=now_london) -> FastAPI:
    if settings is None:
        settings = load_settings()
    if page_fetcher is None:
        page_fetcher = PlaywrightPageFetcher(
            executable_path=settings.browser_executable_path,
            timeout_ms=settings.fetch_timeout_ms,
            attempts=settings.fetch_attempts,
        )
    if cache is None:
        cache = create_fetcher(
            source="bromley",
            use_cache=True,
            page_fetcher=page_fetcher,
            base_url=settings.bromley_url,
            clock=clock,
            max_age=timedelta(minutes=settings.cache_max_age_minutes),
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Starts the pre-warm scheduler and stops it on shutdown."""
        scheduler = None
        if start_scheduler and settings.prewarm_bin_ids:
            scheduler = create_prewarm_scheduler(cache, settings.prewarm_bin_ids, settings.prewarm_interval_seconds)
            scheduler.start()
            logger.info(f"Pre-warm scheduler started for {settings.prewarm_bin_ids}")
        app.state.scheduler = scheduler

        yield

        if scheduler is not None:
            scheduler.shutdown(wait=False)
            logger.info("Pre-warm scheduler stopped")

    app = FastAPI(title="Bromley Bins API", lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

    app.state.settings = settings
    app.state.cache = cache
    app.state.page_fetcher = page_fetcher
    app.state.clock = clock

    @app.get("/healthcheck")
    async def legacy_healthcheck():
        return {"status": "ok"}

    @app.get("/api/v1/healthcheck")
    async def healthcheck(request: Request):
        try:
            cache_size = len(request.app.state.cache)
        except Exception as e:
            logger.exception("Healthcheck failed")
            return {"status": "error", "message": str(e)}
        if cache_size > 0:
            return {"status": "ok", "cacheSize": cache_size}
        return {"status": "error", "message": "No cache data found"}

    @app.get("/api/v1/bin/{bin_id}")
    async def bin_details(bin_id: str, request: Request):
        schedule = await request.app.state.cache.get_schedule(bin_id)
        if isinstance(schedule, ErrorResult):
            return schedule.as_dict()
        return schedule_as_dict(schedule)

    @app.get("/api/v1/bin/{bin_id}/next_collections")
    async def next_collections(bin_id: str, request: Request):
        # NextCollections and ErrorResult both render themselves
        result = await get_next_collections(request.app.state.cache, bin_id, request.app.state.clock)
        return result.as_dict()

    @app.get("/api/v1/bin/{bin_id}/bins_for_tomorrow")
    async def bins_for_tomorrow(bin_id: str, request: Request):
        return _as_json(await get_bins_for_tomorrow(request.app.state.cache, bin_id, request.app.state.clock))

    @app.get("/api/v1/bin/{bin_id}/bins_for_tomorrow_test")
    async def bins_for_tomorrow_test(bin_id: str):
        return TEST_BINS_FOR_TOMORROW

    @app.get("/api/v1/cache")
    async def cache_contents(request: Request):
        contents = request.app.state.cache.cache_contents()
        return {str(bin_id): entry.as_dict() for bin_id, entry in contents.items()}

    # Debug only: renders any URL with no validation that it belongs to Bromley
    @app.get("/api/v1/debug/render")
    async def debug_render(request: Request, url: Optional[str] = None):
        if not url:
            return PlainTextResponse("please provide url")
        try:
            content = await request.app.state.page_fetcher.render(url, body_text_contains(READY_MARKER))
        except Exception as e:
            logger.warning(f"Error while fetching {url}: {e}")
            return PlainTextResponse(f"Error fetching {url}")
        return HTMLResponse(content)

    return app


def main():
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info(f"Listening on port {settings.port}")
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
