"""Entry point for the FastAPI-powered ReelHub API."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from .config import settings
from .database import Database
from .models import (
    DetailState,
    MediaIdentity,
    MediaSummary,
    MediaType,
    PlaybackCandidate,
    SearchPage,
    TypeFilter,
    WatchlistEntry,
)
from .services.browser import BrowserSession
from .services.playback import PlaybackResolver
from .services.tmdb import TMDBClient
from .services.watchlist import WatchlistStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tmdb_api_url).rstrip("/"),
            timeout=httpx.Timeout(15.0, connect=5.0),
        )
    )
    database = Database(settings.database_url)
    await database.create_all()

    tmdb = TMDBClient(settings, tmdb_http_client)
    watchlist = WatchlistStore(database.session_factory, key=settings.watchlist_key)
    resolver = PlaybackResolver(settings.playback_providers, settings.playback_params)
    browser = BrowserSession(tmdb, watchlist, resolver)

    fastapi_app.state.browser = browser
    fastapi_app.state.database = database
    await browser.start()

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await browser.stop()
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Media discovery with a persistent watchlist and embed playback",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_browser(app: FastAPI) -> BrowserSession:
    browser = getattr(app.state, "browser", None)
    if not isinstance(browser, BrowserSession):
        raise RuntimeError("Browser session not initialised")
    return browser


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/search")
    async def search(
        q: str | None = None,
        page: int | None = Query(default=None, ge=1),
        type: TypeFilter | None = None,
    ) -> SearchPage:
        browser = get_browser(fastapi_app)
        try:
            return await browser.search(q, page, type)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @fastapi_app.post("/details/{media_type}/{media_id}")
    async def open_details(media_type: MediaType, media_id: int) -> DetailState:
        browser = get_browser(fastapi_app)
        return await browser.open_details(MediaIdentity(id=media_id, type=media_type))

    @fastapi_app.get("/details")
    async def current_details() -> DetailState:
        return get_browser(fastapi_app).details.state

    @fastapi_app.get("/details/seasons/{season_number}/episodes")
    async def season_episodes(season_number: int) -> dict[str, Any]:
        browser = get_browser(fastapi_app)
        try:
            result = await browser.season_episodes(season_number)
        except LookupError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {
            "showId": result.show_id,
            "seasonNumber": result.season_number,
            "episodes": [episode.model_dump(mode="json") for episode in result.episodes],
            "error": str(result.error) if result.error else None,
        }

    @fastapi_app.get("/playback/{media_type}/{media_id}")
    async def playback(
        media_type: MediaType,
        media_id: int,
        season: int | None = Query(default=None, ge=0),
        episode: int | None = Query(default=None, ge=1),
    ) -> list[PlaybackCandidate]:
        browser = get_browser(fastapi_app)
        try:
            return browser.playback(
                MediaIdentity(id=media_id, type=media_type), season, episode
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @fastapi_app.get("/providers")
    async def providers() -> list[dict[str, str]]:
        browser = get_browser(fastapi_app)
        return [
            {"name": provider.name, "description": provider.description}
            for provider in browser.resolver.providers
        ]

    @fastapi_app.get("/watchlist")
    async def watchlist() -> list[WatchlistEntry]:
        return get_browser(fastapi_app).watchlist.list()

    @fastapi_app.get("/watchlist/{media_id}")
    async def watchlist_contains(media_id: int) -> dict[str, Any]:
        browser = get_browser(fastapi_app)
        return {"id": media_id, "inWatchlist": browser.in_watchlist(media_id)}

    @fastapi_app.put("/watchlist/{media_type}/{media_id}")
    async def add_to_watchlist(
        media_type: MediaType, media_id: int, payload: dict[str, Any]
    ) -> WatchlistEntry:
        browser = get_browser(fastapi_app)
        identity = MediaIdentity(id=media_id, type=media_type)
        try:
            item = MediaSummary.model_validate(
                {**payload, "id": media_id, "type": media_type}
            )
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc
        return await browser.add_to_watchlist(item, identity)

    @fastapi_app.delete("/watchlist/{media_type}/{media_id}")
    async def remove_from_watchlist(media_type: MediaType, media_id: int) -> dict[str, Any]:
        browser = get_browser(fastapi_app)
        removed = await browser.remove_from_watchlist(
            MediaIdentity(id=media_id, type=media_type)
        )
        return {"id": media_id, "type": media_type, "removed": removed}


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
