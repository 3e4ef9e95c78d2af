"""Client for The Movie Database (TMDB), the catalog provider."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config import Settings
from ..models import (
    TMDB_TYPE_BY_MEDIA_TYPE,
    Episode,
    MediaDetail,
    MediaSummary,
    MediaType,
)

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_BASE_URL = "https://image.tmdb.org/t/p"


class CatalogError(Exception):
    """The catalog provider was unreachable or answered with an error."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.original_exception = original_exception


@dataclass(slots=True)
class CatalogPage:
    """Raw, unfiltered page of multi-search results."""

    results: list[dict[str, Any]] = field(default_factory=list)
    total_results: int = 0
    total_pages: int = 0


def build_image_url(
    path: str | None, size: str = "w500", *, base_url: str = DEFAULT_IMAGE_BASE_URL
) -> str | None:
    """Return a fully qualified image URL for a TMDB image path."""

    if not path:
        return None
    if path.startswith("http"):
        return path
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{base_url.rstrip('/')}/{size}{path}"


class TMDBClient:
    """Read-only wrapper around the TMDB v3 endpoints the browser consumes."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        if not settings.tmdb_api_key:
            raise ValueError("TMDB API key is required when initialising TMDBClient")
        self._settings = settings
        self._client = http_client
        self._max_retries = settings.tmdb_max_retries

    def image_url(self, path: str | None, size: str = "w500") -> str | None:
        return build_image_url(
            path, size, base_url=str(self._settings.tmdb_image_base_url)
        )

    async def search_media(self, term: str, page: int = 1) -> CatalogPage:
        """Run a multi search. Results are returned unfiltered."""

        data = await self._get_json(
            "/search/multi",
            {"query": term, "page": page, "include_adult": "false"},
        )
        results = data.get("results") or []
        return CatalogPage(
            results=[entry for entry in results if isinstance(entry, dict)],
            total_results=self._coerce_count(data.get("total_results")),
            total_pages=self._coerce_count(data.get("total_pages")),
        )

    async def get_media_details(self, media_type: MediaType, media_id: int) -> MediaDetail:
        """Fetch a title with credits and videos appended."""

        data = await self._get_json(
            f"/{TMDB_TYPE_BY_MEDIA_TYPE[media_type]}/{media_id}",
            {"append_to_response": "credits,videos"},
        )
        try:
            return MediaDetail.from_tmdb(data, media_type)
        except (KeyError, TypeError, ValueError) as exc:
            raise CatalogError(
                f"Malformed {media_type} detail payload for {media_id}",
                original_exception=exc,
            ) from exc

    async def get_recommendations(
        self, media_type: MediaType, media_id: int
    ) -> list[MediaSummary]:
        data = await self._get_json(
            f"/{TMDB_TYPE_BY_MEDIA_TYPE[media_type]}/{media_id}/recommendations", {}
        )
        recommendations: list[MediaSummary] = []
        for entry in data.get("results") or []:
            if not isinstance(entry, dict) or entry.get("id") is None:
                continue
            try:
                recommendations.append(MediaSummary.from_tmdb(entry, media_type))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(
                    "Skipping malformed recommendation %s for %s %s: %s",
                    entry.get("id"),
                    media_type,
                    media_id,
                    exc,
                )
        return recommendations

    async def get_season_episodes(self, show_id: int, season_number: int) -> list[Episode]:
        data = await self._get_json(f"/tv/{show_id}/season/{season_number}", {})
        episodes: list[Episode] = []
        for entry in data.get("episodes") or []:
            if not isinstance(entry, dict) or not entry.get("episode_number"):
                continue
            try:
                episodes.append(Episode.from_tmdb(entry))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(
                    "Skipping malformed episode %s of show %s season %s: %s",
                    entry.get("episode_number"),
                    show_id,
                    season_number,
                    exc,
                )
        return episodes

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        query = {
            **params,
            "api_key": self._settings.tmdb_api_key,
            "language": self._settings.tmdb_language,
        }
        attempt = 0
        while True:
            try:
                response = await self._client.get(path, params=query)
            except httpx.HTTPError as exc:
                attempt += 1
                if attempt <= self._max_retries:
                    backoff = min(2 ** (attempt - 1), 5) + (0.1 * attempt)
                    logger.info(
                        "Transient error talking to TMDB (%s). Retrying %s in %.1fs",
                        exc.__class__.__name__,
                        path,
                        backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                logger.warning("TMDB request for %s failed: %s", path, exc)
                raise CatalogError(
                    f"TMDB request for {path} failed", original_exception=exc
                ) from exc

            if 500 <= response.status_code < 600:
                attempt += 1
                if attempt <= self._max_retries:
                    backoff = min(2 ** (attempt - 1), 5) + (0.1 * attempt)
                    logger.info(
                        "TMDB 5xx for %s. Retrying in %.1fs", path, backoff
                    )
                    await asyncio.sleep(backoff)
                    continue
            break

        if response.status_code >= 400:
            logger.warning(
                "TMDB request for %s failed with %s: %s",
                path,
                response.status_code,
                response.text,
            )
            raise CatalogError(
                f"TMDB request for {path} failed with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            logger.warning("Unexpected non-JSON TMDB response for %s", path)
            raise CatalogError(
                f"TMDB returned invalid JSON for {path}",
                status_code=response.status_code,
                original_exception=exc,
            ) from exc
        if not isinstance(data, dict):
            raise CatalogError(
                f"Unexpected TMDB response structure for {path}",
                status_code=response.status_code,
            )
        return data

    @staticmethod
    def _coerce_count(value: Any) -> int:
        try:
            return max(int(value), 0)
        except (TypeError, ValueError):
            return 0
