"""Pytest configuration and test helpers."""

from __future__ import annotations

import asyncio
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Hashable

import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.models import Episode, MediaDetail, MediaSummary  # noqa: E402
from app.services.tmdb import CatalogError, CatalogPage, TMDBClient  # noqa: E402


class StubCatalog(TMDBClient):
    """In-memory catalog provider that counts calls.

    ``hold(key)`` makes the matching call wait until ``release(key)``;
    ``fail(key)`` makes it raise :class:`CatalogError`. Keys are
    ``("search", term, page)``, ``("details", type, id)``,
    ``("recommendations", type, id)`` and ``("episodes", show_id, season)``.
    """

    def __init__(self) -> None:
        # Deliberately skip super().__init__ to avoid touching external systems.
        self.calls: Counter[Hashable] = Counter()
        self.pages: dict[tuple[str, int], CatalogPage] = {}
        self.detail_records: dict[tuple[str, int], MediaDetail] = {}
        self.recommendation_lists: dict[tuple[str, int], list[MediaSummary]] = {}
        self.season_listings: dict[tuple[int, int], list[Episode]] = {}
        self._gates: dict[Hashable, asyncio.Event] = {}
        self._failures: set[Hashable] = set()

    def hold(self, key: Hashable) -> None:
        self._gates[key] = asyncio.Event()

    def release(self, key: Hashable) -> None:
        self._gates[key].set()

    def fail(self, key: Hashable) -> None:
        self._failures.add(key)

    def recover(self, key: Hashable) -> None:
        self._failures.discard(key)

    async def _enter(self, key: Hashable) -> None:
        self.calls[key] += 1
        gate = self._gates.get(key)
        if gate is not None:
            await gate.wait()
        if key in self._failures:
            raise CatalogError(f"stubbed failure for {key}", status_code=503)

    async def search_media(self, term: str, page: int = 1) -> CatalogPage:
        await self._enter(("search", term, page))
        return self.pages.get((term, page), CatalogPage())

    async def get_media_details(self, media_type, media_id) -> MediaDetail:
        await self._enter(("details", media_type, media_id))
        return self.detail_records[(media_type, media_id)]

    async def get_recommendations(self, media_type, media_id) -> list[MediaSummary]:
        await self._enter(("recommendations", media_type, media_id))
        return list(self.recommendation_lists.get((media_type, media_id), []))

    async def get_season_episodes(self, show_id: int, season_number: int) -> list[Episode]:
        await self._enter(("episodes", show_id, season_number))
        return list(self.season_listings.get((show_id, season_number), []))


def make_detail(media_id: int, media_type: str = "movie", **overrides: Any) -> MediaDetail:
    fields: dict[str, Any] = {
        "id": media_id,
        "type": media_type,
        "title": f"Title {media_id}",
        "poster_path": f"/poster-{media_id}.jpg",
    }
    fields.update(overrides)
    return MediaDetail(**fields)


def make_episodes(count: int) -> list[Episode]:
    return [
        Episode(episode_number=number, name=f"Episode {number}")
        for number in range(1, count + 1)
    ]


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def catalog() -> StubCatalog:
    return StubCatalog()
