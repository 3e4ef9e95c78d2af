"""Per-show cache of season episode listings."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence

from ..models import Episode, Season
from .tmdb import CatalogError, TMDBClient

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SeasonEpisodes:
    """Episodes of one season, or an empty list plus the error that caused it."""

    show_id: int
    season_number: int
    episodes: list[Episode] = field(default_factory=list)
    error: CatalogError | None = None

    @property
    def fetched(self) -> bool:
        return self.error is None


class EpisodeCache:
    """Lazily fetches and caches season listings for the show being viewed.

    At most one request per ``(show_id, season_number)`` is in flight; other
    callers for the same key await that request. Failed fetches are not
    cached. Moving to another show drops every entry of the previous one and
    results that arrive for it afterwards are discarded.
    """

    def __init__(self, client: TMDBClient):
        self._client = client
        self._show_id: int | None = None
        self._seasons: tuple[Season, ...] = ()
        self._episodes: dict[tuple[int, int], list[Episode]] = {}
        self._inflight: dict[tuple[int, int], asyncio.Task[SeasonEpisodes]] = {}
        self._generation = 0
        self.selected_season: int | None = None

    @property
    def show_id(self) -> int | None:
        return self._show_id

    @property
    def seasons(self) -> tuple[Season, ...]:
        return self._seasons

    def is_cached(self, show_id: int, season_number: int) -> bool:
        return (show_id, season_number) in self._episodes

    def select_show(self, show_id: int, seasons: Sequence[Season] = ()) -> None:
        """Make ``show_id`` the current show and pre-fetch its first season.

        The first entry of the season list is used, so a show whose lowest
        season is the specials season starts on season 0.
        """

        if show_id != self._show_id:
            self._reset(show_id)
        self._seasons = tuple(seasons)
        if not self._seasons:
            return
        first = self._seasons[0].season_number
        if self.selected_season is None:
            self.selected_season = first
        key = (show_id, first)
        if key in self._episodes or key in self._inflight:
            return
        task = self._start_fetch(key)
        task.add_done_callback(self._log_prefetch_failure)

    async def select_season(self, season_number: int) -> SeasonEpisodes:
        """Switch the current show to another season, fetching it if needed."""

        if self._show_id is None:
            raise ValueError("No show selected")
        self.selected_season = season_number
        return await self.get_episodes(self._show_id, season_number)

    async def get_episodes(self, show_id: int, season_number: int) -> SeasonEpisodes:
        if season_number < 0:
            raise ValueError("Season numbers start at 0")
        if show_id != self._show_id:
            self._reset(show_id)

        key = (show_id, season_number)
        cached = self._episodes.get(key)
        if cached is not None:
            return SeasonEpisodes(show_id, season_number, list(cached))

        task = self._inflight.get(key)
        if task is None:
            task = self._start_fetch(key)
        else:
            logger.debug("Joining in-flight episode fetch for show %s S%s", show_id, season_number)
        # Shielded so one cancelled caller does not cancel the shared fetch.
        result = await asyncio.shield(task)
        return SeasonEpisodes(
            result.show_id, result.season_number, list(result.episodes), result.error
        )

    def invalidate(self) -> None:
        """Forget every cached season and orphan in-flight fetches."""

        self._reset(None)

    def _start_fetch(self, key: tuple[int, int]) -> asyncio.Task[SeasonEpisodes]:
        task = asyncio.create_task(self._fetch(key, self._generation))
        self._inflight[key] = task
        return task

    async def _fetch(self, key: tuple[int, int], generation: int) -> SeasonEpisodes:
        show_id, season_number = key
        try:
            episodes = await self._client.get_season_episodes(show_id, season_number)
        except CatalogError as exc:
            logger.warning(
                "Failed to fetch episodes for show %s S%s: %s", show_id, season_number, exc
            )
            return SeasonEpisodes(show_id, season_number, [], exc)
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]

        if generation == self._generation:
            self._episodes[key] = episodes
        else:
            logger.debug("Discarding stale episodes for show %s S%s", show_id, season_number)
        return SeasonEpisodes(show_id, season_number, episodes)

    def _reset(self, show_id: int | None) -> None:
        self._generation += 1
        self._show_id = show_id
        self._seasons = ()
        self._episodes.clear()
        self._inflight.clear()
        self.selected_season = None

    @staticmethod
    def _log_prefetch_failure(task: asyncio.Task[SeasonEpisodes]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Episode pre-fetch failed", exc_info=exc)
