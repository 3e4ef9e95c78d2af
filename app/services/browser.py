"""High level orchestration of one user's browsing session."""

from __future__ import annotations

import logging

from ..models import (
    DetailState,
    MediaIdentity,
    MediaSummary,
    PlaybackCandidate,
    SearchPage,
    TypeFilter,
    WatchlistEntry,
)
from .details import DetailAggregator
from .episodes import EpisodeCache, SeasonEpisodes
from .playback import DEFAULT_SEASON, PlaybackResolver
from .search import SearchSession
from .tmdb import TMDBClient
from .watchlist import WatchlistStore

logger = logging.getLogger(__name__)


class BrowserSession:
    """Coordinates search, details, episodes, playback and the watchlist."""

    def __init__(
        self,
        client: TMDBClient,
        watchlist: WatchlistStore,
        resolver: PlaybackResolver,
    ):
        self._client = client
        self.watchlist = watchlist
        self.resolver = resolver
        self.search_session = SearchSession(client)
        self.details = DetailAggregator(client)
        self.episodes = EpisodeCache(client)

    async def start(self) -> None:
        """Load persisted state."""

        await self.watchlist.load()

    async def stop(self) -> None:
        """Flush persisted state and leave the current view."""

        self.details.close()
        self.episodes.invalidate()
        await self.watchlist.flush()

    async def search(
        self,
        term: str | None = None,
        page: int | None = None,
        type_filter: TypeFilter | None = None,
    ) -> SearchPage:
        return await self.search_session.query(term, page, type_filter)

    async def open_details(self, identity: MediaIdentity) -> DetailState:
        """Open the details view, priming the episode cache for series."""

        if identity.type != "series" or identity.id != self.episodes.show_id:
            self.episodes.invalidate()

        state = await self.details.open(identity)
        if state.identity != identity or state.status != "ready" or state.detail is None:
            return state
        if identity.type == "series":
            self.episodes.select_show(identity.id, state.detail.seasons)
        return state

    async def season_episodes(self, season_number: int) -> SeasonEpisodes:
        identity = self._current_series()
        if self.episodes.show_id != identity.id:
            detail = self.details.state.detail
            self.episodes.select_show(identity.id, detail.seasons if detail else ())
        return await self.episodes.select_season(season_number)

    def playback(
        self,
        identity: MediaIdentity,
        season: int | None = None,
        episode: int | None = None,
    ) -> list[PlaybackCandidate]:
        """Return the ordered playback candidates for a title."""

        default_season = DEFAULT_SEASON
        state = self.details.state
        if (
            identity.type == "series"
            and state.identity == identity
            and state.detail is not None
            and state.detail.seasons
        ):
            default_season = state.detail.seasons[0].season_number
        return self.resolver.resolve(
            identity, season, episode, default_season=default_season
        )

    async def add_to_watchlist(
        self, item: MediaSummary, identity: MediaIdentity | None = None
    ) -> WatchlistEntry:
        return await self.watchlist.add(item, identity)

    async def remove_from_watchlist(self, identity: MediaIdentity) -> bool:
        return await self.watchlist.remove(identity)

    async def toggle_watchlist(
        self, item: MediaSummary, identity: MediaIdentity | None = None
    ) -> bool:
        return await self.watchlist.toggle(item, identity)

    def in_watchlist(self, media_id: int) -> bool:
        return self.watchlist.contains(media_id)

    def _current_series(self) -> MediaIdentity:
        identity = self.details.identity
        if identity is None or identity.type != "series":
            raise LookupError("No series is open")
        return identity
