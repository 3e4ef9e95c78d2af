"""Loading lifecycle for the details view."""

from __future__ import annotations

import asyncio
import logging

from ..models import DetailState, MediaIdentity
from .tmdb import CatalogError, TMDBClient

logger = logging.getLogger(__name__)

DETAIL_LOAD_ERROR = "Failed to load content details"


class DetailAggregator:
    """Fetches a title's detail record and recommendations together.

    The state leaves ``loading`` only once both fetches have finished or one
    of them failed. Each :meth:`open` starts a new generation; completions
    from an older generation are dropped so the last opened title wins.
    """

    def __init__(self, client: TMDBClient):
        self._client = client
        self._generation = 0
        self._state = DetailState()

    @property
    def state(self) -> DetailState:
        return self._state

    @property
    def identity(self) -> MediaIdentity | None:
        return self._state.identity

    async def open(self, identity: MediaIdentity) -> DetailState:
        self._generation += 1
        generation = self._generation
        self._state = DetailState(status="loading", identity=identity)
        logger.info("Fetching details for %s %s", identity.type, identity.id)

        try:
            detail, recommendations = await asyncio.gather(
                self._client.get_media_details(identity.type, identity.id),
                self._client.get_recommendations(identity.type, identity.id),
            )
        except CatalogError as exc:
            if generation != self._generation:
                logger.debug("Discarding stale detail failure for %s %s", identity.type, identity.id)
                return self._state
            logger.warning(
                "Error fetching media details for %s %s: %s", identity.type, identity.id, exc
            )
            self._state = DetailState(
                status="failed", identity=identity, error=DETAIL_LOAD_ERROR
            )
            return self._state

        if generation != self._generation:
            logger.debug("Discarding stale details for %s %s", identity.type, identity.id)
            return self._state

        self._state = DetailState(
            status="ready",
            identity=identity,
            detail=detail,
            recommendations=recommendations,
        )
        return self._state

    def close(self) -> None:
        """Leave the details view; in-flight fetches become stale."""

        self._generation += 1
        self._state = DetailState()
