"""Paginated, filtered search against the catalog provider."""

from __future__ import annotations

import logging
from typing import Any, get_args

from ..models import MEDIA_TYPE_BY_TMDB_TYPE, MediaSummary, SearchPage, TypeFilter
from .tmdb import CatalogError, TMDBClient

logger = logging.getLogger(__name__)

SEARCH_ERROR = "Failed to load search results"
TYPE_FILTERS: tuple[str, ...] = get_args(TypeFilter)


def filter_results(
    results: list[dict[str, Any]], type_filter: TypeFilter = "all"
) -> list[MediaSummary]:
    """Keep movies and series that carry an image, then apply the type filter."""

    items: list[MediaSummary] = []
    for raw in results:
        media_type = MEDIA_TYPE_BY_TMDB_TYPE.get(str(raw.get("media_type")))
        if media_type is None or raw.get("id") is None:
            continue
        if not (raw.get("poster_path") or raw.get("backdrop_path")):
            continue
        if type_filter != "all" and media_type != type_filter:
            continue
        try:
            items.append(MediaSummary.from_tmdb(raw, media_type))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed search result %s: %s", raw.get("id"), exc)
    return items


class SearchSession:
    """Owns the term, page and type filter of one search view.

    Every request takes a new generation; a response that arrives after a
    newer request was issued is dropped and the current page is returned.
    """

    def __init__(self, client: TMDBClient):
        self._client = client
        self._generation = 0
        self._page = SearchPage()

    @property
    def current(self) -> SearchPage:
        return self._page

    @property
    def term(self) -> str:
        return self._page.term

    @property
    def page(self) -> int:
        return self._page.page

    @property
    def type_filter(self) -> TypeFilter:
        return self._page.type_filter

    async def query(
        self,
        term: str | None = None,
        page: int | None = None,
        type_filter: TypeFilter | None = None,
    ) -> SearchPage:
        """Run a search. Omitted arguments keep their current value.

        Changing the term or type filter of an active search starts again at
        page 1, whatever ``page`` says.
        """

        new_term = self.term if term is None else term.strip()
        new_filter = self.type_filter if type_filter is None else type_filter
        if new_filter not in TYPE_FILTERS:
            raise ValueError(f"Unknown type filter: {new_filter}")
        changed = new_term != self.term or new_filter != self.type_filter
        if self.term and changed:
            new_page = 1
        elif page is not None:
            new_page = page
        else:
            new_page = 1 if changed else self.page
        if new_page < 1:
            raise ValueError("Pages start at 1")

        self._generation += 1
        generation = self._generation

        if not new_term:
            self._page = SearchPage(term="", page=1, type_filter=new_filter)
            return self._page

        previous = self._page
        # Totals stay visible while the new page loads and when it fails.
        self._page = previous.model_copy(
            update={"term": new_term, "page": new_page, "type_filter": new_filter, "error": None}
        )
        if new_term != previous.term:
            self._page = self._page.model_copy(update={"total_results": 0, "total_pages": 0})

        try:
            raw = await self._client.search_media(new_term, new_page)
        except CatalogError as exc:
            if generation != self._generation:
                logger.debug("Discarding stale search failure for '%s' page %s", new_term, new_page)
                return self._page
            logger.warning("Search for '%s' page %s failed: %s", new_term, new_page, exc)
            self._page = self._page.model_copy(update={"items": [], "error": SEARCH_ERROR})
            return self._page

        if generation != self._generation:
            logger.debug("Discarding stale search results for '%s' page %s", new_term, new_page)
            return self._page

        self._page = SearchPage(
            term=new_term,
            page=new_page,
            type_filter=new_filter,
            items=filter_results(raw.results, new_filter),
            total_results=raw.total_results,
            total_pages=raw.total_pages,
        )
        return self._page

    async def next_page(self) -> SearchPage:
        if self.term and self.page < self._page.total_pages:
            return await self.query(page=self.page + 1)
        return self._page

    async def previous_page(self) -> SearchPage:
        if self.term and self.page > 1:
            return await self.query(page=self.page - 1)
        return self._page

    async def retry(self) -> SearchPage:
        """Re-run the current term, page and filter."""

        return await self.query()

    def clear(self) -> None:
        self._generation += 1
        self._page = SearchPage(type_filter=self.type_filter)
