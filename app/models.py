"""Pydantic models describing catalog payloads and view state."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

MediaType = Literal["movie", "series"]
TypeFilter = Literal["all", "movie", "series"]
DetailStatus = Literal["idle", "loading", "ready", "failed"]

TMDB_TYPE_BY_MEDIA_TYPE: dict[str, str] = {"movie": "movie", "series": "tv"}
MEDIA_TYPE_BY_TMDB_TYPE: dict[str, MediaType] = {"movie": "movie", "tv": "series"}


def format_runtime(minutes: int | None) -> str | None:
    """Return a runtime such as ``2h 35m`` for display."""

    if not minutes or minutes <= 0:
        return None
    hours, remainder = divmod(minutes, 60)
    return f"{hours}h {remainder}m"


def _year_from(date_value: object) -> str | None:
    if not isinstance(date_value, str) or len(date_value) < 4:
        return None
    year = date_value[:4]
    return year if year.isdigit() else None


class MediaIdentity(BaseModel):
    """Composite key of a title. The same numeric id may be a movie and a series."""

    model_config = ConfigDict(frozen=True)

    id: int
    type: MediaType

    @property
    def tmdb_type(self) -> str:
        return TMDB_TYPE_BY_MEDIA_TYPE[self.type]


class MediaSummary(BaseModel):
    """Display fields of a title as returned by search and recommendation lists."""

    model_config = ConfigDict(frozen=True)

    id: int
    type: MediaType
    title: str
    overview: str = ""
    release_year: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    vote_average: float = 0.0

    @property
    def identity(self) -> MediaIdentity:
        return MediaIdentity(id=self.id, type=self.type)

    @property
    def display_year(self) -> str:
        return self.release_year or "TBA"

    def has_image(self) -> bool:
        return bool(self.poster_path or self.backdrop_path)

    @classmethod
    def from_tmdb(cls, payload: dict[str, Any], media_type: MediaType) -> "MediaSummary":
        """Build a summary from a raw TMDB movie or tv object."""

        return cls(**_summary_fields(payload, media_type))


def _summary_fields(payload: dict[str, Any], media_type: MediaType) -> dict[str, Any]:
    if media_type == "movie":
        title = payload.get("title") or payload.get("original_title")
        date_value = payload.get("release_date")
    else:
        title = payload.get("name") or payload.get("original_name")
        date_value = payload.get("first_air_date")
    return {
        "id": int(payload["id"]),
        "type": media_type,
        "title": title or "Unknown",
        "overview": payload.get("overview") or "",
        "release_year": _year_from(date_value),
        "poster_path": payload.get("poster_path") or None,
        "backdrop_path": payload.get("backdrop_path") or None,
        "vote_average": float(payload.get("vote_average") or 0.0),
    }


class CastMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    character: str = ""
    profile_path: str | None = None


class Trailer(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    name: str = ""
    site: str = "YouTube"
    type: str = "Trailer"


class Season(BaseModel):
    """A season of a series. Season 0 holds specials."""

    model_config = ConfigDict(frozen=True)

    season_number: int = Field(ge=0)
    name: str
    episode_count: int = Field(default=0, ge=0)
    air_date: str | None = None
    poster_path: str | None = None


class Episode(BaseModel):
    """An episode belonging to one (show, season)."""

    model_config = ConfigDict(frozen=True)

    episode_number: int = Field(ge=1)
    name: str
    overview: str = ""
    still_path: str | None = None
    air_date: str | None = None
    runtime: int | None = None

    @classmethod
    def from_tmdb(cls, payload: dict[str, Any]) -> "Episode":
        number = int(payload["episode_number"])
        return cls(
            episode_number=number,
            name=payload.get("name") or f"Episode {number}",
            overview=payload.get("overview") or "",
            still_path=payload.get("still_path") or None,
            air_date=payload.get("air_date") or None,
            runtime=payload.get("runtime"),
        )


class MediaDetail(MediaSummary):
    """Full record for a details view. Extended fields are passed through as-is."""

    release_date: str | None = None
    runtime: int | None = None
    episode_run_time: list[int] = Field(default_factory=list)
    genres: list[str] = Field(default_factory=list)
    cast: list[CastMember] = Field(default_factory=list)
    trailers: list[Trailer] = Field(default_factory=list)
    seasons: list[Season] = Field(default_factory=list)
    number_of_seasons: int = 0
    number_of_episodes: int = 0
    status: str = ""

    @property
    def trailer(self) -> Trailer | None:
        """Return the first trailer or teaser, if any."""

        for video in self.trailers:
            if video.type in {"Trailer", "Teaser"}:
                return video
        return None

    @property
    def formatted_runtime(self) -> str | None:
        if self.type == "movie":
            return format_runtime(self.runtime)
        if self.episode_run_time:
            return f"~{self.episode_run_time[0]} minutes"
        return None

    @classmethod
    def from_tmdb(cls, payload: dict[str, Any], media_type: MediaType) -> "MediaDetail":
        fields = _summary_fields(payload, media_type)
        if media_type == "movie":
            fields["release_date"] = payload.get("release_date") or None
        else:
            fields["release_date"] = payload.get("first_air_date") or None

        credits = payload.get("credits") or {}
        videos = (payload.get("videos") or {}).get("results") or []
        seasons = [
            Season(
                season_number=int(entry["season_number"]),
                name=entry.get("name") or f"Season {entry['season_number']}",
                episode_count=int(entry.get("episode_count") or 0),
                air_date=entry.get("air_date") or None,
                poster_path=entry.get("poster_path") or None,
            )
            for entry in payload.get("seasons") or []
            if isinstance(entry, dict) and entry.get("season_number") is not None
        ]
        seasons.sort(key=lambda season: season.season_number)

        return cls(
            **fields,
            runtime=payload.get("runtime"),
            episode_run_time=[
                int(value) for value in payload.get("episode_run_time") or []
            ],
            genres=[
                genre["name"]
                for genre in payload.get("genres") or []
                if isinstance(genre, dict) and genre.get("name")
            ],
            cast=[
                CastMember(
                    id=int(person["id"]),
                    name=person.get("name") or "",
                    character=person.get("character") or "",
                    profile_path=person.get("profile_path") or None,
                )
                for person in credits.get("cast") or []
                if isinstance(person, dict) and person.get("id") is not None
            ],
            trailers=[
                Trailer(
                    key=str(video["key"]),
                    name=video.get("name") or "",
                    site=video.get("site") or "YouTube",
                    type=video.get("type") or "",
                )
                for video in videos
                if isinstance(video, dict) and video.get("key")
            ],
            seasons=seasons,
            number_of_seasons=int(payload.get("number_of_seasons") or 0),
            number_of_episodes=int(payload.get("number_of_episodes") or 0),
            status=payload.get("status") or "",
        )


class WatchlistEntry(BaseModel):
    """A saved title tagged with the identity it was saved under."""

    identity: MediaIdentity
    item: MediaSummary
    added_at: datetime = Field(default_factory=datetime.utcnow)


class PlaybackCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider_name: str
    url: str
    description: str = ""


class SearchPage(BaseModel):
    """One filtered page of search results.

    ``total_results`` and ``total_pages`` are the provider's unfiltered counts,
    so ``len(items)`` may be smaller than a full page.
    """

    term: str = ""
    page: int = Field(default=1, ge=1)
    type_filter: TypeFilter = "all"
    items: list[MediaSummary] = Field(default_factory=list)
    total_results: int = 0
    total_pages: int = 0
    error: str | None = None


class DetailState(BaseModel):
    """Consolidated state of the details view."""

    status: DetailStatus = "idle"
    identity: MediaIdentity | None = None
    detail: MediaDetail | None = None
    recommendations: list[MediaSummary] = Field(default_factory=list)
    error: str | None = None
