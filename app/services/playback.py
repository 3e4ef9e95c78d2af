"""Resolution of a title to its ordered playback candidates."""

from __future__ import annotations

import string
from typing import Mapping, Sequence

from ..models import MediaIdentity, PlaybackCandidate
from ..playback_providers import PlaybackProviderDefinition

DEFAULT_SEASON = 1
DEFAULT_EPISODE = 1


def resolve_playback(
    providers: Sequence[PlaybackProviderDefinition],
    identity: MediaIdentity,
    season: int | None = None,
    episode: int | None = None,
    *,
    default_season: int = DEFAULT_SEASON,
    params: Mapping[str, str] | None = None,
) -> list[PlaybackCandidate]:
    """Substitute the identity into every provider template, in table order.

    Movies ignore ``season`` and ``episode``. For series they default to
    ``default_season`` and the first episode. No provider is contacted.
    """

    values: dict[str, object] = dict(params or {})
    values.update(id=identity.id, type=identity.type, tmdb_type=identity.tmdb_type)

    if identity.type == "series":
        resolved_season = default_season if season is None else season
        resolved_episode = DEFAULT_EPISODE if episode is None else episode
        if resolved_season < 0:
            raise ValueError("Season numbers start at 0")
        if resolved_episode < 1:
            raise ValueError("Episode numbers start at 1")
        values.update(season=resolved_season, episode=resolved_episode)

    candidates: list[PlaybackCandidate] = []
    for provider in providers:
        template = (
            provider.movie_template if identity.type == "movie" else provider.series_template
        )
        candidates.append(
            PlaybackCandidate(
                provider_name=provider.name,
                url=_substitute(template, values, provider.name),
                description=provider.description,
            )
        )
    return candidates


def template_fields(template: str) -> set[str]:
    """Return the placeholder names used by a provider template."""

    return {
        name
        for _, name, _, _ in string.Formatter().parse(template)
        if name is not None and name != ""
    }


def _substitute(template: str, values: Mapping[str, object], provider_name: str) -> str:
    missing = template_fields(template) - values.keys()
    if missing:
        raise ValueError(
            f"Playback provider {provider_name} references unknown fields: "
            + ", ".join(sorted(missing))
        )
    return template.format_map(values)


class PlaybackResolver:
    """Binds the configured provider table and template parameters."""

    def __init__(
        self,
        providers: Sequence[PlaybackProviderDefinition],
        params: Mapping[str, str] | None = None,
    ):
        self._providers = tuple(providers)
        self._params = dict(params or {})

    @property
    def providers(self) -> tuple[PlaybackProviderDefinition, ...]:
        return self._providers

    def resolve(
        self,
        identity: MediaIdentity,
        season: int | None = None,
        episode: int | None = None,
        *,
        default_season: int = DEFAULT_SEASON,
    ) -> list[PlaybackCandidate]:
        return resolve_playback(
            self._providers,
            identity,
            season,
            episode,
            default_season=default_season,
            params=self._params,
        )
