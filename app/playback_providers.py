"""Ordered playback provider definitions for embedded players."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PlaybackProviderDefinition:
    """Describes one interchangeable embed provider.

    Templates are ``str.format`` patterns. Available fields are ``id``,
    ``type`` (``movie``/``series``), ``tmdb_type`` (``movie``/``tv``),
    ``season`` and ``episode`` plus any configured playback parameters.
    """

    name: str
    movie_template: str
    series_template: str
    description: str = ""


# Order is the fallback order shown to the user: first entry is primary.
DEFAULT_PLAYBACK_PROVIDERS: tuple[PlaybackProviderDefinition, ...] = (
    PlaybackProviderDefinition(
        name="Vidora",
        description="Primary streaming server",
        movie_template="https://vidora.su/movie/{id}",
        series_template="https://vidora.su/tv/{id}/{season}/{episode}",
    ),
    PlaybackProviderDefinition(
        name="Videasy",
        description="Alternative streaming server",
        movie_template="https://player.videasy.net/movie/{id}",
        series_template=(
            "https://player.videasy.net/tv/{id}/{season}/{episode}"
            "?nextEpisode=true&episodeSelector=true"
        ),
    ),
    PlaybackProviderDefinition(
        name="AutoEmbed",
        description="High quality streaming",
        movie_template="https://player.autoembed.cc/embed/movie/{id}",
        series_template="https://player.autoembed.cc/embed/tv/{id}/{season}/{episode}",
    ),
    PlaybackProviderDefinition(
        name="VidLink",
        description="Fast streaming server",
        movie_template="https://vidlink.pro/movie/{id}",
        series_template="https://vidlink.pro/tv/{id}/{season}/{episode}",
    ),
)
