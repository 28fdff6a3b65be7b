"""Library domain - catalog track, playlist and history models."""

from .models import (
    Playlist,
    RecentlyPlayedEntry,
    Track,
    parse_playlist,
    parse_recently_played,
    parse_timestamp,
)

__all__ = [
    "Playlist",
    "RecentlyPlayedEntry",
    "Track",
    "parse_playlist",
    "parse_recently_played",
    "parse_timestamp",
]
