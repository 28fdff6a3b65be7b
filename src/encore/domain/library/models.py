"""
Music library domain models.

Contains data structures for representing catalog tracks, playlists and the
recently-played log, plus conversion from and to the catalog's JSON shape.
"""

from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

# Artwork sizes served by the catalog, smallest first
ARTWORK_SIZES = ("150x150", "480x480", "1000x1000")


class Track(NamedTuple):
    """Represents a catalog track.

    Immutable: replace the reference (or use ``_replace``) instead of mutating.
    ``stream_url`` stays None until a locator has been resolved.
    """

    id: str
    title: str
    artist: str = "Unknown Artist"
    artwork: Optional[Dict[str, str]] = None  # {"150x150": url, "480x480": url}
    stream_url: Optional[str] = None
    play_count: Optional[int] = None
    release_date: Optional[str] = None

    def artwork_url(self, size: str = "480x480") -> Optional[str]:
        """Get artwork URL for a size, falling back to any available size."""
        if not self.artwork:
            return None
        if size in self.artwork:
            return self.artwork[size]
        for fallback in ARTWORK_SIZES:
            if fallback in self.artwork:
                return self.artwork[fallback]
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        """Build a Track from catalog JSON.

        The artist display name comes from ``artist`` or, for catalog tracks,
        ``user.name``. Unknown keys are ignored.

        Raises:
            ValueError: If ``id`` is missing
        """
        track_id = data.get("id")
        if track_id is None or track_id == "":
            raise ValueError("Track data has no id")

        artist = data.get("artist")
        if not artist:
            user = data.get("user") or {}
            artist = user.get("name") if isinstance(user, dict) else None

        artwork = data.get("artwork")
        if isinstance(artwork, dict):
            artwork = {str(k): str(v) for k, v in artwork.items() if v}
        else:
            artwork = None

        title = data.get("title")
        return cls(
            id=str(track_id),
            title=str(title) if title is not None else "Untitled",
            artist=artist or "Unknown Artist",
            artwork=artwork or None,
            stream_url=data.get("streamUrl") or None,
            play_count=_parse_count(data.get("play_count")),
            release_date=data.get("release_date"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the catalog JSON shape (``from_dict`` reads it back)."""
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "user": {"name": self.artist},
        }
        if self.artwork:
            data["artwork"] = dict(self.artwork)
        if self.stream_url:
            data["streamUrl"] = self.stream_url
        if self.play_count is not None:
            data["play_count"] = self.play_count
        if self.release_date is not None:
            data["release_date"] = self.release_date
        return data


class RecentlyPlayedEntry(NamedTuple):
    """One row of the recently-played log."""

    track: Track
    played_at: Optional[datetime] = None


class Playlist(NamedTuple):
    """A user playlist stored by the session service."""

    id: str
    name: str
    description: str = ""
    cover_image: Optional[str] = None
    tracks: Tuple[Track, ...] = ()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed), or None."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_recently_played(items: List[Dict[str, Any]]) -> List[RecentlyPlayedEntry]:
    """Convert ``[{"track": {...}, "playedAt": "..."}]`` into entries.

    Entries whose track cannot be parsed are skipped; server order is kept.
    """
    entries = []
    for item in items:
        try:
            track = Track.from_dict(item.get("track") or {})
        except ValueError:
            continue
        entries.append(RecentlyPlayedEntry(track, parse_timestamp(item.get("playedAt"))))
    return entries


def parse_playlist(data: Dict[str, Any]) -> Playlist:
    """Convert session-service playlist JSON into a Playlist."""
    tracks = []
    for item in data.get("tracks") or []:
        try:
            tracks.append(Track.from_dict(item))
        except ValueError:
            continue
    return Playlist(
        id=str(data.get("_id") or data.get("id") or ""),
        name=data.get("name", ""),
        description=data.get("description") or "",
        cover_image=data.get("coverImage"),
        tracks=tuple(tracks),
    )


def _parse_count(value: Any) -> Optional[int]:
    """Counter from catalog JSON; unparseable values count as unknown."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
