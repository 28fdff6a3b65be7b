"""
RemoteSessionStore - async wrapper around the catalog/session API.

Pattern: thin class around the pure functions in api.py. Blocking HTTP runs
in a worker thread so the event loop keeps serving engine events while a
request is in flight.
"""

import asyncio
from typing import Any, Callable, List, Optional, Set

from loguru import logger

from encore.core.config import APIConfig

from ..library.models import Playlist, RecentlyPlayedEntry, Track
from . import api
from .exceptions import AuthRequiredError


class RemoteSessionStore:
    """Liked songs, recently played, stream resolution and playlists.

    Without a token, the session operations used by the playback controller
    (likes and history) return None instead of raising; stream resolution
    uses the public catalog and works either way.
    """

    def __init__(self, config: APIConfig, token: Optional[str] = None):
        self.config = config
        self._token = token or None

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def set_token(self, token: Optional[str]) -> None:
        """Switch identity (log in with a token, or log out with None)."""
        self._token = token or None

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(func, self.config, *args)

    async def _session_call(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run a session operation, degrading to None when logged out."""
        try:
            return await self._call(func, self._token, *args)
        except AuthRequiredError:
            logger.debug(f"Skipping {func.__name__}: not logged in")
            return None

    async def resolve_stream_locator(self, track_id: str) -> str:
        """Resolve a playable locator for a track.

        Raises:
            NotFoundError: Unknown track or no stream
            UnauthorizedError: Access refused
            RequestFailedError: Network/server failure
        """
        locator = await self._call(api.get_stream_url, track_id, self._token)
        logger.debug(f"Resolved stream for track {track_id}")
        return locator

    async def append_recently_played(self, track: Track) -> Optional[List[RecentlyPlayedEntry]]:
        """Record a play and return the updated log (None when logged out)."""
        entries = await self._session_call(api.add_recently_played, track)
        if entries is None and self.is_authenticated:
            # Service did not echo the log - refetch it
            entries = await self._session_call(api.get_recently_played)
        return entries

    async def set_liked(self, track: Track, like: bool) -> Optional[Set[str]]:
        """Like/unlike a track; returns the authoritative liked ids."""
        tracks = await self._session_call(api.like_song, track, like)
        if tracks is None:
            return None
        return {t.id for t in tracks}

    async def fetch_liked_tracks(self) -> Optional[List[Track]]:
        return await self._session_call(api.get_liked_songs)

    async def fetch_liked_set(self) -> Optional[Set[str]]:
        tracks = await self.fetch_liked_tracks()
        if tracks is None:
            return None
        return {t.id for t in tracks}

    async def fetch_recently_played(self) -> Optional[List[RecentlyPlayedEntry]]:
        return await self._session_call(api.get_recently_played)

    # Catalog and playlist operations for UI callers. Playlist calls raise
    # AuthRequiredError when logged out so the caller can prompt for login.

    async def get_track(self, track_id: str) -> Track:
        return await self._call(api.get_track, track_id)

    async def list_playlists(self) -> List[Playlist]:
        return await self._call(api.get_playlists, self._token)

    async def get_playlist(self, playlist_id: str) -> Playlist:
        return await self._call(api.get_playlist, self._token, playlist_id)

    async def create_playlist(self, name: str, description: str = "") -> Playlist:
        return await self._call(api.create_playlist, self._token, name, description)

    async def add_to_playlist(self, playlist_id: str, track: Track) -> Playlist:
        return await self._call(api.add_to_playlist, self._token, playlist_id, track)

    async def remove_from_playlist(self, playlist_id: str, track_id: str) -> Playlist:
        return await self._call(api.remove_from_playlist, self._token, playlist_id, track_id)

    async def delete_playlist(self, playlist_id: str) -> None:
        await self._call(api.delete_playlist, self._token, playlist_id)
