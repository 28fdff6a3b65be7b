"""
Catalog and session-service API operations.

Pure functions over ``requests``; each takes the API configuration and, for
session endpoints, a bearer token. HTTP failures are mapped to catalog
exceptions here so callers never see ``requests`` errors.
"""

import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from loguru import logger

from encore.core.config import APIConfig

from ..library.models import (
    Playlist,
    RecentlyPlayedEntry,
    Track,
    parse_playlist,
    parse_recently_played,
)
from .exceptions import (
    AuthRequiredError,
    NotFoundError,
    RequestFailedError,
    UnauthorizedError,
)

# Seconds to wait before retry N is (N * RETRY_BACKOFF_SECONDS)
RETRY_BACKOFF_SECONDS = 0.5


def _error_message(response: requests.Response, default: str) -> str:
    """Extract the service's ``message`` field from an error response."""
    try:
        payload = response.json()
    except ValueError:
        return default
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return default


def _request(
    config: APIConfig,
    method: str,
    url: str,
    token: Optional[str] = None,
    json: Optional[Dict[str, Any]] = None,
) -> Any:
    """Perform one JSON request with the configured timeout/retry policy.

    Connection errors, timeouts and 5xx responses are retried up to
    ``config.retries`` extra times. 4xx responses are never retried.

    Returns:
        Decoded JSON body, or None for an empty body

    Raises:
        UnauthorizedError: On 401/403
        NotFoundError: On 404
        RequestFailedError: On any other failure once retries are exhausted
    """
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    last_error: Optional[RequestFailedError] = None
    attempts = config.retries + 1

    for attempt in range(attempts):
        if attempt > 0:
            time.sleep(RETRY_BACKOFF_SECONDS * attempt)

        try:
            response = requests.request(
                method, url, headers=headers, json=json, timeout=config.timeout
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning(f"{method} {url} failed (attempt {attempt + 1}/{attempts}): {e}")
            last_error = RequestFailedError(f"Network error: {e}")
            continue
        except requests.RequestException as e:
            raise RequestFailedError(f"Request error: {e}") from e

        if response.status_code >= 500:
            logger.warning(
                f"{method} {url} returned {response.status_code} "
                f"(attempt {attempt + 1}/{attempts})"
            )
            last_error = RequestFailedError(
                _error_message(response, f"Server error {response.status_code}"),
                status_code=response.status_code,
            )
            continue

        if response.status_code in (401, 403):
            raise UnauthorizedError(_error_message(response, "Not authorized"))
        if response.status_code == 404:
            raise NotFoundError(_error_message(response, f"Not found: {url}"))
        if not response.ok:
            raise RequestFailedError(
                _error_message(response, f"Request failed with {response.status_code}"),
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RequestFailedError(f"Invalid JSON from {url}") from e

    if last_error is None:
        raise RequestFailedError(f"{method} {url} was not attempted")
    raise last_error


def _require_token(token: Optional[str]) -> str:
    if not token:
        raise AuthRequiredError("No credentials - log in first")
    return token


def _parse_tracks(items: Optional[List[Dict[str, Any]]]) -> List[Track]:
    tracks = []
    for item in items or []:
        try:
            tracks.append(Track.from_dict(item))
        except ValueError:
            logger.debug(f"Skipping track without id: {item!r}")
    return tracks


# Catalog endpoints (public)


def get_stream_url(config: APIConfig, track_id: str, token: Optional[str] = None) -> str:
    """Resolve a track id to a playable stream URL.

    Raises:
        NotFoundError: If the track is unknown or has no stream
        UnauthorizedError: If the catalog refuses access
    """
    url = f"{config.catalog_url}/tracks/{quote(track_id, safe='')}/stream"
    payload = _request(config, "GET", url, token=token)
    stream_url = payload.get("data") if isinstance(payload, dict) else None
    if not stream_url:
        raise NotFoundError(f"No stream available for track {track_id}")
    return str(stream_url)


def get_track(config: APIConfig, track_id: str) -> Track:
    """Fetch track metadata from the catalog."""
    url = f"{config.catalog_url}/tracks/{quote(track_id, safe='')}"
    payload = _request(config, "GET", url)
    data = payload.get("data", payload) if isinstance(payload, dict) else None
    if not isinstance(data, dict):
        raise NotFoundError(f"Track {track_id} not found")
    return Track.from_dict(data)


# Session endpoints (bearer token)


def get_liked_songs(config: APIConfig, token: Optional[str]) -> List[Track]:
    """Fetch the user's liked songs."""
    payload = _request(
        config, "GET", f"{config.session_url}/auth/liked-songs", token=_require_token(token)
    )
    return _parse_tracks((payload or {}).get("likedSongs"))


def like_song(config: APIConfig, token: Optional[str], track: Track, like: bool) -> List[Track]:
    """Like or unlike a track; returns the authoritative liked songs."""
    payload = _request(
        config,
        "POST",
        f"{config.session_url}/auth/like-song",
        token=_require_token(token),
        json={"track": track.to_dict(), "action": "like" if like else "unlike"},
    )
    return _parse_tracks((payload or {}).get("likedSongs"))


def get_recently_played(config: APIConfig, token: Optional[str]) -> List[RecentlyPlayedEntry]:
    """Fetch the recently-played log, most recent first."""
    payload = _request(
        config, "GET", f"{config.session_url}/recently-played", token=_require_token(token)
    )
    return parse_recently_played((payload or {}).get("recentlyPlayed") or [])


def add_recently_played(
    config: APIConfig, token: Optional[str], track: Track
) -> Optional[List[RecentlyPlayedEntry]]:
    """Append a track to the recently-played log.

    Returns:
        The updated log if the service echoed it, otherwise None
    """
    payload = _request(
        config,
        "POST",
        f"{config.session_url}/recently-played",
        token=_require_token(token),
        json={"track": track.to_dict()},
    )
    if isinstance(payload, dict) and "recentlyPlayed" in payload:
        return parse_recently_played(payload["recentlyPlayed"] or [])
    return None


def get_playlists(config: APIConfig, token: Optional[str]) -> List[Playlist]:
    payload = _request(
        config, "GET", f"{config.session_url}/playlists", token=_require_token(token)
    )
    return [parse_playlist(item) for item in (payload or {}).get("playlists") or []]


def get_playlist(config: APIConfig, token: Optional[str], playlist_id: str) -> Playlist:
    payload = _request(
        config,
        "GET",
        f"{config.session_url}/playlists/{quote(playlist_id, safe='')}",
        token=_require_token(token),
    )
    return parse_playlist((payload or {}).get("playlist") or {})


def create_playlist(
    config: APIConfig, token: Optional[str], name: str, description: str = ""
) -> Playlist:
    payload = _request(
        config,
        "POST",
        f"{config.session_url}/playlists",
        token=_require_token(token),
        json={"name": name, "description": description},
    )
    return parse_playlist((payload or {}).get("playlist") or {})


def add_to_playlist(
    config: APIConfig, token: Optional[str], playlist_id: str, track: Track
) -> Playlist:
    payload = _request(
        config,
        "POST",
        f"{config.session_url}/playlists/{quote(playlist_id, safe='')}/tracks",
        token=_require_token(token),
        json={"track": track.to_dict()},
    )
    return parse_playlist((payload or {}).get("playlist") or {})


def remove_from_playlist(
    config: APIConfig, token: Optional[str], playlist_id: str, track_id: str
) -> Playlist:
    payload = _request(
        config,
        "DELETE",
        f"{config.session_url}/playlists/{quote(playlist_id, safe='')}"
        f"/tracks/{quote(track_id, safe='')}",
        token=_require_token(token),
    )
    return parse_playlist((payload or {}).get("playlist") or {})


def delete_playlist(config: APIConfig, token: Optional[str], playlist_id: str) -> None:
    _request(
        config,
        "DELETE",
        f"{config.session_url}/playlists/{quote(playlist_id, safe='')}",
        token=_require_token(token),
    )
