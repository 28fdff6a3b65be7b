"""Tests for the catalog/session HTTP layer."""

from typing import Any, Optional
from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import make_track
from encore.core.config import APIConfig
from encore.domain.catalog import api
from encore.domain.catalog.exceptions import (
    AuthRequiredError,
    NotFoundError,
    RequestFailedError,
    UnauthorizedError,
)


def _response(status_code: int = 200, payload: Optional[Any] = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.content = b"{}" if payload is not None else b""
    response.json.return_value = payload
    return response


@pytest.fixture
def config() -> APIConfig:
    return APIConfig(
        catalog_url="https://catalog.test/api",
        session_url="https://session.test/api",
        timeout=3.0,
        retries=2,
    )


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(api, "RETRY_BACKOFF_SECONDS", 0)


class TestRequest:
    """Status mapping and retries."""

    def test_stream_url_resolved(self, config: APIConfig) -> None:
        with patch("encore.domain.catalog.api.requests.request") as request:
            request.return_value = _response(200, {"data": "https://cdn.test/a.mp3"})
            assert api.get_stream_url(config, "a") == "https://cdn.test/a.mp3"

        args, kwargs = request.call_args
        assert args == ("GET", "https://catalog.test/api/tracks/a/stream")
        assert kwargs["timeout"] == 3.0
        assert "Authorization" not in kwargs["headers"]

    def test_empty_stream_is_not_found(self, config: APIConfig) -> None:
        with patch("encore.domain.catalog.api.requests.request") as request:
            request.return_value = _response(200, {"data": None})
            with pytest.raises(NotFoundError):
                api.get_stream_url(config, "a")

    @pytest.mark.parametrize(
        "status,error",
        [(401, UnauthorizedError), (403, UnauthorizedError), (404, NotFoundError), (400, RequestFailedError)],
    )
    def test_client_errors_are_mapped_without_retry(
        self, config: APIConfig, status: int, error: type
    ) -> None:
        with patch("encore.domain.catalog.api.requests.request") as request:
            request.return_value = _response(status, {"message": "nope"})
            with pytest.raises(error, match="nope"):
                api.get_stream_url(config, "a")
        assert request.call_count == 1

    def test_server_errors_are_retried(self, config: APIConfig) -> None:
        with patch("encore.domain.catalog.api.requests.request") as request:
            request.side_effect = [
                _response(503),
                _response(200, {"data": "https://cdn.test/a.mp3"}),
            ]
            assert api.get_stream_url(config, "a") == "https://cdn.test/a.mp3"
        assert request.call_count == 2

    def test_retries_exhausted(self, config: APIConfig) -> None:
        with patch("encore.domain.catalog.api.requests.request") as request:
            request.side_effect = requests.ConnectionError("refused")
            with pytest.raises(RequestFailedError, match="Network error"):
                api.get_stream_url(config, "a")
        assert request.call_count == config.retries + 1

    def test_no_attempts_raises_request_failed(self, config: APIConfig) -> None:
        config.retries = -1
        with patch("encore.domain.catalog.api.requests.request") as request:
            with pytest.raises(RequestFailedError, match="not attempted"):
                api.get_stream_url(config, "a")
        request.assert_not_called()

    def test_invalid_json(self, config: APIConfig) -> None:
        response = _response(200, {})
        response.json.side_effect = ValueError("bad json")
        with patch("encore.domain.catalog.api.requests.request", return_value=response):
            with pytest.raises(RequestFailedError):
                api.get_stream_url(config, "a")


class TestSessionEndpoints:
    """Bearer-token endpoints."""

    def test_token_required(self, config: APIConfig) -> None:
        with patch("encore.domain.catalog.api.requests.request") as request:
            with pytest.raises(AuthRequiredError):
                api.get_liked_songs(config, None)
        request.assert_not_called()

    def test_like_song_sends_action_and_parses_set(self, config: APIConfig) -> None:
        payload = {"likedSongs": [{"id": "a", "title": "A", "user": {"name": "Artist"}}]}
        with patch("encore.domain.catalog.api.requests.request") as request:
            request.return_value = _response(200, payload)
            liked = api.like_song(config, "tok", make_track("a"), like=True)

        args, kwargs = request.call_args
        assert args == ("POST", "https://session.test/api/auth/like-song")
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["json"]["action"] == "like"
        assert kwargs["json"]["track"]["id"] == "a"
        assert [track.artist for track in liked] == ["Artist"]

    def test_add_recently_played_without_echo(self, config: APIConfig) -> None:
        with patch("encore.domain.catalog.api.requests.request") as request:
            request.return_value = _response(201)
            assert api.add_recently_played(config, "tok", make_track("a")) is None

    def test_recently_played_parsed(self, config: APIConfig) -> None:
        payload = {
            "recentlyPlayed": [
                {"track": {"id": "b", "title": "B"}, "playedAt": "2024-05-01T10:00:00Z"},
                {"track": {"title": "missing id"}},
            ]
        }
        with patch("encore.domain.catalog.api.requests.request") as request:
            request.return_value = _response(200, payload)
            entries = api.get_recently_played(config, "tok")

        assert len(entries) == 1
        assert entries[0].track.id == "b"
        assert entries[0].played_at.year == 2024
