"""Tests for catalog models."""

import pytest

from encore.domain.library.models import (
    Track,
    parse_playlist,
    parse_timestamp,
)


class TestTrackFromDict:
    """Tests for Track.from_dict."""

    def test_catalog_shape(self) -> None:
        track = Track.from_dict(
            {
                "id": 123,
                "title": "Night Drive",
                "user": {"name": "Synth Kid"},
                "artwork": {"150x150": "https://img.test/s.jpg", "1000x1000": ""},
                "play_count": "42",
            }
        )
        assert track.id == "123"
        assert track.artist == "Synth Kid"
        assert track.artwork == {"150x150": "https://img.test/s.jpg"}
        assert track.play_count == 42
        assert track.stream_url is None

    def test_defaults(self) -> None:
        track = Track.from_dict({"id": "a"})
        assert track.title == "Untitled"
        assert track.artist == "Unknown Artist"

    def test_empty_title_is_kept(self) -> None:
        track = Track.from_dict({"id": "a", "title": ""})
        assert track.title == ""
        assert Track.from_dict(track.to_dict()) == track

    def test_bad_play_count_is_ignored(self) -> None:
        track = Track.from_dict({"id": "a", "title": "Night Drive", "play_count": "lots"})
        assert track.title == "Night Drive"
        assert track.play_count is None

    def test_missing_id(self) -> None:
        with pytest.raises(ValueError):
            Track.from_dict({"title": "No id"})

    def test_to_dict_reads_back(self) -> None:
        track = Track(
            id="a",
            title="A",
            artist="B",
            artwork={"480x480": "https://img.test/a.jpg"},
            stream_url="https://cdn.test/a.mp3",
            release_date="2023-01-01",
        )
        assert Track.from_dict(track.to_dict()) == track


class TestArtwork:
    """Tests for artwork size fallback."""

    def test_exact_size(self) -> None:
        track = Track(id="a", title="A", artwork={"480x480": "m", "150x150": "s"})
        assert track.artwork_url("150x150") == "s"

    def test_falls_back_to_smallest_available(self) -> None:
        track = Track(id="a", title="A", artwork={"1000x1000": "l"})
        assert track.artwork_url("480x480") == "l"

    def test_no_artwork(self) -> None:
        assert Track(id="a", title="A").artwork_url() is None


def test_parse_timestamp() -> None:
    assert parse_timestamp("2024-05-01T10:00:00Z").tzinfo is not None
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None


def test_parse_playlist_skips_bad_tracks() -> None:
    playlist = parse_playlist(
        {
            "_id": "p1",
            "name": "Mix",
            "tracks": [{"id": "a", "title": "A"}, {"title": "broken"}],
        }
    )
    assert playlist.id == "p1"
    assert [track.id for track in playlist.tracks] == ["a"]
