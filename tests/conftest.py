"""Shared fixtures: fake media backend, in-memory session store, controller."""

import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Set
from unittest.mock import MagicMock

import pytest

from encore.domain.library.models import RecentlyPlayedEntry, Track
from encore.domain.playback.controller import PlaybackController
from encore.domain.playback.engine import BackendStatus, MediaEngine
from encore.domain.playback.exceptions import PlaybackRejectedError
from encore.domain.playback.resume import ResumeStore


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def make_track(track_id: str, **kwargs) -> Track:
    """Catalog track with a predictable title; no stream URL unless given."""
    kwargs.setdefault("title", f"Track {track_id.upper()}")
    kwargs.setdefault("artist", "Test Artist")
    return Track(id=track_id, **kwargs)


def locator_for(track_id: str) -> str:
    return f"https://stream.test/{track_id}"


class FakeBackend:
    """MediaBackend double that records calls.

    ``start_gate`` holds the next start() until the event is set (used once).
    ``start_error`` makes start() reject. ``status_value`` is returned by status().
    """

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.loaded: List[str] = []
        self.start_gate: Optional[asyncio.Event] = None
        self.start_error: Optional[str] = None
        self.status_value = BackendStatus()
        self.volume: Optional[float] = None
        self.closed = False

    def load(self, locator: str) -> None:
        self.calls.append(("load", locator))
        self.loaded.append(locator)

    async def start(self) -> None:
        self.calls.append(("start",))
        gate, self.start_gate = self.start_gate, None
        if gate is not None:
            await gate.wait()
        if self.start_error:
            raise PlaybackRejectedError(self.start_error)

    def pause(self) -> None:
        self.calls.append(("pause",))

    def seek(self, position: float) -> None:
        self.calls.append(("seek", position))

    def set_volume(self, volume: float) -> None:
        self.volume = volume

    def unload(self) -> None:
        self.calls.append(("unload",))

    def status(self) -> BackendStatus:
        return self.status_value

    def close(self) -> None:
        self.closed = True


class FakeSessionStore:
    """In-memory stand-in for RemoteSessionStore.

    ``resolve_gates`` holds resolution of a track id until its event is set;
    ``resolve_errors`` makes resolution of a track id raise. ``like_gate`` and
    ``like_error`` do the same for set_liked(). ``authenticated = False``
    degrades session operations to None like the real store.
    """

    def __init__(self) -> None:
        self.authenticated = True
        self.resolve_gates: Dict[str, asyncio.Event] = {}
        self.resolve_errors: Dict[str, Exception] = {}
        self.resolve_calls: List[str] = []
        self.liked: Set[str] = set()
        self.like_gate: Optional[asyncio.Event] = None
        self.like_error: Optional[Exception] = None
        self.recent: List[RecentlyPlayedEntry] = []

    @property
    def is_authenticated(self) -> bool:
        return self.authenticated

    async def resolve_stream_locator(self, track_id: str) -> str:
        self.resolve_calls.append(track_id)
        gate = self.resolve_gates.get(track_id)
        if gate is not None:
            await gate.wait()
        if track_id in self.resolve_errors:
            raise self.resolve_errors[track_id]
        return locator_for(track_id)

    async def set_liked(self, track: Track, like: bool) -> Optional[Set[str]]:
        if self.like_gate is not None:
            await self.like_gate.wait()
        if self.like_error is not None:
            raise self.like_error
        if not self.authenticated:
            return None
        if like:
            self.liked.add(track.id)
        else:
            self.liked.discard(track.id)
        return set(self.liked)

    async def fetch_liked_set(self) -> Optional[Set[str]]:
        return set(self.liked) if self.authenticated else None

    async def fetch_recently_played(self) -> Optional[List[RecentlyPlayedEntry]]:
        return list(self.recent) if self.authenticated else None

    async def append_recently_played(self, track: Track) -> Optional[List[RecentlyPlayedEntry]]:
        if not self.authenticated:
            return None
        self.recent.insert(0, RecentlyPlayedEntry(track))
        return list(self.recent)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def engine(backend: FakeBackend) -> MediaEngine:
    # Tests drive polling by hand through poll_once()
    return MediaEngine(backend, poll_interval=3600)


@pytest.fixture
def store() -> FakeSessionStore:
    return FakeSessionStore()


@pytest.fixture
def resume_store(tmp_path: Path) -> ResumeStore:
    return ResumeStore(tmp_path / "encore.db")


@pytest.fixture
def notifier() -> MagicMock:
    return MagicMock()


@pytest.fixture
def controller(
    engine: MediaEngine,
    store: FakeSessionStore,
    resume_store: ResumeStore,
    notifier: MagicMock,
) -> PlaybackController:
    return PlaybackController(engine, store, resume_store, notify=notifier)
