"""Tests for the media engine adapter."""

import asyncio
import threading
from typing import Optional

import pytest

from conftest import FakeBackend
from encore.domain.playback.engine import BackendStatus, MediaEngine
from encore.domain.playback.exceptions import PlaybackRejectedError


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def wired(engine: MediaEngine, events: list) -> MediaEngine:
    engine.subscribe(
        on_time_update=lambda position, duration: events.append(("time", position, duration)),
        on_ended=lambda: events.append(("ended",)),
        on_error=lambda reason: events.append(("error", reason)),
    )
    return engine


class TestControls:
    """load/play/seek/volume."""

    def test_volume_is_clamped(self, engine: MediaEngine, backend: FakeBackend) -> None:
        engine.set_volume(1.5)
        assert engine.volume == 1.0
        engine.set_volume(-0.2)
        assert engine.volume == 0.0
        assert backend.volume == 0.0

    def test_reloading_same_locator_only_rewinds(
        self, engine: MediaEngine, backend: FakeBackend
    ) -> None:
        engine.load("https://stream.test/a")
        engine.load("https://stream.test/a")
        assert backend.loaded == ["https://stream.test/a"]
        assert backend.calls[-1] == ("seek", 0.0)
        assert engine.position == 0.0

    def test_seek_without_source_is_ignored(
        self, engine: MediaEngine, backend: FakeBackend
    ) -> None:
        engine.seek(30)
        assert backend.calls == []

    @pytest.mark.anyio
    async def test_seek_is_clamped_to_duration(
        self, engine: MediaEngine, backend: FakeBackend
    ) -> None:
        engine.load("https://stream.test/a")
        backend.status_value = BackendStatus(position=10.0, duration=60.0)
        await engine.poll_once()

        engine.seek(500)
        assert engine.position == 60.0
        engine.seek(-5)
        assert engine.position == 0.0

    @pytest.mark.anyio
    async def test_play_without_source_is_rejected(self, engine: MediaEngine) -> None:
        with pytest.raises(PlaybackRejectedError):
            await engine.play()

    @pytest.mark.anyio
    async def test_backend_rejection_propagates(
        self, engine: MediaEngine, backend: FakeBackend
    ) -> None:
        backend.start_error = "not allowed"
        engine.load("https://stream.test/a")
        with pytest.raises(PlaybackRejectedError, match="not allowed"):
            await engine.play()

    def test_unload(self, engine: MediaEngine, backend: FakeBackend) -> None:
        engine.load("https://stream.test/a")
        engine.unload()
        assert not engine.has_source
        assert backend.calls[-1] == ("unload",)


class TestEvents:
    """Events emitted from polling."""

    @pytest.mark.anyio
    async def test_no_events_without_source(self, wired: MediaEngine, events: list) -> None:
        await wired.poll_once()
        assert events == []

    @pytest.mark.anyio
    async def test_time_update(
        self, wired: MediaEngine, backend: FakeBackend, events: list
    ) -> None:
        wired.load("https://stream.test/a")
        backend.status_value = BackendStatus(position=12.5, duration=200.0)
        await wired.poll_once()
        assert events == [("time", 12.5, 200.0)]
        assert wired.duration == 200.0

    @pytest.mark.anyio
    async def test_ended_is_reported_once(
        self, wired: MediaEngine, backend: FakeBackend, events: list
    ) -> None:
        wired.load("https://stream.test/a")
        backend.status_value = BackendStatus(position=200.0, duration=200.0, ended=True)
        await wired.poll_once()
        await wired.poll_once()
        assert events.count(("ended",)) == 1

    @pytest.mark.anyio
    async def test_error_marks_source_unusable(
        self, wired: MediaEngine, backend: FakeBackend, events: list
    ) -> None:
        wired.load("https://stream.test/a")
        backend.status_value = BackendStatus(error="decode failed")
        await wired.poll_once()
        await wired.poll_once()

        assert events == [("error", "decode failed")]
        assert not wired.has_source

        # Same locator after an error is a real reload
        wired.load("https://stream.test/a")
        assert backend.loaded == ["https://stream.test/a", "https://stream.test/a"]

    @pytest.mark.anyio
    async def test_async_handlers_are_awaited(
        self, engine: MediaEngine, backend: FakeBackend
    ) -> None:
        seen = []

        async def on_ended() -> None:
            seen.append("ended")

        engine.subscribe(on_ended=on_ended)
        engine.load("https://stream.test/a")
        backend.status_value = BackendStatus(position=5.0, duration=5.0, ended=True)
        await engine.poll_once()
        assert seen == ["ended"]

    @pytest.mark.anyio
    async def test_close_releases_backend(
        self, engine: MediaEngine, backend: FakeBackend
    ) -> None:
        engine.start()
        await engine.close()
        assert backend.closed


class SlowBackend(FakeBackend):
    """status() blocks its caller until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.sampling = threading.Event()
        self.release = threading.Event()
        self.sampled_on: Optional[threading.Thread] = None

    def status(self) -> BackendStatus:
        self.sampled_on = threading.current_thread()
        self.sampling.set()
        self.release.wait(timeout=5)
        return self.status_value


class TestBlockingBackend:
    """Sampling a slow backend must not stall the event loop."""

    @pytest.mark.anyio
    async def test_status_is_sampled_off_the_loop(self) -> None:
        backend = SlowBackend()
        engine = MediaEngine(backend, poll_interval=3600)
        events = []
        engine.subscribe(on_time_update=lambda *args: events.append(args))
        engine.load("https://stream.test/a")
        backend.status_value = BackendStatus(position=3.0, duration=10.0)

        task = asyncio.create_task(engine.poll_once())
        await asyncio.to_thread(backend.sampling.wait, 5)

        # The loop keeps running while the backend is stuck
        assert not task.done()
        backend.release.set()
        await task

        assert backend.sampled_on is not threading.main_thread()
        assert events == [(3.0, 10.0)]

    @pytest.mark.anyio
    async def test_sample_is_dropped_when_source_changes(self) -> None:
        backend = SlowBackend()
        engine = MediaEngine(backend, poll_interval=3600)
        events = []
        engine.subscribe(
            on_time_update=lambda *args: events.append(args),
            on_error=lambda reason: events.append(reason),
        )
        engine.load("https://stream.test/a")
        backend.status_value = BackendStatus(error="mpv exited")

        task = asyncio.create_task(engine.poll_once())
        await asyncio.to_thread(backend.sampling.wait, 5)
        engine.unload()
        backend.release.set()
        await task

        assert events == []
        assert engine.source is None
