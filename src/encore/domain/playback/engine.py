"""
Media engine adapter.

The single point of contact with the audio backend. Nothing else in Encore
talks to mpv (or any other backend) directly. The adapter samples the backend
on a polling task and turns those samples into time-update, ended and error
events.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, NamedTuple, Optional, Protocol, Union

from loguru import logger

from .exceptions import PlaybackRejectedError

Handler = Callable[..., Union[None, Awaitable[None]]]


class BackendStatus(NamedTuple):
    """One sample of the backend's playback state."""

    position: float = 0.0
    duration: float = 0.0
    ended: bool = False
    error: Optional[str] = None


class MediaBackend(Protocol):
    """The platform audio-output primitive wrapped by MediaEngine."""

    def load(self, locator: str) -> None: ...

    async def start(self) -> None: ...

    def pause(self) -> None: ...

    def seek(self, position: float) -> None: ...

    def set_volume(self, volume: float) -> None: ...

    def unload(self) -> None: ...

    def status(self) -> BackendStatus:
        """Sample the backend; called from a worker thread."""
        ...

    def close(self) -> None: ...


class MediaEngine:
    """load/play/pause/seek/volume over one backend, plus playback events.

    Handlers may be plain callables or coroutine functions; coroutine handlers
    are awaited by the polling task before the next sample is taken.
    """

    def __init__(self, backend: MediaBackend, poll_interval: float = 0.25, volume: float = 1.0):
        self._backend = backend
        self.poll_interval = poll_interval
        self._source: Optional[str] = None
        self._position = 0.0
        self._duration = 0.0
        self._volume = 1.0
        self._errored = False
        self._ended_reported = False
        self._poll_task: Optional[asyncio.Task] = None

        self.on_time_update: Optional[Handler] = None
        self.on_ended: Optional[Handler] = None
        self.on_error: Optional[Handler] = None

        self.set_volume(volume)

    @property
    def source(self) -> Optional[str]:
        return self._source

    @property
    def has_source(self) -> bool:
        """True when a source is loaded and has not failed."""
        return self._source is not None and not self._errored

    @property
    def position(self) -> float:
        return self._position

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def volume(self) -> float:
        return self._volume

    def subscribe(
        self,
        on_time_update: Optional[Handler] = None,
        on_ended: Optional[Handler] = None,
        on_error: Optional[Handler] = None,
    ) -> None:
        self.on_time_update = on_time_update
        self.on_ended = on_ended
        self.on_error = on_error

    def load(self, locator: str) -> None:
        """Set the source and begin buffering; position resets to 0.

        Loading the locator that is already (successfully) loaded only rewinds.
        """
        if locator == self._source and not self._errored:
            self._backend.seek(0.0)
        else:
            self._backend.load(locator)
            self._source = locator
            self._duration = 0.0
            self._errored = False
        self._position = 0.0
        self._ended_reported = False
        logger.debug(f"Engine loaded source: {locator}")

    async def play(self) -> None:
        """Start or resume output.

        Raises:
            PlaybackRejectedError: No usable source, or the backend refused
        """
        if not self.has_source:
            raise PlaybackRejectedError("No source loaded")
        await self._backend.start()
        self._ended_reported = False

    def pause(self) -> None:
        """Stop output immediately, keeping the position."""
        if self._source is not None:
            self._backend.pause()

    def seek(self, position: float) -> None:
        """Seek to ``position`` seconds, clamped to [0, duration]."""
        if not self.has_source:
            return
        position = max(0.0, position)
        if self._duration > 0:
            position = min(position, self._duration)
        self._backend.seek(position)
        self._position = position

    def set_volume(self, volume: float) -> None:
        """Set volume 0..1; out-of-range values are clamped."""
        self._volume = max(0.0, min(1.0, volume))
        self._backend.set_volume(self._volume)

    def unload(self) -> None:
        """Drop the current source."""
        if self._source is not None:
            self._backend.unload()
        self._source = None
        self._position = 0.0
        self._duration = 0.0
        self._errored = False
        self._ended_reported = False

    async def poll_once(self) -> None:
        """Take one backend sample and emit the resulting events."""
        if self._source is None or self._errored:
            return

        # Backends may block on I/O while sampling; keep that off the loop
        source = self._source
        status = await asyncio.to_thread(self._backend.status)
        if self._source != source or self._errored:
            # Source changed while sampling
            return

        if status.error:
            self._errored = True
            logger.warning(f"Engine error: {status.error}")
            await self._emit(self.on_error, status.error)
            return

        self._position = status.position
        self._duration = status.duration
        await self._emit(self.on_time_update, status.position, status.duration)

        if status.ended and not self._ended_reported:
            self._ended_reported = True
            logger.debug("Engine reached end of track")
            await self._emit(self.on_ended)

    def start(self) -> None:
        """Start the polling task on the running loop."""
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll_loop())

    async def close(self) -> None:
        """Stop polling and release the backend."""
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        self._backend.close()
        self._source = None

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Engine poll failed")

    @staticmethod
    async def _emit(handler: Optional[Handler], *args: Any) -> None:
        if handler is None:
            return
        result = handler(*args)
        if inspect.isawaitable(result):
            await result
