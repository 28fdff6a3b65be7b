"""
Playback session controller.

Owns the current track, the playing state and the queue context, and
coordinates the media engine, the remote session store and the resume store.
Every user action goes through here; observers receive an immutable
SessionSnapshot after each change.

Concurrency model: everything runs on one event loop. Each play/resume
request takes a new generation number; after every await the continuation
checks it is still the newest request and silently gives up otherwise, so
the last request always wins.
"""

import asyncio
from typing import Callable, Coroutine, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from loguru import logger

from encore.notifications import report_error

from ..catalog.client import RemoteSessionStore
from ..catalog.exceptions import CatalogError
from ..library.models import RecentlyPlayedEntry, Track
from .engine import MediaEngine
from .exceptions import PersistenceError, PlaybackRejectedError, ResolutionError
from .queue import QueueManager
from .resume import ResumeStore
from .state import LikeApplied, LikeResult, LikeRolledBack, PlayingState, SessionSnapshot

Observer = Callable[[SessionSnapshot], None]
Notifier = Callable[[str], None]

DIRECTIONS = ("next", "previous")


class PlaybackController:
    """Playback session: play/pause/resume/advance, likes and history."""

    def __init__(
        self,
        engine: MediaEngine,
        store: RemoteSessionStore,
        resume_store: ResumeStore,
        queue: Optional[QueueManager] = None,
        notify: Notifier = report_error,
    ):
        self._engine = engine
        self._store = store
        self._resume_store = resume_store
        self._queue = queue if queue is not None else QueueManager()
        self._notify = notify

        self._snapshot = SessionSnapshot()
        self._observers: List[Observer] = []

        # Request generation for play/resume supersession
        self._generation = 0
        self._pause_requested = False

        self._liked: Set[str] = set()
        # track id -> (toggle generation, desired membership) for in-flight toggles
        self._pending_likes: Dict[str, Tuple[int, bool]] = {}
        self._like_generation = 0

        self._recently_played: List[RecentlyPlayedEntry] = []
        self._background: Set[asyncio.Task] = set()
        self._muted_volume: Optional[float] = None

        engine.subscribe(
            on_time_update=self._handle_time_update,
            on_ended=self._handle_ended,
            on_error=self._handle_error,
        )

    # Observable state

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def queue(self) -> List[Track]:
        return self._queue.tracks

    @property
    def volume(self) -> float:
        return self._engine.volume

    @property
    def liked_tracks(self) -> FrozenSet[str]:
        return frozenset(self._liked)

    @property
    def recently_played(self) -> List[RecentlyPlayedEntry]:
        return list(self._recently_played)

    def is_liked(self, track_id: str) -> bool:
        return track_id in self._liked

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        self._observers.append(observer)
        observer(self._snapshot)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _publish(self, **changes) -> None:
        self._snapshot = self._snapshot._replace(**changes)
        for observer in list(self._observers):
            try:
                observer(self._snapshot)
            except Exception:
                logger.exception("Session observer failed")

    # Lifecycle

    async def initialize(self) -> None:
        """Restore the resume snapshot and fetch likes and history.

        The restored track is shown as current in the Idle state; nothing is
        resolved or played until the user resumes.
        """
        track = self._resume_store.load()
        if track is not None:
            logger.info(f"Restored last played track: {track.id} ({track.title})")
            self._queue.set_queue([track], track)
            self._publish(
                current_track=track, playing_state=PlayingState.IDLE, position=0.0, duration=0.0
            )

        liked, recent = await asyncio.gather(
            self._store.fetch_liked_set(),
            self._store.fetch_recently_played(),
            return_exceptions=True,
        )
        if isinstance(liked, CatalogError):
            logger.warning(f"Could not fetch liked songs: {liked}")
        elif isinstance(liked, BaseException):
            raise liked
        elif liked is not None:
            self._liked = set(liked)

        if isinstance(recent, CatalogError):
            logger.warning(f"Could not fetch recently played: {recent}")
        elif isinstance(recent, BaseException):
            raise recent
        elif recent is not None:
            self._recently_played = list(recent)

    async def drain(self) -> None:
        """Wait for background history updates to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def close(self) -> None:
        """Abandon in-flight requests, cancel background work, release the engine."""
        self._generation += 1
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        await self._engine.close()
        logger.info("Playback controller closed")

    # Transport

    async def play(self, track: Track, queue: Optional[Sequence[Track]] = None) -> bool:
        """Make ``track`` the current track and start it.

        ``queue`` replaces the queue context; without one the existing queue
        is kept if it contains the track, otherwise it becomes ``[track]``.

        Returns:
            True if this request ended Playing or Paused; False if it failed
            or was superseded by a newer request
        """
        generation = self._next_generation()
        logger.info(f"Play requested: {track.id} ({track.title}) [request {generation}]")

        if self._snapshot.playing_state is PlayingState.PLAYING:
            self._engine.pause()

        if queue is not None:
            self._queue.set_queue(queue, track)
        elif track.id in self._queue:
            self._queue.mark_current(track)
        else:
            self._queue.set_queue([track], track)

        self._publish(
            current_track=track, playing_state=PlayingState.LOADING, position=0.0, duration=0.0
        )

        try:
            locator = await self._resolve_locator(track, prefer_cached=True)
        except ResolutionError as e:
            return self._fail(generation, f'Couldn\'t load "{track.title}": {e}')
        if self._is_stale(generation):
            return False

        if not await self._load_and_start(generation, track, locator):
            return False

        self._save_resume(track)
        self._spawn(self._append_recently_played(track))
        return True

    def pause(self) -> None:
        """Pause output; while Loading, the request completes paused instead."""
        self._acknowledge_error()
        state = self._snapshot.playing_state
        if state is PlayingState.PLAYING:
            self._engine.pause()
            self._publish(playing_state=PlayingState.PAUSED, position=self._engine.position)
            logger.debug("Paused")
        elif state is PlayingState.LOADING:
            self._pause_requested = True
            logger.debug("Pause requested while loading")

    async def resume(self) -> bool:
        """Continue the current track, reloading it if the engine lost its source.

        Returns:
            True if output is (or will be) running; False if there is nothing
            to resume or the reload failed
        """
        self._acknowledge_error()
        snapshot = self._snapshot
        track = snapshot.current_track
        if track is None:
            return False
        if snapshot.playing_state is PlayingState.PLAYING:
            return True
        if snapshot.playing_state is PlayingState.LOADING:
            self._pause_requested = False
            return True

        generation = self._next_generation()

        if self._engine.has_source:
            # Loading marks the start as in flight so pause() records intent
            self._publish(playing_state=PlayingState.LOADING)
            try:
                await self._engine.play()
            except PlaybackRejectedError as e:
                return self._fail(generation, f'Couldn\'t resume "{track.title}": {e}')
            if self._is_stale(generation):
                return False
            self._publish_started()
            return True

        # Cold start (restored session or recovered error): resolve fresh
        logger.info(f"Reloading {track.id} to resume")
        self._publish(playing_state=PlayingState.LOADING, position=0.0, duration=0.0)
        try:
            locator = await self._resolve_locator(track, prefer_cached=False)
        except ResolutionError as e:
            return self._fail(generation, f'Couldn\'t load "{track.title}": {e}')
        if self._is_stale(generation):
            return False
        return await self._load_and_start(generation, track, locator)

    async def toggle_play_pause(self) -> bool:
        if self._snapshot.is_playing:
            self.pause()
            return True
        return await self.resume()

    async def advance(self, direction: str = "next") -> bool:
        """Play the queue neighbor of the current track (wraps around)."""
        if direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of {DIRECTIONS}, got {direction!r}")

        self._acknowledge_error()
        current = self._snapshot.current_track
        current_id = current.id if current is not None else None
        if direction == "next":
            neighbor = self._queue.next(current_id)
        else:
            neighbor = self._queue.previous(current_id)

        if neighbor is None:
            logger.debug("Queue is empty, nothing to advance to")
            return False
        return await self.play(neighbor, self._queue.tracks)

    async def next(self) -> bool:
        return await self.advance("next")

    async def previous(self) -> bool:
        return await self.advance("previous")

    def seek(self, position: float) -> None:
        self._acknowledge_error()
        if self._snapshot.current_track is None or not self._engine.has_source:
            return
        self._engine.seek(position)
        self._publish(position=self._engine.position)

    def seek_to_percent(self, percent: float) -> None:
        duration = self._snapshot.duration or self._engine.duration
        if duration <= 0:
            return
        percent = max(0.0, min(100.0, percent))
        self.seek(duration * percent / 100)

    def set_volume(self, volume: float) -> None:
        self._engine.set_volume(volume)

    def toggle_mute(self) -> None:
        if self._engine.volume > 0:
            self._muted_volume = self._engine.volume
            self._engine.set_volume(0.0)
        else:
            self._engine.set_volume(self._muted_volume or 1.0)
            self._muted_volume = None

    # Likes and history

    async def toggle_like(self, track: Track) -> LikeResult:
        """Flip like membership optimistically, then reconcile with the service.

        Concurrent toggles of the same track are ordered by toggle generation:
        a response only rolls back if its toggle is still the newest one, and
        reconciliation keeps the intent of newer in-flight toggles.
        """
        was_liked = track.id in self._liked
        if not self._store.is_authenticated:
            logger.debug(f"Not logged in, like toggle for {track.id} ignored")
            return LikeApplied(track.id, was_liked)

        desired = not was_liked

        self._like_generation += 1
        token = self._like_generation
        self._pending_likes[track.id] = (token, desired)
        self._set_membership(track.id, desired)

        try:
            server_liked = await self._store.set_liked(track, desired)
        except CatalogError as e:
            latest = self._clear_pending(track.id, token)
            if latest:
                self._set_membership(track.id, was_liked)
            logger.warning(f"Like toggle for {track.id} failed: {e}")
            self._notify("Failed to update liked songs")
            return LikeRolledBack(track.id, track.id in self._liked, str(e))

        latest = self._clear_pending(track.id, token)
        if server_liked is None:
            # Logged out while the request was in flight; nothing was stored
            if latest:
                self._set_membership(track.id, was_liked)
            logger.debug(f"Like toggle for {track.id} not stored, logged out")
            return LikeApplied(track.id, track.id in self._liked)
        self._reconcile_likes(server_liked)
        logger.info(f"{'Liked' if desired else 'Unliked'} {track.id}")
        return LikeApplied(track.id, track.id in self._liked)

    async def refresh_recently_played(self) -> List[RecentlyPlayedEntry]:
        try:
            entries = await self._store.fetch_recently_played()
        except CatalogError as e:
            logger.warning(f"Could not refresh recently played: {e}")
            return self.recently_played
        if entries is not None:
            self._recently_played = list(entries)
        return self.recently_played

    # Engine events

    def _handle_time_update(self, position: float, duration: float) -> None:
        if self._snapshot.playing_state in (PlayingState.PLAYING, PlayingState.PAUSED):
            self._publish(position=position, duration=duration)

    async def _handle_ended(self) -> None:
        if self._snapshot.playing_state is not PlayingState.PLAYING:
            return
        logger.debug("Track ended, advancing")
        await self.advance("next")

    def _handle_error(self, reason: str) -> None:
        state = self._snapshot.playing_state
        if state is PlayingState.ERRORED:
            return
        if state is PlayingState.LOADING:
            # Supersede the pending request so the failure is reported once
            self._generation += 1
        track = self._snapshot.current_track
        title = track.title if track is not None else "track"
        logger.error(f"Playback error: {reason}")
        self._publish(playing_state=PlayingState.ERRORED)
        self._notify(f'Playback of "{title}" stopped: {reason}')

    # Internals

    def _next_generation(self) -> int:
        self._generation += 1
        self._pause_requested = False
        return self._generation

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug(f"Discarding superseded request {generation}")
            return True
        return False

    def _fail(self, generation: int, message: str) -> bool:
        if self._is_stale(generation):
            return False
        logger.error(message)
        self._publish(playing_state=PlayingState.ERRORED)
        self._notify(message)
        return False

    def _acknowledge_error(self) -> None:
        """Errored moves to Idle on the next user action."""
        if self._snapshot.playing_state is PlayingState.ERRORED:
            self._engine.unload()
            self._publish(playing_state=PlayingState.IDLE, position=0.0, duration=0.0)

    async def _resolve_locator(self, track: Track, prefer_cached: bool) -> str:
        if prefer_cached and track.stream_url:
            return track.stream_url
        try:
            return await self._store.resolve_stream_locator(track.id)
        except CatalogError as e:
            raise ResolutionError(str(e)) from e

    async def _load_and_start(self, generation: int, track: Track, locator: str) -> bool:
        self._engine.load(locator)
        try:
            await self._engine.play()
        except PlaybackRejectedError as e:
            return self._fail(generation, f'Couldn\'t play "{track.title}": {e}')
        if self._is_stale(generation):
            return False
        self._publish_started()
        return True

    def _publish_started(self) -> None:
        if self._pause_requested:
            self._pause_requested = False
            self._engine.pause()
            state = PlayingState.PAUSED
        else:
            state = PlayingState.PLAYING
        self._publish(
            playing_state=state, position=self._engine.position, duration=self._engine.duration
        )

    def _save_resume(self, track: Track) -> None:
        try:
            self._resume_store.save(track)
        except PersistenceError as e:
            logger.warning(str(e))

    def _spawn(self, coro: Coroutine) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _append_recently_played(self, track: Track) -> None:
        try:
            entries = await self._store.append_recently_played(track)
        except CatalogError as e:
            logger.warning(f"Could not record play of {track.id}: {e}")
            return
        if entries is not None:
            self._recently_played = list(entries)

    def _set_membership(self, track_id: str, liked: bool) -> None:
        if liked:
            self._liked.add(track_id)
        else:
            self._liked.discard(track_id)

    def _clear_pending(self, track_id: str, token: int) -> bool:
        """Drop the pending entry if ``token`` is still the newest toggle."""
        latest = self._pending_likes.get(track_id)
        if latest is not None and latest[0] == token:
            del self._pending_likes[track_id]
            return True
        return False

    def _reconcile_likes(self, server_liked: Set[str]) -> None:
        liked = set(server_liked)
        for track_id, (_, desired) in self._pending_likes.items():
            if desired:
                liked.add(track_id)
            else:
                liked.discard(track_id)
        self._liked = liked
