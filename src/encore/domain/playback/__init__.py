"""Playback domain - session controller, queue, media engine and resume store.

This domain handles:
- Play/pause/resume/advance with last-request-wins supersession
- Queue context with wraparound next/previous
- The media engine adapter and its mpv backend
- Optimistic likes and recently-played history
- The durable resume snapshot
"""

from .controller import PlaybackController
from .engine import BackendStatus, MediaBackend, MediaEngine
from .exceptions import (
    PersistenceError,
    PlaybackError,
    PlaybackRejectedError,
    ResolutionError,
)
from .player import MpvBackend
from .queue import QueueManager
from .resume import LAST_PLAYED_KEY, ResumeStore
from .state import (
    LikeApplied,
    LikeResult,
    LikeRolledBack,
    PlayingState,
    SessionSnapshot,
    format_time,
)

__all__ = [
    "PlaybackController",
    "BackendStatus",
    "MediaBackend",
    "MediaEngine",
    "MpvBackend",
    "QueueManager",
    "ResumeStore",
    "LAST_PLAYED_KEY",
    "PersistenceError",
    "PlaybackError",
    "PlaybackRejectedError",
    "ResolutionError",
    "LikeApplied",
    "LikeResult",
    "LikeRolledBack",
    "PlayingState",
    "SessionSnapshot",
    "format_time",
]
