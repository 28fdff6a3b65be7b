"""
Session state published to observers.

The snapshot is the only playback state observers see; anything derived from
it (progress percent, play/pause icon, formatted times) is computed here.
"""

from enum import Enum
from typing import NamedTuple, Optional, Union

from ..library.models import Track


class PlayingState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ERRORED = "errored"


class SessionSnapshot(NamedTuple):
    """Immutable view of the active playback session."""

    current_track: Optional[Track] = None
    playing_state: PlayingState = PlayingState.IDLE
    position: float = 0.0
    duration: float = 0.0

    @property
    def is_playing(self) -> bool:
        return self.playing_state is PlayingState.PLAYING

    @property
    def progress_percent(self) -> float:
        """Position as a percentage of duration (0 when duration is unknown)."""
        if self.duration <= 0:
            return 0.0
        return max(0.0, min(100.0, (self.position / self.duration) * 100))

    @property
    def position_str(self) -> str:
        return format_time(self.position)

    @property
    def duration_str(self) -> str:
        return format_time(self.duration)


class LikeApplied(NamedTuple):
    """The like/unlike reached (or, logged out, stayed in) the local set."""

    track_id: str
    liked: bool


class LikeRolledBack(NamedTuple):
    """The remote call failed and the optimistic flip was reverted."""

    track_id: str
    liked: bool  # Membership after the rollback
    reason: str


LikeResult = Union[LikeApplied, LikeRolledBack]


def format_time(seconds: float) -> str:
    """Format time in seconds to M:SS format."""
    if seconds is None or seconds < 0 or seconds != seconds:
        return "0:00"

    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"
