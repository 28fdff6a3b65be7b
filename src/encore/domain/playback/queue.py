"""Playback queue with wraparound next/previous.

The queue is replaced wholesale whenever a new playback context starts
(an album, a playlist, a single track). Duplicates by id are allowed; lookups
resolve to the first occurrence.
"""

from typing import Optional, Sequence

from ..library.models import Track


class QueueManager:
    """Owns the ordered track list for the active playback context."""

    def __init__(self) -> None:
        self._tracks: list[Track] = []
        self._current_id: Optional[str] = None

    def set_queue(self, tracks: Sequence[Track], anchor: Optional[Track] = None) -> None:
        """Replace the queue.

        If ``anchor`` is in ``tracks`` it becomes current. If it is not, the
        queue becomes the singleton ``[anchor]``.
        """
        tracks = list(tracks)
        if anchor is not None and self._find(tracks, anchor.id) is None:
            tracks = [anchor]
        self._tracks = tracks
        self._current_id = anchor.id if anchor is not None else None

    def next(self, current_id: Optional[str]) -> Optional[Track]:
        """Track after ``current_id``, wrapping to the start.

        Returns the first track when ``current_id`` is not queued and None
        only when the queue is empty.
        """
        return self._neighbor(current_id, 1)

    def previous(self, current_id: Optional[str]) -> Optional[Track]:
        """Track before ``current_id``, wrapping to the end."""
        return self._neighbor(current_id, -1)

    def index_of(self, track_id: Optional[str]) -> Optional[int]:
        """0-based position of the first track with this id, or None."""
        return self._find(self._tracks, track_id)

    def mark_current(self, track: Track) -> None:
        self._current_id = track.id

    @property
    def current(self) -> Optional[Track]:
        index = self.index_of(self._current_id)
        return self._tracks[index] if index is not None else None

    @property
    def tracks(self) -> list[Track]:
        """Copy of the queued tracks."""
        return list(self._tracks)

    def clear(self) -> None:
        self._tracks = []
        self._current_id = None

    def __contains__(self, track_id: object) -> bool:
        return any(track.id == track_id for track in self._tracks)

    def __len__(self) -> int:
        return len(self._tracks)

    def _neighbor(self, current_id: Optional[str], step: int) -> Optional[Track]:
        if not self._tracks:
            return None
        index = self.index_of(current_id)
        if index is None:
            return self._tracks[0]
        return self._tracks[(index + step) % len(self._tracks)]

    @staticmethod
    def _find(tracks: Sequence[Track], track_id: Optional[str]) -> Optional[int]:
        if track_id is None:
            return None
        for i, track in enumerate(tracks):
            if track.id == track_id:
                return i
        return None
