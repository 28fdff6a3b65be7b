"""Playback-specific exceptions for error handling."""

from encore.core.exceptions import EncoreError


class PlaybackError(EncoreError):
    """Base exception for playback operations."""

    pass


class ResolutionError(PlaybackError):
    """Raised when no stream locator can be obtained for a track."""

    pass


class PlaybackRejectedError(PlaybackError):
    """Raised when the media engine refuses to start (restriction or decode error)."""

    pass


class PersistenceError(PlaybackError):
    """Raised when the resume snapshot cannot be written. Never fatal."""

    pass
