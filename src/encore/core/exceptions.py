"""Root exception shared by every Encore domain."""


class EncoreError(Exception):
    """Base exception for Encore errors."""

    pass
