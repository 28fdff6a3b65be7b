"""Catalog and session-service exceptions for error handling."""

from encore.core.exceptions import EncoreError


class CatalogError(EncoreError):
    """Base exception for remote catalog/session operations."""

    pass


class NotFoundError(CatalogError):
    """Raised when a track (or its stream) does not exist."""

    pass


class UnauthorizedError(CatalogError):
    """Raised when the service rejects the credentials (401/403)."""

    pass


class AuthRequiredError(CatalogError):
    """Raised when a session operation is attempted without a token."""

    pass


class RequestFailedError(CatalogError):
    """Raised on network failures, timeouts and unexpected HTTP responses."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
