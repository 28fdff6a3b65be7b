"""Catalog domain - remote catalog and session-service client.

This domain handles:
- Stream URL resolution against the public catalog
- Liked songs and recently-played history (bearer token)
- Playlist CRUD for UI callers
"""

from .client import RemoteSessionStore
from .exceptions import (
    AuthRequiredError,
    CatalogError,
    NotFoundError,
    RequestFailedError,
    UnauthorizedError,
)

__all__ = [
    "RemoteSessionStore",
    "AuthRequiredError",
    "CatalogError",
    "NotFoundError",
    "RequestFailedError",
    "UnauthorizedError",
]
