"""Error taxonomy shared by the API client, the mutation coordinator and the views."""
from __future__ import annotations


class FeedSyncError(RuntimeError):
    """Base class for every failure the client core knows how to recover from."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkFailure(FeedSyncError):
    """Raised when a request is rejected by the backend or never completes."""


class AuthFailure(FeedSyncError):
    """Raised when the credential is missing or the backend refuses it."""


class NotFound(FeedSyncError):
    """Raised when the target entity no longer exists on the backend."""


class ValidationFailure(FeedSyncError):
    """Raised locally, before dispatch, when input can never succeed."""


__all__ = ["FeedSyncError", "NetworkFailure", "AuthFailure", "NotFound", "ValidationFailure"]
