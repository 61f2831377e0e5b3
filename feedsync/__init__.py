"""Optimistic mutation and cache synchronisation core for the social feed client."""
from .config import Settings, get_settings
from .context import ClientContext
from .errors import AuthFailure, FeedSyncError, NetworkFailure, NotFound, ValidationFailure

__all__ = [
    "AuthFailure",
    "ClientContext",
    "FeedSyncError",
    "NetworkFailure",
    "NotFound",
    "Settings",
    "ValidationFailure",
    "get_settings",
]
