"""Project-wide constant values."""
from __future__ import annotations

TEMP_ID_PREFIX = "temp-"

MAX_REPOST_DEPTH = 1  # a repost wraps an original, never another repost

FOLLOW_HINT_PREFIX = "follow_status:"

DEFAULT_USER_NAME = "User"

PROFILE_TABS = ("posts", "videos")

__all__ = [
    "TEMP_ID_PREFIX",
    "MAX_REPOST_DEPTH",
    "FOLLOW_HINT_PREFIX",
    "DEFAULT_USER_NAME",
    "PROFILE_TABS",
]
