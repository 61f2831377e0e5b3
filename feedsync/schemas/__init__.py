"""Convenience exports for schema layer."""
from .comments import Comment, Reply
from .events import BusEvent, EventKind, FollowChanged, PostStatusChanged, ViewerOverlayToggled
from .posts import JobStatus, MediaItem, Post
from .profiles import EDITABLE_PROFILE_FIELDS, Profile, ProfileSection
from .users import UserSummary, ViewerIdentity

__all__ = [
    "Comment",
    "Reply",
    "BusEvent",
    "EventKind",
    "FollowChanged",
    "PostStatusChanged",
    "ViewerOverlayToggled",
    "JobStatus",
    "MediaItem",
    "Post",
    "EDITABLE_PROFILE_FIELDS",
    "Profile",
    "ProfileSection",
    "UserSummary",
    "ViewerIdentity",
]
