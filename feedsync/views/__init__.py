"""View models the render layer mounts and reads from."""
from .base import MountedView
from .overlay import StoryViewer
from .post_card import PostCard
from .post_detail import PostDetailView
from .profile import ProfileView
from .shorts import ShortsFeed
from .suggestions import SuggestionCard

__all__ = [
    "MountedView",
    "PostCard",
    "PostDetailView",
    "ProfileView",
    "ShortsFeed",
    "StoryViewer",
    "SuggestionCard",
]
