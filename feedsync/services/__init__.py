"""Convenience exports for service layer."""
from .comment_actions import CommentActions
from .comment_tree import CommentTree, InsertHandle, LikeDelta, Removal
from .entity_cache import EntityCache, PostDetailSnapshot, ProfileSnapshot, ViewKind
from .event_bus import EventBus, Subscription
from .mutations import FailureNotice, FailurePolicy, Mutation, MutationCoordinator, StateDelta
from .optimistic import OptimisticInserter, PendingInsert, new_temp_id
from .pagination import CursorState, PageResult, PaginationCursor
from .session_store import SessionStore
from .social_actions import SocialActions

__all__ = [
    "CommentActions",
    "CommentTree",
    "InsertHandle",
    "LikeDelta",
    "Removal",
    "EntityCache",
    "PostDetailSnapshot",
    "ProfileSnapshot",
    "ViewKind",
    "EventBus",
    "Subscription",
    "FailureNotice",
    "FailurePolicy",
    "Mutation",
    "MutationCoordinator",
    "StateDelta",
    "OptimisticInserter",
    "PendingInsert",
    "new_temp_id",
    "CursorState",
    "PageResult",
    "PaginationCursor",
    "SessionStore",
    "SocialActions",
]
