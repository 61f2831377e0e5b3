"""Keyed in-memory snapshots of profile and post-detail views.

Snapshots let a remounted view restore its entity, cursors and scroll offset
without refetching. Entries are never evicted individually; the whole cache is
dropped on logout.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterable, Mapping, TypeVar, Union

from pydantic import BaseModel, Field

from ..schemas.comments import Comment
from ..schemas.posts import Post
from ..schemas.profiles import Profile
from .pagination import CursorState

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT")


class ViewKind(str, Enum):
    PROFILE = "profile"
    POST_DETAIL = "post_detail"


class ProfileSnapshot(BaseModel):
    profile: Profile | None = None
    is_following: bool = False
    active_tab: str = "posts"
    tab_states: dict[str, CursorState] = Field(default_factory=dict)
    tab_items: dict[str, list[Post]] = Field(default_factory=dict)
    scroll_offset: float = 0.0
    tombstones: frozenset[str] = frozenset()


class PostDetailSnapshot(BaseModel):
    post: Post | None = None
    comments: list[Comment] = Field(default_factory=list)
    is_liked: bool = False
    likes: int = 0
    deleted: bool = False
    scroll_offset: float = 0.0
    tombstones: frozenset[str] = frozenset()


Snapshot = Union[ProfileSnapshot, PostDetailSnapshot]

_SNAPSHOT_TYPES: dict[ViewKind, type[BaseModel]] = {
    ViewKind.PROFILE: ProfileSnapshot,
    ViewKind.POST_DETAIL: PostDetailSnapshot,
}


class EntityCache:
    def __init__(self) -> None:
        self._entries: dict[tuple[ViewKind, str], Snapshot] = {}

    def get(self, view_kind: ViewKind, target_id: str) -> Snapshot:
        """Return the stored snapshot, or an unstored empty default of the right type."""

        key = (ViewKind(view_kind), target_id)
        stored = self._entries.get(key)
        if stored is not None:
            return stored
        return _SNAPSHOT_TYPES[key[0]]()

    def profile(self, user_id: str) -> ProfileSnapshot:
        snapshot = self.get(ViewKind.PROFILE, user_id)
        if not isinstance(snapshot, ProfileSnapshot):
            raise TypeError(f"Profile entry for {user_id} holds {type(snapshot).__name__}")
        return snapshot

    def post_detail(self, post_id: str) -> PostDetailSnapshot:
        snapshot = self.get(ViewKind.POST_DETAIL, post_id)
        if not isinstance(snapshot, PostDetailSnapshot):
            raise TypeError(f"Post entry for {post_id} holds {type(snapshot).__name__}")
        return snapshot

    def tombstones(self, view_kind: ViewKind, target_id: str) -> frozenset[str]:
        return self.get(view_kind, target_id).tombstones

    def contains(self, view_kind: ViewKind, target_id: str) -> bool:
        return (ViewKind(view_kind), target_id) in self._entries

    def put(self, view_kind: ViewKind, target_id: str, partial: Mapping[str, Any] | None = None, **fields: Any) -> Snapshot:
        """Shallow-merge top-level fields into the snapshot, creating it on first use."""

        updates = dict(partial or {})
        updates.update(fields)
        key = (ViewKind(view_kind), target_id)
        current = self.get(*key)

        unknown = set(updates) - set(type(current).model_fields)
        if unknown:
            raise KeyError(f"Unknown {key[0].value} snapshot field(s): {', '.join(sorted(unknown))}")

        if "tombstones" in updates:
            updates["tombstones"] = current.tombstones | frozenset(updates["tombstones"])

        merged = current.model_copy(update=updates)
        self._entries[key] = merged
        return merged

    def tombstone(self, view_kind: ViewKind, target_id: str, entity_id: str) -> None:
        self.put(view_kind, target_id, tombstones={entity_id})

    def is_tombstoned(self, view_kind: ViewKind, target_id: str, entity_id: str) -> bool:
        return entity_id in self.get(view_kind, target_id).tombstones

    def filter_tombstoned(self, view_kind: ViewKind, target_id: str, items: Iterable[ItemT]) -> list[ItemT]:
        dead = self.get(view_kind, target_id).tombstones
        if not dead:
            return list(items)
        return [item for item in items if getattr(item, "id", None) not in dead]

    def clear_all(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        logger.info("Entity cache cleared (%d snapshots)", count)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["EntityCache", "PostDetailSnapshot", "ProfileSnapshot", "Snapshot", "ViewKind"]
