"""Two-level comment thread with optimistic insert, like and delete."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Callable, Iterable

from ..errors import ValidationFailure
from ..schemas.comments import Comment, Reply
from ..schemas.users import UserSummary
from .optimistic import OptimisticInserter, PendingInsert

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class InsertHandle:
    pending: PendingInsert[Reply]
    parent_id: str | None

    @property
    def temp_id(self) -> str:
        return self.pending.temp_id


@dataclass(frozen=True, slots=True)
class LikeDelta:
    comment_id: str
    parent_id: str | None
    was_liked: bool
    step: int


@dataclass(frozen=True, slots=True)
class Removal:
    node: Reply
    parent_id: str | None
    index: int


def _merge_canonical(node: Reply, canonical: Reply | None) -> Reply:
    if canonical is None:
        return node.model_copy(update={"pending": False})
    if isinstance(node, Comment) and not isinstance(canonical, Comment):
        canonical = Comment(**canonical.model_dump(), replies=node.replies, replies_count=node.replies_count)
    return canonical.model_copy(update={"pending": False})


def prune(comments: Iterable[Comment], dead: AbstractSet[str]) -> list[Comment]:
    """Drop comments and replies whose ids are in ``dead``, keeping reply counts in step."""

    if not dead:
        return list(comments)
    kept: list[Comment] = []
    for comment in comments:
        if comment.id in dead:
            continue
        replies = [reply for reply in comment.replies if reply.id not in dead]
        dropped = len(comment.replies) - len(replies)
        if dropped:
            comment = comment.model_copy(
                update={"replies": replies, "replies_count": max(0, comment.replies_count - dropped)}
            )
        kept.append(comment)
    return kept


class CommentTree:
    def __init__(
        self,
        comments: Iterable[Comment] = (),
        *,
        comment_count: int | None = None,
        on_comment_count: Callable[[int], None] | None = None,
    ) -> None:
        self.comments: list[Comment] = list(comments)
        self.comment_count = len(self.comments) if comment_count is None else comment_count
        self.expanded: set[str] = set()
        self._on_comment_count = on_comment_count
        self._top_level = OptimisticInserter(
            lambda: self.comments,
            merge=_merge_canonical,
            at_head=True,
            on_count=self._bump_comment_count,
        )

    # Lookup

    def find(self, comment_id: str) -> tuple[Reply, str | None] | None:
        """Locate a comment or reply. Returns the node and its parent id (``None`` for top level)."""

        for comment in self.comments:
            if comment.id == comment_id:
                return comment, None
            for reply in comment.replies:
                if reply.id == comment_id:
                    return reply, comment.id
        return None

    def _top(self, comment_id: str) -> Comment | None:
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        return None

    # Insert

    def insert(self, text: str, author: UserSummary, parent_id: str | None = None) -> InsertHandle:
        body = (text or "").strip()
        if not body:
            raise ValidationFailure("Comment text must not be empty")

        if parent_id is None:
            pending = self._top_level.insert(
                lambda temp_id: Comment(id=temp_id, text=body, user=author, pending=True)
            )
            return InsertHandle(pending=pending, parent_id=None)

        located = self.find(parent_id)
        if located is None:
            raise ValidationFailure(f"Cannot reply to missing comment {parent_id}")
        node, owner = located
        # Replies to a reply attach to the top-level comment that owns it
        parent_id = owner or node.id
        parent = self._top(parent_id)
        if parent is None or parent.pending:
            raise ValidationFailure("Cannot reply to a comment that is still being posted")

        pending = self._replies(parent_id).insert(
            lambda temp_id: Reply(id=temp_id, text=body, user=author, pending=True)
        )
        self.expanded.add(parent_id)
        return InsertHandle(pending=pending, parent_id=parent_id)

    def confirm(self, handle: InsertHandle, canonical: Reply | None = None) -> Reply | None:
        return self._inserter_for(handle).reconcile(handle.pending, canonical)

    def discard(self, handle: InsertHandle) -> bool:
        return self._inserter_for(handle).rollback(handle.pending)

    def _inserter_for(self, handle: InsertHandle) -> OptimisticInserter:
        if handle.parent_id is None:
            return self._top_level
        return self._replies(handle.parent_id)

    def _replies(self, parent_id: str) -> OptimisticInserter:
        def collection() -> list[Reply] | None:
            parent = self._top(parent_id)
            return parent.replies if parent is not None else None

        def count(delta: int) -> None:
            parent = self._top(parent_id)
            if parent is not None:
                parent.replies_count = max(0, parent.replies_count + delta)

        return OptimisticInserter(collection, merge=_merge_canonical, at_head=False, on_count=count)

    def _bump_comment_count(self, delta: int) -> None:
        self.comment_count = max(0, self.comment_count + delta)
        if self._on_comment_count is not None:
            self._on_comment_count(delta)

    # Like

    def toggle_like(self, comment_id: str, parent_id: str | None = None) -> LikeDelta | None:
        located = self.find(comment_id)
        if located is None:
            return None
        node, owner = located
        was_liked = node.is_liked
        step = -1 if was_liked else 1
        if node.likes + step < 0:
            step = 0
        node.is_liked = not was_liked
        node.likes += step
        return LikeDelta(comment_id=comment_id, parent_id=parent_id or owner, was_liked=was_liked, step=step)

    def revert_like(self, delta: LikeDelta) -> None:
        located = self.find(delta.comment_id)
        if located is None:
            return
        node, _ = located
        node.is_liked = delta.was_liked
        node.likes = max(0, node.likes - delta.step)

    # Delete

    def remove(self, comment_id: str) -> Removal | None:
        for index, comment in enumerate(self.comments):
            if comment.id == comment_id:
                del self.comments[index]
                self._bump_comment_count(-1)
                self.expanded.discard(comment_id)
                return Removal(node=comment, parent_id=None, index=index)
            for reply_index, reply in enumerate(comment.replies):
                if reply.id == comment_id:
                    del comment.replies[reply_index]
                    comment.replies_count = max(0, comment.replies_count - 1)
                    return Removal(node=reply, parent_id=comment.id, index=reply_index)
        return None

    def restore(self, removal: Removal) -> None:
        if self.find(removal.node.id) is not None:
            return
        if removal.parent_id is None:
            index = min(removal.index, len(self.comments))
            self.comments.insert(index, removal.node)  # type: ignore[arg-type]
            self._bump_comment_count(1)
            return
        parent = self._top(removal.parent_id)
        if parent is None:
            logger.debug("Parent %s gone; dropping restored reply %s", removal.parent_id, removal.node.id)
            return
        parent.replies.insert(min(removal.index, len(parent.replies)), removal.node)
        parent.replies_count += 1

    # Reply visibility

    def expand(self, comment_id: str) -> None:
        self.expanded.add(comment_id)

    def collapse(self, comment_id: str) -> None:
        self.expanded.discard(comment_id)

    def toggle_expanded(self, comment_id: str) -> bool:
        if comment_id in self.expanded:
            self.expanded.discard(comment_id)
            return False
        self.expanded.add(comment_id)
        return True

    def is_expanded(self, comment_id: str) -> bool:
        return comment_id in self.expanded

    # Reload

    def replace_all(self, comments: Iterable[Comment], *, comment_count: int | None = None) -> None:
        self.comments = sorted(comments, key=lambda c: c.created_at, reverse=True)
        if comment_count is not None:
            self.comment_count = comment_count
        live = {c.id for c in self.comments}
        self.expanded &= live


__all__ = ["CommentTree", "InsertHandle", "LikeDelta", "Removal", "prune"]
