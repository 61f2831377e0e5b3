"""Send, like and delete operations over a post's comment thread."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from ..clients.api import ApiClient, EntityKind, Operation, unwrap_comment
from ..errors import ValidationFailure
from ..schemas.comments import Comment, Reply
from ..schemas.users import UserSummary
from .comment_tree import CommentTree, InsertHandle, LikeDelta, Removal
from .mutations import FailurePolicy, Mutation, MutationCoordinator, StateDelta
from .optimistic import is_temp_id

logger = logging.getLogger(__name__)


class CommentActions:
    """Binds a :class:`CommentTree` to the backend for one post.

    ``author`` supplies the viewer snapshot used for provisional nodes.
    ``on_unconfirmed`` runs when the backend accepts a comment without echoing
    it back, so the owner can refetch the thread. ``on_deleted`` receives the
    id of every deletion the backend confirms.
    """

    def __init__(
        self,
        post_id: str,
        tree: CommentTree,
        *,
        api: ApiClient,
        coordinator: MutationCoordinator,
        author: Callable[[], UserSummary],
        viewer_id: Callable[[], str | None] = lambda: None,
        on_change: Callable[[], None] | None = None,
        on_unconfirmed: Callable[[], Any] | None = None,
        on_deleted: Callable[[str], None] | None = None,
    ) -> None:
        self.post_id = post_id
        self.tree = tree
        self.api = api
        self.coordinator = coordinator
        self._author = author
        self._viewer_id = viewer_id
        self._on_change = on_change
        self._on_unconfirmed = on_unconfirmed
        self._on_deleted = on_deleted
        self._deleting: set[str] = set()

    @property
    def deleting(self) -> frozenset[str]:
        """Ids whose delete request is still in flight."""

        return frozenset(self._deleting)

    def is_sending(self) -> bool:
        return self.coordinator.is_busy("send_comment", self.post_id)

    def send(self, text: str, parent_id: str | None = None) -> asyncio.Task[bool] | None:
        body = (text or "").strip()
        if not body:
            raise ValidationFailure("Comment text must not be empty")
        if parent_id is not None:
            parent_id = self._resolve_parent(parent_id)

        handle: InsertHandle | None = None

        def forward() -> None:
            nonlocal handle
            handle = self.tree.insert(body, self._author(), parent_id)

        def inverse() -> None:
            if handle is not None:
                self.tree.discard(handle)

        def reconcile(payload: Any) -> None:
            if handle is None:
                return
            raw = unwrap_comment(payload, "reply" if parent_id else "comment")
            if raw is None:
                self.tree.confirm(handle, None)
                if self._on_unconfirmed is not None:
                    self._on_unconfirmed()
            else:
                model = Reply if parent_id else Comment
                self.tree.confirm(handle, model.from_api(raw, self._viewer_id()))
            if self._on_change is not None:
                self._on_change()

        if parent_id is None:
            op, ids = Operation.CREATE, (self.post_id,)
        else:
            op, ids = Operation.REPLY, (self.post_id, parent_id)

        return self.coordinator.dispatch(
            Mutation(
                operation="send_comment",
                target_id=self.post_id,
                request=lambda: self.api.request(EntityKind.COMMENT, op, ids=ids, body={"text": body}),
                delta=StateDelta(forward, inverse).with_effect(self._on_change),
                reconcile=reconcile,
                policy=FailurePolicy.HARD,
                message="Your comment could not be posted.",
            )
        )

    def _resolve_parent(self, parent_id: str) -> str:
        located = self.tree.find(parent_id)
        if located is None:
            raise ValidationFailure(f"Cannot reply to missing comment {parent_id}")
        node, owner = located
        top_id = owner or node.id
        top, _ = self.tree.find(top_id)  # type: ignore[misc]
        if top.pending or is_temp_id(top.id):
            raise ValidationFailure("Cannot reply to a comment that is still being posted")
        return top_id

    def like(self, comment_id: str, parent_id: str | None = None) -> asyncio.Task[bool] | None:
        located = self.tree.find(comment_id)
        if located is None or is_temp_id(comment_id):
            return None
        _, owner = located
        parent_id = parent_id or owner

        applied: LikeDelta | None = None

        def forward() -> None:
            nonlocal applied
            applied = self.tree.toggle_like(comment_id, parent_id)

        def inverse() -> None:
            if applied is not None:
                self.tree.revert_like(applied)

        if parent_id is None:
            op, ids = Operation.LIKE, (self.post_id, comment_id)
        else:
            op, ids = Operation.LIKE_REPLY, (self.post_id, parent_id, comment_id)

        return self.coordinator.dispatch(
            Mutation(
                operation="like_comment",
                target_id=comment_id,
                request=lambda: self.api.request(EntityKind.COMMENT, op, ids=ids),
                delta=StateDelta(forward, inverse).with_effect(self._on_change),
            )
        )

    def delete(self, comment_id: str) -> asyncio.Task[bool] | None:
        located = self.tree.find(comment_id)
        if located is None or is_temp_id(comment_id):
            return None
        _, parent_id = located

        removal: Removal | None = None

        def forward() -> None:
            nonlocal removal
            self._deleting.add(comment_id)
            removal = self.tree.remove(comment_id)

        def inverse() -> None:
            self._deleting.discard(comment_id)
            if removal is not None:
                self.tree.restore(removal)

        def confirmed(_: Any) -> None:
            if self._on_deleted is not None:
                self._on_deleted(comment_id)
            self._deleting.discard(comment_id)
            # A refetch that raced the request may have brought the node back
            if self.tree.remove(comment_id) is not None and self._on_change is not None:
                self._on_change()

        if parent_id is None:
            op, ids = Operation.DELETE, (self.post_id, comment_id)
        else:
            op, ids = Operation.DELETE_REPLY, (self.post_id, parent_id, comment_id)

        return self.coordinator.dispatch(
            Mutation(
                operation="delete_comment",
                target_id=comment_id,
                request=lambda: self.api.request(EntityKind.COMMENT, op, ids=ids),
                delta=StateDelta(forward, inverse).with_effect(self._on_change),
                reconcile=confirmed,
                policy=FailurePolicy.HARD,
                message="The comment could not be deleted.",
            )
        )


__all__ = ["CommentActions"]
