"""A post as it appears in a feed, with an inline comment thread."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..clients.api import EntityKind, Operation
from ..context import ClientContext
from ..errors import FeedSyncError, ValidationFailure
from ..schemas.comments import Comment
from ..schemas.events import BusEvent, EventKind, FollowChanged, PostStatusChanged, ViewerOverlayToggled
from ..schemas.posts import JobStatus, Post
from ..services.comment_actions import CommentActions
from ..services.comment_tree import CommentTree, prune
from ..services.entity_cache import ViewKind
from ..services.event_bus import Handler
from ..services.mutations import FailurePolicy, Mutation, StateDelta
from .base import MountedView

logger = logging.getLogger(__name__)


class PostCard(MountedView):
    def __init__(self, ctx: ClientContext, post: Post) -> None:
        super().__init__(ctx)
        self.post = post
        self.hidden = False
        self.deleted = False
        self.media_paused = False
        self.comments_loaded = False
        self.is_following_author = bool(ctx.store.follow_hint(post.user.id))
        self.tree = CommentTree(comment_count=post.comments, on_comment_count=self._bump_comments)
        self.comment_actions = CommentActions(
            post.id,
            self.tree,
            api=ctx.api,
            coordinator=ctx.coordinator,
            author=ctx.author,
            viewer_id=lambda: ctx.viewer_id,
            on_unconfirmed=self.load_comments,
            on_deleted=lambda comment_id: ctx.cache.tombstone(ViewKind.POST_DETAIL, post.id, comment_id),
        )

    @property
    def visible(self) -> bool:
        return not (self.hidden or self.deleted)

    @property
    def is_own_post(self) -> bool:
        return self.post.user.id == self.ctx.viewer_id

    @property
    def comments(self) -> list[Comment]:
        return self.tree.comments

    def _bump_comments(self, delta: int) -> None:
        self.post.comments = max(0, self.post.comments + delta)

    def subscriptions(self) -> list[tuple[EventKind, Handler]]:
        return [
            (EventKind.FOLLOW_CHANGE, self._on_follow_change),
            (EventKind.POST_STATUS_CHANGE, self._on_post_status),
            (EventKind.VIEWER_OVERLAY_TOGGLE, self._on_overlay),
        ]

    def _on_follow_change(self, event: BusEvent) -> None:
        if not isinstance(event, FollowChanged):
            return
        if event.user_id == self.post.user.id:
            self.is_following_author = event.is_following

    def _on_post_status(self, event: BusEvent) -> None:
        if not isinstance(event, PostStatusChanged):
            return
        if event.post_id == self.post.id:
            self.post.job_status = event.job_status

    def _on_overlay(self, event: BusEvent) -> None:
        if not isinstance(event, ViewerOverlayToggled):
            return
        self.media_paused = event.is_open

    # Comments

    def load_comments(self) -> asyncio.Task[list[Comment]]:
        return self._start_fetch("comments", self._load_comments())

    async def _load_comments(self) -> list[Comment]:
        try:
            raw = await self.ctx.api.get_post(self.post.id)
        except FeedSyncError as exc:
            logger.warning("Loading comments for %s failed: %s", self.post.id, exc)
            return self.tree.comments
        viewer_id = self.ctx.viewer_id
        comments = prune(
            (Comment.from_api(c, viewer_id) for c in raw.get("comments") or [] if isinstance(c, dict)),
            self.ctx.cache.tombstones(ViewKind.POST_DETAIL, self.post.id) | self.comment_actions.deleting,
        )
        self.tree.replace_all(comments, comment_count=len(comments))
        self.post.comments = self.tree.comment_count
        self.comments_loaded = True
        return self.tree.comments

    def send_comment(self, text: str, parent_id: str | None = None) -> asyncio.Task[bool] | None:
        return self.comment_actions.send(text, parent_id)

    def like_comment(self, comment_id: str, parent_id: str | None = None) -> asyncio.Task[bool] | None:
        return self.comment_actions.like(comment_id, parent_id)

    def delete_comment(self, comment_id: str) -> asyncio.Task[bool] | None:
        return self.comment_actions.delete(comment_id)

    # Post actions

    def toggle_like(self) -> asyncio.Task[bool] | None:
        return self.ctx.social.toggle_like(self.post)

    def toggle_follow_author(self) -> asyncio.Task[bool] | None:
        if self.is_own_post:
            return None
        return self.ctx.social.toggle_follow(self.post.user.id, self.is_following_author)

    def repost(self, text: str = "") -> asyncio.Task[bool] | None:
        return self.ctx.social.repost_with_text(self.post, text)

    def set_job_status(self, status: JobStatus | str) -> asyncio.Task[bool] | None:
        if not self.is_own_post:
            raise ValidationFailure("Only the author can change a post's job status")
        return self.ctx.social.set_job_status(self.post, status)

    def hide(self) -> asyncio.Task[bool] | None:
        if self.hidden:
            return None

        def forward() -> None:
            self.hidden = True

        def inverse() -> None:
            self.hidden = False

        return self.ctx.coordinator.dispatch(
            Mutation(
                operation="hide_post",
                target_id=self.post.id,
                request=lambda: self.ctx.api.request(EntityKind.POST, Operation.HIDE, ids=(self.post.id,)),
                delta=StateDelta(forward, inverse),
            )
        )

    def delete(self) -> asyncio.Task[bool] | None:
        if self.deleted:
            return None

        def confirmed(_: Any) -> None:
            self.deleted = True

        return self.ctx.coordinator.dispatch(
            Mutation(
                operation="delete_post",
                target_id=self.post.id,
                request=lambda: self.ctx.api.request(EntityKind.POST, Operation.DELETE, ids=(self.post.id,)),
                reconcile=confirmed,
                policy=FailurePolicy.HARD,
                message="The post could not be deleted.",
            )
        )


__all__ = ["PostCard"]
