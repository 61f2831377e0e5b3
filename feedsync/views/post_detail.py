"""Full-screen post with its comment thread."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..clients.api import EntityKind, Operation
from ..context import ClientContext
from ..errors import FeedSyncError, NotFound
from ..schemas.comments import Comment
from ..schemas.events import BusEvent, EventKind, PostStatusChanged
from ..schemas.posts import JobStatus, Post
from ..services.comment_actions import CommentActions
from ..services.comment_tree import CommentTree, prune
from ..services.entity_cache import ViewKind
from ..services.event_bus import Handler
from ..services.mutations import FailurePolicy, Mutation
from .base import MountedView

logger = logging.getLogger(__name__)


class PostDetailView(MountedView):
    def __init__(self, ctx: ClientContext, post_id: str, initial: Post | None = None) -> None:
        super().__init__(ctx)
        self.post_id = post_id
        snapshot = ctx.cache.post_detail(post_id)

        self.post: Post | None = snapshot.post or initial
        if self.post is not None and snapshot.post is not None:
            self.post.is_liked = snapshot.is_liked
            self.post.likes = snapshot.likes
        self.deleted = snapshot.deleted or post_id in snapshot.tombstones
        self.scroll_offset = snapshot.scroll_offset

        self.tree = CommentTree(
            snapshot.comments,
            comment_count=self.post.comments if self.post is not None else None,
            on_comment_count=self._bump_post_comments,
        )
        self.comment_actions = CommentActions(
            post_id,
            self.tree,
            api=ctx.api,
            coordinator=ctx.coordinator,
            author=ctx.author,
            viewer_id=lambda: ctx.viewer_id,
            on_change=self.remember,
            on_unconfirmed=self.load,
            on_deleted=lambda comment_id: ctx.cache.tombstone(ViewKind.POST_DETAIL, post_id, comment_id),
        )

    @property
    def comments(self) -> list[Comment]:
        return self.tree.comments

    @property
    def is_liked(self) -> bool:
        return self.post.is_liked if self.post is not None else False

    @property
    def likes(self) -> int:
        return self.post.likes if self.post is not None else 0

    def remember(self) -> None:
        self.ctx.cache.put(
            ViewKind.POST_DETAIL,
            self.post_id,
            post=self.post,
            comments=list(self.tree.comments),
            is_liked=self.is_liked,
            likes=self.likes,
            deleted=self.deleted,
            scroll_offset=self.scroll_offset,
        )

    def _bump_post_comments(self, delta: int) -> None:
        if self.post is not None:
            self.post.comments = max(0, self.post.comments + delta)

    # Mounting

    def subscriptions(self) -> list[tuple[EventKind, Handler]]:
        return [(EventKind.POST_STATUS_CHANGE, self._on_post_status)]

    def on_unmount(self) -> None:
        self.remember()

    def _on_post_status(self, event: BusEvent) -> None:
        if not isinstance(event, PostStatusChanged):
            return
        if self.post is not None and event.post_id == self.post.id:
            self.post.job_status = event.job_status
            self.remember()

    # Fetching

    def load(self) -> asyncio.Task[Post | None]:
        """Fetch the post and its thread. Superseded or unmounted loads are cancelled."""

        return self._start_fetch("post", self._load())

    async def _load(self) -> Post | None:
        try:
            raw = await self.ctx.api.get_post(self.post_id)
        except NotFound:
            logger.info("Post %s no longer exists", self.post_id)
            self.deleted = True
            self.remember()
            return None
        except FeedSyncError as exc:
            logger.warning("Loading post %s failed: %s", self.post_id, exc)
            return None

        viewer_id = self.ctx.viewer_id
        fresh = Post.from_api(raw, viewer_id)
        raw_comments = [c for c in raw.get("comments") or [] if isinstance(c, dict)]
        comments = prune(
            (Comment.from_api(c, viewer_id) for c in raw_comments),
            self.ctx.cache.tombstones(ViewKind.POST_DETAIL, self.post_id) | self.comment_actions.deleting,
        )
        fresh.comments = max(0, fresh.comments - (len(raw_comments) - len(comments)))
        self.post = fresh
        self.tree.replace_all(comments, comment_count=fresh.comments)
        self.remember()
        return fresh

    def on_scroll(self, offset: float) -> None:
        self.scroll_offset = offset
        self.ctx.cache.put(ViewKind.POST_DETAIL, self.post_id, scroll_offset=offset)

    # Mutations

    def toggle_like(self) -> asyncio.Task[bool] | None:
        if self.post is None or self.deleted:
            return None
        return self.ctx.social.toggle_like(self.post, on_change=self.remember)

    def set_job_status(self, status: JobStatus | str) -> asyncio.Task[bool] | None:
        if self.post is None:
            return None
        return self.ctx.social.set_job_status(self.post, status, on_change=self.remember)

    def send_comment(self, text: str, parent_id: str | None = None) -> asyncio.Task[bool] | None:
        return self.comment_actions.send(text, parent_id)

    def like_comment(self, comment_id: str, parent_id: str | None = None) -> asyncio.Task[bool] | None:
        return self.comment_actions.like(comment_id, parent_id)

    def delete_comment(self, comment_id: str) -> asyncio.Task[bool] | None:
        return self.comment_actions.delete(comment_id)

    def delete_post(self) -> asyncio.Task[bool] | None:
        if self.deleted:
            return None

        def confirmed(_: Any) -> None:
            self.ctx.cache.tombstone(ViewKind.POST_DETAIL, self.post_id, self.post_id)
            self.deleted = True
            self.remember()

        return self.ctx.coordinator.dispatch(
            Mutation(
                operation="delete_post",
                target_id=self.post_id,
                request=lambda: self.ctx.api.request(EntityKind.POST, Operation.DELETE, ids=(self.post_id,)),
                reconcile=confirmed,
                policy=FailurePolicy.HARD,
                message="The post could not be deleted.",
            )
        )


__all__ = ["PostDetailView"]
