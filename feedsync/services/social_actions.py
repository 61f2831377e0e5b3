"""Follow, like, repost and job-status toggles shared by every view.

Each toggle flips local state at once, broadcasts when the fact is shown by
more than one view, and undoes exactly its own change if the request fails.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from ..clients.api import ApiClient, EntityKind, Operation
from ..errors import FeedSyncError
from ..schemas.events import FollowChanged, PostStatusChanged
from ..schemas.posts import JobStatus, Post
from .mutations import FailurePolicy, Mutation, MutationCoordinator, StateDelta
from .session_store import SessionStore

logger = logging.getLogger(__name__)


def like_delta(post: Post) -> StateDelta:
    was_liked = post.is_liked
    step = -1 if was_liked else 1
    if post.likes + step < 0:
        step = 0

    def forward() -> None:
        post.is_liked = not was_liked
        post.likes += step

    def inverse() -> None:
        post.is_liked = was_liked
        post.likes = max(0, post.likes - step)

    return StateDelta(forward, inverse)


def repost_delta(post: Post) -> StateDelta:
    was_reposted = post.is_reposted
    step = -1 if was_reposted else 1
    if post.reposts + step < 0:
        step = 0

    def forward() -> None:
        post.is_reposted = not was_reposted
        post.reposts += step

    def inverse() -> None:
        post.is_reposted = was_reposted
        post.reposts = max(0, post.reposts - step)

    return StateDelta(forward, inverse)


class SocialActions:
    def __init__(
        self,
        api: ApiClient,
        store: SessionStore,
        coordinator: MutationCoordinator,
    ) -> None:
        self.api = api
        self.store = store
        self.coordinator = coordinator

    def toggle_follow(
        self,
        target_id: str,
        currently_following: bool,
        on_confirmed: Callable[[bool], None] | None = None,
    ) -> asyncio.Task[bool] | None:
        if target_id == self.store.viewer_id:
            return None

        new_state = not currently_following
        previous_hint = self.store.follow_hint(target_id)
        viewer_id = self.store.viewer_id

        def forward() -> None:
            self.store.set_follow_hint(target_id, new_state)

        def inverse() -> None:
            # The hint belongs to the session that dispatched the toggle
            if self.store.viewer_id != viewer_id:
                return
            if previous_hint is None:
                self.store.clear_follow_hint(target_id)
            else:
                self.store.set_follow_hint(target_id, previous_hint)

        def reconcile(_: Any) -> None:
            if on_confirmed is not None:
                on_confirmed(new_state)

        op = Operation.FOLLOW if new_state else Operation.UNFOLLOW
        return self.coordinator.dispatch(
            Mutation(
                operation="follow",
                target_id=target_id,
                request=lambda: self.api.request(EntityKind.FOLLOW, op, ids=(target_id,)),
                delta=StateDelta(forward, inverse),
                reconcile=reconcile,
                broadcast=FollowChanged(user_id=target_id, is_following=new_state),
                compensate=FollowChanged(user_id=target_id, is_following=currently_following),
            )
        )

    def toggle_like(
        self,
        post: Post,
        extra: StateDelta | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> asyncio.Task[bool] | None:
        delta = like_delta(post)
        if extra is not None:
            delta = delta.then(extra)
        return self.coordinator.dispatch(
            Mutation(
                operation="like",
                target_id=post.id,
                request=lambda: self.api.request(
                    EntityKind.POST, Operation.REACT, ids=(post.id,), body={"reactionType": "like"}
                ),
                delta=delta.with_effect(on_change),
            )
        )

    def toggle_repost(
        self,
        post: Post,
        extra: StateDelta | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> asyncio.Task[bool] | None:
        target_id = post.repost_target_id
        op = Operation.UNDO_REPOST if post.is_reposted else Operation.REPOST
        body = None if op is Operation.UNDO_REPOST else {"content": ""}
        delta = repost_delta(post)
        if extra is not None:
            delta = delta.then(extra)
        return self.coordinator.dispatch(
            Mutation(
                operation="repost",
                target_id=target_id,
                request=lambda: self.api.request(EntityKind.POST, op, ids=(target_id,), body=body),
                delta=delta.with_effect(on_change),
            )
        )

    def repost_with_text(
        self,
        post: Post,
        text: str,
        extra: StateDelta | None = None,
        on_change: Callable[[], None] | None = None,
        on_confirmed: Callable[[Any], None] | None = None,
    ) -> asyncio.Task[bool] | None:
        """Share ``post`` with a caption; a repost of a repost points at the original."""

        target_id = post.repost_target_id
        delta = repost_delta(post) if not post.is_reposted else StateDelta.noop()
        if extra is not None:
            delta = delta.then(extra)
        return self.coordinator.dispatch(
            Mutation(
                operation="share",
                target_id=target_id,
                request=lambda: self.api.request(
                    EntityKind.POST, Operation.REPOST, ids=(target_id,), body={"content": text.strip()}
                ),
                delta=delta.with_effect(on_change),
                reconcile=on_confirmed,
                policy=FailurePolicy.HARD,
                message="Could not share this post.",
            )
        )

    def set_job_status(
        self,
        post: Post,
        status: JobStatus | str,
        on_change: Callable[[], None] | None = None,
    ) -> asyncio.Task[bool] | None:
        new_status = JobStatus(status)
        previous = post.job_status
        if new_status == previous:
            return None

        def forward() -> None:
            post.job_status = new_status

        def inverse() -> None:
            post.job_status = previous

        return self.coordinator.dispatch(
            Mutation(
                operation="job_status",
                target_id=post.id,
                request=lambda: self.api.request(
                    EntityKind.POST, Operation.SET_JOB_STATUS, ids=(post.id,), body={"status": new_status.value}
                ),
                delta=StateDelta(forward, inverse).with_effect(on_change),
                broadcast=PostStatusChanged(post_id=post.id, job_status=new_status),
                compensate=PostStatusChanged(post_id=post.id, job_status=previous),
            )
        )

    async def refresh_follow_status(self, target_id: str) -> bool | None:
        """Read the authoritative follow status and overwrite the local hint."""

        if not self.store.credential or target_id == self.store.viewer_id:
            return None
        try:
            is_following = await self.api.follow_status(target_id)
        except FeedSyncError as exc:
            logger.warning("Follow status for %s unavailable: %s", target_id, exc)
            return None
        self.store.set_follow_hint(target_id, is_following)
        return is_following


__all__ = ["SocialActions", "like_delta", "repost_delta"]
