"""Vertical short-video feed with per-category lists.

The same short can sit in several category lists at once; a toggle on one
copy is mirrored onto every other cached copy.
"""

from __future__ import annotations

import asyncio
import logging

from ..context import ClientContext
from ..errors import FeedSyncError
from ..schemas.events import BusEvent, EventKind, FollowChanged
from ..schemas.posts import Post
from ..services.event_bus import Handler
from .base import MountedView

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "for-you"


class ShortsFeed(MountedView):
    def __init__(self, ctx: ClientContext, category: str = DEFAULT_CATEGORY) -> None:
        super().__init__(ctx)
        self.active_category = category
        self.categories: dict[str, list[Post]] = {}
        self.following: dict[str, bool] = {}

    @property
    def shorts(self) -> list[Post]:
        return self.categories.get(self.active_category, [])

    def is_following(self, user_id: str) -> bool:
        return self.following.get(user_id, False)

    def subscriptions(self) -> list[tuple[EventKind, Handler]]:
        return [(EventKind.FOLLOW_CHANGE, self._on_follow_change)]

    def _on_follow_change(self, event: BusEvent) -> None:
        if not isinstance(event, FollowChanged):
            return
        self.following[event.user_id] = event.is_following

    # Fetching

    def select_category(self, category: str) -> asyncio.Task[list[Post]] | None:
        if category != self.active_category:
            self._cancel_fetch("category")
            self.active_category = category
        if category in self.categories:
            return None
        return self.load_category(category)

    def load_category(self, category: str | None = None) -> asyncio.Task[list[Post]]:
        return self._start_fetch("category", self._load_category(category or self.active_category))

    async def _load_category(self, category: str) -> list[Post]:
        try:
            raw = await self.ctx.api.list_shorts(category)
        except FeedSyncError as exc:
            logger.warning("Loading shorts for %s failed: %s", category, exc)
            return self.categories.get(category, [])
        viewer_id = self.ctx.viewer_id
        shorts = [Post.from_api(item, viewer_id) for item in raw if item.get("isShort") is True]
        for short in shorts:
            hint = self.ctx.store.follow_hint(short.user.id)
            self.following.setdefault(short.user.id, bool(hint))
        self.categories[category] = shorts
        return shorts

    # Toggles

    def _copies(self, post_id: str) -> list[Post]:
        return [short for shorts in self.categories.values() for short in shorts if short.id == post_id]

    def _find(self, post_id: str) -> Post | None:
        copies = self._copies(post_id)
        return copies[0] if copies else None

    def _mirror(self, source: Post) -> None:
        for copy in self._copies(source.id):
            if copy is not source:
                copy.is_liked = source.is_liked
                copy.likes = source.likes
                copy.is_reposted = source.is_reposted
                copy.reposts = source.reposts

    def toggle_like(self, post_id: str) -> asyncio.Task[bool] | None:
        short = self._find(post_id)
        if short is None:
            return None
        return self.ctx.social.toggle_like(short, on_change=lambda: self._mirror(short))

    def toggle_repost(self, post_id: str) -> asyncio.Task[bool] | None:
        short = self._find(post_id)
        if short is None:
            return None
        return self.ctx.social.toggle_repost(short, on_change=lambda: self._mirror(short))

    def toggle_follow(self, user_id: str) -> asyncio.Task[bool] | None:
        return self.ctx.social.toggle_follow(user_id, self.is_following(user_id))


__all__ = ["DEFAULT_CATEGORY", "ShortsFeed"]
