from __future__ import annotations

import asyncio

from ..context import ClientContext
from ..schemas.events import BusEvent, EventKind, FollowChanged
from ..schemas.users import UserSummary
from ..services.event_bus import Handler
from .base import MountedView


class SuggestionCard(MountedView):
    """Suggested-user entry with a follow button."""

    def __init__(self, ctx: ClientContext, user: UserSummary) -> None:
        super().__init__(ctx)
        self.user = user
        self.is_following = bool(ctx.store.follow_hint(user.id))

    @property
    def visible(self) -> bool:
        return self.user.id != self.ctx.viewer_id

    def subscriptions(self) -> list[tuple[EventKind, Handler]]:
        return [(EventKind.FOLLOW_CHANGE, self._on_follow_change)]

    def _on_follow_change(self, event: BusEvent) -> None:
        if not isinstance(event, FollowChanged):
            return
        if event.user_id == self.user.id:
            self.is_following = event.is_following

    def toggle_follow(self) -> asyncio.Task[bool] | None:
        if not self.visible:
            return None
        return self.ctx.social.toggle_follow(self.user.id, self.is_following)

    def refresh(self) -> asyncio.Task[bool | None]:
        return self._start_fetch("status", self._refresh())

    async def _refresh(self) -> bool | None:
        status = await self.ctx.social.refresh_follow_status(self.user.id)
        if status is not None:
            self.is_following = status
        return status


__all__ = ["SuggestionCard"]
