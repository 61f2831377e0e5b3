from __future__ import annotations

import asyncio
import logging
from contextlib import ExitStack
from typing import Any, Coroutine

from ..context import ClientContext
from ..schemas.events import EventKind
from ..services.event_bus import Handler

logger = logging.getLogger(__name__)


class MountedView:
    """Bus subscriptions and cancellable fetches scoped to a mount.

    Subclasses list their handlers in :meth:`subscriptions`. Unmounting
    releases every subscription and cancels every fetch still in flight;
    mutations already dispatched keep running.
    """

    def __init__(self, ctx: ClientContext) -> None:
        self.ctx = ctx
        self._stack: ExitStack | None = None
        self._fetches: dict[str, asyncio.Task[Any]] = {}

    def subscriptions(self) -> list[tuple[EventKind, Handler]]:
        return []

    @property
    def mounted(self) -> bool:
        return self._stack is not None

    def mount(self) -> None:
        if self._stack is not None:
            return
        stack = ExitStack()
        try:
            for kind, handler in self.subscriptions():
                stack.enter_context(self.ctx.bus.subscription(kind, handler))
        except BaseException:
            stack.close()
            raise
        self._stack = stack

    def unmount(self) -> None:
        if self._stack is None:
            return
        try:
            for slot in list(self._fetches):
                self._cancel_fetch(slot)
            self.on_unmount()
        finally:
            stack, self._stack = self._stack, None
            stack.close()

    def on_unmount(self) -> None:
        """Hook for saving view state before subscriptions are released."""

    def __enter__(self):
        self.mount()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unmount()

    def _start_fetch(self, slot: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        self._cancel_fetch(slot)
        task = asyncio.create_task(coro)
        self._fetches[slot] = task
        task.add_done_callback(lambda done: self._forget_fetch(slot, done))
        return task

    def _cancel_fetch(self, slot: str) -> None:
        task = self._fetches.pop(slot, None)
        if task is not None and not task.done():
            logger.debug("Cancelling superseded %s fetch", slot)
            task.cancel()

    def _forget_fetch(self, slot: str, task: asyncio.Task[Any]) -> None:
        if self._fetches.get(slot) is task:
            del self._fetches[slot]

    def is_fetching(self, slot: str) -> bool:
        task = self._fetches.get(slot)
        return task is not None and not task.done()


__all__ = ["MountedView"]
