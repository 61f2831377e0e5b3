"""In-process publish/subscribe channel shared by every mounted view.

Delivery is synchronous and in subscription order. Nothing is persisted or
queued: a subscriber only sees events published while it is registered.
"""

from __future__ import annotations

import itertools
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator

from ..schemas.events import BusEvent, EventKind

logger = logging.getLogger(__name__)

Handler = Callable[[BusEvent], None]


@dataclass(frozen=True, slots=True)
class Subscription:
    id: int
    kind: EventKind
    handler: Handler


class EventBus:
    def __init__(self) -> None:
        self._subscribers: dict[EventKind, dict[int, Subscription]] = {kind: {} for kind in EventKind}
        self._ids = itertools.count(1)

    def subscribe(self, kind: EventKind, handler: Handler) -> Subscription:
        subscription = Subscription(id=next(self._ids), kind=EventKind(kind), handler=handler)
        self._subscribers[subscription.kind][subscription.id] = subscription
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscribers[subscription.kind].pop(subscription.id, None)

    @contextmanager
    def subscription(self, kind: EventKind, handler: Handler) -> Iterator[Subscription]:
        """Subscribe for the duration of a ``with`` block."""

        sub = self.subscribe(kind, handler)
        try:
            yield sub
        finally:
            self.unsubscribe(sub)

    def publish(self, event: BusEvent) -> int:
        """Deliver ``event`` to every current subscriber of its kind and return how many were reached."""

        active = self._subscribers[event.kind]
        if not active:
            return 0
        delivered = 0
        for sub_id, sub in list(active.items()):
            # A handler may unsubscribe a later one; skip it once released
            if sub_id not in active:
                continue
            try:
                sub.handler(event)
            except Exception:
                logger.exception("Handler for %s raised; continuing delivery", event.kind.value)
            delivered += 1
        return delivered

    def subscriber_count(self, kind: EventKind | None = None) -> int:
        if kind is not None:
            return len(self._subscribers[EventKind(kind)])
        return sum(len(subs) for subs in self._subscribers.values())

    def clear(self) -> None:
        for subs in self._subscribers.values():
            subs.clear()


__all__ = ["EventBus", "Handler", "Subscription"]
