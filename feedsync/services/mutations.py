"""Optimistic mutation dispatch with exact-inverse rollback.

A mutation is applied to local state synchronously, broadcast when the fact
is shared across views, and then confirmed or undone by a fire-and-forget
network task. Rollback always applies the inverse captured at dispatch time,
never one recomputed from current state.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from ..errors import FeedSyncError
from ..schemas.events import BusEvent
from .event_bus import EventBus

logger = logging.getLogger(__name__)

MutationKey = tuple[str, str]


class FailurePolicy(str, Enum):
    SOFT = "soft"  # rollback and log
    HARD = "hard"  # rollback, notify, busy while in flight


def _noop() -> None:
    return None


@dataclass(frozen=True, slots=True)
class StateDelta:
    forward: Callable[[], None]
    inverse: Callable[[], None]

    @classmethod
    def noop(cls) -> StateDelta:
        return cls(_noop, _noop)

    def then(self, other: StateDelta) -> StateDelta:
        """Compose two deltas; the inverse undoes them in reverse order."""

        def forward() -> None:
            self.forward()
            other.forward()

        def inverse() -> None:
            other.inverse()
            self.inverse()

        return StateDelta(forward, inverse)

    def with_effect(self, effect: Callable[[], None] | None) -> StateDelta:
        """Run ``effect`` after the delta in both directions (e.g. re-snapshotting a view)."""

        if effect is None:
            return self

        def forward() -> None:
            self.forward()
            effect()

        def inverse() -> None:
            self.inverse()
            effect()

        return StateDelta(forward, inverse)


@dataclass(frozen=True, slots=True)
class FailureNotice:
    operation: str
    target_id: str
    message: str
    error: FeedSyncError


@dataclass(slots=True)
class Mutation:
    operation: str
    target_id: str
    request: Callable[[], Awaitable[Any]]
    delta: StateDelta = field(default_factory=StateDelta.noop)
    reconcile: Callable[[Any], None] | None = None
    broadcast: BusEvent | None = None
    compensate: BusEvent | None = None
    policy: FailurePolicy = FailurePolicy.SOFT
    message: str = "Something went wrong. Please try again."

    @property
    def key(self) -> MutationKey:
        return (self.operation, self.target_id)


class MutationCoordinator:
    def __init__(
        self,
        bus: EventBus,
        credential: Callable[[], str | None],
        *,
        notifier: Callable[[FailureNotice], None] | None = None,
        sequence_guard: bool = False,
    ) -> None:
        self.bus = bus
        self.notifier = notifier
        self.sequence_guard = sequence_guard
        self._credential = credential
        self._busy: set[MutationKey] = set()
        self._sequence: defaultdict[MutationKey, int] = defaultdict(int)
        self._tasks: set[asyncio.Task[bool]] = set()

    def is_busy(self, operation: str, target_id: str) -> bool:
        return (operation, target_id) in self._busy

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def dispatch(self, mutation: Mutation) -> asyncio.Task[bool] | None:
        """Apply ``mutation`` optimistically and schedule its request.

        Returns ``None`` without touching any state when there is no credential
        or when a hard mutation for the same key is already outstanding.
        """

        if not self._credential():
            logger.debug("Skipping %s on %s: no credential", mutation.operation, mutation.target_id)
            return None

        key = mutation.key
        if mutation.policy is FailurePolicy.HARD:
            if key in self._busy:
                logger.debug("Suppressing duplicate %s on %s", *key)
                return None
            self._busy.add(key)

        self._sequence[key] += 1
        seq = self._sequence[key]

        mutation.delta.forward()
        if mutation.broadcast is not None:
            self.bus.publish(mutation.broadcast)

        task = asyncio.create_task(self._run(mutation, seq))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, mutation: Mutation, seq: int) -> bool:
        key = mutation.key
        try:
            try:
                payload = await mutation.request()
            except FeedSyncError as exc:
                if self._is_stale(key, seq):
                    logger.debug("Discarding stale failure for %s on %s", *key)
                    return False
                self._roll_back(mutation, exc)
                return False

            if self._is_stale(key, seq):
                logger.debug("Discarding stale response for %s on %s", *key)
                return False
            if mutation.reconcile is not None:
                mutation.reconcile(payload)
            return True
        finally:
            if mutation.policy is FailurePolicy.HARD:
                self._busy.discard(key)

    def _is_stale(self, key: MutationKey, seq: int) -> bool:
        return self.sequence_guard and self._sequence[key] != seq

    def _roll_back(self, mutation: Mutation, exc: FeedSyncError) -> None:
        mutation.delta.inverse()
        if mutation.compensate is not None:
            self.bus.publish(mutation.compensate)

        if mutation.policy is FailurePolicy.SOFT:
            logger.warning("%s on %s failed and was rolled back: %s", mutation.operation, mutation.target_id, exc)
            return

        logger.error("%s on %s failed: %s", mutation.operation, mutation.target_id, exc)
        notice = FailureNotice(
            operation=mutation.operation,
            target_id=mutation.target_id,
            message=mutation.message,
            error=exc,
        )
        if self.notifier is not None:
            self.notifier(notice)

    async def drain(self) -> None:
        """Wait for every in-flight mutation, including ones scheduled while waiting."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def reset(self) -> None:
        self._busy.clear()
        self._sequence.clear()


__all__ = [
    "FailureNotice",
    "FailurePolicy",
    "Mutation",
    "MutationCoordinator",
    "MutationKey",
    "StateDelta",
]
