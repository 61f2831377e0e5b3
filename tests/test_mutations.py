"""Coordinator policies: guard, busy flags, rollback, notices and the sequence guard."""
from __future__ import annotations

import asyncio

from feedsync.errors import NetworkFailure
from feedsync.schemas.events import EventKind, FollowChanged
from feedsync.services.event_bus import EventBus
from feedsync.services.mutations import FailureNotice, FailurePolicy, Mutation, MutationCoordinator, StateDelta


class Counter:
    def __init__(self) -> None:
        self.value = 0

    def delta(self, step: int) -> StateDelta:
        def forward() -> None:
            self.value += step

        def inverse() -> None:
            self.value -= step

        return StateDelta(forward, inverse)


def _request(result=None, error: Exception | None = None, gate: asyncio.Event | None = None):
    async def call():
        if gate is not None:
            await gate.wait()
        await asyncio.sleep(0)
        if error is not None:
            raise error
        return result

    return call


def test_missing_credential_touches_nothing() -> None:
    async def scenario() -> None:
        bus = EventBus()
        seen: list[object] = []
        bus.subscribe(EventKind.FOLLOW_CHANGE, seen.append)
        coordinator = MutationCoordinator(bus, lambda: None)
        counter = Counter()

        task = coordinator.dispatch(
            Mutation(
                "follow",
                "u1",
                request=_request(),
                delta=counter.delta(1),
                broadcast=FollowChanged(user_id="u1", is_following=True),
            )
        )

        assert task is None
        assert counter.value == 0
        assert seen == []

    asyncio.run(scenario())


def test_soft_failure_applies_the_dispatched_inverse() -> None:
    async def scenario() -> None:
        bus = EventBus()
        seen: list[bool] = []
        bus.subscribe(EventKind.FOLLOW_CHANGE, lambda event: seen.append(event.is_following))
        notices: list[FailureNotice] = []
        coordinator = MutationCoordinator(bus, lambda: "tok", notifier=notices.append)
        counter = Counter()

        task = coordinator.dispatch(
            Mutation(
                "follow",
                "u1",
                request=_request(error=NetworkFailure("down")),
                delta=counter.delta(1),
                broadcast=FollowChanged(user_id="u1", is_following=True),
                compensate=FollowChanged(user_id="u1", is_following=False),
            )
        )
        assert counter.value == 1
        # An unrelated change lands while the request is in flight
        counter.value += 10

        assert await task is False
        assert counter.value == 10
        assert seen == [True, False]
        assert notices == []

    asyncio.run(scenario())


def test_hard_failure_notifies_and_clears_busy_flag() -> None:
    async def scenario() -> None:
        notices: list[FailureNotice] = []
        coordinator = MutationCoordinator(EventBus(), lambda: "tok", notifier=notices.append)
        gate = asyncio.Event()

        first = coordinator.dispatch(
            Mutation(
                "delete_post",
                "p1",
                request=_request(error=NetworkFailure("nope"), gate=gate),
                policy=FailurePolicy.HARD,
                message="could not delete",
            )
        )
        assert coordinator.is_busy("delete_post", "p1")
        duplicate = coordinator.dispatch(
            Mutation("delete_post", "p1", request=_request(), policy=FailurePolicy.HARD)
        )
        assert duplicate is None

        gate.set()
        assert await first is False
        assert not coordinator.is_busy("delete_post", "p1")
        assert [notice.message for notice in notices] == ["could not delete"]
        assert isinstance(notices[0].error, NetworkFailure)

    asyncio.run(scenario())


def test_success_runs_reconcile_with_the_payload() -> None:
    async def scenario() -> None:
        coordinator = MutationCoordinator(EventBus(), lambda: "tok")
        received: list[object] = []

        task = coordinator.dispatch(
            Mutation("send_comment", "p1", request=_request({"comment": {"_id": "c9"}}), reconcile=received.append)
        )
        await coordinator.drain()

        assert task is not None and task.result() is True
        assert received == [{"comment": {"_id": "c9"}}]
        assert coordinator.in_flight == 0

    asyncio.run(scenario())


def test_last_response_wins_without_sequence_guard() -> None:
    async def scenario() -> None:
        coordinator = MutationCoordinator(EventBus(), lambda: "tok")
        counter = Counter()
        slow_gate = asyncio.Event()

        slow = coordinator.dispatch(
            Mutation("like", "p1", request=_request(error=NetworkFailure("late"), gate=slow_gate), delta=counter.delta(1))
        )
        fast = coordinator.dispatch(Mutation("like", "p1", request=_request(), delta=counter.delta(-1)))
        await fast
        slow_gate.set()
        await slow

        # The late failure still rolls back its own +1
        assert counter.value == -1

    asyncio.run(scenario())


def test_sequence_guard_discards_stale_responses() -> None:
    async def scenario() -> None:
        coordinator = MutationCoordinator(EventBus(), lambda: "tok", sequence_guard=True)
        counter = Counter()
        slow_gate = asyncio.Event()

        slow = coordinator.dispatch(
            Mutation("like", "p1", request=_request(error=NetworkFailure("late"), gate=slow_gate), delta=counter.delta(1))
        )
        fast = coordinator.dispatch(Mutation("like", "p1", request=_request(), delta=counter.delta(-1)))
        await fast
        slow_gate.set()

        assert await slow is False
        assert counter.value == 0

    asyncio.run(scenario())


def test_then_undoes_in_reverse_order() -> None:
    log: list[str] = []
    first = StateDelta(lambda: log.append("a+"), lambda: log.append("a-"))
    second = StateDelta(lambda: log.append("b+"), lambda: log.append("b-"))

    combined = first.then(second).with_effect(lambda: log.append("sync"))
    combined.forward()
    combined.inverse()

    assert log == ["a+", "b+", "sync", "b-", "a-", "sync"]
