"""Delivery semantics of the in-process event bus."""
from __future__ import annotations

import logging

import pytest

from feedsync.schemas.events import EventKind, FollowChanged, ViewerOverlayToggled
from feedsync.services.event_bus import EventBus


def test_publish_delivers_in_subscription_order() -> None:
    bus = EventBus()
    seen: list[str] = []
    bus.subscribe(EventKind.FOLLOW_CHANGE, lambda event: seen.append("first"))
    bus.subscribe(EventKind.FOLLOW_CHANGE, lambda event: seen.append("second"))
    bus.subscribe(EventKind.VIEWER_OVERLAY_TOGGLE, lambda event: seen.append("other-kind"))

    delivered = bus.publish(FollowChanged(user_id="u1", is_following=True))

    assert delivered == 2
    assert seen == ["first", "second"]


def test_publish_without_subscribers_is_a_noop() -> None:
    bus = EventBus()
    assert bus.publish(ViewerOverlayToggled(is_open=True)) == 0


def test_subscriber_added_during_publish_does_not_see_it() -> None:
    bus = EventBus()
    late: list[bool] = []

    def subscribe_another(event) -> None:
        bus.subscribe(EventKind.FOLLOW_CHANGE, lambda e: late.append(e.is_following))

    bus.subscribe(EventKind.FOLLOW_CHANGE, subscribe_another)
    bus.publish(FollowChanged(user_id="u1", is_following=True))
    assert late == []

    bus.publish(FollowChanged(user_id="u1", is_following=False))
    assert late == [False]


def test_handler_unsubscribed_mid_delivery_is_skipped() -> None:
    bus = EventBus()
    seen: list[str] = []
    second = None

    def drop_second(event) -> None:
        seen.append("first")
        bus.unsubscribe(second)

    bus.subscribe(EventKind.FOLLOW_CHANGE, drop_second)
    second = bus.subscribe(EventKind.FOLLOW_CHANGE, lambda event: seen.append("second"))

    assert bus.publish(FollowChanged(user_id="u1", is_following=True)) == 1
    assert seen == ["first"]


def test_failing_handler_does_not_stop_delivery(caplog: pytest.LogCaptureFixture) -> None:
    bus = EventBus()
    seen: list[bool] = []

    def broken(event) -> None:
        raise RuntimeError("boom")

    bus.subscribe(EventKind.FOLLOW_CHANGE, broken)
    bus.subscribe(EventKind.FOLLOW_CHANGE, lambda event: seen.append(event.is_following))

    with caplog.at_level(logging.ERROR, logger="feedsync.services.event_bus"):
        bus.publish(FollowChanged(user_id="u1", is_following=True))

    assert seen == [True]
    assert "follow-change" in caplog.text


def test_unsubscribe_is_idempotent() -> None:
    bus = EventBus()
    sub = bus.subscribe(EventKind.FOLLOW_CHANGE, lambda event: None)
    bus.unsubscribe(sub)
    bus.unsubscribe(sub)
    assert bus.subscriber_count(EventKind.FOLLOW_CHANGE) == 0


def test_scoped_subscription_is_released_on_error() -> None:
    bus = EventBus()
    with pytest.raises(ValueError):
        with bus.subscription(EventKind.POST_STATUS_CHANGE, lambda event: None):
            assert bus.subscriber_count(EventKind.POST_STATUS_CHANGE) == 1
            raise ValueError("render failed")
    assert bus.subscriber_count() == 0


def test_every_subscriber_sees_the_same_follow_value() -> None:
    bus = EventBus()
    states: list[dict[str, bool]] = [{}, {}, {}]
    for state in states:
        bus.subscribe(EventKind.FOLLOW_CHANGE, lambda event, s=state: s.__setitem__(event.user_id, event.is_following))

    bus.publish(FollowChanged(user_id="target", is_following=True))

    assert all(state == {"target": True} for state in states)
