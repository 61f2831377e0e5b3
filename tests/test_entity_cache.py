from __future__ import annotations

import pytest

from feedsync.schemas.posts import Post
from feedsync.services.entity_cache import EntityCache, PostDetailSnapshot, ProfileSnapshot, ViewKind


def _post(post_id: str) -> Post:
    return Post(id=post_id, user={"id": "a1"})


def test_get_returns_unstored_default_of_the_right_type() -> None:
    cache = EntityCache()

    assert isinstance(cache.get(ViewKind.PROFILE, "u1"), ProfileSnapshot)
    assert isinstance(cache.get(ViewKind.POST_DETAIL, "p1"), PostDetailSnapshot)
    assert len(cache) == 0
    assert not cache.contains(ViewKind.PROFILE, "u1")


def test_put_merges_shallowly_and_keeps_absent_fields() -> None:
    cache = EntityCache()
    cache.put(ViewKind.PROFILE, "u1", is_following=True, scroll_offset=120.0)
    merged = cache.put(ViewKind.PROFILE, "u1", {"active_tab": "videos"})

    assert merged.is_following is True
    assert merged.scroll_offset == 120.0
    assert merged.active_tab == "videos"
    assert cache.contains(ViewKind.PROFILE, "u1")


def test_put_rejects_unknown_fields() -> None:
    cache = EntityCache()
    with pytest.raises(KeyError):
        cache.put(ViewKind.POST_DETAIL, "p1", followers=3)


def test_tombstones_only_grow() -> None:
    cache = EntityCache()
    cache.tombstone(ViewKind.PROFILE, "u1", "p1")
    cache.put(ViewKind.PROFILE, "u1", tombstones={"p2"})
    cache.put(ViewKind.PROFILE, "u1", tombstones=set())

    snapshot = cache.get(ViewKind.PROFILE, "u1")
    assert snapshot.tombstones == frozenset({"p1", "p2"})
    assert cache.is_tombstoned(ViewKind.PROFILE, "u1", "p1")
    assert not cache.is_tombstoned(ViewKind.PROFILE, "u2", "p1")


def test_filter_tombstoned_drops_dead_items() -> None:
    cache = EntityCache()
    cache.tombstone(ViewKind.PROFILE, "u1", "p2")

    kept = cache.filter_tombstoned(ViewKind.PROFILE, "u1", [_post("p1"), _post("p2"), _post("p3")])

    assert [post.id for post in kept] == ["p1", "p3"]


def test_clear_all_drops_every_snapshot() -> None:
    cache = EntityCache()
    cache.put(ViewKind.PROFILE, "u1", is_following=True)
    cache.put(ViewKind.POST_DETAIL, "p1", likes=4)

    cache.clear_all()

    assert len(cache) == 0
    assert cache.get(ViewKind.PROFILE, "u1").is_following is False


def test_typed_accessors_return_the_matching_snapshot() -> None:
    cache = EntityCache()
    cache.put(ViewKind.POST_DETAIL, "p1", likes=4)
    cache.tombstone(ViewKind.POST_DETAIL, "p1", "c9")

    assert isinstance(cache.profile("u1"), ProfileSnapshot)
    assert cache.post_detail("p1").likes == 4
    assert cache.tombstones(ViewKind.POST_DETAIL, "p1") == frozenset({"c9"})
