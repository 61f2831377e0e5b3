from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from feedsync.clients.api import (
    ApiClient,
    EntityKind,
    Operation,
    unwrap_comment,
    unwrap_list,
    unwrap_post,
    unwrap_user,
)
from feedsync.errors import AuthFailure, NetworkFailure, NotFound


def _client(handler, token: str | None = "tok") -> ApiClient:
    return ApiClient("http://backend.test/", credential_getter=lambda: token, transport=httpx.MockTransport(handler))


def test_request_builds_path_and_bearer_header() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    async def scenario() -> None:
        api = _client(handler)
        payload = await api.request(
            EntityKind.COMMENT, Operation.LIKE_REPLY, ids=("p1", "c1", "r1")
        )
        await api.aclose()
        assert payload == {"ok": True}

    asyncio.run(scenario())

    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/api/v1/posts/p1/comments/c1/replies/r1/like"
    assert request.headers["Authorization"] == "Bearer tok"


def test_request_sends_json_body() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"post": {"_id": "p2"}})

    async def scenario() -> None:
        api = _client(handler)
        await api.request(EntityKind.POST, Operation.REPOST, ids=("p1",), body={"content": "hi"})
        await api.aclose()

    asyncio.run(scenario())
    assert bodies == [{"content": "hi"}]


@pytest.mark.parametrize(
    ("status", "error"),
    [(401, AuthFailure), (403, AuthFailure), (404, NotFound), (500, NetworkFailure), (422, NetworkFailure)],
)
def test_error_statuses_are_mapped(status: int, error: type[Exception]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"message": "nope"})

    async def scenario() -> None:
        api = _client(handler)
        try:
            with pytest.raises(error) as info:
                await api.request(EntityKind.POST, Operation.GET, ids=("p1",))
            assert info.value.status_code == status
        finally:
            await api.aclose()

    asyncio.run(scenario())


def test_transport_errors_become_network_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async def scenario() -> None:
        api = _client(handler)
        with pytest.raises(NetworkFailure):
            await api.request(EntityKind.FOLLOW, Operation.FOLLOW, ids=("u2",))
        await api.aclose()

    asyncio.run(scenario())


def test_missing_credential_fails_before_sending() -> None:
    sent: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return httpx.Response(200)

    async def scenario() -> None:
        api = _client(handler, token=None)
        with pytest.raises(AuthFailure):
            await api.request(EntityKind.POST, Operation.GET, ids=("p1",))

    asyncio.run(scenario())
    assert sent == []


def test_empty_and_non_json_bodies() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, text="<html>oops</html>")

    async def scenario() -> None:
        api = _client(handler)
        assert await api.request(EntityKind.POST, Operation.DELETE, ids=("p1",)) == {}
        with pytest.raises(NetworkFailure):
            await api.request(EntityKind.POST, Operation.GET, ids=("p1",))
        await api.aclose()

    asyncio.run(scenario())


def test_list_user_posts_passes_paging_params() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"posts": [{"_id": "p1"}, "junk"]})

    async def scenario() -> list[dict]:
        api = _client(handler)
        try:
            return await api.list_user_posts("u1", page=2, limit=18, videos_only=True)
        finally:
            await api.aclose()

    items = asyncio.run(scenario())

    assert items == [{"_id": "p1"}]
    params = seen[0].url.params
    assert (params["page"], params["limit"], params["type"]) == ("2", "18", "video")


def test_follow_status_reads_flag() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/follow/u2/status"
        return httpx.Response(200, json={"isFollowing": True})

    async def scenario() -> bool:
        api = _client(handler)
        try:
            return await api.follow_status("u2")
        finally:
            await api.aclose()

    assert asyncio.run(scenario()) is True


def test_unknown_route_is_a_programming_error() -> None:
    api = _client(lambda request: httpx.Response(200))
    with pytest.raises(ValueError):
        asyncio.run(api.request(EntityKind.FOLLOW, Operation.REACT))


def test_unwrap_helpers_accept_both_envelopes() -> None:
    assert unwrap_post({"post": {"_id": "p1"}}) == {"_id": "p1"}
    assert unwrap_post({"_id": "p1"}) == {"_id": "p1"}
    assert unwrap_user({"data": {"user": {"_id": "u1"}}}) == {"_id": "u1"}
    assert unwrap_user(["nope"]) == {}
    assert unwrap_list({"message": "none"}) == []
    assert unwrap_comment({"reply": {"_id": "r1", "text": "t"}}, "reply") == {"_id": "r1", "text": "t"}
    assert unwrap_comment({"message": "created"}) is None
