from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Iterator

import pytest

from feedsync.clients.api import ApiClient, EntityKind, Operation
from feedsync.config import Settings
from feedsync.context import ClientContext
from feedsync.schemas.users import ViewerIdentity
from feedsync.services.session_store import SessionStore

VIEWER_ID = "viewer-1"


@dataclass
class Call:
    kind: EntityKind
    op: Operation
    ids: tuple[str, ...]
    body: dict[str, Any] | None
    params: dict[str, Any] | None


class StubApi(ApiClient):
    """Records every request and answers from a per-route table."""

    def __init__(self) -> None:
        super().__init__("http://stub.invalid", credential_getter=lambda: "stub-token")
        self.calls: list[Call] = []
        self.responses: dict[tuple[EntityKind, Operation], Any] = {}
        self._gate: asyncio.Event | None = None
        self._blocked: dict[tuple[EntityKind, Operation], asyncio.Event] = {}

    def respond(self, kind: EntityKind, op: Operation, outcome: Any) -> None:
        """``outcome`` may be a payload, an exception instance, or a callable of (ids, body, params)."""

        self.responses[(kind, op)] = outcome

    def hold(self) -> None:
        self._gate = asyncio.Event()

    def release(self) -> None:
        if self._gate is not None:
            self._gate.set()
            self._gate = None

    def block(self, kind: EntityKind, op: Operation) -> asyncio.Event:
        """Keep requests on one route waiting until the returned event is set."""

        gate = asyncio.Event()
        self._blocked[(kind, op)] = gate
        return gate

    def calls_for(self, kind: EntityKind, op: Operation) -> list[Call]:
        return [call for call in self.calls if call.kind is kind and call.op is op]

    async def request(self, kind, op, *, ids=(), body=None, params=None):  # type: ignore[override]
        self.calls.append(Call(kind, op, tuple(ids), dict(body) if body else None, dict(params) if params else None))
        gate = self._gate
        if gate is not None:
            await gate.wait()
        blocked = self._blocked.get((kind, op))
        if blocked is not None:
            await blocked.wait()
        await asyncio.sleep(0)
        outcome = self.responses.get((kind, op), {})
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            outcome = outcome(tuple(ids), body, params)
            if isinstance(outcome, BaseException):
                raise outcome
        return outcome


def post_payload(post_id: str, *, author: str = "author-1", likes: int = 0, liked: bool = False, **extra: Any) -> dict[str, Any]:
    reactions = [{"user": {"_id": f"fan-{i}"}, "type": "like"} for i in range(likes - (1 if liked else 0))]
    if liked:
        reactions.append({"user": {"_id": VIEWER_ID}, "type": "like"})
    payload: dict[str, Any] = {
        "_id": post_id,
        "user": {"_id": author, "name": f"Name {author}"},
        "text": f"content of {post_id}",
        "createdAt": "2024-05-01T10:00:00Z",
        "reactions": reactions,
        "comments": [],
    }
    payload.update(extra)
    return payload


def comment_payload(comment_id: str, created_at: str, *, replies: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    return {
        "_id": comment_id,
        "text": f"text {comment_id}",
        "user": {"_id": "commenter", "name": "Commenter"},
        "createdAt": created_at,
        "likes": [],
        "replies": replies or [],
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url="http://stub.invalid",
        session_store_path=None,
        posts_page_size=10,
        videos_page_size=18,
        scroll_proximity_px=50,
        toggle_sequence_guard=False,
        log_level="DEBUG",
    )


@pytest.fixture
def stub_api() -> StubApi:
    return StubApi()


@pytest.fixture
def ctx(settings: Settings, stub_api: StubApi) -> Iterator[ClientContext]:
    context = ClientContext(settings, api=stub_api, store=SessionStore())
    context.login(ViewerIdentity(user_id=VIEWER_ID, token="tok", name="Viewer"))
    yield context
