from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Mapping, Sequence

import httpx

from ..errors import AuthFailure, NetworkFailure, NotFound

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class EntityKind(str, Enum):
    USER = "user"
    POST = "post"
    COMMENT = "comment"
    FOLLOW = "follow"


class Operation(str, Enum):
    GET = "get"
    LIST_BY_USER = "list_by_user"
    LIST_SHORTS = "list_shorts"
    UPDATE_ME = "update_me"
    CREATE_SECTION = "create_section"
    UPDATE_SECTION = "update_section"
    DELETE_SECTION = "delete_section"
    DELETE = "delete"
    REACT = "react"
    REPOST = "repost"
    UNDO_REPOST = "undo_repost"
    SET_JOB_STATUS = "set_job_status"
    HIDE = "hide"
    CREATE = "create"
    REPLY = "reply"
    LIKE = "like"
    LIKE_REPLY = "like_reply"
    DELETE_REPLY = "delete_reply"
    FOLLOW = "follow"
    UNFOLLOW = "unfollow"
    STATUS = "status"


# (method, path template); positional placeholders are filled from ``ids``
ROUTES: dict[tuple[EntityKind, Operation], tuple[str, str]] = {
    (EntityKind.USER, Operation.GET): ("GET", "/users/{0}"),
    (EntityKind.USER, Operation.UPDATE_ME): ("PUT", "/users/me"),
    (EntityKind.USER, Operation.CREATE_SECTION): ("POST", "/users/sections"),
    (EntityKind.USER, Operation.UPDATE_SECTION): ("PUT", "/users/sections/{0}"),
    (EntityKind.USER, Operation.DELETE_SECTION): ("DELETE", "/users/sections/{0}"),
    (EntityKind.POST, Operation.GET): ("GET", "/posts/{0}"),
    (EntityKind.POST, Operation.LIST_BY_USER): ("GET", "/posts/user/{0}"),
    (EntityKind.POST, Operation.LIST_SHORTS): ("GET", "/posts/shorts/{0}"),
    (EntityKind.POST, Operation.DELETE): ("DELETE", "/posts/{0}"),
    (EntityKind.POST, Operation.REACT): ("POST", "/posts/{0}/react"),
    (EntityKind.POST, Operation.REPOST): ("POST", "/posts/{0}/repost"),
    (EntityKind.POST, Operation.UNDO_REPOST): ("DELETE", "/posts/{0}/repost"),
    (EntityKind.POST, Operation.SET_JOB_STATUS): ("PUT", "/posts/{0}/job-status"),
    (EntityKind.POST, Operation.HIDE): ("POST", "/posts/{0}/hide"),
    (EntityKind.COMMENT, Operation.CREATE): ("POST", "/posts/{0}/comments"),
    (EntityKind.COMMENT, Operation.REPLY): ("POST", "/posts/{0}/comments/{1}/replies"),
    (EntityKind.COMMENT, Operation.LIKE): ("POST", "/posts/{0}/comments/{1}/like"),
    (EntityKind.COMMENT, Operation.LIKE_REPLY): ("POST", "/posts/{0}/comments/{1}/replies/{2}/like"),
    (EntityKind.COMMENT, Operation.DELETE): ("DELETE", "/posts/{0}/comments/{1}"),
    (EntityKind.COMMENT, Operation.DELETE_REPLY): ("DELETE", "/posts/{0}/comments/{1}/replies/{2}"),
    (EntityKind.FOLLOW, Operation.FOLLOW): ("POST", "/follow/{0}"),
    (EntityKind.FOLLOW, Operation.UNFOLLOW): ("DELETE", "/follow/{0}"),
    (EntityKind.FOLLOW, Operation.STATUS): ("GET", "/follow/{0}/status"),
}


class ApiClient:
    """Thin async wrapper over the REST backend.

    Every call carries the viewer's bearer credential. Failures surface as
    ``FeedSyncError`` subclasses; nothing is retried.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        credential_getter: Callable[[], str | None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._credential_getter = credential_getter or (lambda: None)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=f"{self.base_url}{API_PREFIX}",
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def request(
        self,
        kind: EntityKind,
        op: Operation,
        *,
        ids: Sequence[str] = (),
        body: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        route = ROUTES.get((kind, op))
        if route is None:
            raise ValueError(f"No route for {kind.value}/{op.value}")
        method, template = route
        path = template.format(*ids)

        token = self._credential_getter()
        if not token:
            raise AuthFailure("No credential available for request")

        headers = {"Authorization": f"Bearer {token}"}
        try:
            response = await self._get_client().request(
                method,
                path,
                json=dict(body) if body is not None else None,
                params=dict(params) if params else None,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise NetworkFailure(f"{method} {path} failed") from exc

        if response.status_code in (401, 403):
            raise AuthFailure(f"{method} {path} rejected", status_code=response.status_code)
        if response.status_code == 404:
            raise NotFound(f"{method} {path} not found", status_code=404)
        if response.is_error:
            raise NetworkFailure(
                f"{method} {path} returned {response.status_code}", status_code=response.status_code
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkFailure(f"{method} {path} returned a non-JSON body") from exc

    # Convenience wrappers used by the views

    async def get_user(self, user_id: str) -> dict[str, Any]:
        return unwrap_user(await self.request(EntityKind.USER, Operation.GET, ids=(user_id,)))

    async def get_post(self, post_id: str) -> dict[str, Any]:
        return unwrap_post(await self.request(EntityKind.POST, Operation.GET, ids=(post_id,)))

    async def list_user_posts(
        self, user_id: str, *, page: int, limit: int, videos_only: bool = False
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if videos_only:
            params["type"] = "video"
        payload = await self.request(EntityKind.POST, Operation.LIST_BY_USER, ids=(user_id,), params=params)
        return unwrap_list(payload)

    async def list_shorts(self, feed: str = "for-you") -> list[dict[str, Any]]:
        return unwrap_list(await self.request(EntityKind.POST, Operation.LIST_SHORTS, ids=(feed,)))

    async def follow_status(self, user_id: str) -> bool:
        payload = await self.request(EntityKind.FOLLOW, Operation.STATUS, ids=(user_id,))
        if isinstance(payload, dict):
            return bool(payload.get("isFollowing", False))
        return False

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None


def unwrap_post(payload: Any) -> dict[str, Any]:
    if isinstance(payload, dict):
        post = payload.get("post")
        if isinstance(post, dict):
            return post
        return payload
    return {}


def unwrap_user(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        return {}
    if isinstance(payload.get("user"), dict):
        return payload["user"]
    nested = payload.get("data")
    if isinstance(nested, dict) and isinstance(nested.get("user"), dict):
        return nested["user"]
    return payload


def unwrap_list(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict) and isinstance(payload.get("posts"), list):
        return [item for item in payload["posts"] if isinstance(item, dict)]
    return []


def unwrap_comment(payload: Any, key: str = "comment") -> dict[str, Any] | None:
    """Pull the canonical comment or reply out of a create response, if the backend sent one."""

    if not isinstance(payload, dict):
        return None
    for candidate in (payload.get(key), payload.get("data"), payload):
        if isinstance(candidate, dict) and (candidate.get("_id") or candidate.get("id")) and "text" in candidate:
            return candidate
    return None


__all__ = [
    "API_PREFIX",
    "ApiClient",
    "EntityKind",
    "Operation",
    "ROUTES",
    "unwrap_comment",
    "unwrap_list",
    "unwrap_post",
    "unwrap_user",
]
