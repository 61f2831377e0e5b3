"""Schemas for the user snapshots embedded in posts and comments."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from ..constants import DEFAULT_USER_NAME


class UserSummary(BaseModel):
    """Immutable author reference; posts and comments point at it, never own it."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = DEFAULT_USER_NAME
    avatar: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_backend_keys(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"id": data}
        if not isinstance(data, dict):
            return data
        payload = dict(data)
        if not payload.get("id"):
            payload["id"] = str(payload.get("_id") or "unknown")
        if not payload.get("name"):
            payload["name"] = DEFAULT_USER_NAME
        if payload.get("avatar") in ("", "null", "undefined"):
            payload["avatar"] = None
        return payload


class ViewerIdentity(BaseModel):
    """The signed-in viewer as kept in the local session store."""

    user_id: str
    token: str
    name: str = DEFAULT_USER_NAME
    avatar: str | None = None

    def as_author(self) -> UserSummary:
        return UserSummary(id=self.user_id, name=self.name, avatar=self.avatar)


__all__ = ["UserSummary", "ViewerIdentity"]
