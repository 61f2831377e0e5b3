"""Schemas for the two-level comment thread attached to a post."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from ..constants import TEMP_ID_PREFIX
from .users import UserSummary


class Reply(BaseModel):
    """A leaf of the thread. Replies never own replies of their own."""

    id: str
    text: str
    user: UserSummary
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    likes: int = 0
    is_liked: bool = False
    pending: bool = False

    @property
    def is_provisional(self) -> bool:
        return self.id.startswith(TEMP_ID_PREFIX)

    @classmethod
    def from_api(cls, raw: dict[str, Any], viewer_id: str | None = None) -> Reply:
        return cls(**_common_fields(raw, viewer_id))


class Comment(Reply):
    """A top-level comment owning an ordered list of replies."""

    replies: list[Reply] = Field(default_factory=list)
    replies_count: int = 0

    @classmethod
    def from_api(cls, raw: dict[str, Any], viewer_id: str | None = None) -> Comment:
        raw_replies = raw.get("replies")
        replies = [Reply.from_api(r, viewer_id) for r in raw_replies] if isinstance(raw_replies, list) else []
        if isinstance(raw_replies, list):
            replies_count = len(raw_replies)
        else:
            replies_count = int(raw.get("repliesCount") or 0)
        return cls(**_common_fields(raw, viewer_id), replies=replies, replies_count=replies_count)


def _common_fields(raw: dict[str, Any], viewer_id: str | None) -> dict[str, Any]:
    likes_list = raw.get("likes") if isinstance(raw.get("likes"), list) else []
    is_liked = False
    if viewer_id is not None:
        for like in likes_list:
            if isinstance(like, dict):
                user = like.get("user")
                liker = user.get("_id") if isinstance(user, dict) else (user or like.get("_id"))
            else:
                liker = like
            if str(liker) == str(viewer_id):
                is_liked = True
                break
    fields: dict[str, Any] = {
        "id": str(raw.get("_id") or raw.get("id")),
        "text": raw.get("text") or "",
        "user": UserSummary.model_validate(raw.get("user") or {"id": "unknown"}),
        "likes": len(likes_list) if likes_list else int(raw.get("likesCount") or 0),
        "is_liked": is_liked,
    }
    if raw.get("createdAt"):
        fields["created_at"] = raw["createdAt"]
    return fields


__all__ = ["Reply", "Comment"]
