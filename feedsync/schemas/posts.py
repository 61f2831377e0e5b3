"""Schemas for posts, short videos and repost wrappers."""
from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from ..constants import MAX_REPOST_DEPTH
from .users import UserSummary

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    OPEN = "open"
    NEGOTIATING = "negotiating"
    HIRED = "hired"


class MediaItem(BaseModel):
    url: str
    type: Literal["image", "video"] = "image"
    thumbnail: str | None = None


class Post(BaseModel):
    """A post as held by a view. Counters and viewer flags are mutated in place by toggles."""

    id: str
    user: UserSummary
    content: str = ""
    created_at: datetime | None = None
    media: list[MediaItem] = Field(default_factory=list)
    likes: int = 0
    comments: int = 0
    reposts: int = 0
    is_liked: bool = False
    is_reposted: bool = False
    is_short: bool = False
    job_status: JobStatus = JobStatus.OPEN
    original_post: Post | None = None

    @model_validator(mode="after")
    def _limit_repost_depth(self) -> Post:
        if self.repost_depth > MAX_REPOST_DEPTH:
            raise ValueError(f"repost nesting deeper than {MAX_REPOST_DEPTH} is not supported")
        return self

    @property
    def repost_depth(self) -> int:
        if self.original_post is None:
            return 0
        return 1 + self.original_post.repost_depth

    @property
    def repost_target_id(self) -> str:
        """Id a new repost should point at: the original for a wrapper, otherwise this post."""

        if self.original_post is not None:
            return self.original_post.id
        return self.id

    @classmethod
    def from_api(cls, raw: dict[str, Any], viewer_id: str | None = None, *, depth: int = 0) -> Post:
        """Map a backend post payload, counting reactions and resolving the viewer's flags."""

        reactions = raw.get("reactions")
        if isinstance(reactions, list):
            likes = sum(1 for r in reactions if not _reaction_type(r) or _reaction_type(r) == "like")
            is_liked = viewer_id is not None and any(_reaction_user(r) == str(viewer_id) for r in reactions)
        else:
            likes = _count(raw.get("likes"))
            is_liked = bool(raw.get("isLiked", False))

        comments = raw.get("comments")
        if isinstance(comments, (int, list)):
            comment_count = _count(comments)
        else:
            comment_count = _count(raw.get("commentsCount"))

        if raw.get("repostsCount") is not None:
            repost_count = _count(raw.get("repostsCount"))
        else:
            repost_count = _count(raw.get("shares"))

        original: Post | None = None
        nested = raw.get("originalPost")
        if isinstance(nested, dict):
            if depth < MAX_REPOST_DEPTH:
                original = cls.from_api(nested, viewer_id, depth=depth + 1)
            else:
                logger.debug("Dropping repost nested beyond depth %d for post %s", MAX_REPOST_DEPTH, raw.get("_id"))

        media = [
            MediaItem(url=m["url"], type=m.get("type") or "image", thumbnail=m.get("thumbnail"))
            for m in raw.get("media") or []
            if isinstance(m, dict) and m.get("url")
        ]

        return cls(
            id=str(raw.get("_id") or raw.get("id")),
            user=UserSummary.model_validate(raw.get("user") or {"id": "unknown"}),
            content=raw.get("text") or raw.get("content") or "",
            created_at=raw.get("createdAt"),
            media=media,
            likes=likes,
            comments=comment_count,
            reposts=repost_count,
            is_liked=is_liked,
            is_reposted=bool(raw.get("isReposted", False)),
            is_short=bool(raw.get("isShort", False)),
            job_status=raw.get("jobStatus") or JobStatus.OPEN,
            original_post=original,
        )


def _count(value: Any) -> int:
    if isinstance(value, list):
        return len(value)
    if isinstance(value, int):
        return max(0, value)
    return 0


def _reaction_type(reaction: Any) -> str | None:
    if isinstance(reaction, dict):
        return reaction.get("type")
    return None


def _reaction_user(reaction: Any) -> str:
    if isinstance(reaction, dict):
        user = reaction.get("user")
        if isinstance(user, dict):
            return str(user.get("_id") or user.get("id"))
        return str(user)
    return str(reaction)


Post.model_rebuild()


__all__ = ["JobStatus", "MediaItem", "Post"]
