"""Schemas for profile headers and the free-form sections users add to them."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..constants import DEFAULT_USER_NAME

EDITABLE_PROFILE_FIELDS = frozenset({"name", "bio", "phone", "website"})


class ProfileSection(BaseModel):
    id: str
    title: str
    content: str
    pending: bool = False


class Profile(BaseModel):
    id: str = ""
    name: str = ""
    username: str = ""
    bio: str = ""
    phone: str = ""
    website: str = ""
    followers: int = 0
    following: int = 0
    posts_count: int = 0
    total_likes: int = 0
    avatar: str | None = None
    cover: str | None = None
    sections: list[ProfileSection] = Field(default_factory=list)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Profile:
        """Map a user payload whose keys vary between backend versions."""

        def pick(*keys: str) -> Any:
            for key in keys:
                value = raw.get(key)
                if value not in (None, ""):
                    return value
            return None

        username = pick("username", "email") or "user"
        if isinstance(username, str):
            if "@" in username and not username.startswith("@"):
                username = username.split("@")[0]
            if not username.startswith("@"):
                username = f"@{username}"

        posts_count = _count(pick("postsCount", "posts_count", "postCount"))
        if posts_count == 0 and isinstance(raw.get("posts"), list):
            posts_count = len(raw["posts"])

        sections = []
        for entry in raw.get("sections") or []:
            if isinstance(entry, dict):
                sections.append(
                    ProfileSection(
                        id=str(entry.get("_id") or entry.get("id")),
                        title=entry.get("title") or "",
                        content=entry.get("content") or "",
                    )
                )

        return cls(
            id=str(raw.get("_id") or raw.get("id") or ""),
            name=pick("name", "fullname", "userName", "username", "firstName") or DEFAULT_USER_NAME,
            username=username,
            bio=pick("bio", "about", "description") or "",
            phone=pick("phone", "phoneNumber", "mobile") or "",
            website=pick("website", "url", "site", "link") or "",
            followers=_count(pick("followers", "followersCount")),
            following=_count(pick("following", "followingCount")),
            posts_count=posts_count,
            total_likes=_count(pick("totalLikes", "likesCount", "likes")),
            avatar=_clean_url(pick("avatar", "profilePicture", "profileImage", "image", "photo")),
            cover=_clean_url(pick("cover", "coverImage", "backgroundImage", "banner", "headerImage")),
            sections=sections,
        )


def _count(value: Any) -> int:
    if isinstance(value, list):
        return len(value)
    if isinstance(value, int):
        return max(0, value)
    return 0


def _clean_url(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    if "undefined" in value or "null" in value:
        return None
    return value


__all__ = ["EDITABLE_PROFILE_FIELDS", "Profile", "ProfileSection"]
