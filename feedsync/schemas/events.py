"""Typed payloads carried by the in-process event bus."""
from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

from .posts import JobStatus


class EventKind(str, Enum):
    FOLLOW_CHANGE = "follow-change"
    POST_STATUS_CHANGE = "post-status-change"
    VIEWER_OVERLAY_TOGGLE = "viewer-overlay-toggle"


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)


class FollowChanged(_Event):
    kind: Literal[EventKind.FOLLOW_CHANGE] = EventKind.FOLLOW_CHANGE
    user_id: str
    is_following: bool


class PostStatusChanged(_Event):
    kind: Literal[EventKind.POST_STATUS_CHANGE] = EventKind.POST_STATUS_CHANGE
    post_id: str
    job_status: JobStatus


class ViewerOverlayToggled(_Event):
    kind: Literal[EventKind.VIEWER_OVERLAY_TOGGLE] = EventKind.VIEWER_OVERLAY_TOGGLE
    is_open: bool


BusEvent = Union[FollowChanged, PostStatusChanged, ViewerOverlayToggled]


__all__ = [
    "BusEvent",
    "EventKind",
    "FollowChanged",
    "PostStatusChanged",
    "ViewerOverlayToggled",
]
