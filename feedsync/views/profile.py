"""Profile screen: header, follow button, posts/videos tabs and custom sections."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..clients.api import EntityKind, Operation
from ..constants import PROFILE_TABS
from ..context import ClientContext
from ..errors import FeedSyncError, ValidationFailure
from ..schemas.events import BusEvent, EventKind, FollowChanged, PostStatusChanged
from ..schemas.posts import Post
from ..schemas.profiles import EDITABLE_PROFILE_FIELDS, Profile, ProfileSection
from ..services.entity_cache import ViewKind
from ..services.event_bus import Handler
from ..services.mutations import FailurePolicy, Mutation, StateDelta
from ..services.optimistic import OptimisticInserter
from ..services.pagination import CursorState, PaginationCursor
from ..services.session_store import USER_NAME_KEY
from .base import MountedView

logger = logging.getLogger(__name__)


class ProfileView(MountedView):
    def __init__(self, ctx: ClientContext, user_id: str | None = None) -> None:
        super().__init__(ctx)
        target = user_id or ctx.viewer_id
        if not target:
            raise ValidationFailure("A profile needs a user id or a signed-in viewer")
        self.user_id: str = target
        self.profile: Profile | None = None
        self.is_following = False
        self.active_tab = PROFILE_TABS[0]
        self.scroll_offset = 0.0
        self.cursors: dict[str, PaginationCursor[Post]] = {}
        self._restore()

    # State

    @property
    def is_own_profile(self) -> bool:
        return self.user_id == self.ctx.viewer_id

    @property
    def posts(self) -> list[Post]:
        return self.cursors["posts"].items

    @property
    def videos(self) -> list[Post]:
        return self.cursors["videos"].items

    @property
    def active_cursor(self) -> PaginationCursor[Post]:
        return self.cursors[self.active_tab]

    def _restore(self) -> None:
        snapshot = self.ctx.cache.profile(self.user_id)
        self.profile = snapshot.profile.model_copy(deep=True) if snapshot.profile else None
        self.is_following = snapshot.is_following
        hint = self.ctx.store.follow_hint(self.user_id)
        if hint is not None:
            self.is_following = hint
        self.active_tab = snapshot.active_tab if snapshot.active_tab in PROFILE_TABS else PROFILE_TABS[0]
        self.scroll_offset = snapshot.scroll_offset
        for tab in PROFILE_TABS:
            self.cursors[tab] = self._make_cursor(
                tab, snapshot.tab_states.get(tab), snapshot.tab_items.get(tab)
            )

    def _make_cursor(
        self, tab: str, state: CursorState | None = None, items: list[Post] | None = None
    ) -> PaginationCursor[Post]:
        settings = self.ctx.settings
        page_size = settings.videos_page_size if tab == "videos" else settings.posts_page_size

        async def fetch_page(page: int, limit: int) -> list[Post]:
            raw = await self.ctx.api.list_user_posts(
                self.user_id, page=page, limit=limit, videos_only=tab == "videos"
            )
            return [Post.from_api(item, self.ctx.viewer_id) for item in raw]

        return PaginationCursor(
            fetch_page,
            page_size=page_size,
            proximity_px=settings.scroll_proximity_px,
            admit=lambda post: not self.ctx.cache.is_tombstoned(ViewKind.PROFILE, self.user_id, post.id),
            key=lambda post: post.id,
            state=state,
            items=items,
        )

    def remember(self) -> None:
        self.ctx.cache.put(
            ViewKind.PROFILE,
            self.user_id,
            profile=self.profile.model_copy(deep=True) if self.profile else None,
            is_following=self.is_following,
            active_tab=self.active_tab,
            tab_states={tab: cursor.state for tab, cursor in self.cursors.items()},
            tab_items={tab: list(cursor.items) for tab, cursor in self.cursors.items()},
            scroll_offset=self.scroll_offset,
        )

    # Mounting

    def subscriptions(self) -> list[tuple[EventKind, Handler]]:
        return [
            (EventKind.FOLLOW_CHANGE, self._on_follow_change),
            (EventKind.POST_STATUS_CHANGE, self._on_post_status),
        ]

    def on_unmount(self) -> None:
        self.remember()

    def _on_follow_change(self, event: BusEvent) -> None:
        if not isinstance(event, FollowChanged):
            return
        if event.user_id == self.user_id:
            self.is_following = event.is_following
            self.remember()

    def _on_post_status(self, event: BusEvent) -> None:
        if not isinstance(event, PostStatusChanged):
            return
        changed = False
        for cursor in self.cursors.values():
            for post in cursor.items:
                if post.id == event.post_id and post.job_status != event.job_status:
                    post.job_status = event.job_status
                    changed = True
        if changed:
            self.remember()

    # Fetching

    def load_profile(self) -> asyncio.Task[Profile | None]:
        return self._start_fetch("profile", self._load_profile())

    async def _load_profile(self) -> Profile | None:
        try:
            raw = await self.ctx.api.get_user(self.user_id)
        except FeedSyncError as exc:
            logger.warning("Loading profile %s failed: %s", self.user_id, exc)
            return None

        fresh = Profile.from_api(raw)
        # The backend sometimes reports zero posts for a profile whose posts we already hold
        if fresh.posts_count == 0 and self.profile is not None and self.profile.posts_count > 0:
            fresh.posts_count = self.profile.posts_count
        self.profile = fresh

        if not self.is_own_profile:
            hint = self.ctx.store.follow_hint(self.user_id)
            if hint is not None:
                self.is_following = hint
            status = await self.ctx.social.refresh_follow_status(self.user_id)
            if status is not None:
                self.is_following = status
        self.remember()
        return fresh

    def select_tab(self, tab: str) -> asyncio.Task[Any] | None:
        if tab not in PROFILE_TABS:
            raise ValidationFailure(f"Unknown profile tab {tab!r}")
        if tab != self.active_tab:
            self._cancel_fetch("tab")
            self.active_tab = tab
            self.remember()
        cursor = self.cursors[tab]
        if cursor.state.initialized or cursor.state.loading:
            return None
        return self._start_fetch("tab", self._load_page(tab))

    def load_next_page(self) -> asyncio.Task[Any] | None:
        cursor = self.active_cursor
        if cursor.state.loading or not cursor.state.has_more:
            return None
        return self._start_fetch("tab", self._load_page(self.active_tab))

    def refresh_tab(self) -> asyncio.Task[Any]:
        """Reload the active tab from its first page."""

        return self._start_fetch("tab", self._load_page(self.active_tab, from_start=True))

    async def _load_page(self, tab: str, *, from_start: bool = False) -> None:
        cursor = self.cursors[tab]
        if from_start:
            cursor.reset()
        await cursor.load_next()
        self.remember()

    def on_scroll(self, offset: float, viewport_height: float, content_height: float) -> asyncio.Task[Any] | None:
        self.scroll_offset = offset
        self.ctx.cache.put(ViewKind.PROFILE, self.user_id, scroll_offset=offset)
        if self.active_cursor.should_load(offset, viewport_height, content_height):
            return self.load_next_page()
        return None

    # Mutations

    def toggle_follow(self) -> asyncio.Task[bool] | None:
        if self.is_own_profile:
            return None

        def confirmed(now_following: bool) -> None:
            if self.profile is not None:
                step = 1 if now_following else -1
                self.profile.followers = max(0, self.profile.followers + step)
                self.remember()

        return self.ctx.social.toggle_follow(self.user_id, self.is_following, on_confirmed=confirmed)

    def toggle_like(self, post: Post) -> asyncio.Task[bool] | None:
        return self.ctx.social.toggle_like(post, on_change=self.remember)

    def set_job_status(self, post: Post, status: str) -> asyncio.Task[bool] | None:
        return self.ctx.social.set_job_status(post, status, on_change=self.remember)

    def delete_post(self, post_id: str) -> asyncio.Task[bool] | None:
        """Delete one of the profile's posts; the list changes only once the backend confirms."""

        def confirmed(_: Any) -> None:
            self.ctx.cache.tombstone(ViewKind.PROFILE, self.user_id, post_id)
            removed = 0
            for cursor in self.cursors.values():
                removed += cursor.remove_where(lambda post: post.id == post_id)
            if removed and self.profile is not None:
                self.profile.posts_count = max(0, self.profile.posts_count - 1)
            self.remember()

        return self.ctx.coordinator.dispatch(
            Mutation(
                operation="delete_post",
                target_id=post_id,
                request=lambda: self.ctx.api.request(EntityKind.POST, Operation.DELETE, ids=(post_id,)),
                reconcile=confirmed,
                policy=FailurePolicy.HARD,
                message="The post could not be deleted.",
            )
        )

    def update_field(self, field: str, value: str) -> asyncio.Task[bool] | None:
        if field not in EDITABLE_PROFILE_FIELDS:
            raise ValidationFailure(f"Profile field {field!r} cannot be edited")
        if not self.is_own_profile or self.profile is None:
            raise ValidationFailure("Only a loaded own profile can be edited")

        profile = self.profile
        previous = getattr(profile, field)
        previous_name = self.ctx.store.get(USER_NAME_KEY)
        new_value = value.strip()

        def forward() -> None:
            setattr(profile, field, new_value)
            if field == "name":
                self.ctx.store.set_display_name(new_value)

        def inverse() -> None:
            setattr(profile, field, previous)
            if field == "name":
                self.ctx.store.set_display_name(previous_name or previous)

        return self.ctx.coordinator.dispatch(
            Mutation(
                operation=f"update_{field}",
                target_id=self.user_id,
                request=lambda: self.ctx.api.request(EntityKind.USER, Operation.UPDATE_ME, body={field: new_value}),
                delta=StateDelta(forward, inverse).with_effect(self.remember),
                policy=FailurePolicy.HARD,
                message="Your profile could not be updated.",
            )
        )

    def _sections_inserter(self) -> OptimisticInserter[ProfileSection]:
        return OptimisticInserter(
            lambda: self.profile.sections if self.profile is not None else None,
            merge=lambda node, canonical: canonical if canonical is not None else node.model_copy(update={"pending": False}),
            at_head=False,
        )

    def add_section(self, title: str, content: str) -> asyncio.Task[bool] | None:
        title, content = title.strip(), content.strip()
        if not title or not content:
            raise ValidationFailure("A section needs a title and content")
        if not self.is_own_profile or self.profile is None:
            raise ValidationFailure("Sections can only be added to a loaded own profile")

        inserter = self._sections_inserter()
        pending = None

        def forward() -> None:
            nonlocal pending
            pending = inserter.insert(
                lambda temp_id: ProfileSection(id=temp_id, title=title, content=content, pending=True)
            )

        def inverse() -> None:
            if pending is not None:
                inserter.rollback(pending)

        def reconcile(payload: Any) -> None:
            if pending is None:
                return
            raw = payload.get("section") if isinstance(payload, dict) else None
            if isinstance(raw, dict) and (raw.get("_id") or raw.get("id")):
                canonical = ProfileSection(
                    id=str(raw.get("_id") or raw.get("id")),
                    title=raw.get("title") or title,
                    content=raw.get("content") or content,
                )
                inserter.reconcile(pending, canonical)
            else:
                inserter.reconcile(pending, None)
                self.load_profile()
            self.remember()

        return self.ctx.coordinator.dispatch(
            Mutation(
                operation="add_section",
                target_id=self.user_id,
                request=lambda: self.ctx.api.request(
                    EntityKind.USER, Operation.CREATE_SECTION, body={"title": title, "content": content}
                ),
                delta=StateDelta(forward, inverse).with_effect(self.remember),
                reconcile=reconcile,
                policy=FailurePolicy.HARD,
                message="Failed to save section.",
            )
        )

    def edit_section(self, section_id: str, title: str, content: str) -> asyncio.Task[bool] | None:
        title, content = title.strip(), content.strip()
        if not title or not content:
            raise ValidationFailure("A section needs a title and content")

        def confirmed(_: Any) -> None:
            if self.profile is None:
                return
            for section in self.profile.sections:
                if section.id == section_id:
                    section.title = title
                    section.content = content
            self.remember()

        return self.ctx.coordinator.dispatch(
            Mutation(
                operation="edit_section",
                target_id=section_id,
                request=lambda: self.ctx.api.request(
                    EntityKind.USER, Operation.UPDATE_SECTION, ids=(section_id,), body={"title": title, "content": content}
                ),
                reconcile=confirmed,
                policy=FailurePolicy.HARD,
                message="Failed to update section.",
            )
        )

    def delete_section(self, section_id: str) -> asyncio.Task[bool] | None:
        def confirmed(_: Any) -> None:
            if self.profile is not None:
                self.profile.sections = [s for s in self.profile.sections if s.id != section_id]
                self.remember()

        return self.ctx.coordinator.dispatch(
            Mutation(
                operation="delete_section",
                target_id=section_id,
                request=lambda: self.ctx.api.request(EntityKind.USER, Operation.DELETE_SECTION, ids=(section_id,)),
                reconcile=confirmed,
                policy=FailurePolicy.HARD,
                message="Failed to delete section.",
            )
        )


__all__ = ["ProfileView"]
