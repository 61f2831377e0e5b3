"""The explicit container every view is handed instead of module-level globals."""
from __future__ import annotations

import logging
from typing import Callable

import httpx

from .clients.api import ApiClient
from .config import Settings, get_settings
from .schemas.users import UserSummary, ViewerIdentity
from .services.entity_cache import EntityCache
from .services.event_bus import EventBus
from .services.mutations import FailureNotice, MutationCoordinator
from .services.session_store import SessionStore
from .services.social_actions import SocialActions

logger = logging.getLogger(__name__)


class ClientContext:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        api: ApiClient | None = None,
        store: SessionStore | None = None,
        notifier: Callable[[FailureNotice], None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        logging.getLogger("feedsync").setLevel(self.settings.log_level.upper())

        self.store = store if store is not None else SessionStore(self.settings.session_store_path)
        self.api = api or ApiClient(
            self.settings.api_base_url,
            timeout=self.settings.request_timeout,
            credential_getter=lambda: self.store.credential,
            transport=transport,
        )
        self.bus = EventBus()
        self.cache = EntityCache()
        self.notifier = notifier
        self.notices: list[FailureNotice] = []
        self.coordinator = MutationCoordinator(
            self.bus,
            lambda: self.store.credential,
            notifier=self._notify,
            sequence_guard=self.settings.toggle_sequence_guard,
        )
        self.social = SocialActions(self.api, self.store, self.coordinator)

    @property
    def viewer(self) -> ViewerIdentity | None:
        return self.store.identity()

    @property
    def viewer_id(self) -> str | None:
        return self.store.viewer_id

    def author(self) -> UserSummary:
        """Snapshot of the viewer used on provisional comments and replies."""

        identity = self.viewer
        if identity is None:
            return UserSummary(id=self.viewer_id or "me")
        return identity.as_author()

    def _notify(self, notice: FailureNotice) -> None:
        self.notices.append(notice)
        if self.notifier is not None:
            self.notifier(notice)

    def login(self, identity: ViewerIdentity) -> None:
        self.store.set_identity(identity)
        logger.info("Signed in as %s", identity.user_id)

    def clear_all(self) -> None:
        self.cache.clear_all()
        self.coordinator.reset()
        self.notices.clear()

    def logout(self) -> None:
        user_id = self.viewer_id
        self.store.clear()
        self.clear_all()
        logger.info("Signed out %s", user_id or "anonymous viewer")

    async def aclose(self) -> None:
        await self.coordinator.drain()
        await self.api.aclose()

    async def __aenter__(self) -> ClientContext:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


__all__ = ["ClientContext"]
