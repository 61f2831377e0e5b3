"""Page-numbered cursor driving infinite scroll for one list or tab."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict

from ..errors import FeedSyncError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PROXIMITY_PX = 50


class CursorState(BaseModel):
    """Idle or loading, plus the two flags that tell "empty" apart from "never fetched"."""

    model_config = ConfigDict(frozen=True)

    page: int = 1
    has_more: bool = True
    loading: bool = False
    initialized: bool = False
    has_items: bool = False

    @property
    def empty(self) -> bool:
        return self.initialized and not self.has_items


@dataclass(slots=True)
class PageResult(Generic[T]):
    page: int
    items: list[T]
    has_more: bool


class PaginationCursor(Generic[T]):
    def __init__(
        self,
        fetch_page: Callable[[int, int], Awaitable[Sequence[T]]],
        *,
        page_size: int,
        proximity_px: int = DEFAULT_PROXIMITY_PX,
        admit: Callable[[T], bool] | None = None,
        key: Callable[[T], Any] | None = None,
        state: CursorState | None = None,
        items: Sequence[T] | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._fetch_page = fetch_page
        self.page_size = page_size
        self.proximity_px = proximity_px
        self._admit = admit
        self._key = key
        restored = state or CursorState()
        # A snapshot taken mid-fetch must not come back stuck in Loading
        self._state = restored.model_copy(update={"loading": False}) if restored.loading else restored
        self._items: list[T] = list(items or [])

    @property
    def state(self) -> CursorState:
        return self._state

    @property
    def items(self) -> list[T]:
        return self._items

    @property
    def empty(self) -> bool:
        return self._state.empty

    def should_load(self, scroll_offset: float, viewport_height: float, content_height: float) -> bool:
        if self._state.loading or not self._state.has_more:
            return False
        return scroll_offset + viewport_height >= content_height - self.proximity_px

    async def load_next(self) -> PageResult[T] | None:
        """Fetch the next page. Returns ``None`` when nothing was requested or the request failed."""

        before = self._state
        if before.loading or not before.has_more:
            return None

        self._state = before.model_copy(update={"loading": True})
        try:
            raw = list(await self._fetch_page(before.page, self.page_size))
        except asyncio.CancelledError:
            self._state = before
            raise
        except FeedSyncError as exc:
            logger.warning("Fetching page %d failed: %s", before.page, exc)
            self._state = before.model_copy(update={"initialized": True})
            return None

        admitted = [item for item in raw if self._admit is None or self._admit(item)]
        if before.page == 1:
            self._items = admitted
        else:
            self._items.extend(self._unseen(admitted))

        has_more = len(raw) >= self.page_size
        self._state = CursorState(
            page=before.page + 1,
            has_more=has_more,
            loading=False,
            initialized=True,
            has_items=bool(self._items),
        )
        return PageResult(page=before.page, items=admitted, has_more=has_more)

    def reset(self) -> None:
        """Start over from page 1; current items stay visible until the first page replaces them."""

        self._state = self._state.model_copy(update={"page": 1, "has_more": True, "loading": False})

    def remove_where(self, predicate: Callable[[T], bool]) -> int:
        kept = [item for item in self._items if not predicate(item)]
        removed = len(self._items) - len(kept)
        if removed:
            self._items = kept
            self._state = self._state.model_copy(update={"has_items": bool(kept)})
        return removed

    def _unseen(self, incoming: list[T]) -> list[T]:
        if self._key is None:
            return incoming
        seen = {self._key(item) for item in self._items}
        return [item for item in incoming if self._key(item) not in seen]


__all__ = ["CursorState", "DEFAULT_PROXIMITY_PX", "PageResult", "PaginationCursor"]
