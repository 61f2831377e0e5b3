"""Generic optimistic insert with temporary-id reconciliation.

Comments, replies and profile sections all go through the same three steps:
insert a provisional node under a ``temp-`` id, then either swap in the
canonical node at the same position or remove it and undo the counter bump.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar
from uuid import uuid4

from ..constants import TEMP_ID_PREFIX
from ..errors import ValidationFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


def new_temp_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid4().hex}"


def is_temp_id(value: str) -> bool:
    return value.startswith(TEMP_ID_PREFIX)


@dataclass(slots=True)
class PendingInsert(Generic[T]):
    temp_id: str
    node: T


class OptimisticInserter(Generic[T]):
    def __init__(
        self,
        collection: Callable[[], list[T] | None],
        *,
        merge: Callable[[T, Any], T],
        at_head: bool = True,
        on_count: Callable[[int], None] | None = None,
        temp_id_factory: Callable[[], str] = new_temp_id,
        id_of: Callable[[T], str] = lambda node: node.id,  # type: ignore[attr-defined]
    ) -> None:
        self._collection = collection
        self._merge = merge
        self._at_head = at_head
        self._on_count = on_count
        self._temp_id_factory = temp_id_factory
        self._id_of = id_of

    def insert(self, build: Callable[[str], T]) -> PendingInsert[T]:
        target = self._collection()
        if target is None:
            raise ValidationFailure("Insert target no longer exists")
        temp_id = self._temp_id_factory()
        node = build(temp_id)
        if self._at_head:
            target.insert(0, node)
        else:
            target.append(node)
        if self._on_count is not None:
            self._on_count(1)
        return PendingInsert(temp_id=temp_id, node=node)

    def reconcile(self, pending: PendingInsert[T], canonical: Any) -> T | None:
        """Replace the provisional node in place. A no-op if it is gone."""

        target = self._collection()
        if target is None:
            return None
        for index, node in enumerate(target):
            if self._id_of(node) == pending.temp_id:
                merged = self._merge(node, canonical)
                target[index] = merged
                return merged
        logger.debug("Provisional node %s vanished before reconciliation", pending.temp_id)
        return None

    def rollback(self, pending: PendingInsert[T]) -> bool:
        target = self._collection()
        if target is None:
            return False
        for index, node in enumerate(target):
            if self._id_of(node) == pending.temp_id:
                del target[index]
                if self._on_count is not None:
                    self._on_count(-1)
                return True
        return False


__all__ = ["OptimisticInserter", "PendingInsert", "is_temp_id", "new_temp_id"]
