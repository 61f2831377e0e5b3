"""Local key/value store for viewer identity and follow-status hints.

Values are read synchronously and written optimistically. When a path is
configured every write is persisted to a JSON file; nothing stored here is
authoritative.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from ..constants import DEFAULT_USER_NAME, FOLLOW_HINT_PREFIX
from ..schemas.users import ViewerIdentity

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_ID_KEY = "user_id"
USER_NAME_KEY = "user_name"
USER_AVATAR_KEY = "user_avatar"
IDENTITY_KEYS = (TOKEN_KEY, USER_ID_KEY, USER_NAME_KEY, USER_AVATAR_KEY)


class SessionStore:
    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if self.path is None:
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            logger.warning("Session store at %s is unreadable; starting empty", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self) -> None:
        if self.path is None:
            return
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, ensure_ascii=False, separators=(",", ":"))
            os.replace(tmp, self.path)
        finally:
            if os.path.exists(tmp):
                os.remove(tmp)

    # Raw access

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._save()

    def delete(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._save()

    def clear(self) -> None:
        self._data.clear()
        self._save()

    # Identity

    @property
    def credential(self) -> str | None:
        token = self._data.get(TOKEN_KEY)
        return token or None

    @property
    def viewer_id(self) -> str | None:
        return self._data.get(USER_ID_KEY) or None

    def identity(self) -> ViewerIdentity | None:
        token = self.credential
        user_id = self.viewer_id
        if not token or not user_id:
            return None
        return ViewerIdentity(
            user_id=user_id,
            token=token,
            name=self._data.get(USER_NAME_KEY) or DEFAULT_USER_NAME,
            avatar=self._data.get(USER_AVATAR_KEY),
        )

    def set_identity(self, identity: ViewerIdentity) -> None:
        self._data.update(
            {
                TOKEN_KEY: identity.token,
                USER_ID_KEY: identity.user_id,
                USER_NAME_KEY: identity.name,
                USER_AVATAR_KEY: identity.avatar,
            }
        )
        self._save()

    def set_display_name(self, name: str) -> None:
        self.set(USER_NAME_KEY, name)

    # Follow hints

    def follow_hint(self, target_id: str) -> bool | None:
        value = self._data.get(f"{FOLLOW_HINT_PREFIX}{target_id}")
        if value is None:
            return None
        return bool(value)

    def set_follow_hint(self, target_id: str, is_following: bool) -> None:
        self.set(f"{FOLLOW_HINT_PREFIX}{target_id}", bool(is_following))

    def clear_follow_hint(self, target_id: str) -> None:
        self.delete(f"{FOLLOW_HINT_PREFIX}{target_id}")

    def __contains__(self, key: object) -> bool:
        return key in self._data


__all__ = ["IDENTITY_KEYS", "SessionStore", "TOKEN_KEY", "USER_AVATAR_KEY", "USER_ID_KEY", "USER_NAME_KEY"]
