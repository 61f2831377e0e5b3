from __future__ import annotations

import json

from feedsync.schemas.users import ViewerIdentity
from feedsync.services.session_store import TOKEN_KEY, USER_NAME_KEY, SessionStore


def test_identity_round_trips_through_the_file(tmp_path) -> None:
    path = tmp_path / "session.json"
    store = SessionStore(path)
    store.set_identity(ViewerIdentity(user_id="u1", token="tok", name="Ada"))
    store.set_follow_hint("u2", True)

    reopened = SessionStore(path)

    assert reopened.credential == "tok"
    assert reopened.identity() == ViewerIdentity(user_id="u1", token="tok", name="Ada")
    assert reopened.follow_hint("u2") is True
    assert json.loads(path.read_text(encoding="utf-8"))[TOKEN_KEY] == "tok"


def test_identity_needs_token_and_user_id() -> None:
    store = SessionStore()
    store.set("user_id", "u1")
    assert store.identity() is None
    assert store.viewer_id == "u1"


def test_follow_hints_can_be_cleared() -> None:
    store = SessionStore()
    assert store.follow_hint("u2") is None

    store.set_follow_hint("u2", False)
    assert store.follow_hint("u2") is False

    store.clear_follow_hint("u2")
    assert store.follow_hint("u2") is None


def test_display_name_change_is_visible_to_identity() -> None:
    store = SessionStore()
    store.set_identity(ViewerIdentity(user_id="u1", token="tok"))

    store.set_display_name("Renamed")

    assert store.get(USER_NAME_KEY) == "Renamed"
    assert store.identity().name == "Renamed"


def test_clear_forgets_everything(tmp_path) -> None:
    path = tmp_path / "session.json"
    store = SessionStore(path)
    store.set_identity(ViewerIdentity(user_id="u1", token="tok"))

    store.clear()

    assert store.credential is None
    assert SessionStore(path).identity() is None


def test_unreadable_file_starts_empty(tmp_path, caplog) -> None:
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")

    store = SessionStore(path)

    assert store.credential is None
    assert "unreadable" in caplog.text
