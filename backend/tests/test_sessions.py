"""Tests for login sessions."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from app.core.errors import AuthenticationError, ConfigurationError
from app.services.sessions import SessionStore, load_users


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_login_validate_logout() -> None:
    store = SessionStore({"analyst": "s3cret"}, ttl_seconds=60)

    token = store.login("analyst", "s3cret")

    assert len(token) == 48
    assert store.validate(token) == "analyst"
    store.logout(token)
    assert store.validate(token) is None


@pytest.mark.parametrize(("username", "password"), [("analyst", "wrong"), ("nobody", "s3cret")])
def test_login_rejects_bad_credentials(username: str, password: str) -> None:
    store = SessionStore({"analyst": "s3cret"}, ttl_seconds=60)

    with pytest.raises(AuthenticationError, match="Invalid credentials"):
        store.login(username, password)


def test_sessions_expire_after_ttl() -> None:
    clock = FakeClock()
    store = SessionStore({"analyst": "s3cret"}, ttl_seconds=60, clock=clock)
    token = store.login("analyst", "s3cret")

    clock.now += 59
    assert store.validate(token) == "analyst"

    clock.now += 1
    assert store.validate(token) is None


def test_validate_ignores_empty_and_unknown_tokens() -> None:
    store = SessionStore({}, ttl_seconds=60)

    assert store.validate(None) is None
    assert store.validate("not-a-token") is None


def test_load_users(tmp_path: Path) -> None:
    path = tmp_path / "auth.json"
    path.write_text(json.dumps({"users": [{"username": "analyst", "password": "s3cret"}]}), encoding="utf-8")

    assert load_users(path) == {"analyst": "s3cret"}
    assert load_users(tmp_path / "missing.json") == {}


def test_load_users_rejects_malformed_file(tmp_path: Path) -> None:
    path = tmp_path / "auth.json"
    path.write_text('{"users": "nope"}', encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_users(path)


@pytest.mark.parametrize(("stored", "attempt"), [("s3cret", "sécret"), ("sécret", "secret")])
def test_non_ascii_passwords_are_rejected_cleanly(stored: str, attempt: str) -> None:
    store = SessionStore({"ana": stored}, ttl_seconds=60)

    with pytest.raises(AuthenticationError, match="Invalid credentials"):
        store.login("ana", attempt)


def test_non_ascii_password_logs_in() -> None:
    store = SessionStore({"ana": "sécret"}, ttl_seconds=60)

    assert store.validate(store.login("ana", "sécret")) == "ana"


def test_login_purges_expired_sessions() -> None:
    clock = FakeClock()
    store = SessionStore({"analyst": "s3cret"}, ttl_seconds=60, clock=clock)
    store.login("analyst", "s3cret")
    store.login("analyst", "s3cret")
    assert len(store) == 2

    clock.now += 61
    fresh = store.login("analyst", "s3cret")

    assert len(store) == 1
    assert store.validate(fresh) == "analyst"
