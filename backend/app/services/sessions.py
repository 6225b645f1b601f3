"""Login sessions held in an explicit, per-application store."""

from __future__ import annotations

import hmac
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from app.core.errors import AuthenticationError, ConfigurationError
from app.core.logging import get_logger
from app.models.auth import UsersFile

logger = get_logger(__name__)

SESSION_COOKIE = "auth_token"


@dataclass(slots=True)
class Session:
    username: str
    expires_at: float


def load_users(path: Path) -> dict[str, str]:
    """Read ``{"users": [{"username", "password"}]}``; a missing file means no users."""

    if not path.is_file():
        logger.warning("auth.users_file.missing", path=str(path))
        return {}
    try:
        document = UsersFile.model_validate_json(path.read_text(encoding="utf-8"))
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Users file {path.name} is invalid.") from exc
    return {user.username: user.password for user in document.users}


class SessionStore:
    """Token to session map with a fixed time-to-live."""

    def __init__(
        self,
        users: dict[str, str],
        *,
        ttl_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._users = users
        self._sessions: dict[str, Session] = {}
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def login(self, username: str, password: str) -> str:
        self._purge_expired()
        expected = self._users.get(username)
        if expected is None or not hmac.compare_digest(expected.encode("utf-8"), password.encode("utf-8")):
            logger.info("auth.login.rejected", username=username)
            raise AuthenticationError("Invalid credentials")

        token = secrets.token_hex(24)
        self._sessions[token] = Session(username=username, expires_at=self._clock() + self.ttl_seconds)
        logger.info("auth.login.succeeded", username=username)
        return token

    def _purge_expired(self) -> None:
        now = self._clock()
        for token in [token for token, session in self._sessions.items() if session.expires_at <= now]:
            del self._sessions[token]

    def logout(self, token: str | None) -> None:
        if token:
            self._sessions.pop(token, None)

    def validate(self, token: str | None) -> str | None:
        """Return the username for a live token, dropping it if expired."""

        if not token:
            return None
        session = self._sessions.get(token)
        if session is None:
            return None
        if session.expires_at <= self._clock():
            del self._sessions[token]
            return None
        return session.username

    def __len__(self) -> int:
        return len(self._sessions)

    def clear(self) -> None:
        self._sessions.clear()
