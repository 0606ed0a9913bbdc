"""Session lifecycle around ACC OAuth tokens."""

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from acc_importer.adapters.aps_auth_client import AuthClient
from acc_importer.domain.sessions import AccSession, TokenGrant

SESSION_COOKIE_NAME = "acc_session"
SESSION_TTL_SECONDS = 60 * 60 * 24 * 15
REFRESH_MARGIN_MS = 30_000

_SESSION_KEY_PREFIX = "session:"

_logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """TTL'd key-value store holding JSON-compatible values."""

    def get(self, key: str) -> dict[str, object] | None:
        """Return a value if present and not expired."""

    def set(self, key: str, value: dict[str, object], ttl_seconds: int) -> None:
        """Store a value with a TTL in seconds."""

    def delete(self, key: str) -> None:
        """Remove a key; missing keys are ignored."""


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SessionService:
    """Issues, refreshes and removes ACC sessions.

    A session whose access token is within ``REFRESH_MARGIN_MS`` of expiry is
    refreshed on read. A failed refresh returns the stale session so that the
    next upstream call surfaces the real authorization failure.
    """

    store: KeyValueStore
    auth_client: AuthClient
    clock: Callable[[], int] = field(default=_now_ms)

    async def get_session(self, session_id: str | None) -> AccSession | None:
        """Return the session for a cookie value, refreshing it when due."""
        if not session_id:
            return None
        record = self.store.get(_session_key(session_id))
        if record is None:
            return None
        stored = _session_from_record(record)

        if stored.expires_at > self.clock() + REFRESH_MARGIN_MS:
            return stored
        if not stored.refresh_token:
            return stored

        try:
            grant = await self.auth_client.refresh(stored.refresh_token)
        except Exception:
            _logger.warning("Token refresh failed; returning stale session")
            return stored

        updated = self.session_from_grant(grant, fallback_refresh=stored.refresh_token)
        self.store.set(
            _session_key(session_id),
            _session_to_record(updated),
            ttl_seconds=SESSION_TTL_SECONDS,
        )
        return updated

    def create_session(self, session: AccSession) -> str:
        """Persist a new session and return its id for the cookie."""
        session_id = str(uuid.uuid4())
        self.store.set(
            _session_key(session_id),
            _session_to_record(session),
            ttl_seconds=SESSION_TTL_SECONDS,
        )
        return session_id

    def delete_session(self, session_id: str) -> None:
        """Remove a session; deleting an unknown id is a no-op."""
        self.store.delete(_session_key(session_id))

    def is_unusable(self, session: AccSession) -> bool:
        """True for an expired session that has no refresh token."""
        return session.refresh_token is None and session.expires_at <= self.clock()

    def session_from_grant(
        self, grant: TokenGrant, fallback_refresh: str | None = None
    ) -> AccSession:
        """Build a session from a token grant, computing ``expires_at``."""
        return AccSession(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or fallback_refresh,
            expires_at=self.clock() + grant.expires_in * 1000,
            token_type=grant.token_type,
        )


def _session_key(session_id: str) -> str:
    return f"{_SESSION_KEY_PREFIX}{session_id}"


def _session_to_record(session: AccSession) -> dict[str, object]:
    record: dict[str, object] = {
        "accessToken": session.access_token,
        "expiresAt": session.expires_at,
    }
    if session.refresh_token:
        record["refreshToken"] = session.refresh_token
    if session.token_type:
        record["tokenType"] = session.token_type
    return record


def _session_from_record(record: dict[str, object]) -> AccSession:
    refresh_token = record.get("refreshToken")
    token_type = record.get("tokenType")
    return AccSession(
        access_token=str(record.get("accessToken", "")),
        expires_at=int(record.get("expiresAt", 0)),
        refresh_token=refresh_token if isinstance(refresh_token, str) else None,
        token_type=token_type if isinstance(token_type, str) else None,
    )
