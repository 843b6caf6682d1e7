"""Bridge-local sessions keyed by the caller's bearer credential.

A session is created lazily on the first RPC call that presents a credential
and may carry the GHL token pair bound to it through the consent callback.
Idle sessions are dropped by a periodic sweep.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field

from .clock import now_ms
from .ghl.tokens import UpstreamTokenPair

logger = logging.getLogger(__name__)


@dataclass
class Session:
    id: str
    credential: str
    last_activity_at: int = field(default_factory=now_ms)  # Unix ms
    upstream_tokens: UpstreamTokenPair | None = None

    def touch(self, now: int | None = None) -> None:
        self.last_activity_at = now_ms() if now is None else now


class SessionRegistry:
    """One session per distinct credential, expired on inactivity.

    Usage:
        registry = SessionRegistry(timeout_seconds=1800)
        session = registry.resolve(bearer_token)
        registry.bind(session.id, tokens)
        removed = registry.sweep()
    """

    def __init__(self, timeout_seconds: int = 30 * 60):
        self.timeout_ms = int(timeout_seconds * 1000)
        self._by_credential: dict[str, Session] = {}
        self._by_id: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._by_id)

    def resolve(self, credential: str) -> Session:
        """Session for ``credential``, created if needed; marks it active."""
        session = self._by_credential.get(credential)
        if session is None:
            session = Session(id=f"sess_{secrets.token_urlsafe(16)}", credential=credential)
            self._by_credential[credential] = session
            self._by_id[session.id] = session
            logger.info("Session created: %s", session.id)
        else:
            session.touch()
        return session

    def get(self, session_id: str) -> Session | None:
        return self._by_id.get(session_id)

    def bind(self, session_id: str, tokens: UpstreamTokenPair) -> bool:
        """Attach upstream tokens to an existing session."""
        session = self._by_id.get(session_id)
        if session is None:
            return False
        session.upstream_tokens = tokens
        return True

    def sweep(self, now: int | None = None) -> int:
        """Drop sessions idle longer than the timeout; returns how many."""
        current = now_ms() if now is None else now
        expired = [
            s for s in list(self._by_id.values())
            if current - s.last_activity_at > self.timeout_ms
        ]
        for session in expired:
            self._by_id.pop(session.id, None)
            self._by_credential.pop(session.credential, None)
            logger.info("Session expired: %s", session.id)
        return len(expired)
