"""Caller authentication: issued OAuth tokens first, then the static token."""

from __future__ import annotations

import hmac
from dataclasses import dataclass, field

from .errors import InvalidTokenError
from .oauth.provider import GitHubOAuthProvider

STATIC_CLIENT_ID = "static-bearer"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller."""

    credential: str
    kind: str  # "oauth" or "bearer"
    client_id: str
    scopes: tuple[str, ...] = field(default_factory=tuple)
    expires_at: int | None = None  # Unix seconds, OAuth tokens only


def extract_bearer(header: str | None) -> str | None:
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def authenticate(
    credential: str,
    provider: GitHubOAuthProvider | None,
    bearer_token: str,
) -> Principal:
    """Resolve a bearer credential to a principal.

    Raises:
        InvalidTokenError: If neither an issued token nor the static token matches
    """
    if provider is not None:
        try:
            info = await provider.verify_access_token(credential)
        except InvalidTokenError:
            pass
        else:
            return Principal(
                credential=credential,
                kind="oauth",
                client_id=info.client_id,
                scopes=tuple(info.scopes),
                expires_at=info.expires_at,
            )

    expected = bearer_token.strip()
    if expected and hmac.compare_digest(credential.encode(), expected.encode()):
        return Principal(credential=credential, kind="bearer", client_id=STATIC_CLIENT_ID)

    raise InvalidTokenError("Invalid or expired token")
