"""Durable storage for caller-facing OAuth records.

Three tables hold registered clients, authorization codes and issued access
tokens. Codes and tokens carry an explicit ``expires_at`` that is enforced at
read time, so an expired row is invisible even before the periodic sweep
deletes it.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

from sqlalchemy import delete, select, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..clock import now_ms
from ..models import Base, OAuthClientRecord, OAuthCode, OAuthToken
from .schemas import OAuthClientInformation

logger = logging.getLogger(__name__)

CODE_KIND = "code"
STATE_KIND = "state"


@dataclass
class OAuthCodeData:
    """Authorization code (or correlation state) row."""

    client_id: str
    redirect_uri: str
    code_challenge: str
    expires_at: int  # Unix ms
    scopes: str | None = None
    resource: str | None = None
    state: str | None = None
    code_challenge_method: str | None = None
    code: str | None = None
    created_at: int | None = None
    kind: str = CODE_KIND

    @property
    def scope_list(self) -> list[str]:
        return self.scopes.split() if self.scopes else []

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: OAuthCode) -> "OAuthCodeData":
        return cls(
            code=row.code,
            kind=row.kind,
            client_id=row.client_id,
            redirect_uri=row.redirect_uri,
            scopes=row.scopes,
            resource=row.resource,
            state=row.state,
            code_challenge=row.code_challenge,
            code_challenge_method=row.code_challenge_method,
            created_at=row.created_at,
            expires_at=row.expires_at,
        )


@dataclass
class OAuthTokenData:
    """Issued access token row."""

    client_id: str
    scopes: str
    expires_at: int  # Unix ms
    resource: str | None = None
    token: str | None = None
    created_at: int | None = None

    @property
    def scope_list(self) -> list[str]:
        return self.scopes.split() if self.scopes else []

    @classmethod
    def from_row(cls, row: OAuthToken) -> "OAuthTokenData":
        return cls(
            token=row.token,
            client_id=row.client_id,
            scopes=row.scopes,
            expires_at=row.expires_at,
            resource=row.resource,
            created_at=row.created_at,
        )


class OAuthStorage:
    """Async SQLAlchemy store for OAuth clients, codes and tokens.

    Usage:
        storage = OAuthStorage(session_factory, engine=engine)
        await storage.init_schema()

        await storage.save_code("code123", OAuthCodeData(...))
        data = await storage.get_code("code123")  # None once expired
        consumed = await storage.delete_code("code123")
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ):
        self._session_factory = session_factory
        self._engine = engine

    async def init_schema(self) -> None:
        """Create tables if needed and sweep rows that expired while offline."""
        if self._engine is not None:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        await self.cleanup_expired()
        logger.info("OAuth storage initialized")

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    async def ping(self) -> None:
        async with self._session_factory() as db:
            await db.execute(text("SELECT 1"))

    # Clients

    async def get_client(self, client_id: str) -> OAuthClientInformation | None:
        async with self._session_factory() as db:
            row = await db.get(OAuthClientRecord, client_id)
        if row is None:
            return None
        return OAuthClientInformation.model_validate_json(row.client_data)

    async def register_client(self, client: OAuthClientInformation) -> OAuthClientInformation:
        async with self._session_factory() as db:
            await db.merge(
                OAuthClientRecord(
                    client_id=client.client_id,
                    client_data=client.model_dump_json(exclude_none=True),
                    created_at=now_ms(),
                )
            )
            await db.commit()
        logger.info("OAuth client registered: %s", client.client_id)
        return client

    # Authorization codes

    async def save_code(self, code: str, data: OAuthCodeData) -> None:
        async with self._session_factory() as db:
            await db.merge(
                OAuthCode(
                    code=code,
                    kind=data.kind,
                    client_id=data.client_id,
                    redirect_uri=data.redirect_uri,
                    scopes=data.scopes,
                    resource=data.resource,
                    state=data.state,
                    code_challenge=data.code_challenge,
                    code_challenge_method=data.code_challenge_method,
                    created_at=now_ms(),
                    expires_at=data.expires_at,
                )
            )
            await db.commit()

    async def get_code(self, code: str, kind: str | None = None) -> OAuthCodeData | None:
        """Live row for ``code``; with ``kind``, rows of any other kind are invisible."""
        stmt = select(OAuthCode).where(OAuthCode.code == code, OAuthCode.expires_at > now_ms())
        if kind is not None:
            stmt = stmt.where(OAuthCode.kind == kind)
        async with self._session_factory() as db:
            row = (await db.execute(stmt)).scalar_one_or_none()
        return OAuthCodeData.from_row(row) if row else None

    async def delete_code(self, code: str, kind: str | None = None) -> bool:
        """Delete a code; True only for the caller that actually removed it."""
        stmt = delete(OAuthCode).where(OAuthCode.code == code)
        if kind is not None:
            stmt = stmt.where(OAuthCode.kind == kind)
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            await db.commit()
        return result.rowcount > 0

    # Access tokens

    async def save_token(self, token: str, data: OAuthTokenData) -> None:
        async with self._session_factory() as db:
            await db.merge(
                OAuthToken(
                    token=token,
                    client_id=data.client_id,
                    scopes=data.scopes,
                    expires_at=data.expires_at,
                    resource=data.resource,
                    created_at=now_ms(),
                )
            )
            await db.commit()

    async def get_token(self, token: str) -> OAuthTokenData | None:
        stmt = select(OAuthToken).where(OAuthToken.token == token, OAuthToken.expires_at > now_ms())
        async with self._session_factory() as db:
            row = (await db.execute(stmt)).scalar_one_or_none()
        return OAuthTokenData.from_row(row) if row else None

    async def delete_token(self, token: str) -> bool:
        async with self._session_factory() as db:
            result = await db.execute(delete(OAuthToken).where(OAuthToken.token == token))
            await db.commit()
        return result.rowcount > 0

    # Sweeping

    async def cleanup_expired_codes(self) -> int:
        async with self._session_factory() as db:
            result = await db.execute(delete(OAuthCode).where(OAuthCode.expires_at <= now_ms()))
            await db.commit()
        return result.rowcount

    async def cleanup_expired_tokens(self) -> int:
        async with self._session_factory() as db:
            result = await db.execute(delete(OAuthToken).where(OAuthToken.expires_at <= now_ms()))
            await db.commit()
        return result.rowcount

    async def cleanup_expired(self) -> int:
        """Physically delete expired codes and tokens; returns rows removed."""
        codes = await self.cleanup_expired_codes()
        tokens = await self.cleanup_expired_tokens()
        if codes or tokens:
            logger.info("Cleaned up expired OAuth data (codes=%d, tokens=%d)", codes, tokens)
        return codes + tokens
