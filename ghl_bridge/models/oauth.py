"""Caller-facing OAuth records: registered clients, codes and issued tokens.

Timestamps are Unix milliseconds. Rows are keyed by their natural string key;
``client_id`` is a plain column with no foreign key, expiry being the only
cleanup mechanism.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class OAuthClientRecord(Base):
    """Dynamically registered OAuth client (metadata stored as JSON)."""

    __tablename__ = "oauth_clients"

    client_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    client_data: Mapped[str] = mapped_column(Text)
    created_at: Mapped[int] = mapped_column(BigInteger)

    def __repr__(self) -> str:
        return f"<OAuthClientRecord {self.client_id!r}>"


class OAuthCode(Base):
    """Authorization code, or the correlation state of a pending GitHub login.

    ``kind`` keeps the two apart: a pending login row (``state``) must never be
    redeemable at the token endpoint, and an issued code (``code``) must never
    be accepted as a callback state.
    """

    __tablename__ = "oauth_codes"
    __table_args__ = (Index("idx_codes_expires", "expires_at"),)

    code: Mapped[str] = mapped_column(String(255), primary_key=True)
    kind: Mapped[str] = mapped_column(String(16), default="code")
    client_id: Mapped[str] = mapped_column(String(255))
    redirect_uri: Mapped[str] = mapped_column(Text)
    scopes: Mapped[str | None] = mapped_column(Text, default=None)
    resource: Mapped[str | None] = mapped_column(Text, default=None)
    state: Mapped[str | None] = mapped_column(Text, default=None)
    code_challenge: Mapped[str] = mapped_column(String(255))
    code_challenge_method: Mapped[str | None] = mapped_column(String(16), default=None)
    created_at: Mapped[int] = mapped_column(BigInteger)
    expires_at: Mapped[int] = mapped_column(BigInteger)

    def __repr__(self) -> str:
        return f"<OAuthCode client={self.client_id!r}>"


class OAuthToken(Base):
    """Bearer token issued to a calling agent."""

    __tablename__ = "oauth_tokens"
    __table_args__ = (Index("idx_tokens_expires", "expires_at"),)

    token: Mapped[str] = mapped_column(String(255), primary_key=True)
    client_id: Mapped[str] = mapped_column(String(255))
    scopes: Mapped[str] = mapped_column(Text, default="")
    expires_at: Mapped[int] = mapped_column(BigInteger)
    resource: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[int] = mapped_column(BigInteger)

    def __repr__(self) -> str:
        return f"<OAuthToken client={self.client_id!r}>"
