"""OAuth schemas for dynamic client registration and token responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ClientRegistrationRequest(BaseModel):
    """RFC 7591 client metadata sent to ``/oauth/register``."""

    redirect_uris: list[str] = Field(min_length=1)
    client_name: str | None = None
    client_uri: str | None = None
    scope: str | None = None
    grant_types: list[str] = Field(default_factory=lambda: ["authorization_code"])
    response_types: list[str] = Field(default_factory=lambda: ["code"])
    token_endpoint_auth_method: str = "client_secret_post"

    model_config = ConfigDict(extra="allow")


class OAuthClientInformation(ClientRegistrationRequest):
    """Registered client as persisted in the record store."""

    client_id: str
    client_secret: str | None = None
    client_id_issued_at: int | None = None
    client_secret_expires_at: int | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    scope: str = ""
