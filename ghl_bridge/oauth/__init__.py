"""Caller-facing OAuth: record storage, GitHub-backed provider and PKCE."""

from .pkce import s256_challenge, verify_pkce
from .provider import (
    CODE_TTL_MS,
    TOKEN_TTL_MS,
    AccessTokenInfo,
    AuthorizeParams,
    CallbackResult,
    GitHubOAuthProvider,
)
from .schemas import ClientRegistrationRequest, OAuthClientInformation, TokenResponse
from .storage import OAuthCodeData, OAuthStorage, OAuthTokenData

__all__ = [
    "AccessTokenInfo",
    "AuthorizeParams",
    "CallbackResult",
    "ClientRegistrationRequest",
    "CODE_TTL_MS",
    "GitHubOAuthProvider",
    "OAuthClientInformation",
    "OAuthCodeData",
    "OAuthStorage",
    "OAuthTokenData",
    "TOKEN_TTL_MS",
    "TokenResponse",
    "s256_challenge",
    "verify_pkce",
]
