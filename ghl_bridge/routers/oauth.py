"""OAuth 2.1 authorization server endpoints for calling agents.

Mounted only when GitHub credentials are configured. Endpoints follow RFC 8414
(metadata), RFC 7591 (dynamic registration), RFC 6749 + RFC 7636 (authorize and
token with PKCE) and RFC 7009 (revocation).
"""

from __future__ import annotations

import hmac
import logging
import secrets
import time
import uuid
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from pydantic import ValidationError

from ..bridge import Bridge
from ..deps import get_bridge
from ..errors import (
    BridgeError,
    InvalidClientError,
    InvalidGrantError,
    InvalidRequestError,
    InvalidStateError,
    UnsupportedGrantError,
)
from ..oauth.pkce import verify_pkce
from ..oauth.provider import AuthorizeParams, GitHubOAuthProvider
from ..oauth.schemas import ClientRegistrationRequest, OAuthClientInformation

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])

NO_STORE = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def _provider(bridge: Bridge) -> GitHubOAuthProvider:
    if bridge.provider is None:
        raise RuntimeError("OAuth routes mounted without a provider")
    return bridge.provider


def oauth_error(error: str, description: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(
        {"error": error, "error_description": description},
        status_code=status_code,
        headers=NO_STORE,
    )


def _error_from(exc: BridgeError) -> JSONResponse:
    status = 401 if isinstance(exc, InvalidClientError) else 400
    return oauth_error(exc.error_code, exc.message, status)


async def _read_params(request: Request) -> dict[str, str]:
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            return {}
        return {k: str(v) for k, v in body.items()} if isinstance(body, dict) else {}
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


async def _authenticate_client(provider: GitHubOAuthProvider, params: dict[str, str]) -> OAuthClientInformation:
    client_id = params.get("client_id")
    if not client_id:
        raise InvalidRequestError("client_id is required")
    client = await provider.get_client(client_id)
    if client is None:
        raise InvalidClientError("Invalid client_id")
    if client.client_secret:
        presented = params.get("client_secret", "")
        if not hmac.compare_digest(presented.encode(), client.client_secret.encode()):
            raise InvalidClientError("Invalid client_secret")
        if client.client_secret_expires_at and client.client_secret_expires_at < int(time.time()):
            raise InvalidClientError("Client secret has expired")
    return client


@router.get("/.well-known/oauth-authorization-server")
async def authorization_server_metadata(bridge: Bridge = Depends(get_bridge)):
    base = bridge.settings.server_url
    return {
        "issuer": f"{base}/",
        "authorization_endpoint": f"{base}/oauth/authorize",
        "token_endpoint": f"{base}/oauth/token",
        "registration_endpoint": f"{base}/oauth/register",
        "revocation_endpoint": f"{base}/oauth/revoke",
        "response_types_supported": ["code"],
        "grant_types_supported": ["authorization_code"],
        "token_endpoint_auth_methods_supported": ["client_secret_post", "none"],
        "revocation_endpoint_auth_methods_supported": ["client_secret_post"],
        "code_challenge_methods_supported": ["S256", "plain"],
        "scopes_supported": bridge.settings.scopes_supported_list,
    }


@router.get("/.well-known/oauth-protected-resource")
async def protected_resource_metadata(bridge: Bridge = Depends(get_bridge)):
    base = bridge.settings.server_url
    return {
        "resource": f"{base}/",
        "authorization_servers": [f"{base}/"],
        "scopes_supported": bridge.settings.scopes_supported_list,
        "resource_name": bridge.settings.resource_name,
    }


@router.post("/oauth/register", status_code=201)
async def register_client(request: Request, bridge: Bridge = Depends(get_bridge)):
    provider = _provider(bridge)
    try:
        payload = await request.json()
        metadata = ClientRegistrationRequest.model_validate(payload)
    except ValueError as e:
        description = "; ".join(err["msg"] for err in e.errors()) if isinstance(e, ValidationError) else str(e)
        return oauth_error("invalid_client_metadata", description or "Invalid client metadata")

    public = metadata.token_endpoint_auth_method == "none"
    data = metadata.model_dump()
    data.update(
        client_id=str(uuid.uuid4()),
        client_secret=None if public else secrets.token_hex(32),
        client_id_issued_at=int(time.time()),
        client_secret_expires_at=None if public else 0,
    )
    client = OAuthClientInformation.model_validate(data)
    await provider.register_client(client)
    return JSONResponse(client.model_dump(exclude_none=True), status_code=201, headers=NO_STORE)


def _redirect_with(redirect_uri: str, params: dict[str, Any]) -> RedirectResponse:
    query = urlencode({k: v for k, v in params.items() if v is not None})
    sep = "&" if "?" in redirect_uri else "?"
    return RedirectResponse(f"{redirect_uri}{sep}{query}", status_code=302)


@router.api_route("/oauth/authorize", methods=["GET", "POST"])
async def authorize(request: Request, bridge: Bridge = Depends(get_bridge)):
    provider = _provider(bridge)
    params = dict(request.query_params)
    if request.method == "POST":
        params.update(await _read_params(request))

    # Until client and redirect_uri are validated, errors cannot be redirected
    client_id = params.get("client_id")
    if not client_id:
        return oauth_error("invalid_request", "client_id is required")
    client = await provider.get_client(client_id)
    if client is None:
        return oauth_error("invalid_client", "Invalid client_id")

    redirect_uri = params.get("redirect_uri")
    if redirect_uri is None:
        if len(client.redirect_uris) != 1:
            return oauth_error("invalid_request", "redirect_uri must be specified")
        redirect_uri = client.redirect_uris[0]
    elif redirect_uri not in client.redirect_uris:
        return oauth_error("invalid_request", "Unregistered redirect_uri")

    state = params.get("state")
    if params.get("response_type") != "code":
        return _redirect_with(redirect_uri, {
            "error": "unsupported_response_type",
            "error_description": "response_type must be code",
            "state": state,
        })

    challenge = params.get("code_challenge")
    method = params.get("code_challenge_method") or "S256"
    if not challenge or method not in ("S256", "plain"):
        return _redirect_with(redirect_uri, {
            "error": "invalid_request",
            "error_description": "code_challenge is required (S256)",
            "state": state,
        })

    scopes = params.get("scope", "").split()
    allowed = client.scope.split() if client.scope else bridge.settings.scopes_supported_list
    if any(s not in allowed for s in scopes):
        return _redirect_with(redirect_uri, {
            "error": "invalid_scope",
            "error_description": "Requested scope is not allowed",
            "state": state,
        })

    url = await provider.authorize(
        client,
        AuthorizeParams(
            redirect_uri=redirect_uri,
            code_challenge=challenge,
            code_challenge_method=method,
            scopes=scopes,
            resource=params.get("resource"),
            state=state,
        ),
    )
    return RedirectResponse(url, status_code=302)


@router.get("/oauth/callback")
async def github_callback(
    code: str | None = None,
    state: str | None = None,
    bridge: Bridge = Depends(get_bridge),
):
    provider = _provider(bridge)
    if not code or not state:
        logger.error("GitHub OAuth callback missing code or state")
        return PlainTextResponse("Missing code or state parameter", status_code=400)

    try:
        result = await provider.handle_callback(code, state)
    except InvalidStateError as e:
        logger.error("GitHub OAuth callback failed: %s", e.message)
        return PlainTextResponse("Invalid or expired state parameter", status_code=400)
    except BridgeError as e:
        logger.error("GitHub OAuth callback failed: %s", e.message)
        return PlainTextResponse("OAuth authentication failed", status_code=502)

    logger.info("GitHub OAuth callback successful, redirecting to %s", result.redirect_uri)
    return RedirectResponse(result.redirect_url, status_code=302)


@router.post("/oauth/token")
async def token(request: Request, bridge: Bridge = Depends(get_bridge)):
    provider = _provider(bridge)
    params = await _read_params(request)
    grant_type = params.get("grant_type")
    if not grant_type:
        return oauth_error("invalid_request", "grant_type is required")

    try:
        client = await _authenticate_client(provider, params)

        if grant_type == "authorization_code":
            code = params.get("code")
            verifier = params.get("code_verifier")
            if not code or not verifier:
                raise InvalidRequestError("code and code_verifier are required")
            challenge, method = await provider.pkce_challenge(client, code)
            if not verify_pkce(verifier, challenge, method):
                raise InvalidGrantError("code_verifier does not match the challenge")
            tokens = await provider.exchange_authorization_code(
                client,
                code,
                code_verifier=verifier,
                redirect_uri=params.get("redirect_uri"),
                resource=params.get("resource"),
            )
        elif grant_type == "refresh_token":
            tokens = await provider.exchange_refresh_token(
                client,
                params.get("refresh_token", ""),
                scopes=params.get("scope", "").split() or None,
                resource=params.get("resource"),
            )
        else:
            raise UnsupportedGrantError(f"Unsupported grant_type: {grant_type}")
    except BridgeError as e:
        logger.warning("Token request rejected: %s", e.error_code)
        return _error_from(e)

    return JSONResponse(tokens.model_dump(), headers=NO_STORE)


@router.post("/oauth/revoke")
async def revoke(request: Request, bridge: Bridge = Depends(get_bridge)):
    provider = _provider(bridge)
    params = await _read_params(request)
    try:
        client = await _authenticate_client(provider, params)
        token_value = params.get("token")
        if not token_value:
            raise InvalidRequestError("token is required")
    except BridgeError as e:
        return _error_from(e)

    # RFC 7009: unknown tokens are not an error
    await provider.revoke_token(token_value, client_id=client.client_id)
    return JSONResponse({}, headers=NO_STORE)
