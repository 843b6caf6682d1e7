"""Error taxonomy shared by the token store, the OAuth flow and the dispatcher."""

from __future__ import annotations

from typing import Any


class BridgeError(Exception):
    """Base exception for bridge errors.

    ``error_code`` doubles as the RFC 6749 ``error`` value on the OAuth
    endpoints and as the ``code`` field of failed tool results.
    """

    error_code = "server_error"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"error": self.message, "code": self.error_code}
        if self.status_code is not None:
            data["status"] = self.status_code
        if self.details:
            data["details"] = self.details
        return data


class NotAuthenticatedError(BridgeError):
    """No upstream GHL tokens are available yet."""

    error_code = "not_authenticated"


class UpstreamAuthError(BridgeError):
    """GHL or GitHub rejected an authorization code or refresh token."""

    error_code = "upstream_auth_error"


class InvalidStateError(BridgeError):
    error_code = "invalid_state"


class InvalidGrantError(BridgeError):
    error_code = "invalid_grant"


class InvalidTokenError(BridgeError):
    error_code = "invalid_token"


class InvalidClientError(BridgeError):
    error_code = "invalid_client"


class InvalidRequestError(BridgeError):
    error_code = "invalid_request"


class UnsupportedGrantError(BridgeError):
    error_code = "unsupported_grant_type"


class UpstreamAPIError(BridgeError):
    """Non-2xx response (or transport failure) from the GHL resource API."""

    error_code = "upstream_api_error"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
    ):
        super().__init__(message, status_code=status_code)
        self.body = body

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.body is not None:
            data["body"] = self.body
        return data
