"""PKCE (RFC 7636) verification for the token endpoint."""

from __future__ import annotations

import base64
import hashlib
import hmac


def s256_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def verify_pkce(verifier: str, challenge: str, method: str | None = None) -> bool:
    """Check a code verifier against the stored challenge.

    A missing method means ``plain`` (RFC 7636 section 4.3). Unknown methods
    never verify.
    """
    if not verifier or not challenge:
        return False
    method = method or "plain"
    if method == "S256":
        computed = s256_challenge(verifier)
    elif method == "plain":
        computed = verifier
    else:
        return False
    return hmac.compare_digest(computed, challenge)
