"""GHL upstream access: token store and authenticated API client.

Usage:
    from ghl_bridge.ghl import GHLClient, UpstreamTokenStore

    store = UpstreamTokenStore(client_id="...", client_secret="...")
    await store.exchange_authorization_code(code)

    async with GHLClient(store) as ghl:
        contact = await ghl.get("/contacts/abc123")
"""

from .client import GHLClient, GHL_API_BASE, GHL_API_VERSION
from .tokens import (
    GHL_AUTH_URL,
    GHL_TOKEN_URL,
    REFRESH_MARGIN_MS,
    UpstreamTokenPair,
    UpstreamTokenStore,
)

__all__ = [
    "GHLClient",
    "GHL_API_BASE",
    "GHL_API_VERSION",
    "GHL_AUTH_URL",
    "GHL_TOKEN_URL",
    "REFRESH_MARGIN_MS",
    "UpstreamTokenPair",
    "UpstreamTokenStore",
]
