"""Bridge configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class BridgeSettings(BaseSettings):
    # Server
    host: str = "0.0.0.0"
    port: int = 3006
    base_url: str = "http://localhost:3006"
    mcp_mode: str = "http"
    log_level: str = "info"

    # Static bearer token for clients that skip the OAuth dance
    auth_token: str = ""

    # GitHub OAuth (caller identity)
    github_client_id: str = ""
    github_client_secret: str = ""

    # GHL OAuth (upstream identity)
    ghl_client_id: str = ""
    ghl_client_secret: str = ""
    ghl_redirect_uri: str = ""
    ghl_api_base: str = "https://services.leadconnectorhq.com"
    ghl_api_version: str = "2021-07-28"
    ghl_scopes: str = (
        "contacts.readonly contacts.write conversations.readonly conversations.write "
        "opportunities.readonly opportunities.write calendars.readonly calendars.write"
    )

    # Caller-facing OAuth surface
    scopes_supported: str = "mcp:tools mcp:read mcp:write"
    resource_name: str = "GHL MCP Server"

    database_url: str = "sqlite+aiosqlite:///data/oauth.db"
    echo_sql: bool = False

    session_timeout_seconds: int = 30 * 60
    session_sweep_interval_seconds: float = 60.0
    oauth_sweep_interval_seconds: float = 3600.0
    http_timeout_seconds: float = 30.0

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def server_url(self) -> str:
        return self.base_url.rstrip("/")

    @property
    def oauth_enabled(self) -> bool:
        return bool(self.github_client_id and self.github_client_secret)

    @property
    def ghl_scope_list(self) -> list[str]:
        return self.ghl_scopes.split()

    @property
    def scopes_supported_list(self) -> list[str]:
        return self.scopes_supported.split()

    @property
    def sqlite_path(self) -> Path | None:
        """Filesystem path of a file-backed SQLite database, if any."""
        if not self.database_url.startswith("sqlite"):
            return None
        _, _, raw = self.database_url.partition(":///")
        if not raw or raw.startswith(":memory:"):
            return None
        return Path(raw)

    def missing_required(self) -> list[str]:
        """Names of required environment variables that are not set."""
        required = {
            "AUTH_TOKEN": self.auth_token,
            "GHL_CLIENT_ID": self.ghl_client_id,
            "GHL_CLIENT_SECRET": self.ghl_client_secret,
        }
        return [name for name, value in required.items() if not value.strip()]


settings = BridgeSettings()
