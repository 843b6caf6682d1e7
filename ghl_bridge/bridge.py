"""Process-wide container wiring the token store, OAuth provider and sessions."""

from __future__ import annotations

import logging

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from .config import BridgeSettings
from .database import build_engine, build_session_factory
from .ghl.client import GHLClient
from .ghl.tokens import UpstreamTokenPair, UpstreamTokenStore
from .oauth.provider import GitHubOAuthProvider
from .oauth.storage import OAuthStorage
from .rpc.server import BridgeServer, RequestContext
from .rpc.tools import ToolRegistry, default_registry
from .security import Principal, authenticate
from .sessions import SessionRegistry
from .worker import SweepWorker

logger = logging.getLogger(__name__)


class Bridge:
    """Everything one bridge process owns.

    Usage:
        bridge = Bridge.from_settings(settings)
        await bridge.startup()
        principal = await bridge.authenticate(token)
        ctx = bridge.context_for(principal)
        response = await bridge.server.handle(request, ctx)
        await bridge.shutdown()
    """

    def __init__(
        self,
        settings_obj: BridgeSettings,
        *,
        storage: OAuthStorage,
        token_store: UpstreamTokenStore,
        ghl: GHLClient,
        sessions: SessionRegistry,
        tools: ToolRegistry | None = None,
        provider: GitHubOAuthProvider | None = None,
        engine: AsyncEngine | None = None,
    ):
        self.settings = settings_obj
        self.storage = storage
        self.token_store = token_store
        self.ghl = ghl
        self.sessions = sessions
        self.provider = provider
        self.engine = engine
        self.server = BridgeServer(
            token_store,
            ghl,
            tools or default_registry(),
            sessions,
            ghl_scopes=settings_obj.ghl_scope_list,
        )
        self.workers = [
            SweepWorker("session-sweeper", settings_obj.session_sweep_interval_seconds, sessions.sweep),
            SweepWorker("oauth-sweeper", settings_obj.oauth_sweep_interval_seconds, storage.cleanup_expired),
        ]

    @classmethod
    def from_settings(
        cls,
        settings_obj: BridgeSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> "Bridge":
        """Build the container; ``http_client`` replaces every outbound client."""
        engine = build_engine(settings_obj)
        storage = OAuthStorage(build_session_factory(engine), engine=engine)
        timeout = settings_obj.http_timeout_seconds

        token_store = UpstreamTokenStore(
            settings_obj.ghl_client_id,
            settings_obj.ghl_client_secret,
            settings_obj.ghl_redirect_uri or None,
            http_client=http_client,
            timeout=timeout,
        )
        ghl = GHLClient(
            token_store,
            settings_obj.ghl_api_base,
            settings_obj.ghl_api_version,
            http_client=http_client,
            timeout=timeout,
        )

        provider = None
        if settings_obj.oauth_enabled:
            provider = GitHubOAuthProvider(
                settings_obj.github_client_id,
                settings_obj.github_client_secret,
                settings_obj.server_url,
                storage,
                http_client=http_client,
                timeout=timeout,
            )
        else:
            logger.warning("OAuth disabled - GitHub credentials not configured")
            logger.warning("Only bearer token authentication will be available")

        return cls(
            settings_obj,
            storage=storage,
            token_store=token_store,
            ghl=ghl,
            sessions=SessionRegistry(settings_obj.session_timeout_seconds),
            provider=provider,
            engine=engine,
        )

    @property
    def oauth_enabled(self) -> bool:
        return self.provider is not None

    async def startup(self) -> None:
        path = self.settings.sqlite_path
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
        await self.storage.init_schema()
        for worker in self.workers:
            worker.start()
        logger.info("Bridge started (oauth=%s)", "enabled" if self.oauth_enabled else "disabled")

    async def shutdown(self) -> None:
        for worker in self.workers:
            await worker.stop()
        await self.ghl.close()
        await self.storage.close()
        logger.info("Bridge stopped")

    async def authenticate(self, credential: str) -> Principal:
        return await authenticate(credential, self.provider, self.settings.auth_token)

    def context_for(self, principal: Principal) -> RequestContext:
        session = self.sessions.resolve(principal.credential)
        return RequestContext(principal=principal, session_id=session.id)

    async def complete_ghl_authorization(self, code: str, state: str | None = None) -> tuple[UpstreamTokenPair, bool]:
        """Exchange a GHL consent code; bind the tokens to session ``state`` if it exists.

        Returns:
            The new token pair and whether it was bound to a session
        """
        tokens = await self.token_store.exchange_authorization_code(code)
        bound = bool(state) and self.sessions.bind(state, tokens)
        if bound:
            logger.info("GHL tokens bound to session %s", state)
        return tokens, bound
