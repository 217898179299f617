"""
Client composition root following Black Box Design principles.

This factory:
- Constructs the client-side auth stack from configuration
- Wires the session manager, credential controller and backend sync together
- Returns a single AuthClient facade
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from authflow.config.provider import ConfigProvider
from authflow.modules.credentials import CredentialController
from authflow.modules.identity import IdentityProvider
from authflow.modules.session import Confirmation, SessionManager
from authflow.modules.storage import MemoryTokenStore, TokenStore
from authflow.modules.sync import BackendClient, BackendSyncReconciler
from authflow.modules.verification import VerificationFlow

logger = logging.getLogger(__name__)


@dataclass
class AuthClient:
    """Facade over the wired client-side components."""

    session: SessionManager
    credentials: CredentialController
    reconciler: BackendSyncReconciler
    backend: BackendClient

    @property
    def is_signed_in(self) -> bool:
        return self.session.is_signed_in

    async def start(self) -> bool:
        """
        Begin observing sessions and restore any persisted one.

        Returns:
            True if a stored session was re-activated
        """
        self.reconciler.start()
        return await self.session.restore()

    def start_password_reset(self) -> VerificationFlow:
        return self.credentials.start_password_reset()

    async def sign_out(self, confirm: Confirmation) -> bool:
        return await self.session.end(confirm)

    async def close(self) -> None:
        """Stop background sync once in-flight calls finish."""
        self.reconciler.stop()
        await self.reconciler.wait_idle()


class ClientFactory:
    """
    Factory for building the client-side auth stack.

    This is the composition root that:
    - Creates all client components
    - Wires them together via dependency injection
    - Returns only the AuthClient facade
    """

    @staticmethod
    def build(
        config_provider: ConfigProvider,
        identity_provider: IdentityProvider,
        token_store: Optional[TokenStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> AuthClient:
        """
        Build the complete client stack.

        Args:
            config_provider: Configuration provider
            identity_provider: Identity provider SDK adapter
            token_store: Secure token store (process memory if omitted)
            http_client: Optional pre-built HTTP client for the backend

        Returns:
            AuthClient facade

        Raises:
            ValueError: If the publishable key is not configured
        """
        provider_config = config_provider.get_identity_provider_config()
        backend_config = config_provider.get_backend_config()

        if token_store is None:
            logger.warning("No token store configured - sessions will not survive a restart")
            token_store = MemoryTokenStore()

        timeout = provider_config.provider_timeout
        session = SessionManager(identity_provider, token_store, timeout=timeout)
        backend = BackendClient(backend_config, http_client=http_client)
        reconciler = BackendSyncReconciler(session, backend, identity_provider, timeout=timeout)
        credentials = CredentialController(
            identity_provider,
            session,
            timeout=timeout,
            oauth_strategies=provider_config.oauth_strategies,
        )

        if not backend_config.is_configured:
            logger.info("AUTHFLOW_API_URL not set - user sync will be skipped")

        return AuthClient(
            session=session,
            credentials=credentials,
            reconciler=reconciler,
            backend=backend,
        )
