"""
Backend user reconciliation after sign-in.

The reconciler subscribes once to session events. For every fresh
activation it issues exactly one sync call; it never retries, and sync
failures never reach the user.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Set

from ...config.provider import DEFAULT_PROVIDER_TIMEOUT
from ..api.models import Identity
from ..identity.errors import ProviderUnavailableError
from ..session import SessionEvent, SessionStatus
from .backend_client import BackendNotConfiguredError, BackendUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class SyncState:
    """Which session the reconciler last ran for, and whether it succeeded."""

    session_id: Optional[str] = None
    synced: bool = False


class BackendSyncReconciler:
    """Keeps the backend user record in step with the active session."""

    def __init__(
        self,
        session_manager,
        backend_client,
        identity_provider,
        timeout: Optional[float] = DEFAULT_PROVIDER_TIMEOUT,
    ):
        """
        Args:
            session_manager: SessionManager to observe
            backend_client: BackendClient used for the sync call
            identity_provider: IdentityProvider supplying the bearer credential
            timeout: Seconds to wait for the bearer credential
        """
        self.timeout = timeout
        self.session_manager = session_manager
        self.backend = backend_client
        self.provider = identity_provider
        self.state = SyncState()
        self.identity: Optional[Identity] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        """Subscribe to session events. Calling it again has no effect."""
        if not self._unsubscribe:
            self._unsubscribe = self.session_manager.subscribe(self._on_session_event)

    def stop(self) -> None:
        """Unsubscribe from session events."""
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    async def wait_idle(self) -> None:
        """Wait for any sync call in flight to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _on_session_event(self, event: SessionEvent) -> None:
        if event.status == SessionStatus.ENDED:
            if self.state.session_id == event.session_id:
                self.state = SyncState()
                self.identity = None
            return

        if event.status != SessionStatus.ACTIVE:
            return

        if self.state.session_id == event.session_id:
            logger.debug(f"Sync already attempted for session {event.session_id}")
            return

        # Set before dispatch so a repeated event cannot start a second call
        self.state = SyncState(session_id=event.session_id)
        task = asyncio.create_task(self._sync(event.session_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _get_token(self) -> Optional[str]:
        try:
            return await asyncio.wait_for(self.provider.get_token(), self.timeout)
        except asyncio.TimeoutError as e:
            raise ProviderUnavailableError(
                f"Identity provider did not return a token within {self.timeout}s"
            ) from e

    async def _sync(self, session_id: str) -> None:
        try:
            token = await self._get_token()
            response = await self.backend.sync_user(token)
        except (BackendUnavailableError, ProviderUnavailableError):
            logger.info("User sync skipped - backend not available")
            return
        except BackendNotConfiguredError:
            logger.info("User sync skipped - no API configured")
            return
        except Exception as e:
            logger.error(f"User sync failed: {e}")
            return

        if self.state.session_id != session_id:
            logger.debug(f"Discarding sync result for inactive session {session_id}")
            return

        self.state.synced = True
        self.identity = response.user.to_identity()
        logger.info(f"User synced successfully: {response.user.user_id}")
