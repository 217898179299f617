import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from ...config.provider import DEFAULT_PROVIDER_TIMEOUT
from ..identity.errors import IdentityProviderError, ProviderUnavailableError

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Lifecycle of the device session."""

    PENDING = "pending"
    ACTIVE = "active"
    ENDED = "ended"


class Decision(str, Enum):
    """Outcome of the sign-out confirmation prompt."""

    CONFIRM = "confirm"
    CANCEL = "cancel"


@dataclass(frozen=True)
class SessionEvent:
    """Published whenever a session becomes active or ends."""

    session_id: str
    status: SessionStatus


SessionListener = Callable[[SessionEvent], Awaitable[None]]
Confirmation = Callable[[], Awaitable[Decision]]


class SessionManager:
    def __init__(self, identity_provider, token_store, timeout: Optional[float] = DEFAULT_PROVIDER_TIMEOUT):
        """
        Initialize session manager.

        Args:
            identity_provider: IdentityProvider implementation
            token_store: TokenStore used to persist the active session
            timeout: Seconds to wait for each provider call
        """
        self.provider = identity_provider
        self.token_store = token_store
        self.timeout = timeout
        self.session_id: Optional[str] = None
        self.status = SessionStatus.ENDED
        self._listeners: List[SessionListener] = []
        self._lock = asyncio.Lock()

    @property
    def is_signed_in(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener for session events.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def activate(self, session_id: str) -> None:
        """
        Make session_id the active session.

        Any other active session is ended first. Activating the session
        that is already active does nothing.

        Args:
            session_id: Session identifier returned by the identity provider

        Raises:
            ValueError: If session_id is empty
            IdentityProviderError: If the provider refuses the session
        """
        if not session_id:
            raise ValueError("session_id is required")

        async with self._lock:
            if self.is_signed_in and self.session_id == session_id:
                logger.debug(f"Session {session_id} already active")
                return

            if self.is_signed_in:
                previous = self.session_id
                self.status = SessionStatus.ENDED
                logger.info(f"Ending session {previous} in favour of {session_id}")
                await self._publish(SessionEvent(previous, SessionStatus.ENDED))

            self.session_id = session_id
            self.status = SessionStatus.PENDING

            try:
                await self._call(self.provider.set_active_session(session_id))
                await self.token_store.save(session_id)
            except Exception:
                self.session_id = None
                self.status = SessionStatus.ENDED
                raise

            self.status = SessionStatus.ACTIVE
            logger.info(f"Session {session_id} activated")
            await self._publish(SessionEvent(session_id, SessionStatus.ACTIVE))

    async def end(self, confirm: Confirmation) -> bool:
        """
        Sign out after explicit confirmation.

        Args:
            confirm: Awaitable prompt returning Decision.CONFIRM or Decision.CANCEL

        Returns:
            True if the session was ended, False if nothing changed
        """
        if not self.is_signed_in:
            return False

        decision = await confirm()
        if decision != Decision.CONFIRM:
            logger.debug("Sign-out cancelled by user")
            return False

        try:
            await self._call(self.provider.sign_out())
        except Exception as e:
            # Local state is cleared regardless so the device is signed out
            logger.warning(f"Provider sign-out failed: {e}")

        async with self._lock:
            await self._end_locally()
        return True

    async def expire(self) -> None:
        """Handle a provider-side session expiry."""
        async with self._lock:
            if self.is_signed_in:
                logger.info(f"Session {self.session_id} expired")
                await self._end_locally()

    async def restore(self) -> bool:
        """
        Re-activate the session persisted by a previous process.

        Returns:
            True if a stored session was activated
        """
        token = await self.token_store.load()
        if not token:
            return False

        try:
            await self.activate(token)
        except ProviderUnavailableError as e:
            logger.warning(f"Could not restore session, provider unavailable: {e}")
            return False
        except IdentityProviderError as e:
            logger.info(f"Stored session is no longer valid: {e}")
            await self.token_store.clear()
            return False
        return True

    async def _call(self, awaitable: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(awaitable, self.timeout)
        except asyncio.TimeoutError as e:
            raise ProviderUnavailableError(
                f"Identity provider did not answer within {self.timeout}s"
            ) from e

    async def _end_locally(self) -> None:
        session_id = self.session_id
        await self.token_store.clear()
        self.session_id = None
        self.status = SessionStatus.ENDED
        logger.info(f"Session {session_id} ended")
        if session_id:
            await self._publish(SessionEvent(session_id, SessionStatus.ENDED))

    async def _publish(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event)
            except Exception as e:
                logger.error(f"Session listener failed for {event.status.value}: {e}")
