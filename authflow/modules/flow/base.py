"""
Shared machinery for user-driven authentication flows.

Every flow instance runs one operation at a time. A call made while
another is in flight is rejected with ErrorKind.BUSY instead of queued.
Cancelling a flow bumps its generation so that responses to calls
dispatched before the cancellation are dropped.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Optional

from ...config.provider import DEFAULT_PROVIDER_TIMEOUT
from ..identity.errors import ProviderUnavailableError

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "Another request is already in progress"


class ErrorKind(str, Enum):
    """Why a flow operation did not succeed."""

    VALIDATION = "validation"
    BUSY = "busy"
    PRECONDITION = "precondition"
    REJECTED = "rejected"
    TRANSPORT = "transport"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FlowResult:
    """Standardized outcome of a flow operation, reported to the UI layer."""

    ok: bool
    message: Optional[str] = None
    error: Optional[ErrorKind] = None
    session_id: Optional[str] = None

    @property
    def retryable(self) -> bool:
        return self.error in (ErrorKind.TRANSPORT, ErrorKind.BUSY)

    @classmethod
    def success(cls, message: Optional[str] = None, session_id: Optional[str] = None) -> "FlowResult":
        return cls(ok=True, message=message, session_id=session_id)

    @classmethod
    def failure(cls, error: ErrorKind, message: Optional[str] = None) -> "FlowResult":
        return cls(ok=False, message=message, error=error)


class StaleResponseError(Exception):
    """A provider call finished after its flow was cancelled."""


def exclusive(method):
    """Run a flow operation under the flow's busy flag."""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs) -> FlowResult:
        if self.busy:
            logger.debug(f"{type(self).__name__}.{method.__name__} rejected: busy")
            return FlowResult.failure(ErrorKind.BUSY, BUSY_MESSAGE)

        self.busy = True
        try:
            return await method(self, *args, **kwargs)
        except StaleResponseError:
            logger.debug(f"Ignoring late response for {type(self).__name__}.{method.__name__}")
            return FlowResult.failure(ErrorKind.CANCELLED)
        finally:
            self.busy = False

    return wrapper


class FlowController:
    """Base class holding the busy flag, call timeout and generation counter."""

    def __init__(self, timeout: Optional[float] = DEFAULT_PROVIDER_TIMEOUT):
        """
        Args:
            timeout: Seconds to wait for each provider call (None waits forever)
        """
        self.timeout = timeout
        self.busy = False
        self._generation = 0

    def _invalidate_pending(self) -> None:
        self._generation += 1

    def _check_current(self, generation: int) -> None:
        if generation != self._generation:
            raise StaleResponseError()

    async def _call(self, awaitable: Awaitable[Any], timeout: Optional[float] = None) -> Any:
        """
        Await a provider call with a timeout (the flow default unless given).

        Raises:
            ProviderUnavailableError: If the call timed out
            StaleResponseError: If the flow was cancelled while waiting
        """
        generation = self._generation
        limit = timeout if timeout is not None else self.timeout
        try:
            result = await asyncio.wait_for(awaitable, limit)
        except asyncio.TimeoutError as e:
            self._check_current(generation)
            raise ProviderUnavailableError(
                f"Identity provider did not answer within {limit}s"
            ) from e
        except Exception:
            self._check_current(generation)
            raise
        self._check_current(generation)
        return result
