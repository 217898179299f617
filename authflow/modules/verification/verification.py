"""
Verification flow state machine.

One VerificationFlow instance drives a single email verification or
password reset sequence:

    idle -> code_requested -> code_sent -> code_verified -> resolved

with a terminal ``failed`` stage when the provider invalidates the attempt.
Code requests always report "code sent" so that the flow never reveals
whether an address is registered. Code rejections are reported normally.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ...config.provider import DEFAULT_PROVIDER_TIMEOUT
from ..flow import ErrorKind, FlowController, FlowResult, exclusive
from ..flow.base import StaleResponseError
from ..identity.errors import (
    IdentityProviderError,
    ProviderUnavailableError,
    UnrecoverableProviderError,
)
from ..identity.results import Complete, NeedsNewPassword, Rejected

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"[0-9]{6}")
MIN_PASSWORD_LENGTH = 8

CODE_SENT_MESSAGE = "A 6-digit code has been sent to your email address."
CODE_RESENT_MESSAGE = "Verification code sent again. Please check your inbox."
CODE_VERIFIED_MESSAGE = "Code verified. Please choose a new password."
EMAIL_VERIFIED_MESSAGE = "Email verified successfully!"
PASSWORD_RESET_MESSAGE = "Your password has been reset successfully!"
INVALID_CODE_MESSAGE = "Invalid code. Please try again."
RESET_FAILED_MESSAGE = "Password reset failed. Please try again."
UNREACHABLE_MESSAGE = "Unable to reach the server. Please try again."
EXPIRED_MESSAGE = "This verification can no longer be completed. Please start again."
ACTIVATION_FAILED_MESSAGE = "Verification succeeded but your session could not be started. Please sign in."


class Purpose(str, Enum):
    """What a verification flow is proving."""

    EMAIL_VERIFY = "email_verify"
    PASSWORD_RESET = "password_reset"


class FlowStage(str, Enum):
    """Stages of a verification flow."""

    IDLE = "idle"
    CODE_REQUESTED = "code_requested"
    CODE_SENT = "code_sent"
    CODE_VERIFIED = "code_verified"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class VerificationAttempt:
    """Transient data of the attempt in progress. Never persisted."""

    purpose: Purpose
    identifier: str
    code_entered: Optional[str] = None


def validate_new_password(password: Optional[str], confirm_password: Optional[str]) -> Optional[str]:
    """
    Check a new password locally.

    Returns:
        A user-facing error message, or None when the password is acceptable
    """
    if not password or not confirm_password:
        return "Please fill in all fields"
    if password != confirm_password:
        return "Passwords do not match"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    return None


class VerificationFlow(FlowController):
    """
    State machine for one email verification or password reset sequence.

    Provider failures never raise out of the public operations; each one
    returns a FlowResult and leaves the flow in its pre-call stage unless
    the provider reported the attempt as unrecoverable.
    """

    def __init__(
        self,
        purpose: Purpose,
        identity_provider,
        session_manager,
        timeout: Optional[float] = DEFAULT_PROVIDER_TIMEOUT,
    ):
        """
        Args:
            purpose: Purpose.EMAIL_VERIFY or Purpose.PASSWORD_RESET
            identity_provider: IdentityProvider implementation
            session_manager: SessionManager to activate on resolution
            timeout: Seconds to wait for each provider call
        """
        super().__init__(timeout=timeout)
        self.purpose = Purpose(purpose)
        self.provider = identity_provider
        self.session_manager = session_manager
        self.stage = FlowStage.IDLE
        self.attempt: Optional[VerificationAttempt] = None

    @exclusive
    async def request_code(self, identifier: str) -> FlowResult:
        """Ask the provider to send a one-time code to identifier."""
        identifier = (identifier or "").strip()
        if not identifier:
            return FlowResult.failure(ErrorKind.VALIDATION, "Please enter your email address")

        self.attempt = VerificationAttempt(purpose=self.purpose, identifier=identifier)
        self.stage = FlowStage.CODE_REQUESTED
        await self._issue_code(identifier)
        self.stage = FlowStage.CODE_SENT
        return FlowResult.success(CODE_SENT_MESSAGE)

    @exclusive
    async def resend_code(self) -> FlowResult:
        """Send a fresh code to the same identifier without changing stage."""
        if self.stage != FlowStage.CODE_SENT:
            return FlowResult.failure(ErrorKind.PRECONDITION, "No verification code has been requested")

        await self._issue_code(self.attempt.identifier)
        if self.purpose is Purpose.EMAIL_VERIFY:
            return FlowResult.success(CODE_RESENT_MESSAGE)
        return FlowResult.success(CODE_SENT_MESSAGE)

    @exclusive
    async def verify_code(self, code: str) -> FlowResult:
        """Submit the six digit code the user received."""
        if self.stage != FlowStage.CODE_SENT:
            return FlowResult.failure(ErrorKind.PRECONDITION, "Request a verification code first")

        if not code or not CODE_PATTERN.fullmatch(code):
            return FlowResult.failure(ErrorKind.VALIDATION, "Please enter the 6-digit code")

        self.attempt.code_entered = code
        if self.purpose is Purpose.PASSWORD_RESET:
            call = self.provider.attempt_first_factor(code)
        else:
            call = self.provider.attempt_email_verification(code)

        outcome = await self._submit(call, INVALID_CODE_MESSAGE)
        if isinstance(outcome, FlowResult):
            return outcome

        if isinstance(outcome, NeedsNewPassword):
            self.stage = FlowStage.CODE_VERIFIED
            return FlowResult.success(CODE_VERIFIED_MESSAGE)
        if isinstance(outcome, Complete):
            if self.purpose is Purpose.PASSWORD_RESET:
                return await self._resolve(outcome.session_id, PASSWORD_RESET_MESSAGE)
            return await self._resolve(outcome.session_id, EMAIL_VERIFIED_MESSAGE)

        reason = outcome.reason if isinstance(outcome, Rejected) else None
        return FlowResult.failure(ErrorKind.REJECTED, reason or INVALID_CODE_MESSAGE)

    @exclusive
    async def complete_with_new_credential(self, password: str, confirm_password: str) -> FlowResult:
        """Set the new password once the reset code has been verified."""
        if self.purpose is not Purpose.PASSWORD_RESET or self.stage != FlowStage.CODE_VERIFIED:
            return FlowResult.failure(
                ErrorKind.PRECONDITION, "Verify your code before choosing a new password"
            )

        problem = validate_new_password(password, confirm_password)
        if problem:
            return FlowResult.failure(ErrorKind.VALIDATION, problem)

        outcome = await self._submit(self.provider.reset_password(password), RESET_FAILED_MESSAGE)
        if isinstance(outcome, FlowResult):
            return outcome

        if isinstance(outcome, Complete):
            return await self._resolve(outcome.session_id, PASSWORD_RESET_MESSAGE)

        reason = outcome.reason if isinstance(outcome, Rejected) else None
        return FlowResult.failure(ErrorKind.REJECTED, reason or RESET_FAILED_MESSAGE)

    def cancel(self) -> None:
        """Return to idle and forget the attempt. Makes no provider call."""
        self._invalidate_pending()
        self.attempt = None
        self.stage = FlowStage.IDLE

    async def _issue_code(self, identifier: str) -> None:
        try:
            if self.purpose is Purpose.PASSWORD_RESET:
                await self._call(self.provider.request_password_reset(identifier))
            else:
                await self._call(self.provider.prepare_email_verification())
        except StaleResponseError:
            raise
        except Exception as e:
            # Reported exactly like success so registered addresses cannot be probed
            logger.info(f"Code request ({self.purpose.value}) not confirmed by provider: {e}")

    async def _submit(self, call, fallback_message: str):
        """Run a provider call, mapping failures to FlowResult."""
        try:
            return await self._call(call)
        except StaleResponseError:
            raise
        except UnrecoverableProviderError as e:
            logger.warning(f"Verification ({self.purpose.value}) failed permanently: {e}")
            self.stage = FlowStage.FAILED
            self.attempt = None
            return FlowResult.failure(ErrorKind.FAILED, e.user_message or EXPIRED_MESSAGE)
        except ProviderUnavailableError as e:
            logger.warning(f"Verification ({self.purpose.value}) transport error: {e}")
            return FlowResult.failure(ErrorKind.TRANSPORT, UNREACHABLE_MESSAGE)
        except IdentityProviderError as e:
            logger.info(f"Verification ({self.purpose.value}) rejected: {e}")
            return FlowResult.failure(ErrorKind.REJECTED, e.user_message or fallback_message)
        except Exception as e:
            logger.error(f"Unexpected error during verification ({self.purpose.value}): {e}")
            return FlowResult.failure(ErrorKind.REJECTED, fallback_message)

    async def _resolve(self, session_id: Optional[str], message: str) -> FlowResult:
        self.stage = FlowStage.RESOLVED
        self.attempt = None

        if session_id:
            try:
                await self.session_manager.activate(session_id)
            except Exception as e:
                logger.error(f"Failed to activate session after verification: {e}")
                self.stage = FlowStage.FAILED
                return FlowResult.failure(ErrorKind.FAILED, ACTIVATION_FAILED_MESSAGE)

        return FlowResult.success(message, session_id=session_id)
