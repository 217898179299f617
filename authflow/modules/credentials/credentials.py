"""
Credential submission for sign-in, sign-up and OAuth single sign-on.

Only one submission runs at a time per controller. Failures are reported
with the provider's own message when it supplies one and a generic
message otherwise, never a reason naming the wrong field.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ...config.provider import DEFAULT_PROVIDER_TIMEOUT
from ..flow import ErrorKind, FlowController, FlowResult, exclusive
from ..flow.base import StaleResponseError
from ..identity.errors import IdentityProviderError, ProviderUnavailableError
from ..identity.results import Complete, NeedsVerification, Rejected
from ..verification import FlowStage, Purpose, VerificationFlow

logger = logging.getLogger(__name__)

DEFAULT_OAUTH_TIMEOUT = 300.0

SIGN_IN_FAILED_MESSAGE = "Sign in failed. Please try again."
SIGN_UP_FAILED_MESSAGE = "Sign up failed. Please try again."
VERIFICATION_REQUIRED_MESSAGE = (
    "Please check your email and enter the 6-digit verification code below."
)
SESSION_FAILED_MESSAGE = "Unable to start your session. Please try again."
MISSING_FIELDS_MESSAGE = "Please fill in all fields"

# Display names for federated strategies
STRATEGY_LABELS = {
    "oauth_google": "Google",
    "oauth_apple": "Apple",
    "oauth_github": "GitHub",
}


class SignUpStage(str, Enum):
    """Stages of a sign-up."""

    SUBMITTED = "submitted"
    MISSING_REQUIREMENTS = "missing_requirements"
    COMPLETE = "complete"


@dataclass
class SignUpFlow:
    """
    State of one sign-up.

    The embedded verification flow exists only while the sign-up is in
    MISSING_REQUIREMENTS; code entry is not reachable from any other stage.
    """

    email: str
    stage: SignUpStage = SignUpStage.SUBMITTED
    verification: Optional[VerificationFlow] = None

    @property
    def verification_pending(self) -> bool:
        return self.stage == SignUpStage.MISSING_REQUIREMENTS


def strategy_label(strategy: str) -> str:
    """Human readable name of an OAuth strategy."""
    return STRATEGY_LABELS.get(strategy, strategy.replace("oauth_", "").title())


class CredentialController(FlowController):
    """Orchestrates sign-in and sign-up attempts against the identity provider."""

    def __init__(
        self,
        identity_provider,
        session_manager,
        timeout: Optional[float] = DEFAULT_PROVIDER_TIMEOUT,
        oauth_strategies: Optional[List[str]] = None,
        oauth_timeout: float = DEFAULT_OAUTH_TIMEOUT,
    ):
        """
        Args:
            identity_provider: IdentityProvider implementation
            session_manager: SessionManager receiving new sessions
            timeout: Seconds to wait for each provider call
            oauth_strategies: Federated strategies the app offers
            oauth_timeout: Seconds to wait for a federated exchange to finish
        """
        super().__init__(timeout=timeout)
        self.provider = identity_provider
        self.session_manager = session_manager
        self.oauth_strategies = oauth_strategies or ["oauth_google"]
        self.oauth_timeout = oauth_timeout
        self.sign_up_flow: Optional[SignUpFlow] = None

    # Sign-in

    @exclusive
    async def sign_in(self, identifier: str, password: str) -> FlowResult:
        """Sign in with an email address and password."""
        if not identifier or not password:
            return FlowResult.failure(ErrorKind.VALIDATION, MISSING_FIELDS_MESSAGE)

        result = await self._submit(
            self.provider.create_sign_in(identifier, password), SIGN_IN_FAILED_MESSAGE
        )
        if isinstance(result, FlowResult):
            return result

        if isinstance(result, Complete) and result.session_id:
            return await self._activate(result.session_id)

        logger.info(f"Sign-in did not complete: {type(result).__name__}")
        return FlowResult.failure(ErrorKind.REJECTED, self._reason(result, SIGN_IN_FAILED_MESSAGE))

    # Sign-up

    @exclusive
    async def sign_up(self, first_name: str, last_name: str, email: str, password: str) -> FlowResult:
        """
        Create an account.

        If the provider needs the email address verified first, the sign-up
        moves to MISSING_REQUIREMENTS and a verification code is sent.
        """
        if not all([first_name, last_name, email, password]):
            return FlowResult.failure(ErrorKind.VALIDATION, MISSING_FIELDS_MESSAGE)

        generation = self._generation
        flow = SignUpFlow(email=email)
        self.sign_up_flow = flow

        result = await self._submit(
            self.provider.create_sign_up(first_name, last_name, email, password),
            SIGN_UP_FAILED_MESSAGE,
        )
        if isinstance(result, FlowResult):
            self.sign_up_flow = None
            return result

        if isinstance(result, Complete) and result.session_id:
            outcome = await self._activate(result.session_id)
            if outcome.ok:
                flow.stage = SignUpStage.COMPLETE
            return outcome

        if isinstance(result, NeedsVerification):
            flow.stage = SignUpStage.MISSING_REQUIREMENTS
            flow.verification = VerificationFlow(
                Purpose.EMAIL_VERIFY,
                self.provider,
                self.session_manager,
                timeout=self.timeout,
            )
            sent = await flow.verification.request_code(email)
            # cancel_sign_up may have run while the code was being requested
            self._check_current(generation)
            if not sent.ok:
                return sent
            logger.info("Sign-up awaiting email verification")
            return FlowResult.success(VERIFICATION_REQUIRED_MESSAGE)

        self.sign_up_flow = None
        return FlowResult.failure(ErrorKind.REJECTED, self._reason(result, SIGN_UP_FAILED_MESSAGE))

    @exclusive
    async def verify_sign_up(self, code: str) -> FlowResult:
        """Submit the email verification code of a pending sign-up."""
        flow = self.sign_up_flow
        if not flow or not flow.verification_pending:
            return FlowResult.failure(ErrorKind.PRECONDITION, "No sign-up is awaiting verification")

        result = await flow.verification.verify_code(code)
        if flow.verification.stage == FlowStage.RESOLVED:
            flow.stage = SignUpStage.COMPLETE
        elif flow.verification.stage == FlowStage.FAILED:
            # Provider dropped the sign-up; the form has to be submitted again
            self.sign_up_flow = None
        return result

    @exclusive
    async def resend_sign_up_code(self) -> FlowResult:
        """Send the email verification code again."""
        flow = self.sign_up_flow
        if not flow or not flow.verification_pending:
            return FlowResult.failure(ErrorKind.PRECONDITION, "No sign-up is awaiting verification")
        return await flow.verification.resend_code()

    def cancel_sign_up(self) -> None:
        """Leave code entry and return to the sign-up form."""
        self._invalidate_pending()
        if self.sign_up_flow and self.sign_up_flow.verification:
            self.sign_up_flow.verification.cancel()
        self.sign_up_flow = None

    # Federated sign-on

    @exclusive
    async def sign_in_with_oauth(self, strategy: str = "oauth_google") -> FlowResult:
        """Sign in through a federated identity provider."""
        if strategy not in self.oauth_strategies:
            return FlowResult.failure(ErrorKind.VALIDATION, f"{strategy_label(strategy)} sign-in is not available")

        failed_message = f"Failed to sign in with {strategy_label(strategy)}. Please try again."
        try:
            result = await self._call(
                self.provider.start_federated_flow(strategy), timeout=self.oauth_timeout
            )
        except StaleResponseError:
            raise
        except ProviderUnavailableError as e:
            logger.warning(f"OAuth ({strategy}) transport error: {e}")
            return FlowResult.failure(ErrorKind.TRANSPORT, failed_message)
        except Exception as e:
            logger.error(f"Error in OAuth ({strategy}): {e}")
            return FlowResult.failure(ErrorKind.REJECTED, failed_message)

        if not result.session_id:
            logger.info(f"OAuth ({strategy}) finished without a session")
            return FlowResult.failure(ErrorKind.CANCELLED)

        return await self._activate(result.session_id)

    # Password reset

    def start_password_reset(self) -> VerificationFlow:
        """Create a fresh password reset flow owned by the caller."""
        return VerificationFlow(
            Purpose.PASSWORD_RESET,
            self.provider,
            self.session_manager,
            timeout=self.timeout,
        )

    # Helpers

    async def _submit(self, call, fallback_message: str):
        try:
            return await self._call(call)
        except StaleResponseError:
            raise
        except ProviderUnavailableError as e:
            logger.warning(f"Identity provider unavailable: {e}")
            return FlowResult.failure(ErrorKind.TRANSPORT, e.user_message or fallback_message)
        except IdentityProviderError as e:
            logger.info(f"Identity provider rejected credentials: {e}")
            return FlowResult.failure(ErrorKind.REJECTED, e.user_message or fallback_message)
        except Exception as e:
            logger.error(f"Unexpected error submitting credentials: {e}")
            return FlowResult.failure(ErrorKind.REJECTED, fallback_message)

    async def _activate(self, session_id: str) -> FlowResult:
        try:
            await self.session_manager.activate(session_id)
        except ProviderUnavailableError as e:
            logger.warning(f"Session activation failed: {e}")
            return FlowResult.failure(ErrorKind.TRANSPORT, SESSION_FAILED_MESSAGE)
        except Exception as e:
            logger.error(f"Session activation failed: {e}")
            return FlowResult.failure(ErrorKind.REJECTED, SESSION_FAILED_MESSAGE)
        return FlowResult.success(session_id=session_id)

    @staticmethod
    def _reason(result, fallback_message: str) -> str:
        if isinstance(result, Rejected) and result.reason:
            return result.reason
        return fallback_message
