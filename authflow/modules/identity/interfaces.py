"""Identity provider interface following Black Box Design principles."""
from typing import Optional, Protocol

from .results import (
    FederatedResult,
    FirstFactorResult,
    ResetPasswordResult,
    SignInResult,
    SignUpResult,
    VerificationResult,
)


class IdentityProvider(Protocol):
    """
    Protocol for identity provider clients - allows swappable implementations.

    Implementations raise IdentityProviderError (or a subclass) when the
    provider reports an error, and ProviderUnavailableError on transport
    failures.
    """

    async def create_sign_in(self, identifier: str, password: str) -> SignInResult:
        """Start a password sign-in attempt."""
        ...

    async def request_password_reset(self, identifier: str) -> None:
        """
        Issue a reset code to identifier (reset_password_email_code strategy).

        Must not reveal whether identifier is registered.
        """
        ...

    async def attempt_first_factor(self, code: str) -> FirstFactorResult:
        """Submit a reset code for the current sign-in attempt."""
        ...

    async def reset_password(self, password: str) -> ResetPasswordResult:
        """Set a new password on the current sign-in attempt."""
        ...

    async def create_sign_up(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str
    ) -> SignUpResult:
        """Start a sign-up attempt."""
        ...

    async def prepare_email_verification(self) -> None:
        """Send (or resend) an email verification code for the sign-up."""
        ...

    async def attempt_email_verification(self, code: str) -> VerificationResult:
        """Submit an email verification code for the current sign-up."""
        ...

    async def start_federated_flow(self, strategy: str) -> FederatedResult:
        """Run a federated single sign-on exchange."""
        ...

    async def set_active_session(self, session_id: str) -> None:
        """Make session_id the provider's active session."""
        ...

    async def sign_out(self) -> None:
        """End the provider's active session."""
        ...

    async def get_token(self) -> Optional[str]:
        """Get the bearer credential for the active session."""
        ...
