"""
Mock Identity Provider for Testing

This module provides an in-memory identity provider that simulates the
behavior of a hosted identity service (sign-in, sign-up, email codes,
password reset, federated sign-on and session tokens) for tests and
local development.
"""

import secrets
import time
from datetime import UTC, datetime, timedelta
from typing import Dict, Optional

import jwt
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import (
    IdentityProviderError,
    ProviderErrorEntry,
    ProviderUnavailableError,
    UnrecoverableProviderError,
)
from .results import (
    Complete,
    FederatedResult,
    FirstFactorResult,
    NeedsNewPassword,
    NeedsVerification,
    Rejected,
    ResetPasswordResult,
    SignInResult,
    SignUpResult,
    VerificationResult,
)


def _error(code: str, message: str) -> IdentityProviderError:
    return IdentityProviderError(message, [ProviderErrorEntry(code=code, message=message)])


class MockIdentityProvider:
    """
    In-memory identity provider for testing.

    Supports:
    - Password sign-in and sign-up with optional email verification
    - Time-boxed six digit codes for email verification and password reset
    - Federated sign-on for a configured user
    - RS256-signed session tokens with a matching JWKS
    """

    def __init__(
        self,
        issuer: str = "http://localhost:9000",
        require_email_verification: bool = True,
        code_ttl: int = 600,
        supported_strategies: Optional[list] = None,
    ):
        """Initialize the mock provider."""
        self.issuer = issuer
        self.require_email_verification = require_email_verification
        self.code_ttl = code_ttl
        self.supported_strategies = supported_strategies or ["oauth_google"]

        self.private_key = rsa.generate_private_key(
            public_exponent=65537,
            key_size=2048,
            backend=default_backend()
        )
        self.public_key = self.private_key.public_key()
        self.key_id = "mock-key-1"

        # email -> user record
        self.users: Dict[str, dict] = {}
        # session_id -> {"user_id", "email"}
        self.sessions: Dict[str, dict] = {}
        # Last code delivered to each email address
        self.outbox: Dict[str, str] = {}

        self.active_session_id: Optional[str] = None
        self.federated_email: Optional[str] = None
        self.unavailable = False

        self._sign_in_attempt: Optional[dict] = None
        self._sign_up_attempt: Optional[dict] = None

    # Test helpers

    def add_user(
        self,
        email: str,
        password: str,
        first_name: str = "Test",
        last_name: str = "User"
    ) -> str:
        """Register a verified user directly and return its user id."""
        user_id = f"user_{secrets.token_hex(8)}"
        self.users[email] = {
            "user_id": user_id,
            "email": email,
            "password": password,
            "first_name": first_name,
            "last_name": last_name,
        }
        return user_id

    def expire_codes(self) -> None:
        """Make every outstanding code stale."""
        for attempt in (self._sign_in_attempt, self._sign_up_attempt):
            if attempt:
                attempt["expires_at"] = time.time() - 1

    def get_public_key(self):
        return self.public_key

    # Internals

    def _check_available(self) -> None:
        if self.unavailable:
            raise ProviderUnavailableError("Identity provider unreachable")

    def _issue_code(self, email: str) -> dict:
        code = f"{secrets.randbelow(10**6):06d}"
        self.outbox[email] = code
        return {"code": code, "expires_at": time.time() + self.code_ttl}

    def _create_session(self, email: str) -> str:
        user = self.users[email]
        session_id = f"sess_{secrets.token_hex(12)}"
        self.sessions[session_id] = {"user_id": user["user_id"], "email": email}
        return session_id

    @staticmethod
    def _check_code(attempt: dict, code: str) -> None:
        if time.time() > attempt["expires_at"]:
            raise UnrecoverableProviderError(
                "Verification expired",
                [ProviderErrorEntry(
                    code="verification_expired",
                    message="This verification has expired. Please request a new code."
                )],
            )
        if not secrets.compare_digest(code, attempt["code"]):
            raise _error("form_code_incorrect", "Incorrect code")

    # Sign-in

    async def create_sign_in(self, identifier: str, password: str) -> SignInResult:
        self._check_available()
        user = self.users.get(identifier)
        if not user:
            raise _error("form_identifier_not_found", "Couldn't find your account.")
        if not secrets.compare_digest(password, user["password"]):
            raise _error(
                "form_password_incorrect",
                "Password is incorrect. Try again, or use another method."
            )
        return Complete(session_id=self._create_session(identifier))

    async def request_password_reset(self, identifier: str) -> None:
        self._check_available()
        if identifier not in self.users:
            raise _error("form_identifier_not_found", "Couldn't find your account.")
        self._sign_in_attempt = {"email": identifier, "stage": "needs_first_factor"}
        self._sign_in_attempt.update(self._issue_code(identifier))

    async def attempt_first_factor(self, code: str) -> FirstFactorResult:
        self._check_available()
        attempt = self._sign_in_attempt
        if not attempt or attempt["stage"] != "needs_first_factor":
            raise UnrecoverableProviderError(
                "No sign-in attempt awaiting a code",
                [ProviderErrorEntry(code="sign_in_missing")],
            )
        self._check_code(attempt, code)
        attempt["stage"] = "needs_new_password"
        return NeedsNewPassword()

    async def reset_password(self, password: str) -> ResetPasswordResult:
        self._check_available()
        attempt = self._sign_in_attempt
        if not attempt or attempt["stage"] != "needs_new_password":
            return Rejected(reason="Password reset is not available")
        email = attempt["email"]
        self.users[email]["password"] = password
        self._sign_in_attempt = None
        return Complete(session_id=self._create_session(email))

    # Sign-up

    async def create_sign_up(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str
    ) -> SignUpResult:
        self._check_available()
        if email in self.users:
            raise _error(
                "form_identifier_exists",
                "That email address is taken. Please try another."
            )
        pending = {
            "email": email,
            "password": password,
            "first_name": first_name,
            "last_name": last_name,
            "code": None,
            "expires_at": 0.0,
        }
        if not self.require_email_verification:
            self._register(pending)
            return Complete(session_id=self._create_session(email))

        self._sign_up_attempt = pending
        return NeedsVerification()

    def _register(self, pending: dict) -> None:
        self.add_user(
            pending["email"],
            pending["password"],
            pending["first_name"],
            pending["last_name"],
        )

    async def prepare_email_verification(self) -> None:
        self._check_available()
        if not self._sign_up_attempt:
            raise UnrecoverableProviderError(
                "No sign-up awaiting verification",
                [ProviderErrorEntry(code="sign_up_missing")],
            )
        self._sign_up_attempt.update(self._issue_code(self._sign_up_attempt["email"]))

    async def attempt_email_verification(self, code: str) -> VerificationResult:
        self._check_available()
        attempt = self._sign_up_attempt
        if not attempt or not attempt["code"]:
            raise UnrecoverableProviderError(
                "No verification code was issued",
                [ProviderErrorEntry(code="verification_missing")],
            )
        self._check_code(attempt, code)
        self._register(attempt)
        self._sign_up_attempt = None
        return Complete(session_id=self._create_session(attempt["email"]))

    # Federated sign-on

    async def start_federated_flow(self, strategy: str) -> FederatedResult:
        self._check_available()
        if strategy not in self.supported_strategies:
            raise _error("strategy_not_allowed", f"{strategy} is not enabled")
        if not self.federated_email:
            # User closed the browser without finishing the exchange
            return FederatedResult(session_id=None)
        if self.federated_email not in self.users:
            self.add_user(self.federated_email, secrets.token_urlsafe(16))
        return FederatedResult(session_id=self._create_session(self.federated_email))

    # Sessions

    async def set_active_session(self, session_id: str) -> None:
        self._check_available()
        if session_id not in self.sessions:
            raise _error("session_not_found", "Session not found")
        self.active_session_id = session_id

    async def sign_out(self) -> None:
        self._check_available()
        if self.active_session_id:
            self.sessions.pop(self.active_session_id, None)
        self.active_session_id = None

    async def get_token(self) -> Optional[str]:
        if not self.active_session_id:
            return None
        return self.create_session_token(self.active_session_id)

    def create_session_token(self, session_id: str, expires_in: int = 60) -> str:
        """Create an RS256 session token for session_id."""
        session = self.sessions[session_id]
        user = self.users[session["email"]]
        now = datetime.now(UTC)
        claims = {
            "iss": self.issuer,
            "sub": user["user_id"],
            "sid": session_id,
            "email": user["email"],
            "first_name": user["first_name"],
            "last_name": user["last_name"],
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
        }
        return jwt.encode(
            claims,
            self.private_key,
            algorithm="RS256",
            headers={"kid": self.key_id},
        )
