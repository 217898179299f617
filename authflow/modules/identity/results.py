"""
Closed result variants returned by identity provider operations.

Each provider operation returns one of a small set of frozen dataclasses
instead of a free-form status string, so callers branch on type.
"""

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Complete:
    """The attempt finished and produced a session."""
    session_id: Optional[str]


@dataclass(frozen=True)
class NeedsVerification:
    """The attempt is waiting on an email verification code."""


@dataclass(frozen=True)
class NeedsNewPassword:
    """The reset code was accepted; a new password must be set."""


@dataclass(frozen=True)
class Rejected:
    """The provider declined the attempt."""
    reason: Optional[str] = None


@dataclass(frozen=True)
class FederatedResult:
    """Outcome of a federated (OAuth) exchange."""
    session_id: Optional[str]


SignInResult = Union[Complete, NeedsVerification, Rejected]
SignUpResult = Union[Complete, NeedsVerification, Rejected]
FirstFactorResult = Union[NeedsNewPassword, Complete, Rejected]
ResetPasswordResult = Union[Complete, Rejected]
VerificationResult = Union[Complete, Rejected]
