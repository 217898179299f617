"""
Identity Module - Black Box Interface

Purpose: Describe what the core needs from an identity provider
Interface: IdentityProvider protocol, result variants, provider errors
Hidden: Provider wire protocol, token issuance, password hashing

Any hosted identity service can be plugged in by implementing the
IdentityProvider protocol. MockIdentityProvider is an in-memory stand-in.
"""

from .errors import (
    IdentityProviderError,
    ProviderErrorEntry,
    ProviderUnavailableError,
    UnrecoverableProviderError,
)
from .interfaces import IdentityProvider
from .mock_provider import MockIdentityProvider
from .results import (
    Complete,
    FederatedResult,
    NeedsNewPassword,
    NeedsVerification,
    Rejected,
)

__all__ = [
    "IdentityProvider",
    "IdentityProviderError",
    "ProviderErrorEntry",
    "ProviderUnavailableError",
    "UnrecoverableProviderError",
    "MockIdentityProvider",
    "Complete",
    "FederatedResult",
    "NeedsNewPassword",
    "NeedsVerification",
    "Rejected",
]
