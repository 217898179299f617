"""Errors raised by identity provider clients."""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class ProviderErrorEntry:
    """A single error entry reported by the identity provider."""
    code: str
    message: Optional[str] = None
    long_message: Optional[str] = None


class IdentityProviderError(Exception):
    """The identity provider reported an error for a request."""

    def __init__(self, message: str = "", errors: Optional[List[ProviderErrorEntry]] = None):
        super().__init__(message)
        self.errors = list(errors or [])

    @property
    def user_message(self) -> Optional[str]:
        """First user-facing message supplied by the provider, if any."""
        for entry in self.errors:
            if entry.message:
                return entry.message
        return None

    @property
    def codes(self) -> List[str]:
        return [entry.code for entry in self.errors]


class ProviderUnavailableError(IdentityProviderError):
    """The provider could not be reached or did not answer in time."""


class UnrecoverableProviderError(IdentityProviderError):
    """The provider invalidated the attempt; it cannot be retried."""
