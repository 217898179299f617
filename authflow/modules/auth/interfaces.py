"""Authentication interfaces following Black Box Design principles."""
from typing import Protocol, Optional, Tuple, Dict, Any
from dataclasses import dataclass, field


class TokenValidator(Protocol):
    """Protocol for token validation - allows swappable implementations."""

    async def validate_jwt_async(self, token: str) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """
        Validate a JWT token.

        Args:
            token: JWT token string

        Returns:
            Tuple of (is_valid, claims_dict or None)
        """
        ...


@dataclass(frozen=True)
class AuthContext:
    """Identity attached to an inbound request by upstream token verification."""
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "AuthContext":
        return cls(user_id=claims.get("sub"), session_id=claims.get("sid"), claims=dict(claims))
