"""
Session Token Verifier implementing TokenValidator interface.

Session tokens are short-lived RS256 JWTs minted by the identity provider.
The verifier checks them against the provider's published JWKS and keeps
accepted claims in memory until the cache TTL or the token's own expiry,
whichever comes first.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional, Tuple

import jwt
from jwt import PyJWKClient

from .interfaces import TokenValidator
from ...config.provider import TokenVerificationConfig

logger = logging.getLogger(__name__)

JWKS_KEY_LIFESPAN = 3600
REQUIRED_CLAIMS = ["exp", "iat", "sub"]

# Checked in order; the first matching class names the rejection
REJECTION_REASONS = (
    (jwt.ExpiredSignatureError, "expired"),
    (jwt.InvalidAudienceError, "audience mismatch"),
    (jwt.InvalidIssuerError, "issuer mismatch"),
    (jwt.PyJWKClientError, "signing key unavailable"),
)


def _rejection_reason(error: jwt.PyJWTError) -> str:
    for error_type, reason in REJECTION_REASONS:
        if isinstance(error, error_type):
            return reason
    return f"invalid ({error})"


class SessionTokenVerifier(TokenValidator):
    """Verifies provider session tokens against the provider's JWKS."""

    def __init__(self, config: TokenVerificationConfig):
        self.config = config
        self.issuer = config.issuer
        self.audience = config.audience
        self.jwks_uri = config.jwks_uri
        self.cache_ttl = config.cache_ttl

        # token -> (claims, cache expiry)
        self.cache: Dict[str, Tuple[Dict[str, Any], float]] = {}

        self.jwks_client: Optional[PyJWKClient] = None
        if config.is_configured:
            self.jwks_client = PyJWKClient(self.jwks_uri, cache_keys=True, lifespan=JWKS_KEY_LIFESPAN)
        else:
            logger.warning("No session token issuer configured; every token will be rejected")

    def _cached(self, token: str) -> Optional[Dict[str, Any]]:
        entry = self.cache.get(token)
        if entry is None:
            return None
        claims, expires_at = entry
        if time.time() >= expires_at:
            del self.cache[token]
            return None
        return claims

    def _remember(self, token: str, claims: Dict[str, Any]) -> None:
        now = time.time()
        for stale in [t for t, (_, expires_at) in self.cache.items() if expires_at <= now]:
            del self.cache[stale]
        self.cache[token] = (claims, min(now + self.cache_ttl, claims["exp"]))

    def _decode(self, token: str) -> Dict[str, Any]:
        # May fetch the JWKS over the network on a key miss
        signing_key = self.jwks_client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=self.audience,
            issuer=self.issuer,
            options={
                "verify_aud": bool(self.audience),
                "verify_iss": bool(self.issuer),
                "require": REQUIRED_CLAIMS,
            },
        )

    async def validate_jwt_async(self, token: str) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """
        Validate a session token.

        Args:
            token: JWT string, optionally prefixed with "Bearer "

        Returns:
            Tuple of (is_valid, claims or None). Never raises.
        """
        token = token.removeprefix("Bearer ")

        claims = self._cached(token)
        if claims is not None:
            return True, claims

        if self.jwks_client is None:
            return False, None

        try:
            claims = await asyncio.to_thread(self._decode, token)
        except jwt.PyJWTError as e:
            logger.debug(f"Session token rejected: {_rejection_reason(e)}")
            return False, None
        except Exception as e:
            logger.error(f"Unexpected error verifying session token: {e}")
            return False, None

        self._remember(token, claims)
        return True, claims
