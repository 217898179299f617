"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass
from typing import Optional, Protocol, List


DEFAULT_PROVIDER_TIMEOUT = 30.0


@dataclass
class IdentityProviderConfig:
    """Client-side identity provider configuration."""
    publishable_key: str
    provider_timeout: float
    oauth_strategies: List[str]


@dataclass
class TokenVerificationConfig:
    """Server-side session token verification configuration."""
    issuer: Optional[str]
    jwks_uri: Optional[str]
    audience: Optional[str]
    cache_ttl: int

    @property
    def is_configured(self) -> bool:
        """Check if session tokens can be verified."""
        return bool(self.issuer and self.jwks_uri)


@dataclass
class BackendConfig:
    """Backend API configuration used by the client-side sync."""
    api_url: Optional[str]
    sync_path: str
    timeout: float

    @property
    def is_configured(self) -> bool:
        """Check if a backend API URL is available."""
        return bool(self.api_url)


@dataclass
class APIConfig:
    """Backend server configuration."""
    port: int
    host: str
    debug: bool
    cors_origins: List[str]


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_identity_provider_config(self) -> IdentityProviderConfig:
        """Get identity provider configuration."""
        ...

    def get_token_verification_config(self) -> TokenVerificationConfig:
        """Get session token verification configuration."""
        ...

    def get_backend_config(self) -> BackendConfig:
        """Get backend API configuration."""
        ...

    def get_api_config(self) -> APIConfig:
        """Get backend server configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_identity_provider_config(self) -> IdentityProviderConfig:
        """Get identity provider configuration from environment variables."""
        publishable_key = os.getenv("AUTHFLOW_PUBLISHABLE_KEY")
        if not publishable_key:
            raise ValueError(
                "Missing Publishable Key. Please set AUTHFLOW_PUBLISHABLE_KEY "
                "in your environment or .env file."
            )

        return IdentityProviderConfig(
            publishable_key=publishable_key,
            provider_timeout=float(
                os.getenv("AUTHFLOW_PROVIDER_TIMEOUT", str(DEFAULT_PROVIDER_TIMEOUT))
            ),
            oauth_strategies=os.getenv("AUTHFLOW_OAUTH_STRATEGIES", "oauth_google").split(),
        )

    def get_token_verification_config(self) -> TokenVerificationConfig:
        """Get session token verification configuration from environment variables."""
        issuer = os.getenv("AUTHFLOW_ISSUER")

        return TokenVerificationConfig(
            issuer=issuer,
            jwks_uri=os.getenv("AUTHFLOW_JWKS_URI") or (
                f"{issuer.rstrip('/')}/.well-known/jwks.json" if issuer else None
            ),
            audience=os.getenv("AUTHFLOW_AUDIENCE") or None,
            cache_ttl=int(os.getenv("AUTHFLOW_TOKEN_CACHE_TTL", "60")),
        )

    def get_backend_config(self) -> BackendConfig:
        """Get backend API configuration from environment variables."""
        return BackendConfig(
            api_url=os.getenv("AUTHFLOW_API_URL") or None,
            sync_path=os.getenv("AUTHFLOW_SYNC_PATH", "/api/users/sync"),
            timeout=float(os.getenv("AUTHFLOW_API_TIMEOUT", "10")),
        )

    def get_api_config(self) -> APIConfig:
        """Get backend server configuration from environment variables."""
        return APIConfig(
            port=int(os.getenv("API_PORT", "8080")),
            host=os.getenv("API_HOST", "0.0.0.0"),
            debug=os.getenv("API_DEBUG", "false").lower() == "true",
            cors_origins=os.getenv("CORS_ORIGINS", "*").split(",")
        )
