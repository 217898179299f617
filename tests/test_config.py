"""
Tests for configuration, logging setup and the client composition root.
"""

import logging

import httpx
import pytest

from authflow.client import AuthClient, ClientFactory
from authflow.config.provider import DEFAULT_PROVIDER_TIMEOUT, EnvConfigProvider
from authflow.logging_config import HealthCheckFilter, get_logging_config
from authflow.modules.config import ConfigModule
from authflow.modules.storage import MemoryTokenStore

from conftest import TEST_EMAIL, TEST_PASSWORD

AUTHFLOW_ENV = [
    "AUTHFLOW_PUBLISHABLE_KEY",
    "AUTHFLOW_PROVIDER_TIMEOUT",
    "AUTHFLOW_OAUTH_STRATEGIES",
    "AUTHFLOW_ISSUER",
    "AUTHFLOW_JWKS_URI",
    "AUTHFLOW_AUDIENCE",
    "AUTHFLOW_TOKEN_CACHE_TTL",
    "AUTHFLOW_API_URL",
    "AUTHFLOW_SYNC_PATH",
    "AUTHFLOW_API_TIMEOUT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in AUTHFLOW_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# =============================================================================
# EnvConfigProvider
# =============================================================================


def test_missing_publishable_key_raises(clean_env):
    with pytest.raises(ValueError, match="Missing Publishable Key"):
        EnvConfigProvider().get_identity_provider_config()


def test_identity_provider_config_defaults(clean_env):
    clean_env.setenv("AUTHFLOW_PUBLISHABLE_KEY", "pk_test_123")

    config = EnvConfigProvider().get_identity_provider_config()

    assert config.publishable_key == "pk_test_123"
    assert config.provider_timeout == DEFAULT_PROVIDER_TIMEOUT
    assert config.oauth_strategies == ["oauth_google"]


def test_identity_provider_config_overrides(clean_env):
    clean_env.setenv("AUTHFLOW_PUBLISHABLE_KEY", "pk_test_123")
    clean_env.setenv("AUTHFLOW_PROVIDER_TIMEOUT", "12.5")
    clean_env.setenv("AUTHFLOW_OAUTH_STRATEGIES", "oauth_google oauth_apple")

    config = EnvConfigProvider().get_identity_provider_config()

    assert config.provider_timeout == 12.5
    assert config.oauth_strategies == ["oauth_google", "oauth_apple"]


def test_token_verification_config_derives_jwks_uri(clean_env):
    clean_env.setenv("AUTHFLOW_ISSUER", "https://auth.example.com/")

    config = EnvConfigProvider().get_token_verification_config()

    assert config.is_configured is True
    assert config.jwks_uri == "https://auth.example.com/.well-known/jwks.json"
    assert config.audience is None
    assert config.cache_ttl == 60


def test_token_verification_not_configured_without_issuer(clean_env):
    config = EnvConfigProvider().get_token_verification_config()

    assert config.is_configured is False


def test_backend_config(clean_env):
    config = EnvConfigProvider().get_backend_config()
    assert config.is_configured is False
    assert config.sync_path == "/api/users/sync"

    clean_env.setenv("AUTHFLOW_API_URL", "http://api.example.com")
    clean_env.setenv("AUTHFLOW_API_TIMEOUT", "3")
    config = EnvConfigProvider().get_backend_config()
    assert config.is_configured is True
    assert config.timeout == 3.0


# =============================================================================
# ConfigModule
# =============================================================================


@pytest.fixture
def server_env(monkeypatch):
    for name in ["REDIS_URL", "REDIS_HOST", "REDIS_PORT", "REDIS_DB", "REDIS_PASSWORD", "API_PORT", "LOG_LEVEL"]:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_config_module_defaults(server_env):
    config = ConfigModule()

    assert config.get("redis_host") == "localhost"
    assert config.get("redis_port") == 6379
    assert config.get("log_level") == "INFO"
    assert config.get("redis_password") is None
    assert config.redis_url == "redis://localhost:6379/0"


def test_config_module_parses_service_discovery_ports(server_env):
    server_env.setenv("REDIS_PORT", "tcp://10.0.0.12:6380")
    server_env.setenv("API_PORT", "tcp://10.0.0.13:9090")

    config = ConfigModule()

    assert config.get("redis_port") == 6380
    assert config.get("port") == 9090


def test_explicit_redis_url_wins(server_env):
    server_env.setenv("REDIS_URL", "rediss://cache.internal:6380/2")
    server_env.setenv("REDIS_HOST", "ignored")

    assert ConfigModule().redis_url == "rediss://cache.internal:6380/2"


def test_empty_required_key_raises(server_env):
    server_env.setenv("REDIS_HOST", "")

    with pytest.raises(ValueError, match="redis_host"):
        ConfigModule()


def test_config_schema_lists_required_keys():
    schema = ConfigModule.get_config_schema()

    assert "redis_host" in schema["required"]
    assert schema["optional"]["debug"]["default"] is False


# =============================================================================
# Logging
# =============================================================================


def make_record(name: str, message: str) -> logging.LogRecord:
    return logging.LogRecord(name, logging.INFO, __file__, 0, message, None, None)


def test_health_check_filter_suppresses_probe_access_logs():
    health_filter = HealthCheckFilter()

    assert health_filter.filter(make_record("uvicorn.access", '127.0.0.1 - "GET /healthz HTTP/1.1" 200')) is False
    assert health_filter.filter(make_record("uvicorn.access", '127.0.0.1 - "GET /health HTTP/1.1" 200')) is False
    assert health_filter.filter(make_record("uvicorn.access", '127.0.0.1 - "POST /api/users/sync HTTP/1.1" 200')) is True
    assert health_filter.filter(make_record("uvicorn.access", '127.0.0.1 - "GET /api/users/me HTTP/1.1" 200')) is True
    assert health_filter.filter(make_record("authflow.main", '"GET /health HTTP/1.1"')) is True


def test_logging_config_level():
    config = get_logging_config("debug")

    assert config["loggers"]["authflow"]["level"] == "DEBUG"
    assert config["loggers"]["authflow"]["propagate"] is True
    assert config["loggers"]["httpx"]["level"] == "WARNING"
    assert config["root"]["level"] == "DEBUG"
    assert config["handlers"]["access"]["filters"] == ["health_check_filter"]
    assert "filters" not in config["handlers"]["default"]


# =============================================================================
# ClientFactory
# =============================================================================


@pytest.fixture
def client_env(clean_env):
    clean_env.setenv("AUTHFLOW_PUBLISHABLE_KEY", "pk_test_123")
    clean_env.setenv("AUTHFLOW_API_URL", "http://api.example.com")
    return clean_env


def test_client_factory_requires_publishable_key(clean_env, provider):
    with pytest.raises(ValueError):
        ClientFactory.build(EnvConfigProvider(), provider)


@pytest.mark.asyncio
async def test_client_sign_in_syncs_user(client_env, provider):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "user": {
                    "user_id": provider.users[TEST_EMAIL]["user_id"],
                    "email": TEST_EMAIL,
                    "first_name": "Ada",
                    "last_name": "Lovelace",
                    "created_at": "2026-01-01T00:00:00Z",
                    "updated_at": "2026-01-01T00:00:00Z",
                },
                "created": True,
            },
        )

    client = ClientFactory.build(
        EnvConfigProvider(),
        provider,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    assert isinstance(client, AuthClient)
    assert await client.start() is False

    result = await client.credentials.sign_in(TEST_EMAIL, TEST_PASSWORD)
    await client.reconciler.wait_idle()

    assert result.ok is True
    assert client.is_signed_in is True
    assert len(requests) == 1
    assert requests[0].headers["Authorization"].startswith("Bearer ")
    assert client.reconciler.identity.first_name == "Ada"
    await client.close()
    assert client.reconciler.running is False


@pytest.mark.asyncio
async def test_client_restores_persisted_session(clean_env, provider, confirm):
    clean_env.setenv("AUTHFLOW_PUBLISHABLE_KEY", "pk_test_123")
    store = MemoryTokenStore()
    session = await provider.create_sign_in(TEST_EMAIL, TEST_PASSWORD)
    await store.save(session.session_id)

    client = ClientFactory.build(EnvConfigProvider(), provider, token_store=store)

    assert await client.start() is True
    assert client.is_signed_in is True
    assert await client.sign_out(confirm) is True
    assert client.is_signed_in is False
    await client.close()


def test_client_components_use_configured_timeout(client_env, provider):
    client_env.setenv("AUTHFLOW_PROVIDER_TIMEOUT", "7")

    client = ClientFactory.build(EnvConfigProvider(), provider)
    flow = client.start_password_reset()

    assert flow.timeout == 7.0
    assert client.session.timeout == 7.0
    assert client.reconciler.timeout == 7.0
    assert client.credentials.timeout == 7.0
