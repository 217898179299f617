"""
Shared pytest fixtures for Authflow tests.

This module provides common fixtures including:
- MockIdentityProvider with a registered user
- Session manager backed by an in-memory token store
- Redis mocks for user record tests
"""

import json
import os
import sys
from typing import Dict, Set
from unittest.mock import AsyncMock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from authflow.modules.identity import MockIdentityProvider
from authflow.modules.session import Decision, SessionManager
from authflow.modules.storage import MemoryTokenStore

TEST_EMAIL = "ada@example.com"
TEST_PASSWORD = "correct-horse-battery"


# =============================================================================
# Identity Provider and Session Fixtures
# =============================================================================


@pytest.fixture
def provider():
    """Mock identity provider with one verified user."""
    provider = MockIdentityProvider(issuer="https://auth.example.com")
    provider.add_user(TEST_EMAIL, TEST_PASSWORD, "Ada", "Lovelace")
    return provider


@pytest.fixture
def token_store():
    return MemoryTokenStore()


@pytest.fixture
def session_manager(provider, token_store):
    return SessionManager(provider, token_store)


@pytest.fixture
def confirm():
    """Sign-out prompt that always confirms."""
    return AsyncMock(return_value=Decision.CONFIRM)


@pytest.fixture
def decline():
    """Sign-out prompt that always cancels."""
    return AsyncMock(return_value=Decision.CANCEL)


# =============================================================================
# Redis Mocking
# =============================================================================


class FakeRedis:
    """
    Minimal async Redis stand-in for key/value and set commands.

    Each command is an AsyncMock wrapping real behaviour so tests can
    both read stored data and assert on calls.
    """

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.sets: Dict[str, Set[str]] = {}

        self.get = AsyncMock(side_effect=self._get)
        self.set = AsyncMock(side_effect=self._set)
        self.delete = AsyncMock(side_effect=self._delete)
        self.sadd = AsyncMock(side_effect=self._sadd)
        self.smembers = AsyncMock(side_effect=self._smembers)
        self.ping = AsyncMock(return_value=True)
        self.close = AsyncMock()

    async def _get(self, key):
        return self.data.get(key)

    async def _set(self, key, value):
        self.data[key] = value
        return True

    async def _delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def _sadd(self, key, *members):
        self.sets.setdefault(key, set()).update(members)
        return len(members)

    async def _smembers(self, key):
        return set(self.sets.get(key, set()))

    def load_json(self, key):
        return json.loads(self.data[key])


@pytest.fixture
def mock_redis():
    """Create a fake async Redis client."""
    return FakeRedis()
