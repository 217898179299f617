"""
Storage Module - Black Box Interface

Purpose: Persist the current session token across process restarts
Interface: TokenStore.save(), TokenStore.load(), TokenStore.clear()
Hidden: Redis specifics, connection handling, key naming

Can be replaced with any secure key-value backend (OS keychain, encrypted
file) without affecting other modules.
"""

import os
from typing import Dict, Optional, Protocol

import redis.asyncio as redis

# Single fixed key under which the session token lives
TOKEN_STORE_KEY = "authflow:session_token"


class TokenStore(Protocol):
    """Protocol for secure token stores."""

    async def save(self, token: str) -> None:
        ...

    async def load(self) -> Optional[str]:
        ...

    async def clear(self) -> None:
        ...


class RedisTokenStore:
    """Token store backed by Redis."""

    def __init__(self, connection_url: str = None, key: str = TOKEN_STORE_KEY):
        """Initialize storage with connection URL."""
        self.url = connection_url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
        self.key = key
        self._client = None

    async def connect(self) -> redis.Redis:
        """Get storage connection."""
        if not self._client:
            self._client = redis.from_url(self.url, decode_responses=True)
        return self._client

    async def disconnect(self):
        """Close storage connection."""
        if self._client:
            await self._client.close()
            self._client = None

    async def save(self, token: str) -> None:
        client = await self.connect()
        await client.set(self.key, token)

    async def load(self) -> Optional[str]:
        client = await self.connect()
        value = await client.get(self.key)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def clear(self) -> None:
        client = await self.connect()
        await client.delete(self.key)


class MemoryTokenStore:
    """Process-local token store, for tests and ephemeral clients."""

    def __init__(self, key: str = TOKEN_STORE_KEY):
        self.key = key
        self._data: Dict[str, str] = {}

    async def save(self, token: str) -> None:
        self._data[self.key] = token

    async def load(self) -> Optional[str]:
        return self._data.get(self.key)

    async def clear(self) -> None:
        self._data.pop(self.key, None)


__all__ = ["TOKEN_STORE_KEY", "TokenStore", "RedisTokenStore", "MemoryTokenStore"]
