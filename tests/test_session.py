import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from authflow.modules.identity import IdentityProviderError, ProviderUnavailableError
from authflow.modules.session import SessionManager, SessionStatus
from authflow.modules.storage import TOKEN_STORE_KEY, MemoryTokenStore, RedisTokenStore

from conftest import TEST_EMAIL, TEST_PASSWORD


async def sign_in(provider) -> str:
    result = await provider.create_sign_in(TEST_EMAIL, TEST_PASSWORD)
    return result.session_id


@pytest.fixture
def events(session_manager):
    """Record every event the session manager publishes."""
    recorded = []

    async def listener(event):
        recorded.append((event.session_id, event.status))

    session_manager.subscribe(listener)
    return recorded


@pytest.mark.asyncio
async def test_initially_signed_out(session_manager):
    assert session_manager.status == SessionStatus.ENDED
    assert session_manager.is_signed_in is False
    assert session_manager.session_id is None


@pytest.mark.asyncio
async def test_activate_persists_and_marks_active(session_manager, provider, token_store, events):
    session_id = await sign_in(provider)

    await session_manager.activate(session_id)

    assert session_manager.is_signed_in is True
    assert session_manager.session_id == session_id
    assert provider.active_session_id == session_id
    assert await token_store.load() == session_id
    assert events == [(session_id, SessionStatus.ACTIVE)]


@pytest.mark.asyncio
async def test_activate_same_session_twice_is_noop(session_manager, provider, events):
    session_id = await sign_in(provider)

    await session_manager.activate(session_id)
    await session_manager.activate(session_id)

    assert session_manager.status == SessionStatus.ACTIVE
    assert events == [(session_id, SessionStatus.ACTIVE)]


@pytest.mark.asyncio
async def test_activate_new_session_ends_previous(session_manager, provider, token_store, events):
    first = await sign_in(provider)
    second = await sign_in(provider)

    await session_manager.activate(first)
    await session_manager.activate(second)

    assert session_manager.session_id == second
    assert await token_store.load() == second
    assert events == [
        (first, SessionStatus.ACTIVE),
        (first, SessionStatus.ENDED),
        (second, SessionStatus.ACTIVE),
    ]


@pytest.mark.asyncio
async def test_activate_rejects_empty_session_id(session_manager):
    with pytest.raises(ValueError):
        await session_manager.activate("")


@pytest.mark.asyncio
async def test_activate_failure_leaves_session_ended(session_manager, token_store, events):
    with pytest.raises(IdentityProviderError):
        await session_manager.activate("sess_does_not_exist")

    assert session_manager.status == SessionStatus.ENDED
    assert session_manager.session_id is None
    assert await token_store.load() is None
    assert events == []


@pytest.mark.asyncio
async def test_sign_out_requires_confirmation(session_manager, provider, token_store, decline, events):
    session_id = await sign_in(provider)
    await session_manager.activate(session_id)

    ended = await session_manager.end(decline)

    decline.assert_awaited_once()
    assert ended is False
    assert session_manager.is_signed_in is True
    assert await token_store.load() == session_id
    assert session_id in provider.sessions


@pytest.mark.asyncio
async def test_sign_out_after_confirmation(session_manager, provider, token_store, confirm, events):
    session_id = await sign_in(provider)
    await session_manager.activate(session_id)

    ended = await session_manager.end(confirm)

    assert ended is True
    assert session_manager.status == SessionStatus.ENDED
    assert await token_store.load() is None
    assert session_id not in provider.sessions
    assert events[-1] == (session_id, SessionStatus.ENDED)


@pytest.mark.asyncio
async def test_sign_out_when_signed_out_does_not_prompt(session_manager, confirm):
    assert await session_manager.end(confirm) is False
    confirm.assert_not_awaited()


@pytest.mark.asyncio
async def test_sign_out_clears_locally_when_provider_unreachable(session_manager, provider, token_store, confirm):
    await session_manager.activate(await sign_in(provider))
    provider.unavailable = True

    assert await session_manager.end(confirm) is True
    assert session_manager.is_signed_in is False
    assert await token_store.load() is None


@pytest.mark.asyncio
async def test_sign_out_clears_locally_when_provider_crashes(session_manager, provider, token_store, confirm, events):
    session_id = await sign_in(provider)
    await session_manager.activate(session_id)
    provider.sign_out = AsyncMock(side_effect=RuntimeError("sdk crashed"))

    assert await session_manager.end(confirm) is True
    assert session_manager.is_signed_in is False
    assert await token_store.load() is None
    assert events[-1] == (session_id, SessionStatus.ENDED)


async def hang(*args):
    await asyncio.sleep(3600)


@pytest.mark.asyncio
async def test_hung_sign_out_times_out_and_clears_locally(provider, token_store, confirm):
    manager = SessionManager(provider, token_store, timeout=0.05)
    await manager.activate(await sign_in(provider))
    provider.sign_out = AsyncMock(side_effect=hang)

    ended = await asyncio.wait_for(manager.end(confirm), 1.0)

    assert ended is True
    assert manager.is_signed_in is False
    assert await token_store.load() is None


@pytest.mark.asyncio
async def test_hung_activation_times_out_and_releases_lock(provider, token_store):
    manager = SessionManager(provider, token_store, timeout=0.05)
    session_id = await sign_in(provider)
    original = provider.set_active_session
    provider.set_active_session = AsyncMock(side_effect=hang)

    with pytest.raises(ProviderUnavailableError):
        await asyncio.wait_for(manager.activate(session_id), 1.0)

    assert manager.is_signed_in is False
    assert manager.session_id is None
    assert await token_store.load() is None

    provider.set_active_session = original
    await asyncio.wait_for(manager.activate(session_id), 1.0)
    assert manager.is_signed_in is True


@pytest.mark.asyncio
async def test_expire_ends_session(session_manager, provider, token_store, events):
    session_id = await sign_in(provider)
    await session_manager.activate(session_id)

    await session_manager.expire()

    assert session_manager.is_signed_in is False
    assert await token_store.load() is None
    assert events[-1] == (session_id, SessionStatus.ENDED)


@pytest.mark.asyncio
async def test_restore_activates_stored_session(provider):
    store = MemoryTokenStore()
    session_id = await sign_in(provider)
    await store.save(session_id)
    manager = SessionManager(provider, store)

    assert await manager.restore() is True
    assert manager.session_id == session_id


@pytest.mark.asyncio
async def test_restore_discards_invalid_token(provider):
    store = MemoryTokenStore()
    await store.save("sess_revoked")
    manager = SessionManager(provider, store)

    assert await manager.restore() is False
    assert await store.load() is None


@pytest.mark.asyncio
async def test_restore_keeps_token_when_provider_unreachable(provider):
    store = MemoryTokenStore()
    session_id = await sign_in(provider)
    await store.save(session_id)
    provider.unavailable = True
    manager = SessionManager(provider, store)

    assert await manager.restore() is False
    assert await store.load() == session_id


@pytest.mark.asyncio
async def test_restore_without_token(session_manager):
    assert await session_manager.restore() is False


@pytest.mark.asyncio
async def test_listener_errors_do_not_break_activation(session_manager, provider):
    failing = AsyncMock(side_effect=RuntimeError("listener bug"))
    session_manager.subscribe(failing)

    await session_manager.activate(await sign_in(provider))

    failing.assert_awaited_once()
    assert session_manager.is_signed_in is True


@pytest.mark.asyncio
async def test_unsubscribe_stops_events(session_manager, provider):
    listener = AsyncMock()
    unsubscribe = session_manager.subscribe(listener)
    unsubscribe()

    await session_manager.activate(await sign_in(provider))

    listener.assert_not_awaited()


@pytest.mark.asyncio
async def test_memory_token_store_uses_fixed_key():
    store = MemoryTokenStore()

    await store.save("sess_1")
    await store.save("sess_2")

    assert store.key == TOKEN_STORE_KEY
    assert await store.load() == "sess_2"
    await store.clear()
    assert await store.load() is None


@pytest.mark.asyncio
async def test_redis_token_store_round_trip_under_fixed_key():
    client = MagicMock()
    client.set = AsyncMock()
    client.get = AsyncMock(return_value=b"sess_1")
    client.delete = AsyncMock()
    client.close = AsyncMock()

    with patch("authflow.modules.storage.redis.from_url", return_value=client) as from_url:
        store = RedisTokenStore("redis://cache:6379/2")
        await store.save("sess_1")
        loaded = await store.load()
        await store.clear()
        await store.disconnect()

    from_url.assert_called_once_with("redis://cache:6379/2", decode_responses=True)
    client.set.assert_awaited_once_with(TOKEN_STORE_KEY, "sess_1")
    client.delete.assert_awaited_once_with(TOKEN_STORE_KEY)
    client.close.assert_awaited_once()
    assert loaded == "sess_1"
