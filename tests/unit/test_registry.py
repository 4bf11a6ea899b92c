"""Unit tests for the session registry."""

import asyncio

import pytest

from fakes import FakeBrowserSession
from fandango_explorer.browser import SessionLimitError, SessionRegistry


async def test_creates_and_initialises_new_session(registry: SessionRegistry) -> None:
    session, created = await registry.get_or_create()

    assert created is True
    assert session.initialised == 1
    assert session.session_id in registry
    assert len(registry) == 1


async def test_get_or_create_with_existing_id_returns_same_session(registry: SessionRegistry) -> None:
    first, _ = await registry.get_or_create()

    again, created = await registry.get_or_create(first.session_id)
    once_more, _ = await registry.get_or_create(first.session_id)

    assert created is False
    assert again is first
    assert once_more is first
    assert first.initialised == 1
    assert len(registry) == 1


async def test_unknown_id_creates_fresh_session(registry: SessionRegistry) -> None:
    session, created = await registry.get_or_create("no-such-session")

    assert created is True
    assert session.session_id != "no-such-session"


async def test_remove_evicts_without_closing(registry: SessionRegistry) -> None:
    session, _ = await registry.get_or_create()

    removed = await registry.remove(session.session_id)

    assert removed is session
    assert session.session_id not in registry
    assert session.closed == 0


async def test_close_releases_browser_and_evicts(registry: SessionRegistry) -> None:
    session, _ = await registry.get_or_create()

    assert await registry.close(session.session_id) is True
    assert session.closed == 1
    assert len(registry) == 0
    assert await registry.close(session.session_id) is False


async def test_session_close_deregisters_itself(registry: SessionRegistry) -> None:
    session, _ = await registry.get_or_create()

    await session.close()

    assert session.session_id not in registry


async def test_failed_initialise_frees_the_slot() -> None:
    def factory(session_id: str, on_close=None) -> FakeBrowserSession:
        return FakeBrowserSession(session_id, on_close=on_close, fail_initialise=True)

    registry = SessionRegistry(max_sessions=1, session_factory=factory)

    with pytest.raises(RuntimeError):
        await registry.get_or_create()
    assert len(registry) == 0


async def test_full_registry_evicts_least_recently_used_idle_session(registry: SessionRegistry) -> None:
    older, _ = await registry.get_or_create()
    newer, _ = await registry.get_or_create()
    older.last_used -= 100

    third, created = await registry.get_or_create()

    assert created is True
    assert older.closed == 1
    assert older.session_id not in registry
    assert newer.session_id in registry
    assert third.session_id in registry


async def test_full_registry_of_busy_sessions_raises(registry: SessionRegistry) -> None:
    first, _ = await registry.get_or_create()
    second, _ = await registry.get_or_create()

    async with first.lock, second.lock:
        with pytest.raises(SessionLimitError):
            await registry.get_or_create()


async def test_sweep_closes_only_idle_sessions(registry: SessionRegistry) -> None:
    stale, _ = await registry.get_or_create()
    fresh, _ = await registry.get_or_create()
    stale.last_used -= 3600

    closed = await registry.sweep_idle()

    assert closed == 1
    assert stale.closed == 1
    assert fresh.closed == 0
    assert list(registry._sessions) == [fresh.session_id]


async def test_sweep_skips_sessions_in_use(registry: SessionRegistry) -> None:
    busy, _ = await registry.get_or_create()
    busy.last_used -= 3600

    async with busy.lock:
        assert await registry.sweep_idle() == 0
    assert busy.session_id in registry


async def test_shutdown_closes_everything(registry: SessionRegistry) -> None:
    first, _ = await registry.get_or_create()
    second, _ = await registry.get_or_create()

    await registry.shutdown()

    assert len(registry) == 0
    assert first.closed == 1
    assert second.closed == 1


def gated_factory(gate: asyncio.Event):
    def factory(session_id: str, on_close=None) -> FakeBrowserSession:
        return FakeBrowserSession(session_id, on_close=on_close, launch_gate=gate)

    return factory


async def start_launch(registry: SessionRegistry) -> asyncio.Task:
    launching = asyncio.create_task(registry.get_or_create())
    while len(registry) == 0:
        await asyncio.sleep(0)
    return launching


async def test_launching_session_is_never_evicted() -> None:
    gate = asyncio.Event()
    registry = SessionRegistry(max_sessions=1, session_factory=gated_factory(gate))
    launching = await start_launch(registry)

    with pytest.raises(SessionLimitError):
        await registry.get_or_create()
    gate.set()
    session, created = await launching

    assert created is True
    assert session.closed == 0
    assert session.session_id in registry
    assert len(registry) == 1


async def test_sweep_skips_launching_session() -> None:
    gate = asyncio.Event()
    registry = SessionRegistry(max_sessions=1, idle_ttl=0, session_factory=gated_factory(gate))
    launching = await start_launch(registry)

    assert await registry.sweep_idle() == 0
    gate.set()
    session, _ = await launching

    assert session.closed == 0


async def test_leased_session_is_not_evicted(registry: SessionRegistry) -> None:
    async with registry.lease() as (held, created):
        assert created is True
        assert held.lock.locked()
        idle, _ = await registry.get_or_create()
        held.last_used -= 100

        replacement, _ = await registry.get_or_create()

        assert held.closed == 0
        assert idle.closed == 1
        assert replacement.session_id in registry

    assert not registry.is_busy(held)


async def test_lease_reuses_existing_session(registry: SessionRegistry) -> None:
    first, _ = await registry.get_or_create()

    async with registry.lease(first.session_id) as (session, created):
        assert session is first
        assert created is False
        assert registry.is_busy(first)

    assert not registry.is_busy(first)
    assert first.initialised == 1


async def test_failed_launch_releases_the_lease() -> None:
    def factory(session_id: str, on_close=None) -> FakeBrowserSession:
        return FakeBrowserSession(session_id, on_close=on_close, fail_initialise=True)

    registry = SessionRegistry(max_sessions=1, session_factory=factory)

    with pytest.raises(RuntimeError):
        async with registry.lease():
            pass
    assert len(registry) == 0
    assert not registry._leases
