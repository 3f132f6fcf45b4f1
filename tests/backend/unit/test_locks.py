import asyncio

import pytest

from cardlobby.backend.errors import BusyError
from cardlobby.backend.locks import KeyedLocks


@pytest.mark.asyncio
async def test_same_key_is_serialized() -> None:
    locks = KeyedLocks(timeout_s=1.0)
    events: list[str] = []

    async def worker(name: str) -> None:
        async with locks.hold(1):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events == ["a-in", "a-out", "b-in", "b-out"]


@pytest.mark.asyncio
async def test_different_keys_run_in_parallel() -> None:
    locks = KeyedLocks(timeout_s=1.0)
    inside: set[int] = set()
    overlap = False

    async def worker(key: int) -> None:
        nonlocal overlap
        async with locks.hold(key):
            inside.add(key)
            await asyncio.sleep(0.01)
            if len(inside) == 2:
                overlap = True
            await asyncio.sleep(0.01)
            inside.discard(key)

    await asyncio.gather(worker(1), worker(2))

    assert overlap is True


@pytest.mark.asyncio
async def test_waiting_past_timeout_raises_busy() -> None:
    locks = KeyedLocks(timeout_s=0.05)
    acquired = asyncio.Event()
    release = asyncio.Event()

    async def holder() -> None:
        async with locks.hold("lobby"):
            acquired.set()
            await release.wait()

    task = asyncio.create_task(holder())
    await acquired.wait()

    with pytest.raises(BusyError):
        async with locks.hold("lobby"):
            pass

    release.set()
    await task


@pytest.mark.asyncio
async def test_unused_locks_are_dropped() -> None:
    locks = KeyedLocks()

    async with locks.hold(1):
        assert locks.is_locked(1)
        assert len(locks) == 1

    assert len(locks) == 0
    assert locks.is_locked(1) is False


@pytest.mark.asyncio
async def test_lock_is_released_when_body_raises() -> None:
    locks = KeyedLocks(timeout_s=0.1)

    with pytest.raises(ValueError):
        async with locks.hold(1):
            raise ValueError("boom")

    async with locks.hold(1):
        pass
