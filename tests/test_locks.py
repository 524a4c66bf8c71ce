"""Tests for the per-item lock registry."""

import asyncio

import pytest

from backend.srs.locks import ItemLockRegistry


@pytest.mark.asyncio
async def test_same_key_is_serialized() -> None:
    registry = ItemLockRegistry()
    active = 0
    peak = 0

    async def worker() -> None:
        nonlocal active, peak
        async with registry.hold(1):
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

    await asyncio.gather(*(worker() for _ in range(5)))
    assert peak == 1


@pytest.mark.asyncio
async def test_different_keys_run_in_parallel() -> None:
    registry = ItemLockRegistry()
    both_inside = asyncio.Event()
    inside = 0

    async def worker(key: int) -> None:
        nonlocal inside
        async with registry.hold(key):
            inside += 1
            if inside == 2:
                both_inside.set()
            # Would time out if the second key had to wait for the first
            await asyncio.wait_for(both_inside.wait(), timeout=1)

    await asyncio.gather(worker(1), worker(2))


@pytest.mark.asyncio
async def test_registry_drops_idle_locks() -> None:
    registry = ItemLockRegistry()
    async with registry.hold("a"):
        assert len(registry) == 1
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_lock_is_released_on_error() -> None:
    registry = ItemLockRegistry()
    with pytest.raises(RuntimeError):
        async with registry.hold(7):
            raise RuntimeError("boom")
    assert len(registry) == 0
    async with registry.hold(7):
        pass
