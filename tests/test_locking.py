"""Tests for per-key recomputation locking."""

import asyncio
from datetime import date

from salary_engine.services.locking_service import PayrollKeyLock, payroll_lock_key

APRIL = date(2025, 4, 1)


def test_lock_key_format():
    assert payroll_lock_key(7, APRIL) == "payroll:7:2025-04"


async def test_same_key_is_serialized():
    key_lock = PayrollKeyLock()
    events: list[str] = []

    async def worker(name: str):
        async with key_lock.hold(7, APRIL):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events == ["a-in", "a-out", "b-in", "b-out"]
    assert len(key_lock) == 0


async def test_different_keys_run_concurrently():
    key_lock = PayrollKeyLock()
    both_inside = asyncio.Event()
    inside = 0

    async def worker(employee_id: int):
        nonlocal inside
        async with key_lock.hold(employee_id, APRIL):
            inside += 1
            if inside == 2:
                both_inside.set()
            await asyncio.wait_for(both_inside.wait(), timeout=1)

    await asyncio.gather(worker(1), worker(2))
    assert not key_lock.is_locked(1, APRIL)
