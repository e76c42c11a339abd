"""Per-key mutual exclusion for ledger recomputation."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date


def payroll_lock_key(employee_id: int, month: date) -> str:
    """Advisory lock key for one ledger entry."""
    return f"payroll:{employee_id}:{month:%Y-%m}"


class PayrollKeyLock:
    """In-process lock registry keyed by ``(employee_id, month)``.

    Within a process, at most one task computes and upserts a given key at a
    time. The lock is released when ``calculate_salary`` returns, before the
    caller commits, so it does not cover the commit. On PostgreSQL the
    transaction-scoped advisory lock is held until commit or rollback and
    covers that gap across processes. Elsewhere only the upsert guard on
    PENDING status protects the commit. Entries are dropped once no task
    holds or awaits them.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[int, date], asyncio.Lock] = {}
        self._users: dict[tuple[int, date], int] = {}

    @asynccontextmanager
    async def hold(self, employee_id: int, month: date) -> AsyncIterator[None]:
        key = (employee_id, month)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def is_locked(self, employee_id: int, month: date) -> bool:
        lock = self._locks.get((employee_id, month))
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
