# LabOperator/src/controllers/locks.py
# @ai-rules:
# 1. [Pattern]: One asyncio.Lock per key, created on first use, dropped when the last holder/waiter leaves.
# 2. [Constraint]: Single event loop. The bookkeeping dicts need no lock of their own.
"""Per-key serialization of reconcile invocations."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable

logger = logging.getLogger(__name__)


class KeyedLocks:
    """Serializes work for the same key; different keys run concurrently."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
