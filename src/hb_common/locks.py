"""Per-address serialization for ledger mutations."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class AddressLocks:
    """One asyncio.Lock per account address.

    Held around a whole ledger transaction, commit included, so two
    balance-affecting operations on one address never interleave inside this
    process. Across processes the conditional UPDATE's row lock does the same
    job; this layer keeps same-process contention off the database.

    An address's lock lives only while some task holds or waits on it, so the
    map stays as large as the set of addresses in flight.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, address: str) -> AsyncIterator[None]:
        lock = self._locks.get(address)
        if lock is None:
            lock = self._locks[address] = asyncio.Lock()
        self._users[address] = self._users.get(address, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._users[address] - 1
            if remaining:
                self._users[address] = remaining
            else:
                del self._users[address]
                del self._locks[address]

    def is_locked(self, address: str) -> bool:
        lock = self._locks.get(address)
        return lock is not None and lock.locked()
