"""Asyncio concurrency primitives.

asyncio ships a mutex but no reader/writer lock. The session registry and
the per-session rate limiter table are read on every call and written only
when sessions come and go, so they guard their maps with ReadWriteLock:
readers share the lock, writers get it exclusively.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class ReadWriteLock:
    """Writer-preferring reader/writer lock for asyncio tasks.

    Any number of tasks may hold the read side at once. The write side is
    exclusive against readers and other writers. Once a writer is waiting,
    new readers queue behind it so a steady stream of lookups cannot starve
    session creation.

    Example:
        lock = ReadWriteLock()

        async with lock.read():
            session = sessions.get(session_id)

        async with lock.write():
            sessions[session_id] = new_session
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @property
    def readers(self) -> int:
        """Return the number of tasks currently holding the read side."""
        return self._readers

    @property
    def write_locked(self) -> bool:
        """Return True while a writer holds the lock."""
        return self._writer

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        """Hold the shared (read) side for the duration of the block."""
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer and self._waiting_writers == 0
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        """Hold the exclusive (write) side for the duration of the block."""
        async with self._cond:
            self._waiting_writers += 1
            try:
                await self._cond.wait_for(lambda: not self._writer and self._readers == 0)
            finally:
                self._waiting_writers -= 1
                # A cancelled writer may have been the only thing holding readers back
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()
