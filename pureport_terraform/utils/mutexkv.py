# Unless explicitly stated otherwise all files in this repository are licensed
# under the 3-clause BSD style license (see LICENSE).
# This product includes software developed at Pureport (https://www.pureport.com/).
# Copyright 2019 Pureport, Inc.

"""Named locks used to serialise mutations of resources that share remote state.

A DDoS Protection Plan and the Virtual Networks it references both carry the
list of associations, so a plan update and a network update racing each other
can corrupt it. Every mutation therefore locks the names of the resources it
touches for the whole API call, including the polling for completion.

Locks are always taken in one global sorted order and released in reverse
order on every exit path, so two operations locking overlapping sets of names
cannot deadlock.
"""

from __future__ import annotations
import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Dict, Iterable, List, Optional

if TYPE_CHECKING:
    from pureport_terraform.utils.log import Log


def lock_key(name: str, resource_type: str) -> str:
    return f"{resource_type}.{name}"


class MutexKV:
    """A lazily populated map of ``asyncio.Lock`` keyed by string."""

    def __init__(self, logger: Optional[Log] = None) -> None:
        self.logger = logger
        self._store: Dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> asyncio.Lock:
        # setdefault is atomic within the event loop
        return self._store.setdefault(key, asyncio.Lock())

    def locked(self, key: str) -> bool:
        lock = self._store.get(key)
        return lock is not None and lock.locked()

    def _debug(self, msg: str) -> None:
        if self.logger is not None:
            self.logger.debug(msg)

    async def acquire(self, key: str) -> None:
        self._debug(f"Locking {key!r}")
        await self.get(key).acquire()
        self._debug(f"Locked {key!r}")

    def release(self, key: str) -> None:
        self._debug(f"Unlocking {key!r}")
        self.get(key).release()
        self._debug(f"Unlocked {key!r}")

    @asynccontextmanager
    async def lock(self, key: str) -> AsyncIterator[None]:
        await self.acquire(key)
        try:
            yield
        finally:
            self.release(key)

    @asynccontextmanager
    async def lock_keys(self, keys: Iterable[str]) -> AsyncIterator[List[str]]:
        """Acquire every key in sorted order, yielding the ordered keys."""
        ordered = sorted(set(keys))
        async with AsyncExitStack() as stack:
            for key in ordered:
                await stack.enter_async_context(self.lock(key))
            yield ordered

    def lock_by_name(self, name: str, resource_type: str):
        return self.lock(lock_key(name, resource_type))

    def lock_multiple_by_name(self, names: Iterable[str], resource_type: str):
        return self.lock_keys(lock_key(name, resource_type) for name in names)

    def lock_resources(self, names_by_type: Dict[str, Iterable[str]]):
        """Lock names of several resource types in a single globally sorted pass.

        Args:
            names_by_type: Mapping of resource type to the names to lock.
        """
        keys = [lock_key(name, resource_type) for resource_type, names in names_by_type.items() for name in names]
        return self.lock_keys(keys)
