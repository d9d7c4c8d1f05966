"""
Process Registry

Single source of truth for which FFmpeg processes are running.

Maps (camera_id, kind) to the live process handle and its metadata.
At most one entry per key. Entries are added only after a successful spawn
and removed exactly once: by the exit watcher or by a stop operation,
whichever observes the exit first.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Optional

from transcoding.interfaces.process_launcher_interface import ProcessHandle
from transcoding.models.managed_process import ManagedProcess, ProcessKey


@dataclass
class RegistryEntry:
    """A registered process: OS handle plus public metadata"""

    handle: ProcessHandle
    info: ManagedProcess
    stopping: bool = False  # Set once a stop was requested
    watcher: Optional["asyncio.Task[None]"] = None


class ProcessRegistry:
    """
    Keyed collection of running processes, with one lock per key.

    The lock serializes start/stop for a key so "does an entry exist?" and
    "insert entry" happen as one step. Reads never take the lock. A key's
    lock is dropped once nobody holds or waits for it.

    Usage:
        registry = ProcessRegistry()
        async with registry.locked(key):
            if not registry.contains(key):
                registry.add(handle, info)
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._entries: Dict[ProcessKey, RegistryEntry] = {}
        self._locks: Dict[ProcessKey, asyncio.Lock] = {}
        self._lock_users: Dict[ProcessKey, int] = {}

    def lock_for(self, key: ProcessKey) -> asyncio.Lock:
        """Get the lock serializing operations on key"""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def locked(self, key: ProcessKey) -> AsyncIterator[None]:
        """
        Hold the lock for key, dropping it afterwards if no one else is queued.

        The lock map only holds keys that are in use.
        """
        lock = self.lock_for(key)
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                if self._locks.get(key) is lock:
                    del self._locks[key]

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    async def wait_idle(self) -> None:
        """
        Wait for every in-flight start/stop to release its key lock.

        Operations queued behind a lock run before this returns.
        """
        for lock in list(self._locks.values()):
            async with lock:
                pass

    def add(self, handle: ProcessHandle, info: ManagedProcess) -> RegistryEntry:
        """
        Register a freshly spawned process.

        Raises:
            KeyError: If the key is already taken (a removal must come first)
        """
        key = info.key
        if key in self._entries:
            raise KeyError(f"Process already registered for {key}")

        entry = RegistryEntry(handle=handle, info=info)
        self._entries[key] = entry
        self.logger.debug(f"Registered {key} (PID: {info.pid})")
        return entry

    def remove(
        self,
        key: ProcessKey,
        handle: Optional[ProcessHandle] = None,
    ) -> Optional[RegistryEntry]:
        """
        Remove the entry for key.

        Args:
            key: Slot to clear
            handle: If given, only remove when the entry holds this handle,
                    so a late exit callback can't remove a newer process

        Returns:
            The removed entry, or None if nothing was removed
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if handle is not None and entry.handle is not handle:
            return None

        del self._entries[key]
        self.logger.debug(f"Removed {key} (PID: {entry.info.pid})")
        return entry

    def get(self, key: ProcessKey) -> Optional[RegistryEntry]:
        return self._entries.get(key)

    def contains(self, key: ProcessKey) -> bool:
        return key in self._entries

    def entries(self) -> List[RegistryEntry]:
        """Copy of all entries (safe to iterate while entries change)"""
        return list(self._entries.values())

    def snapshot(self) -> List[ManagedProcess]:
        """Metadata of all registered processes"""
        return [entry.info for entry in self._entries.values()]

    def clear(self) -> None:
        if self._entries:
            self.logger.debug(f"Clearing {len(self._entries)} registry entries")
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
