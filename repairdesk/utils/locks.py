from __future__ import annotations
"""Per-entity in-process locks.

Same-entity mutations (reassign, status change) are serialized within one
process; different entities never contend. Multi-process deployments get no
serialization from this and fall back to last-write-wins at the store.

A key's lock lives only while someone holds or waits on it, so the map stays
as small as the set of entities currently being mutated.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Tuple


class _Entry:
    __slots__ = ('lock', 'users')

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0


class EntityLocks:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[str, str], _Entry] = {}

    def _checkout(self, key: Tuple[str, str]) -> _Entry:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, key: Tuple[str, str], entry: _Entry):
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, kind: str, entity_id: str):
        key = (kind, str(entity_id))
        entry = self._checkout(key)
        try:
            with entry.lock:
                yield
        finally:
            self._checkin(key, entry)

    def __len__(self):
        with self._guard:
            return len(self._locks)

__all__ = ['EntityLocks']
