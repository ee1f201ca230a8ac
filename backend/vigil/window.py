"""
Ephemeral State Store: the sliding window of recent submissions.

A time-indexed key/value + list store where every entry can expire on
its own. Absence of a key after its TTL is meaningful: the window has
forgotten that submission.

Two backends implement WindowStore:
- InMemoryWindowStore (here): single process, injectable clock
- RedisWindowStore (services/redis_window_store.py): production

Mutations that must appear together go through commit(), which applies
them as one unit: either every mutation is visible afterwards or none is.
"""

import copy
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

from .errors import WindowStoreError

logger = logging.getLogger(__name__)


# =============================================================================
# Mutations (applied individually or batched through commit)
# =============================================================================

@dataclass(frozen=True)
class SetKey:
    key: str
    value: str
    ttl: int  # seconds


@dataclass(frozen=True)
class PushFront:
    key: str
    value: str


@dataclass(frozen=True)
class Trim:
    key: str
    max_len: int


@dataclass(frozen=True)
class Expire:
    key: str
    ttl: int  # seconds


@dataclass(frozen=True)
class DeleteKey:
    key: str


@dataclass(frozen=True)
class RemoveOne:
    """Remove the first (most recent) occurrence of value from a list."""
    key: str
    value: str


Mutation = Union[SetKey, PushFront, Trim, Expire, DeleteKey, RemoveOne]


class WindowStore(ABC):
    """Contract shared by every window backend."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def list_length(self, key: str) -> int:
        pass

    @abstractmethod
    async def list_range(self, key: str) -> List[str]:
        """Whole list, most recent first."""
        pass

    @abstractmethod
    async def commit(self, mutations: Sequence[Mutation]) -> None:
        """Apply all mutations as one unit."""
        pass

    async def set(self, key: str, ttl: int, value: str = "1") -> None:
        await self.commit([SetKey(key, value, ttl)])

    async def push_front(self, key: str, value: str) -> None:
        await self.commit([PushFront(key, value)])

    async def trim(self, key: str, max_len: int) -> None:
        await self.commit([Trim(key, max_len)])

    async def set_expiry(self, key: str, ttl: int) -> None:
        await self.commit([Expire(key, ttl)])

    async def close(self) -> None:
        pass


# =============================================================================
# In-memory backend
# =============================================================================

@dataclass
class _Entry:
    value: Union[str, List[str]]
    expires_at: Optional[float] = None


class InMemoryWindowStore(WindowStore):
    """
    Dict-backed window with lazy expiry.

    commit() stages every mutation on a copy of the data and swaps the copy
    in only after all of them applied, so a failure mid-batch leaves the
    visible state untouched.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._data: Dict[str, _Entry] = {}

    def _live(self, key: str) -> Optional[_Entry]:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del self._data[key]
            return None
        return entry

    async def exists(self, key: str) -> bool:
        return self._live(key) is not None

    async def get(self, key: str) -> Optional[str]:
        entry = self._live(key)
        if entry is None:
            return None
        if isinstance(entry.value, list):
            raise WindowStoreError(f"{key} holds a list, not a value")
        return entry.value

    async def list_length(self, key: str) -> int:
        return len(await self.list_range(key))

    async def list_range(self, key: str) -> List[str]:
        entry = self._live(key)
        if entry is None:
            return []
        if not isinstance(entry.value, list):
            raise WindowStoreError(f"{key} holds a value, not a list")
        return list(entry.value)

    async def commit(self, mutations: Sequence[Mutation]) -> None:
        now = self._clock()
        staged = {
            key: copy.deepcopy(entry)
            for key, entry in self._data.items()
            if entry.expires_at is None or now < entry.expires_at
        }
        for mutation in mutations:
            self._apply(staged, mutation, now)
        self._data = staged

    def _apply(self, data: Dict[str, _Entry], mutation: Mutation, now: float) -> None:
        if isinstance(mutation, SetKey):
            data[mutation.key] = _Entry(mutation.value, now + mutation.ttl)

        elif isinstance(mutation, PushFront):
            entry = data.get(mutation.key)
            if entry is None:
                data[mutation.key] = _Entry([mutation.value])
            elif isinstance(entry.value, list):
                entry.value.insert(0, mutation.value)
            else:
                raise WindowStoreError(f"{mutation.key} holds a value, not a list")

        elif isinstance(mutation, Trim):
            entry = data.get(mutation.key)
            if entry is None:
                return
            if not isinstance(entry.value, list):
                raise WindowStoreError(f"{mutation.key} holds a value, not a list")
            del entry.value[mutation.max_len:]
            if not entry.value:
                del data[mutation.key]

        elif isinstance(mutation, Expire):
            entry = data.get(mutation.key)
            if entry is not None:
                entry.expires_at = now + mutation.ttl

        elif isinstance(mutation, DeleteKey):
            data.pop(mutation.key, None)

        elif isinstance(mutation, RemoveOne):
            entry = data.get(mutation.key)
            if entry is None:
                return
            if not isinstance(entry.value, list):
                raise WindowStoreError(f"{mutation.key} holds a value, not a list")
            if mutation.value in entry.value:
                entry.value.remove(mutation.value)
            if not entry.value:
                del data[mutation.key]

        else:
            raise WindowStoreError(f"Unknown mutation: {mutation!r}")
