"""
Single-Flight Resource Cache

Architectural Intent:
- Keyed cache for shared, named resources (security groups, key pairs)
- At most one load is in flight per key; concurrent requesters await the
  same load and receive the same value or the same error
- Successful loads are kept (optionally for expire_after seconds), failed
  loads are evicted so the next request retries

Concurrency Model:
- The loader runs as its own task; requesters await it through
  asyncio.shield, so cancelling one requester never cancels the load
- Entry transitions happen in a done-callback registered before any
  requester awaits, so by the time a requester resumes the entry already
  reflects the outcome
- Single event loop; no locks needed because every transition happens
  between suspension points
"""

from __future__ import annotations
import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum, auto
from functools import partial
from typing import Awaitable, Callable, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class EntryState(Enum):
    LOADING = auto()
    READY = auto()
    FAILED = auto()


@dataclass
class CacheEntry(Generic[K, V]):
    key: K
    state: EntryState
    value: Optional[V] = None
    task: Optional[asyncio.Future] = None
    loaded_at: float = 0.0


@dataclass(frozen=True)
class CacheStats:
    name: str
    size: int
    hits: int
    loads: int
    joined: int
    failures: int
    evictions: int


class SingleFlightResourceCache(Generic[K, V]):
    def __init__(
        self,
        name: str,
        expire_after: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if expire_after is not None and expire_after <= 0:
            raise ValueError("expire_after must be positive")
        self.name = name
        self._expire_after = expire_after
        self._clock = clock
        self._entries: dict[K, CacheEntry[K, V]] = {}
        self._hits = 0
        self._loads = 0
        self._joined = 0
        self._failures = 0
        self._evictions = 0

    def _expired(self, entry: CacheEntry[K, V]) -> bool:
        if self._expire_after is None or entry.state is not EntryState.READY:
            return False
        return self._clock() - entry.loaded_at >= self._expire_after

    def _evict(self, key: K, entry: CacheEntry[K, V]) -> None:
        if self._entries.get(key) is entry:
            del self._entries[key]
            self._evictions += 1

    def _on_loaded(self, entry: CacheEntry[K, V], task: asyncio.Future) -> None:
        if task.cancelled():
            entry.state = EntryState.FAILED
            self._evict(entry.key, entry)
            return
        error = task.exception()
        if error is not None:
            entry.state = EntryState.FAILED
            self._failures += 1
            self._evict(entry.key, entry)
            logger.warning("%s cache: loading %s failed: %s", self.name, entry.key, error)
            return
        entry.value = task.result()
        entry.loaded_at = self._clock()
        entry.state = EntryState.READY
        logger.debug("%s cache: loaded %s", self.name, entry.key)

    async def get_or_create(self, key: K, loader: Callable[[K], Awaitable[V]]) -> V:
        """
        Return the cached value for key, loading it with loader(key) if absent.

        Raises whatever the loader raised; every requester that joined the
        same load receives that same exception instance.
        """
        entry = self._entries.get(key)
        if entry is not None and self._expired(entry):
            self._evict(key, entry)
            entry = None

        if entry is not None and entry.state is EntryState.READY:
            self._hits += 1
            return entry.value  # type: ignore[return-value]

        if entry is None:
            self._loads += 1
            entry = CacheEntry(key=key, state=EntryState.LOADING)
            entry.task = asyncio.ensure_future(loader(key))
            entry.task.add_done_callback(partial(self._on_loaded, entry))
            self._entries[key] = entry
            logger.debug("%s cache: loading %s", self.name, key)
        else:
            self._joined += 1
            logger.debug("%s cache: joining in-flight load of %s", self.name, key)

        return await asyncio.shield(entry.task)

    def put(self, key: K, value: V) -> None:
        """Seed a known value, replacing any cached one."""
        self._entries[key] = CacheEntry(
            key=key, state=EntryState.READY, value=value, loaded_at=self._clock()
        )

    def get_if_present(self, key: K) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None or entry.state is not EntryState.READY or self._expired(entry):
            return None
        return entry.value

    def invalidate(self, key: K) -> bool:
        """
        Drop a READY entry. An in-flight load is left alone so that a key
        never has two loads running at once; returns whether anything was
        dropped.
        """
        entry = self._entries.get(key)
        if entry is None or entry.state is EntryState.LOADING:
            return False
        self._evict(key, entry)
        return True

    def invalidate_all(self) -> int:
        ready = [k for k, e in self._entries.items() if e.state is EntryState.READY]
        for key in ready:
            self._evict(key, self._entries[key])
        return len(ready)

    def is_loading(self, key: K) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.state is EntryState.LOADING

    def stats(self) -> CacheStats:
        return CacheStats(
            name=self.name,
            size=len(self._entries),
            hits=self._hits,
            loads=self._loads,
            joined=self._joined,
            failures=self._failures,
            evictions=self._evictions,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and entry.state is EntryState.READY and not self._expired(entry)

    def __repr__(self) -> str:
        return f"SingleFlightResourceCache(name={self.name}, size={len(self._entries)})"
