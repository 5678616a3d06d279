"""In-memory creation-time cache with single-flight resolution.

Maps a backing file id to its creation time in epoch millis. Values never
change for a key, so there is no refresh: an entry lives until its TTL runs
out or it is pushed out by LRU pressure.

Concurrent misses for the same key share one resolution task. Failures are
never stored, so a key that failed is retried on the next call. ``resolve``
propagates failures; ``resolve_or`` is the non-raising entry point used by
the gate and logs failures with ``exc_info=True`` before returning the
caller's fallback.
"""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from pagestamp.errors import NotFound, PageStampError

if TYPE_CHECKING:
    from collections.abc import Callable

    from pagestamp.history import HistoryResolver

log = structlog.get_logger()

_SECONDS_PER_HOUR = 3600


@dataclass(slots=True)
class _CacheEntry:
    value: int  # creation time, epoch millis
    expires_at: float  # clock() reading


class TimestampCache:
    """Bounded, expiring ``file_id -> creation millis`` map implementing CreationTimeSource."""

    def __init__(
        self,
        resolver: HistoryResolver,
        *,
        ttl_hours: float = 24,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._resolver = resolver
        self._ttl = ttl_hours * _SECONDS_PER_HOUR
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[int, _CacheEntry] = OrderedDict()
        self._inflight: dict[int, asyncio.Task[int]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, file_id: object) -> bool:
        entry = self._entries.get(file_id)  # type: ignore[call-overload]
        return entry is not None and entry.expires_at > self._clock()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def resolve(self, file_id: int) -> int:
        """Return the creation time for ``file_id``, resolving it on a miss."""
        if file_id <= 0:
            raise NotFound(f"Invalid file id: {file_id!r}")

        entry = self._entries.get(file_id)
        if entry is not None:
            if entry.expires_at > self._clock():
                self._entries.move_to_end(file_id)
                return entry.value
            del self._entries[file_id]

        task = self._inflight.get(file_id)
        if task is None:
            task = asyncio.create_task(self._fetch(file_id))
            self._inflight[file_id] = task
        # A cancelled waiter must not cancel the shared resolution
        return await asyncio.shield(task)

    async def resolve_or(self, file_id: int, fallback: int) -> int:
        """Like ``resolve`` but returns ``fallback`` on any failure."""
        try:
            return await self.resolve(file_id)
        except PageStampError as exc:
            log.warning("creation_time_fallback", file_id=file_id, **exc.to_log())
        except Exception:
            log.error("creation_time_error", file_id=file_id, exc_info=True)
        return fallback

    async def _fetch(self, file_id: int) -> int:
        try:
            value = await self._resolver.creation_time(file_id)
        finally:
            self._inflight.pop(file_id, None)
        self._store(file_id, value)
        log.debug("creation_time_cached", file_id=file_id, created_at=value)
        return value

    def _store(self, file_id: int, value: int) -> None:
        self._entries[file_id] = _CacheEntry(value=value, expires_at=self._clock() + self._ttl)
        self._entries.move_to_end(file_id)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            log.debug("creation_time_evicted", file_id=evicted)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def purge_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            log.info("cache_cleanup_complete", removed=len(expired))
        return len(expired)
