"""Deduplicator — one notification per (vessel, engine, rule) per cool-down window."""

from __future__ import annotations

import abc
import asyncio
import contextlib
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field

import structlog

from fleetwatch.alerting.types import DedupKey, Violation

logger = structlog.get_logger(__name__)


class DedupStore(abc.ABC):
    """Keeps the last-notified timestamp per DedupKey."""

    @abc.abstractmethod
    async def get(self, key: DedupKey) -> float | None:
        """Return the last-notified timestamp, or None if never notified."""

    @abc.abstractmethod
    async def set(self, key: DedupKey, timestamp: float) -> None:
        """Record *timestamp* as the last notification for *key*."""

    @abc.abstractmethod
    async def delete(self, key: DedupKey) -> None:
        """Forget *key*."""

    @abc.abstractmethod
    async def clear(self) -> None:
        """Forget every key."""

    @abc.abstractmethod
    async def prune(self, cutoff: float) -> int:
        """Drop entries last notified at or before *cutoff*. Returns the count."""


class InMemoryDedupStore(DedupStore):
    """Process-lifetime store backed by a dict."""

    def __init__(self) -> None:
        self._last_sent: dict[DedupKey, float] = {}

    async def get(self, key: DedupKey) -> float | None:
        return self._last_sent.get(key)

    async def set(self, key: DedupKey, timestamp: float) -> None:
        self._last_sent[key] = timestamp

    async def delete(self, key: DedupKey) -> None:
        self._last_sent.pop(key, None)

    async def clear(self) -> None:
        self._last_sent.clear()

    async def prune(self, cutoff: float) -> int:
        expired = [k for k, ts in self._last_sent.items() if ts <= cutoff]
        for key in expired:
            del self._last_sent[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._last_sent)


@dataclass
class Admission:
    """Violations admitted at *now*, plus what their keys held before."""

    now: float
    survivors: list[Violation] = field(default_factory=list)
    previous: dict[DedupKey, float | None] = field(default_factory=dict)


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class Deduplicator:
    """Suppresses repeat violations inside the cool-down window.

    The read-then-write on a key runs under that key's own lock, so of any
    number of concurrent violations sharing a key exactly one is admitted.
    Different keys never wait on each other. A key's lock is dropped as soon
    as nobody holds or waits on it.

    A key marked as notified stays marked even if the later delivery fails:
    the guarantee is at most one attempt initiated per window. Until delivery
    starts, the caller may ``rollback()`` an admission to leave no trace.

    Entries older than the window are pruned at most once per window, so the
    store only holds keys that can still suppress something.
    """

    DEFAULT_COOLDOWN_SECS = 1800.0  # 30 minutes

    def __init__(
        self,
        store: DedupStore | None = None,
        cooldown_secs: float = DEFAULT_COOLDOWN_SECS,
    ) -> None:
        if cooldown_secs < 0:
            raise ValueError("cooldown_secs must be >= 0")
        self._store = store if store is not None else InMemoryDedupStore()
        self._cooldown_secs = cooldown_secs
        self._locks: dict[DedupKey, _KeyLock] = {}
        self._last_prune: float | None = None

    @property
    def cooldown_secs(self) -> float:
        return self._cooldown_secs

    @contextlib.asynccontextmanager
    async def _key_lock(self, key: DedupKey) -> AsyncIterator[None]:
        # Registration happens before the first await, so no race on creation.
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _KeyLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    async def filter(self, violations: Sequence[Violation], now: float) -> list[Violation]:
        """Return the violations that should be notified at *now*."""
        return (await self.admit(violations, now)).survivors

    async def admit(self, violations: Sequence[Violation], now: float) -> Admission:
        """Admit violations at *now* and record them as notified.

        If cancelled or failing partway, the keys already written are restored
        before the exception propagates.
        """
        await self._maybe_prune(now)
        admission = Admission(now=now)
        try:
            for violation in violations:
                if await self._admit(violation.key, now, admission):
                    admission.survivors.append(violation)
                else:
                    logger.debug(
                        "violation_suppressed",
                        vessel_id=violation.vessel_id,
                        engine_id=violation.engine_id,
                        rule_id=violation.rule.id,
                    )
        except BaseException:
            await self.rollback(admission)
            raise
        return admission

    async def _admit(self, key: DedupKey, now: float, admission: Admission) -> bool:
        async with self._key_lock(key):
            last = await self._store.get(key)
            if last is not None and now - last < self._cooldown_secs:
                return False
            if key not in admission.previous:
                admission.previous[key] = last
            await self._store.set(key, now)
            return True

    async def rollback(self, admission: Admission) -> None:
        """Restore the keys *admission* wrote, unless a later run overwrote them."""
        for key, previous in admission.previous.items():
            async with self._key_lock(key):
                if await self._store.get(key) != admission.now:
                    continue
                if previous is None:
                    await self._store.delete(key)
                else:
                    await self._store.set(key, previous)
        if admission.previous:
            logger.info("dedup_admission_rolled_back", keys=len(admission.previous))
        admission.previous.clear()

    async def _maybe_prune(self, now: float) -> None:
        if self._last_prune is not None and now - self._last_prune < self._cooldown_secs:
            return
        self._last_prune = now
        removed = await self._store.prune(now - self._cooldown_secs)
        if removed:
            logger.debug("dedup_pruned", removed=removed)

    async def forget(self, key: DedupKey) -> None:
        """Drop the record for *key* so its next violation notifies again."""
        async with self._key_lock(key):
            await self._store.delete(key)

    async def clear(self) -> None:
        await self._store.clear()
