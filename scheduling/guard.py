"""
Per-slot mutual exclusion for booking and cancellation.

At most one mutating transaction may be inside the critical section for
a given slot at any time. Two backends:

- LocalSlotGuard: per-slot thread locks, fronted by asyncio locks for
  each event loop. Correct across the threads and event loops of one
  process.
- RedisSlotGuard: a Redis lease lock per slot, shared by every process
  pointed at the same Redis.

Both bound acquisition by an optional timeout and raise GuardTimeoutError
(retryable) when it runs out. Release happens on every exit path of the
``hold`` context manager.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional, Tuple

from redis.asyncio import Redis
from redis.exceptions import LockError

from config import settings
from utils.constants import GUARD_KEY_PREFIX
from utils.exceptions import GuardTimeoutError
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="guard.log")

LoopKey = Tuple[asyncio.AbstractEventLoop, str]


class SlotGuard(ABC):
    """Interface for per-slot mutual exclusion."""

    @abstractmethod
    def hold(self, slot_id: str):
        """Async context manager holding the guard for slot_id."""

    async def close(self) -> None:
        """Release backend resources."""
        return None


def _release_when_acquired(lock: threading.Lock):
    def callback(future: asyncio.Future) -> None:
        if not future.cancelled() and future.exception() is None and future.result():
            lock.release()

    return callback


class LocalSlotGuard(SlotGuard):
    """
    In-process guard usable from any number of threads and event loops.

    Each slot has one threading.Lock that provides the actual exclusion.
    Callers on the same event loop first queue on an asyncio.Lock for
    (loop, slot), which keeps them in FIFO order and means at most one
    caller per loop waits on the thread lock in an executor thread.

    Locks are created on first use and dropped once nobody holds or
    waits on them, so the registry does not grow with the number of
    slots ever touched.
    """

    def __init__(self, acquire_timeout: Optional[float] = None):
        self.acquire_timeout = acquire_timeout
        self._registry = threading.Lock()
        self._locks: Dict[LoopKey, asyncio.Lock] = {}
        self._waiters: Dict[LoopKey, int] = {}
        self._slot_locks: Dict[str, threading.Lock] = {}
        self._slot_users: Dict[str, int] = {}

    def _checkout(self, key: LoopKey) -> Tuple[asyncio.Lock, threading.Lock]:
        slot_id = key[1]
        with self._registry:
            loop_lock = self._locks.get(key)
            if loop_lock is None:
                loop_lock = self._locks[key] = asyncio.Lock()
                self._waiters[key] = 0
            self._waiters[key] += 1

            slot_lock = self._slot_locks.get(slot_id)
            if slot_lock is None:
                slot_lock = self._slot_locks[slot_id] = threading.Lock()
                self._slot_users[slot_id] = 0
            self._slot_users[slot_id] += 1
        return loop_lock, slot_lock

    def _checkin(self, key: LoopKey) -> None:
        slot_id = key[1]
        with self._registry:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

            self._slot_users[slot_id] -= 1
            if self._slot_users[slot_id] == 0:
                del self._slot_users[slot_id]
                del self._slot_locks[slot_id]

    def is_held(self, slot_id: str) -> bool:
        with self._registry:
            lock = self._slot_locks.get(slot_id)
            return lock is not None and lock.locked()

    def _remaining(self, deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        return max(deadline - asyncio.get_running_loop().time(), 0.0)

    async def _acquire_slot_lock(
        self, lock: threading.Lock, timeout: Optional[float]
    ) -> bool:
        if lock.acquire(blocking=False):
            return True

        loop = asyncio.get_running_loop()
        pending = loop.run_in_executor(
            None, lock.acquire, True, -1 if timeout is None else timeout
        )
        try:
            return await asyncio.shield(pending)
        except asyncio.CancelledError:
            # The executor thread may still get the lock after we stop waiting
            pending.add_done_callback(_release_when_acquired(lock))
            raise

    @asynccontextmanager
    async def hold(self, slot_id: str) -> AsyncIterator[None]:
        loop = asyncio.get_running_loop()
        key = (loop, slot_id)
        loop_lock, slot_lock = self._checkout(key)
        deadline = None
        if self.acquire_timeout is not None:
            deadline = loop.time() + self.acquire_timeout

        try:
            try:
                if deadline is None:
                    await loop_lock.acquire()
                else:
                    await asyncio.wait_for(loop_lock.acquire(), self._remaining(deadline))
            except asyncio.TimeoutError:
                self._timed_out(slot_id)

            try:
                if not await self._acquire_slot_lock(slot_lock, self._remaining(deadline)):
                    self._timed_out(slot_id)

                try:
                    yield
                finally:
                    slot_lock.release()
            finally:
                loop_lock.release()
        finally:
            self._checkin(key)

    def _timed_out(self, slot_id: str) -> None:
        logger.warning(
            f"Guard for slot {slot_id} not acquired within {self.acquire_timeout}s"
        )
        raise GuardTimeoutError(slot_id, self.acquire_timeout) from None


class RedisSlotGuard(SlotGuard):
    """
    Cross-process guard using redis-py's asyncio lock.

    The lease (lock_ttl) keeps a crashed holder from blocking the slot
    forever. If a holder outlives its lease the release fails with
    LockError; that is logged, and the slot version check in the atomic
    commit still rejects any write based on a stale read.
    """

    def __init__(
        self,
        redis: Redis,
        acquire_timeout: Optional[float] = None,
        lock_ttl: float = 30.0,
        key_prefix: str = GUARD_KEY_PREFIX,
    ):
        self.redis = redis
        self.acquire_timeout = acquire_timeout
        self.lock_ttl = lock_ttl
        self.key_prefix = key_prefix

    @classmethod
    def from_url(cls, redis_url: str, **kwargs) -> "RedisSlotGuard":
        return cls(Redis.from_url(redis_url), **kwargs)

    def key_for(self, slot_id: str) -> str:
        return f"{self.key_prefix}:{slot_id}"

    @asynccontextmanager
    async def hold(self, slot_id: str) -> AsyncIterator[None]:
        lock = self.redis.lock(
            self.key_for(slot_id),
            timeout=self.lock_ttl,
            blocking_timeout=self.acquire_timeout,
        )
        acquired = await lock.acquire()
        if not acquired:
            logger.warning(
                f"Redis guard for slot {slot_id} not acquired within {self.acquire_timeout}s"
            )
            raise GuardTimeoutError(slot_id, self.acquire_timeout)

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                logger.error(
                    f"Redis guard lease for slot {slot_id} expired before release "
                    f"(ttl={self.lock_ttl}s)",
                    exc_info=True,
                )

    async def close(self) -> None:
        await self.redis.aclose()


# Global guard instance
_guard: Optional[SlotGuard] = None


def get_slot_guard() -> SlotGuard:
    """Get or create the configured slot guard."""
    global _guard
    if _guard is None:
        if settings.redis_url:
            _guard = RedisSlotGuard.from_url(
                settings.redis_url,
                acquire_timeout=settings.guard_acquire_timeout_seconds,
                lock_ttl=settings.guard_lock_ttl_seconds,
            )
            logger.info("Slot guard using Redis backend (multi-instance mode)")
        else:
            _guard = LocalSlotGuard(
                acquire_timeout=settings.guard_acquire_timeout_seconds
            )
            logger.info("Slot guard using in-process locks (single instance mode)")
    return _guard
