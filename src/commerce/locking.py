"""Row-level locks for the shared mutable rows of the commerce core.

Protean repositories have no ``SELECT ... FOR UPDATE``, so exclusive access to
a single cart, inventory counter, order or payment idempotency key is taken
here, before the command that touches it is processed. The command's unit of
work, commit included, therefore runs while the lock is held.

Rules:
    * keys are tuples (``("cart", id)``, ``("inventory", variant, location)``,
      ``("order", id)``, ``("payment", key)``) acquired in sorted order
    * a nested ``hold`` only takes keys greater than the ones already held
    * every wait is bounded; a timed-out attempt drops what it holds, backs off
      and retries, and raises ``LockTimeout`` once the budget is spent
"""

import os
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field

import structlog

from commerce.errors import LockTimeout

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LockPolicy:
    """Bounded wait and backoff settings for lock acquisition."""

    timeout: float = field(default_factory=lambda: float(os.environ.get("COMMERCE_LOCK_TIMEOUT", "2.0")))
    retries: int = field(default_factory=lambda: int(os.environ.get("COMMERCE_LOCK_RETRIES", "3")))
    backoff_initial: float = field(default_factory=lambda: float(os.environ.get("COMMERCE_LOCK_BACKOFF", "0.05")))
    backoff_factor: float = 2.0
    backoff_max: float = field(default_factory=lambda: float(os.environ.get("COMMERCE_LOCK_BACKOFF_MAX", "1.0")))

    def delay(self, attempt: int) -> float:
        return min(self.backoff_initial * self.backoff_factor**attempt, self.backoff_max)


# ---------------------------------------------------------------------------
# Key builders
# ---------------------------------------------------------------------------
def cart_key(cart_id) -> tuple:
    return ("cart", str(cart_id))


def inventory_key(variant_id, location_id) -> tuple:
    return ("inventory", str(variant_id), str(location_id) if location_id else "")


def order_key(order_id) -> tuple:
    return ("order", str(order_id))


def payment_key(idempotency_key) -> tuple:
    return ("payment", str(idempotency_key))


class RowLocks:
    """Registry of per-key exclusive locks."""

    def __init__(self, policy: LockPolicy | None = None) -> None:
        self.policy = policy or LockPolicy()
        self._guard = threading.Lock()
        self._locks: dict[tuple, list] = {}  # key -> [lock, waiters + holders]
        self._local = threading.local()

    # -------------------------------------------------------------------
    # Registry bookkeeping
    # -------------------------------------------------------------------
    def _checkout(self, key: tuple) -> threading.Lock:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
            return entry[0]

    def _checkin(self, key: tuple) -> None:
        with self._guard:
            entry = self._locks[key]
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    def _held(self) -> set:
        if not hasattr(self._local, "keys"):
            self._local.keys = set()
        return self._local.keys

    def is_held(self, key: tuple) -> bool:
        """True if the calling thread holds ``key``."""
        return key in self._held()

    # -------------------------------------------------------------------
    # Acquisition
    # -------------------------------------------------------------------
    def _release(self, keys: list[tuple]) -> None:
        held = self._held()
        for key in reversed(keys):
            with self._guard:
                lock = self._locks[key][0]
            lock.release()
            held.discard(key)
            self._checkin(key)

    def _acquire(self, keys: list[tuple]) -> list[tuple]:
        attempts = self.policy.retries + 1
        for attempt in range(attempts):
            acquired = []
            for key in keys:
                lock = self._checkout(key)
                if lock.acquire(timeout=self.policy.timeout):
                    acquired.append(key)
                    self._held().add(key)
                    continue
                self._checkin(key)
                break
            else:
                return acquired

            self._release(acquired)
            if attempt + 1 < attempts:
                delay = self.policy.delay(attempt)
                logger.warning("Row lock wait timed out, backing off", keys=keys, attempt=attempt + 1, delay=delay)
                time.sleep(delay)

        logger.error("Row locks unavailable", keys=keys, attempts=attempts)
        raise LockTimeout(keys, attempts)

    @contextmanager
    def hold(self, *keys: tuple):
        """Hold the given row locks for the duration of the block."""
        wanted = sorted(set(keys) - self._held())
        acquired = self._acquire(wanted)
        try:
            yield
        finally:
            self._release(acquired)


_current_locks: RowLocks | None = None


def get_row_locks() -> RowLocks:
    """Return the process-wide lock registry."""
    global _current_locks
    if _current_locks is None:
        _current_locks = RowLocks()
    return _current_locks


def set_row_locks(locks: RowLocks) -> None:
    """Override the lock registry (useful for tests)."""
    global _current_locks
    _current_locks = locks


def reset_row_locks() -> None:
    global _current_locks
    _current_locks = None
