import itertools
import logging
import threading
from contextlib import contextmanager
from typing import Iterator
from uuid import UUID

from .errors import StoreUnavailableError

logger = logging.getLogger(__name__)


def account_key(address: str) -> str:
    return f"account:{address}"


def purchase_key(purchase_id: UUID) -> str:
    return f"purchase:{purchase_id}"


def tx_hash_key(tx_hash: str) -> str:
    return f"tx:{tx_hash}"


class InMemoryStorage:
    """
    Authoritative in-process store.

    Tables are plain dicts of plain dicts. Every mutation happens while
    holding the locks for the keys it touches; see ``locked``.
    """

    def __init__(self, lock_timeout: float = 5.0):
        self.accounts: dict[str, dict] = {}
        self.ledger_entries: dict[UUID, dict] = {}
        self.entries_by_address: dict[str, list[UUID]] = {}
        self.purchases: dict[UUID, dict] = {}
        self.tx_hash_index: dict[str, UUID] = {}
        self.lock_timeout = lock_timeout
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._sequence = itertools.count(1)

    def next_sequence(self) -> int:
        with self._registry_lock:
            return next(self._sequence)

    def _lock_for(self, key: str) -> threading.Lock:
        # One lock per key for the life of the store; the registry grows
        # with the tables and is dropped with them.
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def locked(self, *keys: str) -> Iterator[None]:
        # Sorted acquisition order keeps multi-key units deadlock free.
        acquired: list[threading.Lock] = []
        try:
            for key in sorted(set(keys)):
                lock = self._lock_for(key)
                if not lock.acquire(timeout=self.lock_timeout):
                    logger.warning("Lock wait on %s exceeded %.2fs", key, self.lock_timeout)
                    raise StoreUnavailableError(f"Timed out waiting for {key}")
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
