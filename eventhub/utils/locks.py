import threading
from typing import Dict
from contextlib import contextmanager
import logging

logger = logging.getLogger(__name__)


class KeyedLockManager:
    """
    Hands out one lock per key so account mutations for the same key run
    one at a time. Used to serialize password resets targeting one account
    when several requests arrive concurrently on different worker threads.
    """

    def __init__(self, name: str):
        self.name = name
        self._locks: Dict[str, threading.Lock] = {}
        self._global_lock = threading.Lock()

    def get_lock(self, key: str) -> threading.Lock:
        """Get or create the lock for a specific key."""
        with self._global_lock:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    @contextmanager
    def acquire(self, key: str):
        """Context manager to acquire and release the lock for ``key``."""
        lock = self.get_lock(key)
        lock.acquire()
        logger.debug("Acquired %s lock", self.name)
        try:
            yield
        finally:
            lock.release()
            logger.debug("Released %s lock", self.name)


password_reset_locks = KeyedLockManager("password-reset")
