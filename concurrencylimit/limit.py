"""Concurrency limit built on a shared slot pool."""

from typing import Optional

from .allocator import SlotAllocator
from .config import LockConfig
from .exceptions import ConfigurationError
from .lock import Lock
from .tokens import TokenFactory, generate_token


class ConcurrencyLimit:
    """Limit a named job to ``max_procs`` concurrent holders across hosts.

    Example::

        limit = ConcurrencyLimit(RedisSlotAllocator(redis_conn), "mylock", max_procs=5)
        lock_id = limit.get_lock()
        if not lock_id:
            sys.exit("Couldn't get lock")
    """

    def __init__(self, allocator: SlotAllocator, key_name: str, max_procs: int = 1,
                 proc_info: Optional[str] = None,
                 token_factory: TokenFactory = generate_token):
        """Initialize the limit. No slot is claimed until ``get_lock``.

        Args:
            allocator: Store adapter shared by every participating process
            key_name: Store key holding the pool
            max_procs: Maximum number of concurrent holders
            proc_info: Optional string stored with the lock, e.g. host and PID
            token_factory: Callable returning a fresh unique token
        """
        if allocator is None:
            raise ConfigurationError("Need an 'allocator' parameter")
        self.config = LockConfig(key_name=key_name, max_procs=max_procs,
                                 proc_info=proc_info)
        self.allocator = allocator
        self.token_factory = token_factory
        self.lock: Optional[Lock] = None

    @property
    def lock_id(self) -> Optional[int]:
        return self.lock.id if self.lock is not None else None

    def get_lock(self) -> Optional[int]:
        """Claim a slot unless one is already held.

        Returns:
            The held slot number, or None if the pool is full
        """
        if self.lock is not None and self.lock.id is not None:
            return self.lock.id
        self.lock = Lock.acquire(self.config, self.allocator, self.token_factory)
        return self.lock_id

    def is_locked(self) -> bool:
        return self.lock_id is not None

    def heartbeat(self) -> bool:
        """Check that the held slot still belongs to this process."""
        if self.lock is None:
            return False
        return self.lock.heartbeat()

    def release_lock(self) -> None:
        """Release the held slot, raising if the store is unreachable."""
        if self.lock is None:
            return
        self.lock.release()
        self.lock = None

    def close(self) -> None:
        """Release the held slot on a best-effort basis."""
        if self.lock is None:
            return
        self.lock.close()
        if self.lock.id is None:
            self.lock = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
