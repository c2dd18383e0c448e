"""Lock handle for one claimed slot."""

import logging
from typing import Optional

from .allocator import SlotAllocator
from .config import LockConfig
from .exceptions import ConcurrencyLimitError, ConfigurationError, StoreUnavailableError
from .models import OccupantRecord, Ownership
from .tokens import TokenFactory, generate_token

logger = logging.getLogger(__name__)


class Lock:
    """One occupied slot of a pool.

    Instances only come from ``Lock.acquire``; there is no unclaimed state.
    Release happens through ``release``, ``close`` or leaving a ``with`` block.
    A lock that is never released (process crash, lost connection, dropped
    without ``close``) stays in the store until an operator frees its slot.
    """

    def __init__(self, config: LockConfig, allocator: SlotAllocator,
                 slot: int, token: bytes):
        self.config = config
        self.allocator = allocator
        self.token = token
        self._slot: Optional[int] = slot

    @classmethod
    def acquire(cls, config: LockConfig, allocator: SlotAllocator,
                token_factory: TokenFactory = generate_token) -> Optional["Lock"]:
        """Try to claim a slot in the pool.

        Args:
            config: Pool name, capacity and occupant info
            allocator: Store adapter running the claim
            token_factory: Callable returning a fresh unique token

        Returns:
            A held Lock, or None if every slot is occupied

        Raises:
            ConfigurationError: If no allocator is given
            StoreUnavailableError: If the store cannot be reached
        """
        if allocator is None:
            raise ConfigurationError("Need an 'allocator' parameter")

        token = token_factory()
        record = OccupantRecord(token=token, info=config.proc_info)
        slot = allocator.claim(config.key_name, config.max_procs, record.encode())
        if not slot:
            logger.info("Pool %r is full (%d slots)", config.key_name, config.max_procs)
            return None
        return cls(config, allocator, slot, token)

    @property
    def id(self) -> Optional[int]:
        """Slot number held, or None once released."""
        return self._slot

    @property
    def key_name(self) -> str:
        return self.config.key_name

    @property
    def max_procs(self) -> int:
        return self.config.max_procs

    @property
    def proc_info(self) -> str:
        return self.config.proc_info

    @property
    def record(self) -> OccupantRecord:
        return OccupantRecord(token=self.token, info=self.config.proc_info)

    def check(self) -> Ownership:
        """Compare the slot's stored record with this lock's own record."""
        if self._slot is None:
            return Ownership.LOST
        try:
            stored = self.allocator.read(self.key_name, self._slot)
        except ConcurrencyLimitError as e:
            logger.warning("Cannot verify slot %d of %r: %s", self._slot, self.key_name, e)
            return Ownership.UNREACHABLE
        if stored != self.record.encode():
            logger.warning("Slot %d of %r was taken over by another holder",
                           self._slot, self.key_name)
            return Ownership.LOST
        return Ownership.OWNED

    def heartbeat(self) -> bool:
        """Return True only if the store confirms this lock still holds its slot."""
        return self.check() is Ownership.OWNED

    def release(self) -> None:
        """Free the slot.

        Raises:
            StoreUnavailableError: If the store cannot be reached; the lock
                stays bound so the release can be retried.
        """
        if self._slot is None:
            return
        self.allocator.release(self.key_name, self._slot)
        self._slot = None

    def close(self) -> None:
        """Release the slot on a best-effort basis. Never raises."""
        try:
            self.release()
        except StoreUnavailableError as e:
            logger.warning("Could not release slot %s of %r: %s", self._slot, self.key_name, e)
        except Exception:
            logger.exception("Error releasing slot %s of %r", self._slot, self.key_name)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self):
        return f"Lock(key_name={self.key_name!r}, id={self._slot!r}, proc_info={self.proc_info!r})"
