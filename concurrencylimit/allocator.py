"""Slot allocation against the shared store."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import redis

from .exceptions import (
    ConfigurationError,
    OccupantRecordError,
    StoreError,
    StoreUnavailableError,
)
from .models import OccupantRecord, SlotInfo

logger = logging.getLogger(__name__)

# Ascending first-free scan so released numbers are reused before higher ones.
CLAIM_SCRIPT = """
local key = KEYS[1]
local max_procs = tonumber(ARGV[1])
local proc_info = ARGV[2]

for i = 1, max_procs, 1 do
  if redis.call('hexists', key, i) == 0 then
    redis.call('hset', key, i, proc_info)
    return i
  end
end

return 0
"""

RELEASE_SCRIPT = """
local key = KEYS[1]
local lockno = ARGV[1]
redis.call('hdel', key, lockno)
return 1
"""


def check_capacity(capacity: int) -> None:
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
        raise ConfigurationError(f"Capacity must be a positive integer, got {capacity!r}")


def slot_infos(entries: Dict[bytes, bytes]) -> List[SlotInfo]:
    """Turn a raw pool hash into ``SlotInfo`` objects ordered by slot number."""
    infos = []
    for field, raw in entries.items():
        try:
            slot = int(field)
        except ValueError:
            logger.debug("Skipping non-numeric pool field %r", field)
            continue
        try:
            record = OccupantRecord.decode(raw)
        except OccupantRecordError:
            record = None
        infos.append(SlotInfo(slot=slot, raw=raw, record=record))
    return sorted(infos, key=lambda info: info.slot)


class SlotAllocator(ABC):
    """Atomic claim and release of numbered slots in a pool.

    Every ``claim`` and ``release`` on the same key must be indivisible with
    respect to every other one. Out-of-band writers to the same key are outside
    that guarantee.
    """

    @abstractmethod
    def claim(self, key: str, capacity: int, record: bytes) -> int:
        """Occupy the lowest free slot in ``1..capacity``.

        Returns:
            The claimed slot number, or 0 if every slot is occupied
        """

    @abstractmethod
    def release(self, key: str, slot: int) -> None:
        """Free ``slot`` unconditionally. Freeing a free slot is a no-op."""

    @abstractmethod
    def read(self, key: str, slot: int) -> Optional[bytes]:
        """Return the raw occupant record of ``slot``, or None if it is free."""

    @abstractmethod
    def occupants(self, key: str) -> List[SlotInfo]:
        """Return every occupied slot of the pool, lowest number first."""


class RedisSlotAllocator(SlotAllocator):
    """Slot allocator keeping each pool in a single Redis hash.

    Claim and release run as Lua scripts so Redis executes them atomically.
    The client must return bytes (``decode_responses=False``), since tokens
    are binary.
    """

    def __init__(self, redis_client: redis.Redis):
        """Initialize the allocator.

        Args:
            redis_client: Connected redis-py client with Lua scripting support

        Raises:
            ConfigurationError: If the client decodes responses to str
        """
        pool = getattr(redis_client, "connection_pool", None)
        if getattr(pool, "connection_kwargs", {}).get("decode_responses"):
            raise ConfigurationError("Redis client must be created with decode_responses=False")
        self.redis = redis_client
        self._claim_script = redis_client.register_script(CLAIM_SCRIPT)
        self._release_script = redis_client.register_script(RELEASE_SCRIPT)

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisSlotAllocator":
        """Create an allocator from a ``redis://`` URL."""
        kwargs["decode_responses"] = False
        return cls(redis.Redis.from_url(url, **kwargs))

    def _call(self, action: str, func, *args):
        try:
            return func(*args)
        except (redis.ConnectionError, redis.TimeoutError) as e:
            raise StoreUnavailableError(f"Redis unavailable while {action}: {e}") from e
        except redis.RedisError as e:
            raise StoreError(f"Redis error while {action}: {e}") from e

    def claim(self, key: str, capacity: int, record: bytes) -> int:
        check_capacity(capacity)
        slot = self._call(
            "claiming a slot",
            lambda: self._claim_script(keys=[key], args=[capacity, record]),
        )
        slot = int(slot or 0)
        logger.debug("Claim on %r (capacity %d) returned slot %d", key, capacity, slot)
        return slot

    def release(self, key: str, slot: int) -> None:
        self._call(
            "releasing a slot",
            lambda: self._release_script(keys=[key], args=[slot]),
        )
        logger.debug("Released slot %d of %r", slot, key)

    def read(self, key: str, slot: int) -> Optional[bytes]:
        return self._call("reading a slot", self.redis.hget, key, str(slot))

    def occupants(self, key: str) -> List[SlotInfo]:
        entries = self._call("listing slots", self.redis.hgetall, key)
        return slot_infos(entries or {})
