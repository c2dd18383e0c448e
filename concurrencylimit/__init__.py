"""concurrencylimit - Bounded-concurrency distributed locks on Redis."""

from .allocator import RedisSlotAllocator, SlotAllocator
from .config import LockConfig
from .exceptions import (
    ConcurrencyLimitError,
    ConfigurationError,
    OccupantRecordError,
    StoreError,
    StoreUnavailableError,
)
from .limit import ConcurrencyLimit
from .lock import Lock
from .memory import InMemorySlotAllocator
from .models import (
    OccupantRecord,
    Ownership,
    SlotInfo,
)
from .tokens import generate_token, token_timestamp

__version__ = "1.0.0"
__all__ = [
    "ConcurrencyLimit",
    "Lock",
    "LockConfig",
    "SlotAllocator",
    "RedisSlotAllocator",
    "InMemorySlotAllocator",
    "ConcurrencyLimitError",
    "ConfigurationError",
    "OccupantRecordError",
    "StoreError",
    "StoreUnavailableError",
    "OccupantRecord",
    "Ownership",
    "SlotInfo",
    "generate_token",
    "token_timestamp",
]
