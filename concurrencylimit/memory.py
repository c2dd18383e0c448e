"""In-memory slot allocator."""

import threading
from typing import Dict, List, Optional

from .allocator import SlotAllocator, check_capacity, slot_infos
from .models import SlotInfo


class InMemorySlotAllocator(SlotAllocator):
    """Process-local slot allocator for testing and single-host use."""

    def __init__(self) -> None:
        self._pools: Dict[str, Dict[bytes, bytes]] = {}
        self._lock = threading.Lock()

    def claim(self, key: str, capacity: int, record: bytes) -> int:
        check_capacity(capacity)
        with self._lock:
            pool = self._pools.setdefault(key, {})
            for slot in range(1, capacity + 1):
                field = str(slot).encode("ascii")
                if field not in pool:
                    pool[field] = record
                    return slot
            return 0

    def release(self, key: str, slot: int) -> None:
        with self._lock:
            pool = self._pools.get(key)
            if pool is None:
                return
            pool.pop(str(slot).encode("ascii"), None)
            # Redis drops a hash once its last field is gone.
            if not pool:
                del self._pools[key]

    def read(self, key: str, slot: int) -> Optional[bytes]:
        with self._lock:
            return self._pools.get(key, {}).get(str(slot).encode("ascii"))

    def occupants(self, key: str) -> List[SlotInfo]:
        with self._lock:
            entries = dict(self._pools.get(key, {}))
        return slot_infos(entries)

    def overwrite(self, key: str, slot: int, record: Optional[bytes]) -> None:
        """Replace or delete a slot's record without going through claim."""
        with self._lock:
            pool = self._pools.setdefault(key, {})
            field = str(slot).encode("ascii")
            if record is None:
                pool.pop(field, None)
            else:
                pool[field] = record
            if not pool:
                del self._pools[key]

    def exists(self, key: str) -> bool:
        """Whether the pool currently has a hash in the store."""
        with self._lock:
            return key in self._pools
