import itertools

import pytest

from concurrencylimit import InMemorySlotAllocator, StoreUnavailableError


class FlakyAllocator(InMemorySlotAllocator):
    """In-memory allocator whose connection can be cut."""

    def __init__(self):
        super().__init__()
        self.down = False

    def _check(self):
        if self.down:
            raise StoreUnavailableError("Connection refused")

    def claim(self, key, capacity, record):
        self._check()
        return super().claim(key, capacity, record)

    def release(self, key, slot):
        self._check()
        super().release(key, slot)

    def read(self, key, slot):
        self._check()
        return super().read(key, slot)


@pytest.fixture
def allocator():
    return FlakyAllocator()


@pytest.fixture
def token_factory():
    counter = itertools.count(1)
    return lambda: next(counter).to_bytes(16, "big")
