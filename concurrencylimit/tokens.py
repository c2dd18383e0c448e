"""Time-ordered unique tokens for occupant records.

Tokens are 16 byte binary UUIDs in the "version 4s" layout: the leading 60 bits
hold a microsecond UNIX timestamp from high to low significance, with the
version nibble and RFC 4122 variant bits kept in their usual positions. The
remaining 62 bits are random. Sorting tokens bytewise therefore sorts them by
creation time, which lets operators judge the age of a slot's occupant.
"""

import secrets
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

TOKEN_LENGTH = 16

TokenFactory = Callable[[], bytes]

_TIMESTAMP_BITS = 60
_RANDOM_BITS = 62


def generate_token() -> bytes:
    """Return a fresh, globally unique, time-ordered 16 byte token."""
    micros = (time.time_ns() // 1000) & ((1 << _TIMESTAMP_BITS) - 1)
    time_high = micros >> 12
    time_low = micros & 0xFFF
    value = (time_high << 80) | (0x4 << 76) | (time_low << 64)
    value |= (0b10 << 62) | secrets.randbits(_RANDOM_BITS)
    return uuid.UUID(int=value).bytes


def token_timestamp(token: bytes) -> datetime:
    """Recover the creation time embedded in a token from ``generate_token``."""
    if len(token) != TOKEN_LENGTH:
        raise ValueError(f"Token must be {TOKEN_LENGTH} bytes, got {len(token)}")
    value = int.from_bytes(token, "big")
    time_high = value >> 80
    time_low = (value >> 64) & 0xFFF
    micros = (time_high << 12) | time_low
    return datetime.fromtimestamp(micros / 1_000_000, tz=timezone.utc)
