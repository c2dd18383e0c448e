"""concurrencylimit data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .exceptions import OccupantRecordError
from .tokens import TOKEN_LENGTH, token_timestamp

SEPARATOR = b"-"


class Ownership(str, Enum):
    """Outcome of re-checking a held slot against the store."""
    OWNED = "owned"
    LOST = "lost"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class OccupantRecord:
    """Value stored for an occupied slot: ``<token>-<info>``."""
    token: bytes
    info: str = ""

    def encode(self) -> bytes:
        """Serialize to the exact byte layout kept in the pool hash."""
        return self.token + SEPARATOR + self.info.encode("utf-8")

    @classmethod
    def decode(cls, raw: bytes, token_length: int = TOKEN_LENGTH) -> "OccupantRecord":
        """Split a stored value back into token and info.

        Binary tokens may contain the separator byte, so the split happens at
        ``token_length`` rather than at the first separator.

        Raises:
            OccupantRecordError: If ``raw`` is too short, lacks the separator
                after the token, or the info part is not valid UTF-8.
        """
        if len(raw) < token_length + len(SEPARATOR):
            raise OccupantRecordError("Occupant record is too short", raw=raw)
        token = raw[:token_length]
        rest = raw[token_length:]
        if not rest.startswith(SEPARATOR):
            raise OccupantRecordError("Occupant record is missing the separator", raw=raw)
        try:
            info = rest[len(SEPARATOR):].decode("utf-8")
        except UnicodeDecodeError as e:
            raise OccupantRecordError(f"Occupant info is not UTF-8: {e}", raw=raw) from e
        return cls(token=token, info=info)

    @property
    def acquired_at(self) -> Optional[datetime]:
        """Creation time embedded in the token, if it is a 16 byte time-ordered token."""
        if len(self.token) != TOKEN_LENGTH:
            return None
        return token_timestamp(self.token)


@dataclass
class SlotInfo:
    """Snapshot of one occupied slot in a pool."""
    slot: int
    raw: bytes
    record: Optional[OccupantRecord] = None
