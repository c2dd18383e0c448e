"""concurrencylimit exception classes."""

class ConcurrencyLimitError(Exception):
    """Base exception for all concurrencylimit errors."""
    pass


class ConfigurationError(ConcurrencyLimitError):
    """Raised when a required lock parameter is missing or invalid."""
    pass


class StoreError(ConcurrencyLimitError):
    """Raised when the shared store rejects an operation."""
    pass


class StoreUnavailableError(StoreError):
    """Raised when the shared store cannot be reached."""
    pass


class OccupantRecordError(ConcurrencyLimitError):
    """Raised when a stored slot value is not a valid occupant record."""

    def __init__(self, message: str, raw: bytes = None):
        super().__init__(message)
        self.raw = raw
