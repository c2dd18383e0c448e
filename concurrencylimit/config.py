"""Lock configuration."""

from dataclasses import dataclass

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class LockConfig:
    """Parameters identifying a pool and describing this process's claim.

    Args:
        key_name: Store key holding the pool hash
        max_procs: Maximum number of concurrent holders (capacity)
        proc_info: Opaque string stored after the token in the occupant record
    """
    key_name: str
    max_procs: int
    proc_info: str = ""

    def __post_init__(self):
        if not isinstance(self.key_name, str) or not self.key_name:
            raise ConfigurationError("Need a 'key_name' parameter")
        if isinstance(self.max_procs, bool) or not isinstance(self.max_procs, int):
            raise ConfigurationError("Need a 'max_procs' parameter")
        if self.max_procs < 1:
            raise ConfigurationError("'max_procs' must be a positive integer")
        if self.proc_info is None:
            object.__setattr__(self, "proc_info", "")
        elif not isinstance(self.proc_info, str):
            raise ConfigurationError("'proc_info' must be a string")
