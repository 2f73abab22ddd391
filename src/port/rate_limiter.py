"""Port definition for RateLimiter."""

from typing import Protocol


class RateLimiter(Protocol):
    """Caps requests per client key within a time window.

    Implementations differ only in where counters live (process memory or a
    shared store); callers see the same interface either way.
    """
    limit: int
    window_seconds: int

    def admit(self, client_key: str) -> bool:
        """Count one request for ``client_key``. Return False once over the limit."""
        ...

    def ping(self) -> bool: ...
