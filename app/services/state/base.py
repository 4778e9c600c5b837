"""
State store contract shared by the rate limiter, quota tracker and response cache.

Each method is a single atomic per-key operation: callers never read state
and write it back in two steps.
"""

from abc import ABC, abstractmethod
from typing import NamedTuple, Optional


class WindowDecision(NamedTuple):
    allowed: bool
    # requests retained in the window after the decision
    count: int
    # timestamp of the oldest retained request, set on denial
    oldest: Optional[float] = None


class DailyDecision(NamedTuple):
    allowed: bool
    count: int


class StateStore(ABC):
    @abstractmethod
    async def admit_sliding_window(self, key: str, now: float, window_seconds: float, ceiling: int) -> WindowDecision:
        """Purge entries older than the window, then admit `now` iff fewer than `ceiling` remain."""

    @abstractmethod
    async def consume_daily(self, key: str, day: str, ceiling: int, ttl_seconds: int) -> DailyDecision:
        """Increment the counter for (key, day) iff it is below `ceiling`. A new day starts at zero."""

    @abstractmethod
    async def get_cached(self, key: str) -> Optional[str]:
        """Return the stored value, or None when absent or expired."""

    @abstractmethod
    async def set_cached(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store value verbatim; the store expires it after ttl_seconds."""

    async def close(self) -> None:
        return None
