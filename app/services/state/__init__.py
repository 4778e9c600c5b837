"""
Shared state for abuse controls and caching.
"""

from .base import DailyDecision, StateStore, WindowDecision
from .memory_store import MemoryStateStore
from .redis_store import RedisStateStore

__all__ = ["StateStore", "WindowDecision", "DailyDecision", "MemoryStateStore", "RedisStateStore"]
