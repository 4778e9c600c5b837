"""
In-process state store for single-instance deployments and local development.
"""

import asyncio
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional, Tuple

from app.core.logger import get_logger
from app.services.state.base import DailyDecision, StateStore, WindowDecision

logger = get_logger(__name__)


class MemoryStateStore(StateStore):
    """
    Concurrency-safe in-memory implementation of StateStore.

    A single asyncio.Lock serializes every decision, so admission checks for the
    same caller are linearizable even under rapid double submission.
    Cache expiry uses `clock` (monotonic by default); expired entries are
    dropped on access and swept when the map grows past `sweep_threshold`.
    Idle rate-limit windows and quota counters from earlier days are swept
    past the same threshold.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_threshold: int = 1024):
        self._clock = clock
        self._sweep_threshold = sweep_threshold
        self._lock = asyncio.Lock()

        self._windows: Dict[str, Deque[float]] = {}
        self._daily: Dict[str, Tuple[str, int]] = {}
        self._cache: Dict[str, Tuple[float, str]] = {}
        self._windows_swept_at: Optional[float] = None
        self._daily_swept_day: Optional[str] = None

    async def admit_sliding_window(self, key: str, now: float, window_seconds: float, ceiling: int) -> WindowDecision:
        async with self._lock:
            timestamps = self._windows.setdefault(key, deque())
            while timestamps and now - timestamps[0] >= window_seconds:
                timestamps.popleft()

            if len(timestamps) >= ceiling:
                if not timestamps:
                    del self._windows[key]
                return WindowDecision(allowed=False, count=len(timestamps), oldest=timestamps[0] if timestamps else now)

            timestamps.append(now)
            if len(self._windows) > self._sweep_threshold and (
                self._windows_swept_at is None or now - self._windows_swept_at >= window_seconds
            ):
                self._sweep_windows(now, window_seconds)
            return WindowDecision(allowed=True, count=len(timestamps))

    def _sweep_windows(self, now: float, window_seconds: float) -> None:
        self._windows_swept_at = now
        idle = [k for k, stamps in self._windows.items() if not stamps or now - stamps[-1] >= window_seconds]
        for k in idle:
            del self._windows[k]
        if idle:
            logger.debug(f"[MemoryStateStore] Swept {len(idle)} idle rate-limit window(s)")

    async def consume_daily(self, key: str, day: str, ceiling: int, ttl_seconds: int) -> DailyDecision:
        async with self._lock:
            stored_day, count = self._daily.get(key, (day, 0))
            if stored_day != day:
                logger.debug(f"[MemoryStateStore] Quota rollover for {key}: {stored_day} -> {day}")
                count = 0

            if count >= ceiling:
                self._daily[key] = (day, count)
                return DailyDecision(allowed=False, count=count)

            count += 1
            self._daily[key] = (day, count)
            if len(self._daily) > self._sweep_threshold and self._daily_swept_day != day:
                self._daily_swept_day = day
                stale = [k for k, (stored, _) in self._daily.items() if stored != day]
                for k in stale:
                    del self._daily[k]
            return DailyDecision(allowed=True, count=count)

    async def get_cached(self, key: str) -> Optional[str]:
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._cache[key]
                return None
            return value

    async def set_cached(self, key: str, value: str, ttl_seconds: int) -> None:
        async with self._lock:
            now = self._clock()
            self._cache[key] = (now + ttl_seconds, value)
            if len(self._cache) > self._sweep_threshold:
                expired = [k for k, (expires_at, _) in self._cache.items() if now >= expires_at]
                for k in expired:
                    del self._cache[k]
