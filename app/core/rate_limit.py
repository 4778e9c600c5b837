import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from app.constants.config import RATE_LIMIT_WINDOW_SECONDS
from app.core.logger import get_logger
from app.services.state.base import StateStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after_seconds: Optional[int] = None


class RateLimiter:
    """
    Sliding-window per-caller rate limiter.
    Ensures that no more than `ceiling` requests per key are admitted within
    any `window_seconds` span.

    Example:
        limiter = RateLimiter(MemoryStateStore())
        decision = await limiter.admit("1.2.3.4:session-abc", ceiling=20)
        if not decision.allowed:
            ...  # 429 with decision.retry_after_seconds
    """

    def __init__(
        self,
        store: StateStore,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.window_seconds = window_seconds
        self._clock = clock

    async def admit(self, key: str, ceiling: int) -> RateLimitDecision:
        now = self._clock()
        decision = await self.store.admit_sliding_window(key, now, self.window_seconds, ceiling)

        if decision.allowed:
            return RateLimitDecision(allowed=True, remaining=max(0, ceiling - decision.count))

        oldest = decision.oldest if decision.oldest is not None else now
        retry_after = max(1, math.ceil(self.window_seconds - (now - oldest)))
        logger.info(f"[RateLimiter] Denied {key}: {decision.count}/{ceiling} in window, retry in {retry_after}s")
        return RateLimitDecision(allowed=False, remaining=0, retry_after_seconds=retry_after)
