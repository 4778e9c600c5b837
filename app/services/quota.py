"""
Per-caller daily request quota.

Days are UTC calendar days. The day is computed once per call and passed to
the store together with the increment, so a request that straddles midnight
is counted against exactly one day.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Optional

from app.constants.config import QUOTA_KEY_TTL_SECONDS
from app.core.logger import get_logger
from app.services.state.base import StateStore

logger = get_logger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    remaining: Optional[int]


class QuotaTracker:
    def __init__(self, store: StateStore, today: Callable[[], date] = utc_today) -> None:
        self.store = store
        self._today = today

    async def consume(self, key: str, daily_ceiling: int) -> QuotaDecision:
        """Exactly `daily_ceiling` calls succeed per key per day; the call that would exceed it is denied."""
        day = self._today().isoformat()
        decision = await self.store.consume_daily(key, day, daily_ceiling, QUOTA_KEY_TTL_SECONDS)

        if not decision.allowed:
            logger.info(f"[QuotaTracker] Daily quota exhausted for {key} on {day} ({daily_ceiling})")
            return QuotaDecision(allowed=False, remaining=0)

        return QuotaDecision(allowed=True, remaining=max(0, daily_ceiling - decision.count))
