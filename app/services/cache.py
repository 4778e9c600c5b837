"""
Response cache for full investigation payloads.
"""

import hashlib
from typing import Optional

from app.constants.config import CACHE_KEY_PREFIX, IMAGE_FINGERPRINT_CHARS
from app.core.logger import get_logger
from app.services.state.base import StateStore

logger = get_logger(__name__)


def fingerprint(text: str, url: str, image: Optional[str]) -> str:
    """
    SHA-256 over the normalized request input.

    Only the leading IMAGE_FINGERPRINT_CHARS of the image data URI are mixed in.
    Collisions between distinct inputs are accepted residual risk.
    """
    material = "|".join([text or "", url or "", (image or "")[:IMAGE_FINGERPRINT_CHARS]])
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


class ResponseCache:
    """
    Memoizes serialized investigation results by fingerprint.

    Values are stored and returned verbatim (str in, same str out). Both
    lookups and writes fail open: a store error is logged and treated as a miss.
    """

    def __init__(self, store: StateStore, ttl_seconds: int = 3600) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.store.get_cached(f"{CACHE_KEY_PREFIX}{key}")
        except Exception as e:
            logger.warning(f"[ResponseCache] Lookup failed, treating as miss: {e}")
            return None

    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        try:
            await self.store.set_cached(f"{CACHE_KEY_PREFIX}{key}", value, ttl_seconds or self.ttl_seconds)
        except Exception as e:
            logger.warning(f"[ResponseCache] Write failed, result not cached: {e}")
