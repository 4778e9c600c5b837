"""
Best-effort lookup of the nearest archived capture of a URL.
"""

import json
from typing import Optional
from urllib.parse import urlencode

from app.constants.config import ARCHIVE_TIMEOUT_SECONDS
from app.core.config import settings
from app.core.logger import get_logger
from app.services.verification.fetch_gate import FetchError, FetchGate

logger = get_logger(__name__)


class ArchiveResolver:
    """
    Queries a CDX snapshot index for one capture of `url`.

    Never raises: a non-success response, unparseable body, empty index or
    timeout all mean "no snapshot" (None).
    """

    def __init__(
        self,
        fetch_gate: FetchGate,
        index_url: Optional[str] = None,
        web_base: Optional[str] = None,
        timeout: float = ARCHIVE_TIMEOUT_SECONDS,
    ):
        self.fetch_gate = fetch_gate
        self.index_url = index_url or settings.ARCHIVE_INDEX_URL
        self.web_base = (web_base or settings.ARCHIVE_WEB_BASE).rstrip("/")
        self.timeout = timeout

    async def find_snapshot(self, url: str) -> Optional[str]:
        query = urlencode({"url": url, "output": "json", "limit": 1})
        try:
            response = await self.fetch_gate.fetch(f"{self.index_url}?{query}", method="GET", timeout=self.timeout)
        except FetchError as e:
            logger.info(f"[ArchiveResolver] Snapshot index unavailable for {url}: {type(e).__name__}")
            return None

        if not (200 <= response.status < 300):
            logger.info(f"[ArchiveResolver] Snapshot index returned {response.status} for {url}")
            return None

        try:
            rows = json.loads(response.text)
        except ValueError:
            logger.info(f"[ArchiveResolver] Unparseable snapshot index response for {url}")
            return None

        # first row is the CDX header: [urlkey, timestamp, original, ...]
        if isinstance(rows, list) and len(rows) > 1 and isinstance(rows[1], list) and len(rows[1]) > 1 and rows[1][1]:
            timestamp = rows[1][1]
            archived = f"{self.web_base}/{timestamp}/{url}"
            logger.info(f"[ArchiveResolver] Snapshot found for {url}: {archived}")
            return archived

        return None
