"""
Verify that one candidate source URL is real and reachable.

    SanityCheck -> Rejected
                -> ProbeHead -> Verified
                             -> ProbeGet -> Verified
                                         -> ArchiveFallback -> Verified (archived) | Unverified
                 (non-HTML success) -> Unverified (non-html)

No state is shared between calls; the only suspension points are the Fetch
Gate and the archive lookup.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from app.constants.config import (
    CONTENT_TIMEOUT_SECONDS,
    EXCERPT_MATCH_CHARS,
    PROBE_TIMEOUT_SECONDS,
    SOURCE_UNAVAILABLE_MARKER,
)
from app.core.logger import get_logger
from app.core.schemas import ErrorKind, VerificationRecord
from app.services.common.url_helpers import extract_hostname, is_http_url
from app.services.verification.archive import ArchiveResolver
from app.services.verification.fetch_gate import (
    FetchError,
    FetchGate,
    FetchResponse,
    FetchTimeout,
    PrivateTargetBlocked,
)
from app.services.verification.html_meta import contains_excerpt, dates_mismatch, extract_publish_date, extract_title
from app.services.verification.url_sanity import is_likely_hallucinated, is_private_target

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def sanity_check(url: Optional[str]) -> Optional[ErrorKind]:
    """Return the rejection kind for a URL that must never reach the network, else None."""
    if not url:
        return ErrorKind.NO_URL
    if url.strip() == SOURCE_UNAVAILABLE_MARKER:
        return ErrorKind.SOURCE_UNAVAILABLE
    if not is_http_url(url) or is_likely_hallucinated(url):
        return ErrorKind.INVALID_URL
    hostname = extract_hostname(url)
    if not hostname or is_private_target(hostname):
        return ErrorKind.PRIVATE_IP_BLOCKED
    return None


class SourceVerifier:
    def __init__(
        self,
        fetch_gate: FetchGate,
        archive_resolver: ArchiveResolver,
        clock: Callable[[], datetime] = utc_now,
        probe_timeout: float = PROBE_TIMEOUT_SECONDS,
        content_timeout: float = CONTENT_TIMEOUT_SECONDS,
    ):
        self.fetch_gate = fetch_gate
        self.archive_resolver = archive_resolver
        self._clock = clock
        self.probe_timeout = probe_timeout
        self.content_timeout = content_timeout

    async def verify(
        self,
        url: Optional[str],
        claimed_date: Optional[str] = None,
        excerpt: Optional[str] = None,
    ) -> VerificationRecord:
        rejection = sanity_check(url)
        if rejection is not None:
            logger.info(f"[SourceVerifier] Rejected without fetch ({rejection.value}): {url}")
            return VerificationRecord(url=url, error_kind=rejection.value)

        response = await self._probe_head(url)

        if response is None or not response.ok:
            try:
                response = await self.fetch_gate.fetch(url, method="GET", timeout=self.content_timeout)
            except PrivateTargetBlocked:
                logger.warning(f"[SourceVerifier] Redirect into private network blocked: {url}")
                return VerificationRecord(url=url, error_kind=ErrorKind.PRIVATE_IP_BLOCKED.value)
            except FetchTimeout:
                return await self._archive_fallback(url, ErrorKind.TIMEOUT, status=None)
            except FetchError as e:
                logger.info(f"[SourceVerifier] GET failed for {url}: {e}")
                return await self._archive_fallback(url, ErrorKind.NETWORK_ERROR, status=None)

            if not response.ok:
                return await self._archive_fallback(url, ErrorKind.HTTP_ERROR, status=response.status)

        elif response.is_html:
            # HEAD carries no body; fetch it for title/date. Best effort.
            try:
                page = await self.fetch_gate.fetch(url, method="GET", timeout=self.content_timeout)
                if page.ok:
                    response = page
            except FetchError as e:
                logger.debug(f"[SourceVerifier] Body fetch after HEAD failed for {url}: {e}")

        if not response.is_html:
            logger.info(f"[SourceVerifier] Unverified (non-html, {response.content_type or 'no content-type'}): {url}")
            return VerificationRecord(
                url=url,
                status=response.status,
                final_url=response.url or url,
                error_kind=ErrorKind.NON_HTML.value,
            )

        return self._verified_record(url, response, claimed_date, excerpt)

    async def _probe_head(self, url: str) -> Optional[FetchResponse]:
        # HEAD failures fall through to GET
        try:
            return await self.fetch_gate.fetch(url, method="HEAD", timeout=self.probe_timeout)
        except FetchError as e:
            logger.debug(f"[SourceVerifier] HEAD failed for {url}: {e}")
            return None

    def _verified_record(
        self,
        url: str,
        response: FetchResponse,
        claimed_date: Optional[str],
        excerpt: Optional[str],
    ) -> VerificationRecord:
        title = None
        found_date = None
        excerpt_found = None
        if response.text:
            title = extract_title(response.text)
            found_date = extract_publish_date(response.text)
            if excerpt:
                excerpt_found = contains_excerpt(response.text, excerpt, EXCERPT_MATCH_CHARS)

        mismatch = dates_mismatch(claimed_date, found_date)
        if mismatch:
            logger.info(f"[SourceVerifier] Date mismatch for {url}: claimed={claimed_date} found={found_date}")

        return VerificationRecord(
            url=url,
            verified=True,
            status=response.status,
            final_url=response.url or url,
            title=title,
            found_date=found_date,
            verified_at=self._clock(),
            date_mismatch=mismatch,
            excerpt_found=excerpt_found,
        )

    async def _archive_fallback(self, url: str, kind: ErrorKind, status: Optional[int]) -> VerificationRecord:
        archived = await self.archive_resolver.find_snapshot(url)
        if archived:
            return VerificationRecord(
                url=url,
                verified=True,
                status=status,
                archived_url=archived,
                verified_at=self._clock(),
                error_kind=f"original-{status or kind.value}-archived-found",
            )

        logger.info(f"[SourceVerifier] Unverified ({kind.value}, status={status}): {url}")
        return VerificationRecord(url=url, status=status, error_kind=kind.value)
