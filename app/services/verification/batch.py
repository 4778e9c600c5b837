"""
Concurrent verification of a request's candidate sources.
"""

import asyncio
from typing import Any, Dict, List, Optional

from app.constants.config import (
    DISPLAY_MAX_SOURCES,
    VERIFY_BATCH_TIMEOUT_SECONDS,
    VERIFY_DEFAULT_CONCURRENCY,
    VERIFY_MAX_CANDIDATES,
)
from app.core.logger import get_logger
from app.core.schemas import CandidateSource, ErrorKind, RankedSource, VerificationRecord
from app.services.common.url_helpers import extract_domain, normalize_url
from app.services.verification.proxy_resolver import is_proxy_url, resolve_real_url
from app.services.verification.source_verifier import SourceVerifier

logger = get_logger(__name__)


def rank_sources(sources: List[RankedSource], display_max: int = DISPLAY_MAX_SOURCES) -> List[RankedSource]:
    """Verified first, then unverified; first-observed order within each; capped at display_max."""
    verified = [s for s in sources if s.verified][:display_max]
    unverified = [s for s in sources if not s.verified][:display_max]
    return (verified + unverified)[:display_max]


def grounding_candidates(metadata: Optional[Dict[str, Any]]) -> List[CandidateSource]:
    """
    Build candidates from a search-grounding payload.

    Each `groundingChunks[i]` contributes web.uri/web.title (often a proxy URL
    plus the bare domain as title) and retrievedContext.uri. The first
    `groundingSupports` segment citing chunk i becomes its snippet.
    """
    if not isinstance(metadata, dict):
        return []

    snippets: Dict[int, str] = {}
    for support in metadata.get("groundingSupports") or []:
        text = ((support or {}).get("segment") or {}).get("text")
        if not text:
            continue
        for idx in support.get("groundingChunkIndices") or []:
            snippets.setdefault(idx, text)

    candidates = []
    for idx, chunk in enumerate(metadata.get("groundingChunks") or []):
        web = (chunk or {}).get("web") or {}
        context = (chunk or {}).get("retrievedContext") or {}
        url = web.get("uri") or context.get("uri")
        if not url:
            continue
        candidates.append(
            CandidateSource(
                title=web.get("title") or context.get("title"),
                url=url,
                snippet=snippets.get(idx),
                retrieved_uri=context.get("uri"),
            )
        )
    return candidates


def _source_domain(source: CandidateSource) -> Optional[str]:
    url = resolve_real_url(source.url, source.title, source.retrieved_uri)
    if url and not is_proxy_url(url):
        return extract_domain(url)
    # grounding titles are frequently the bare publisher domain
    title = (source.title or "").strip().lower()
    if title and " " not in title and "." in title:
        return title[4:] if title.startswith("www.") else title
    return None


def merge_sources(grounding: List[CandidateSource], model: List[CandidateSource]) -> List[CandidateSource]:
    """
    Merge grounding-derived and model-provided sources for the same publisher.

    Grounding entries come first and keep their snippet; the model's snippet
    is used only when grounding's is empty. A model source with no grounding
    counterpart is appended in its original order.
    """
    merged = list(grounding)
    open_slots: Dict[str, int] = {}
    for idx, source in enumerate(merged):
        domain = _source_domain(source)
        if domain and domain not in open_slots:
            open_slots[domain] = idx

    for source in model:
        domain = _source_domain(source)
        idx = open_slots.pop(domain, None) if domain else None
        if idx is None:
            merged.append(source)
            continue

        base = merged[idx]
        update: Dict[str, Any] = {
            "snippet": base.snippet or source.snippet,
            "title": base.title or source.title,
            "claimed_date": base.claimed_date or source.claimed_date,
            "excerpt": base.excerpt or source.excerpt,
        }
        if is_proxy_url(resolve_real_url(base.url, base.title, base.retrieved_uri)) and source.url:
            update["url"] = source.url
        merged[idx] = base.model_copy(update=update)

    return merged


class BatchVerificationCoordinator:
    def __init__(
        self,
        verifier: SourceVerifier,
        max_concurrent: int = VERIFY_DEFAULT_CONCURRENCY,
        max_candidates: int = VERIFY_MAX_CANDIDATES,
        display_max: int = DISPLAY_MAX_SOURCES,
        batch_timeout: float = VERIFY_BATCH_TIMEOUT_SECONDS,
    ):
        self.verifier = verifier
        self.max_concurrent = max_concurrent
        self.max_candidates = max_candidates
        self.display_max = display_max
        self.batch_timeout = batch_timeout

    def prepare(self, candidates: List[CandidateSource]) -> List[CandidateSource]:
        """Unwrap proxy URLs, drop duplicate URLs (first wins) and cap the batch."""
        prepared: List[CandidateSource] = []
        seen = set()
        for candidate in candidates:
            real_url = resolve_real_url(candidate.url, candidate.title, candidate.retrieved_uri)
            if real_url and real_url != candidate.url:
                candidate = candidate.model_copy(update={"url": real_url})

            key = normalize_url(candidate.url or "")
            if key and key in seen:
                continue
            if key:
                seen.add(key)
            prepared.append(candidate)
            if len(prepared) >= self.max_candidates:
                break
        return prepared

    async def verify_all(
        self, candidates: List[CandidateSource], max_concurrent: Optional[int] = None
    ) -> List[RankedSource]:
        batch = self.prepare(candidates)
        if not batch:
            return []

        semaphore = asyncio.Semaphore(max(1, max_concurrent or self.max_concurrent))

        async def _verify_one(candidate: CandidateSource) -> VerificationRecord:
            async with semaphore:
                try:
                    return await self.verifier.verify(candidate.url, candidate.claimed_date, candidate.excerpt)
                except Exception as e:
                    logger.error(f"[BatchVerifier] Verification crashed for {candidate.url}: {type(e).__name__}: {e}")
                    return VerificationRecord(url=candidate.url, error_kind=ErrorKind.VERIFICATION_FAILED.value)

        tasks = [asyncio.create_task(_verify_one(candidate)) for candidate in batch]
        _, pending = await asyncio.wait(tasks, timeout=self.batch_timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"[BatchVerifier] {len(pending)} verification(s) exceeded the batch budget")
            await asyncio.gather(*pending, return_exceptions=True)

        ranked = []
        for candidate, task in zip(batch, tasks):
            if task in pending:
                record = VerificationRecord(url=candidate.url, error_kind=ErrorKind.TIMEOUT.value)
            else:
                record = task.result()
            ranked.append(RankedSource(**candidate.model_dump(), verification=record))

        result = rank_sources(ranked, self.display_max)
        logger.info(
            f"[BatchVerifier] Verified {sum(1 for s in ranked if s.verified)}/{len(ranked)} sources, "
            f"returning {len(result)}"
        )
        return result
