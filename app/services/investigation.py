"""
Investigate pipeline: abuse controls → cache → OCR → model → source verification → scoring.

Rate limit and quota decisions happen before any upstream cost is incurred.
Cache and archive lookups fail open; per-source failures stay inside the
batch coordinator; model output that is not JSON degrades to UNCERTAIN.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from app.constants.config import (
    MAX_IMAGE_CHARS,
    MAX_OCR_PROMPT_CHARS,
    MAX_TEXT_CHARS,
    MAX_URL_CHARS,
    TEST_RATE_LIMIT_MAX,
)
from app.constants.llm_prompts import NO_CONTENT_HINT, build_investigation_prompt
from app.core.config import Settings, settings
from app.core.errors import IdentityMissing, InvalidInput, QuotaExceeded, RateLimited, UpstreamUnavailable
from app.core.logger import get_logger
from app.core.rate_limit import RateLimiter
from app.core.schemas import CandidateSource, InvestigateRequest, VerificationSummary
from app.services.cache import ResponseCache, fingerprint
from app.services.common.text_cleaner import normalize_text, sanitize_claim_text
from app.services.common.url_helpers import is_http_url
from app.services.llms.gemini_service import GeminiService
from app.services.llms.response_parser import is_no_content_response, parse_model_response
from app.services.ocr.vision_service import ImagePayload, VisionOCRService, parse_image_data_uri
from app.services.quota import QuotaTracker
from app.services.scoring.confidence import score_confidence
from app.services.state.base import StateStore
from app.services.verification.batch import BatchVerificationCoordinator, grounding_candidates, merge_sources

logger = get_logger(__name__)

ANONYMOUS_SESSION = "anon"


@dataclass(frozen=True)
class RequestContext:
    session_id: str = ANONYMOUS_SESSION
    client_ip: str = "unknown"
    # raw X-Test-RL-Limit header
    test_rate_limit: Optional[str] = None


def resolve_session_id(*candidates: Optional[str]) -> str:
    """First non-empty identity among body sessionId, X-Session-Id header and cookie."""
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return ANONYMOUS_SESSION


class InvestigationService:
    def __init__(
        self,
        store: StateStore,
        model_client: GeminiService,
        coordinator: BatchVerificationCoordinator,
        ocr_service: Optional[VisionOCRService] = None,
        app_settings: Settings = settings,
        rate_limiter: Optional[RateLimiter] = None,
        quota_tracker: Optional[QuotaTracker] = None,
    ) -> None:
        self.settings = app_settings
        self.model_client = model_client
        self.coordinator = coordinator
        self.ocr_service = ocr_service
        self.rate_limiter = rate_limiter or RateLimiter(store)
        self.quota_tracker = quota_tracker or QuotaTracker(store)
        self.cache = ResponseCache(store, ttl_seconds=app_settings.CACHE_TTL_SECONDS)

    # ---------------------------------------------------------------------
    # Abuse controls
    # ---------------------------------------------------------------------
    def per_minute_ceiling(self, override: Optional[str]) -> int:
        ceiling = self.settings.RATE_LIMIT_PER_MIN
        if override and self.settings.test_headers_enabled:
            try:
                provided = int(override)
            except ValueError:
                return ceiling
            if 0 < provided < TEST_RATE_LIMIT_MAX:
                return provided
        return ceiling

    async def _enforce_limits(self, context: RequestContext) -> Optional[int]:
        if self.settings.REQUIRE_SESSION_ID and context.session_id == ANONYMOUS_SESSION:
            raise IdentityMissing()

        ceiling = self.per_minute_ceiling(context.test_rate_limit)
        decision = await self.rate_limiter.admit(f"{context.client_ip}:{context.session_id}", ceiling)
        if not decision.allowed:
            raise RateLimited(retry_after=decision.retry_after_seconds)

        quota = await self.quota_tracker.consume(context.session_id, self.settings.DAILY_QUOTA)
        if not quota.allowed:
            raise QuotaExceeded()
        return quota.remaining

    # ---------------------------------------------------------------------
    # Input
    # ---------------------------------------------------------------------
    @staticmethod
    def validate(request: InvestigateRequest) -> Tuple[str, str, Optional[str]]:
        text = request.text or ""
        url = (request.url or "").strip()
        image = request.image or None

        if not text and not url and not image:
            raise InvalidInput(reason="no-input", detail="No input provided")
        if len(text) > MAX_TEXT_CHARS:
            raise InvalidInput(reason="text-too-long", detail="Text too long")
        if len(url) > MAX_URL_CHARS:
            raise InvalidInput(reason="url-too-long", detail="URL too long")
        if url and not is_http_url(url):
            raise InvalidInput(reason="invalid-url", detail="URL must be an absolute http(s) URL")
        if image and len(image) > MAX_IMAGE_CHARS:
            raise InvalidInput(reason="image-too-large", detail="Image too large")
        if image and parse_image_data_uri(image) is None:
            raise InvalidInput(reason="invalid-image", detail="Image must be a base64 data URI")

        return sanitize_claim_text(text), url, image

    # ---------------------------------------------------------------------
    # Entry point
    # ---------------------------------------------------------------------
    async def investigate(self, request: InvestigateRequest, context: RequestContext) -> Dict[str, Any]:
        quota_remaining = await self._enforce_limits(context)
        text, url, image = self.validate(request)

        key = fingerprint(text, url, image)
        cached = await self.cache.get(key)
        if cached is not None:
            try:
                payload = json.loads(cached)
            except ValueError:
                logger.warning(f"[Investigation] Corrupt cache entry {key[:12]}, recomputing")
            else:
                logger.info(f"[Investigation] Cache hit {key[:12]}")
                return {**payload, "quotaRemaining": quota_remaining, "cached": True}

        payload = await self._run(text, url, image, request.ocr_text or "")
        await self.cache.put(key, json.dumps(payload))
        return {**payload, "quotaRemaining": quota_remaining, "cached": False}

    async def _server_ocr(self, image: ImagePayload, client_ocr_text: str) -> Optional[str]:
        if not (self.ocr_service and self.settings.USE_SERVER_VISION):
            return None
        try:
            return await self.ocr_service.extract_text(image)
        except UpstreamUnavailable:
            # client OCR text stands in for server OCR; with neither, the request fails
            if not client_ocr_text:
                raise
            logger.warning("[Investigation] Server OCR failed, using client-provided OCR text")
            return None

    async def _run(self, text: str, url: str, image: Optional[str], client_ocr_text: str) -> Dict[str, Any]:
        image_payload = parse_image_data_uri(image) if image else None

        server_ocr_text = await self._server_ocr(image_payload, client_ocr_text) if image_payload else None
        ocr_text = server_ocr_text or client_ocr_text
        combined = "\n\n".join(part for part in (text, ocr_text[:MAX_OCR_PROMPT_CHARS]) if normalize_text(part))

        prompt = build_investigation_prompt(combined, url, has_image=image_payload is not None)
        generation = await self.model_client.generate(prompt, use_search=bool(url), image=image_payload)
        result, _ = parse_model_response(generation.text)
        grounding = generation.grounding_metadata

        if combined and is_no_content_response(generation.text):
            logger.info("[Investigation] Model returned a no-content answer, re-running with explicit hint")
            try:
                retry = await self.model_client.generate(
                    prompt + NO_CONTENT_HINT.format(text=combined), use_search=bool(url), image=image_payload
                )
            except UpstreamUnavailable:
                logger.warning("[Investigation] No-content re-run failed, keeping first answer")
            else:
                retry_result, parsed = parse_model_response(retry.text)
                if parsed:
                    retry_result["rerun"] = True
                    retry_result["rerun_reason"] = "model returned no-content; re-run with explicit hint"
                    result = retry_result
                    grounding = retry.grounding_metadata or grounding

        model_sources = [CandidateSource.from_model_source(s) for s in result.get("sources", [])]
        candidates = merge_sources(grounding_candidates(grounding), model_sources)
        ranked = await self.coordinator.verify_all(candidates)

        score = score_confidence(result.get("verdict"), ranked, grounding)
        result["modelConfidence"] = result.get("confidence")
        result["confidence"] = score.value
        result["confidenceReason"] = score.explanation
        result["sources"] = [source.model_dump(mode="json", by_alias=True) for source in ranked]
        if server_ocr_text:
            result["visionOcr"] = server_ocr_text

        summary = VerificationSummary.from_sources(ranked)
        logger.info(
            f"[Investigation] verdict={result.get('verdict')} confidence={score.value} "
            f"verified={summary.verifiedCount} unverified={summary.unverifiedCount}"
        )
        return {
            "result": result,
            "groundingMetadata": grounding,
            "verificationSummary": summary.model_dump(),
        }
