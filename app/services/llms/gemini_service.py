import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from app.constants.config import UPSTREAM_TIMEOUT_SECONDS
from app.core.config import settings
from app.core.errors import UpstreamUnavailable
from app.core.logger import get_logger
from app.services.ocr.vision_service import ImagePayload

logger = get_logger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    text: str
    grounding_metadata: Optional[Dict[str, Any]]


class GeminiService:
    """
    Client for the generateContent endpoint of the generative language API.

    One structured prompt in, free-form text (expected to contain JSON) out.
    Failures surface as UpstreamUnavailable; nothing is ever fabricated here.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_base: Optional[str] = None,
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=UPSTREAM_TIMEOUT_SECONDS)
        self.api_key = api_key if api_key is not None else settings.GEN_API_KEY
        self.model = model or settings.GEN_MODEL
        self.api_base = (api_base or settings.GEN_API_BASE).rstrip("/")

        # Rate limit retry configuration
        self.max_retries = 2
        self.base_backoff = 1.0
        self.max_backoff = 8.0

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def _build_body(self, prompt: str, use_search: bool, image: Optional[ImagePayload]) -> Dict[str, Any]:
        parts: List[Dict[str, Any]] = [{"text": prompt}]
        if image is not None:
            parts.append({"inline_data": {"mime_type": image.mime_type, "data": image.data}})

        body: Dict[str, Any] = {
            "contents": [{"parts": parts}],
            "generationConfig": {"temperature": settings.GEN_TEMPERATURE, "topK": 40, "topP": 0.95},
        }
        if use_search:
            body["tools"] = [{"google_search": {}}]
        return body

    async def generate(
        self,
        prompt: str,
        use_search: bool = False,
        image: Optional[ImagePayload] = None,
        retry_count: int = 0,
    ) -> GenerationResult:
        """
        Calls generateContent with exponential backoff on 429.
        Returns the concatenated text parts of the first candidate plus its grounding metadata.
        """
        if not self.api_key:
            logger.error("[GeminiService] GEN_API_KEY is not configured")
            raise UpstreamUnavailable(reason="missing-api-key", detail="Missing server API key")

        url = f"{self.api_base}/models/{self.model}:generateContent"
        try:
            response = await self.client.post(
                url,
                json=self._build_body(prompt, use_search, image),
                headers={"x-goog-api-key": self.api_key},
            )
        except httpx.HTTPError as e:
            logger.error(f"[GeminiService] Request failed: {type(e).__name__}")
            raise UpstreamUnavailable()

        if response.status_code == 429 and retry_count < self.max_retries:
            wait_time = min(self.base_backoff * (2**retry_count), self.max_backoff)
            logger.warning(
                f"[GeminiService] Rate limit hit. Retrying in {wait_time:.1f}s "
                f"(attempt {retry_count + 1}/{self.max_retries})"
            )
            await asyncio.sleep(wait_time)
            return await self.generate(prompt, use_search, image, retry_count + 1)

        if response.status_code >= 400:
            logger.error(f"[GeminiService] Provider returned {response.status_code}")
            raise UpstreamUnavailable()

        try:
            data = response.json()
        except ValueError:
            logger.error("[GeminiService] Provider returned a non-JSON body")
            raise UpstreamUnavailable()

        candidate = (data.get("candidates") or [{}])[0] or {}
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        return GenerationResult(text=text, grounding_metadata=candidate.get("groundingMetadata"))
