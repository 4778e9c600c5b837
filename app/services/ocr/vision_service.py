"""
Server-side OCR through the Vision images:annotate endpoint.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from app.constants.config import UPSTREAM_TIMEOUT_SECONDS
from app.core.config import settings
from app.core.errors import UpstreamUnavailable
from app.core.logger import get_logger

logger = get_logger(__name__)

_DATA_URI = re.compile(r"^data:(image/[a-zA-Z0-9.+-]+);base64,(.*)$", re.DOTALL)


@dataclass(frozen=True)
class ImagePayload:
    mime_type: str
    # base64, as received
    data: str


def parse_image_data_uri(value: Optional[str]) -> Optional[ImagePayload]:
    match = _DATA_URI.match(value or "")
    if not match:
        return None
    return ImagePayload(mime_type=match.group(1), data=match.group(2))


class VisionOCRService:
    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=UPSTREAM_TIMEOUT_SECONDS)
        self.api_key = api_key if api_key is not None else settings.GEN_API_KEY
        self.api_base = (api_base or settings.VISION_API_BASE).rstrip("/")

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def extract_text(self, image: ImagePayload) -> str:
        """Return detected text ("" when the image has none). Raises UpstreamUnavailable on provider failure."""
        if not self.api_key:
            raise UpstreamUnavailable(reason="ocr-unavailable", detail="OCR provider not configured")

        body: Dict[str, Any] = {
            "requests": [
                {
                    "image": {"content": image.data},
                    "features": [{"type": "DOCUMENT_TEXT_DETECTION"}, {"type": "TEXT_DETECTION"}],
                }
            ]
        }
        try:
            response = await self.client.post(
                f"{self.api_base}/images:annotate",
                json=body,
                headers={"x-goog-api-key": self.api_key},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[VisionOCR] OCR request failed: {type(e).__name__}")
            raise UpstreamUnavailable(reason="ocr-unavailable", detail="OCR provider error")

        first = (data.get("responses") or [{}])[0] or {}
        text = (first.get("fullTextAnnotation") or {}).get("text")
        if not text:
            annotations = first.get("textAnnotations") or [{}]
            text = (annotations[0] or {}).get("description", "")
        logger.info(f"[VisionOCR] Extracted {len(text or '')} chars")
        return text or ""
