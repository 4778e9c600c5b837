"""
Tolerant parsing of the model's JSON-in-text answer.
"""

import json
import re
from typing import Any, Dict, Optional, Tuple

from app.constants.config import FALLBACK_MODEL_CONFIDENCE
from app.constants.llm_prompts import NO_CONTENT_PHRASES
from app.core.logger import get_logger
from app.core.schemas import Verdict

logger = get_logger(__name__)

_OPEN_BRACE = re.compile(r"\{")
_decoder = json.JSONDecoder()


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the first well-formed JSON object embedded in text, if any."""
    for match in _OPEN_BRACE.finditer(text or ""):
        try:
            value, _ = _decoder.raw_decode(text, match.start())
        except ValueError:
            continue
        if isinstance(value, dict):
            return value
    return None


def fallback_result(text: str) -> Dict[str, Any]:
    return {
        "verdict": Verdict.UNCERTAIN.value,
        "confidence": FALLBACK_MODEL_CONFIDENCE,
        "analysis": text,
        "keyFactors": [],
        "sources": [],
    }


def parse_model_response(text: str) -> Tuple[Dict[str, Any], bool]:
    """
    Returns (result, parsed). On failure the result is a synthesized UNCERTAIN
    record carrying the raw text as analysis, and parsed is False.
    """
    result = extract_json_object(text)
    if result is None:
        logger.warning("[ResponseParser] No JSON object in model response, using UNCERTAIN fallback")
        return fallback_result(text), False

    result["verdict"] = Verdict.normalize(result.get("verdict")).value
    if not isinstance(result.get("sources"), list):
        result["sources"] = []
    result["sources"] = [s for s in result["sources"] if isinstance(s, dict)]
    if not isinstance(result.get("keyFactors"), list):
        result["keyFactors"] = []
    return result, True


def is_no_content_response(text: str) -> bool:
    lowered = (text or "").lower()
    return any(phrase in lowered for phrase in NO_CONTENT_PHRASES)
