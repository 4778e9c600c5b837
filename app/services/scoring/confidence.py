from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from app.config.trusted_domains import is_trusted_domain
from app.constants.config import (
    CONFIDENCE_BASE,
    CONFIDENCE_DATE_MISMATCH_PENALTY,
    CONFIDENCE_GROUNDING_BONUS,
    CONFIDENCE_MAX,
    CONFIDENCE_MIN,
    CONFIDENCE_ONE_VERIFIED_BONUS,
    CONFIDENCE_THREE_VERIFIED_BONUS,
    CONFIDENCE_TRUSTED_SOURCE_BONUS,
    CONFIDENCE_UNVERIFIED_PENALTY,
    CONFIDENCE_UNVERIFIED_PENALTY_CAP,
)
from app.core.schemas import RankedSource, Verdict


@dataclass(frozen=True)
class ConfidenceScore:
    value: int
    explanation: str


def grounding_found_evidence(grounding: Optional[Dict[str, Any]]) -> bool:
    """True when the grounding payload independently reports evidence (`found` or non-empty chunks)."""
    if not isinstance(grounding, dict):
        return False
    for key in ("found", "groundingChunks"):
        value = grounding.get(key)
        if isinstance(value, list) and value:
            return True
    return False


def _source_is_trusted(source: RankedSource) -> bool:
    return any(is_trusted_domain(u) for u in (source.url, source.verification.final_url) if u)


def score_confidence(
    verdict: Any,
    sources: List[RankedSource],
    grounding: Optional[Dict[str, Any]] = None,
) -> ConfidenceScore:
    """
    Deterministic confidence in [CONFIDENCE_MIN, CONFIDENCE_MAX].

    Rules run in a fixed order and every one that fires is named in the
    explanation, so the number is always traceable to its rules.
    """
    label = Verdict.normalize(verdict)
    verified = [s for s in sources if s.verified]
    unverified_count = len(sources) - len(verified)

    score = CONFIDENCE_BASE[label.value]

    if len(verified) >= 1:
        score += CONFIDENCE_ONE_VERIFIED_BONUS
    if len(verified) >= 3:
        score += CONFIDENCE_THREE_VERIFIED_BONUS

    has_trusted = any(_source_is_trusted(s) for s in verified)
    if has_trusted:
        score += CONFIDENCE_TRUSTED_SOURCE_BONUS

    if unverified_count > 0:
        score -= min(CONFIDENCE_UNVERIFIED_PENALTY_CAP, unverified_count * CONFIDENCE_UNVERIFIED_PENALTY)

    grounded = grounding_found_evidence(grounding)
    if grounded:
        score += CONFIDENCE_GROUNDING_BONUS

    has_date_mismatch = any(s.verification.date_mismatch for s in sources)
    if has_date_mismatch:
        score -= CONFIDENCE_DATE_MISMATCH_PENALTY

    score = max(CONFIDENCE_MIN, min(CONFIDENCE_MAX, score))

    parts = [
        f"Verdict: {label.value}",
        f"{len(verified)} verified source(s) and {unverified_count} unverified",
    ]
    if has_trusted:
        parts.append("Includes trusted source(s)")
    if grounded:
        parts.append("Grounding search found evidence")
    if has_date_mismatch:
        parts.append("Publication date mismatch detected")

    return ConfidenceScore(value=score, explanation="; ".join(parts))
