from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _as_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


class Verdict(str, Enum):
    REAL = "REAL"
    FAKE = "FAKE"
    UNCERTAIN = "UNCERTAIN"

    @classmethod
    def normalize(cls, value: Any) -> "Verdict":
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            return cls.UNCERTAIN


class ErrorKind(str, Enum):
    """Why a source ended up unverified (or how it was rescued)."""

    NO_URL = "no-url"
    SOURCE_UNAVAILABLE = "source-unavailable"
    INVALID_URL = "invalid-url"
    PRIVATE_IP_BLOCKED = "private-ip-blocked"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network-error"
    HTTP_ERROR = "http-error"
    NON_HTML = "non-html"
    VERIFICATION_FAILED = "verification-failed"


class InvestigateRequest(BaseModel):
    """Inbound payload. Length limits are enforced by the service (400, not 422)."""

    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = ""
    url: Optional[str] = ""
    image: Optional[str] = None
    ocr_text: Optional[str] = Field(default="", alias="ocrText")
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class CandidateSource(BaseModel):
    """A source as proposed by the model or the search-grounding provider."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: Optional[str] = None
    url: Optional[str] = None
    snippet: Optional[str] = None
    claimed_date: Optional[str] = None
    excerpt: Optional[str] = None
    retrieved_uri: Optional[str] = None

    @classmethod
    def from_model_source(cls, raw: Dict[str, Any]) -> "CandidateSource":
        claimed = raw.get("date") or raw.get("published_date") or raw.get("publishedDate") or raw.get("pubDate")
        return cls(
            title=_as_text(raw.get("title")),
            url=_as_text(raw.get("url")),
            snippet=_as_text(raw.get("snippet")),
            claimed_date=_as_text(claimed),
            excerpt=_as_text(raw.get("excerpt")),
        )


class VerificationRecord(BaseModel):
    """Outcome of verifying one URL. Never mutated after it is returned."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    url: Optional[str]
    verified: bool = False
    status: Optional[int] = None
    final_url: Optional[str] = None
    archived_url: Optional[str] = None
    title: Optional[str] = None
    found_date: Optional[str] = None
    verified_at: Optional[datetime] = None
    error_kind: Optional[str] = None
    date_mismatch: bool = False
    excerpt_found: Optional[bool] = None


class RankedSource(CandidateSource):
    verification: VerificationRecord

    @property
    def verified(self) -> bool:
        return self.verification.verified


class VerificationSummary(BaseModel):
    verifiedCount: int = 0
    unverifiedCount: int = 0
    dateMismatches: List[str] = Field(default_factory=list)

    @classmethod
    def from_sources(cls, sources: List[RankedSource]) -> "VerificationSummary":
        summary = cls()
        for source in sources:
            if source.verified:
                summary.verifiedCount += 1
            else:
                summary.unverifiedCount += 1
            if source.verification.date_mismatch:
                summary.dateMismatches.append(source.url or source.title or "unknown")
        return summary
