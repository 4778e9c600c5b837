"""
Request-level error taxonomy for the investigate endpoint.

Every user-visible failure carries a stable, enumerable `reason` string and a
fixed human-readable detail. Raw exception messages never reach the client.
Per-source verification failures are not raised: they are recorded on the
source's VerificationRecord (error_kind="verification-failed").
"""

from typing import Any, Dict, Optional


class InvestigationError(Exception):
    status_code: int = 500
    reason: str = "server-error"
    detail: str = "Server error"

    def __init__(self, reason: Optional[str] = None, detail: Optional[str] = None, retry_after: Optional[int] = None):
        self.reason = reason or self.reason
        self.detail = detail or self.detail
        self.retry_after = retry_after
        super().__init__(self.reason)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.reason, "detail": self.detail}
        if self.retry_after is not None:
            body["retry_after"] = self.retry_after
        return body


class InvalidInput(InvestigationError):
    status_code = 400
    reason = "invalid-input"
    detail = "Invalid input"


class IdentityMissing(InvestigationError):
    status_code = 401
    reason = "missing-session-id"
    detail = "Missing session id. Include X-Session-Id header or sessionId in the request body."


class RateLimited(InvestigationError):
    status_code = 429
    reason = "rate-limited"
    detail = "Rate limit exceeded (per-minute limit)"


class QuotaExceeded(InvestigationError):
    status_code = 429
    reason = "quota-exceeded"
    detail = "Daily quota exceeded"


class UpstreamUnavailable(InvestigationError):
    status_code = 500
    reason = "upstream-unavailable"
    detail = "Upstream provider error"
