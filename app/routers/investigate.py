"""
Investigate API route.

Endpoints:
  POST /investigate - Verdict, confidence, analysis and verified sources for text, URL and/or image
"""

from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.core.errors import InvestigationError
from app.core.logger import get_logger
from app.core.schemas import InvestigateRequest
from app.services.investigation import InvestigationService, RequestContext, resolve_session_id

logger = get_logger(__name__)

router = APIRouter()

SESSION_COOKIE = "tg_session"

# Global reference to the InvestigationService (set on app startup)
_investigation_service: Optional[InvestigationService] = None


def set_investigation_service(service: Optional[InvestigationService]) -> None:
    """Initialize the InvestigationService instance (called from main.py)."""
    global _investigation_service
    _investigation_service = service


def get_investigation_service() -> Optional[InvestigationService]:
    return _investigation_service


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    return request.client.host if request.client else "unknown"


def build_context(request: Request, body: InvestigateRequest) -> RequestContext:
    return RequestContext(
        session_id=resolve_session_id(
            body.session_id,
            request.headers.get("x-session-id"),
            request.cookies.get(SESSION_COOKIE),
        ),
        client_ip=client_ip(request),
        test_rate_limit=request.headers.get("x-test-rl-limit"),
    )


@router.post("/investigate", tags=["Investigate"])
async def investigate(body: InvestigateRequest, request: Request):
    """
    Run one investigation.

    Returns:
        {
            "result": {"verdict", "confidence", "confidenceReason", "modelConfidence", "analysis", "sources", ...},
            "groundingMetadata": {...} | null,
            "verificationSummary": {"verifiedCount", "unverifiedCount", "dateMismatches"},
            "quotaRemaining": 199,
            "cached": false
        }
    """
    if not _investigation_service:
        return JSONResponse({"error": "server-error", "detail": "Service not initialized"}, status_code=503)

    context = build_context(request, body)
    try:
        return await _investigation_service.investigate(body, context)
    except InvestigationError as e:
        logger.warning(f"[InvestigateAPI] {e.reason} (session={context.session_id}, ip={context.client_ip})")
        headers = {"Retry-After": str(e.retry_after)} if e.retry_after is not None else None
        return JSONResponse(e.to_dict(), status_code=e.status_code, headers=headers)
    except Exception as e:
        logger.error(f"[InvestigateAPI] Unexpected failure: {type(e).__name__}: {e}")
        return JSONResponse({"error": "server-error"}, status_code=500)
