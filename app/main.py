from fastapi import FastAPI

from app.core.config import settings
from app.core.logger import get_logger
from app.routers.investigate import router as investigate_router
from app.routers.investigate import set_investigation_service
from app.services.investigation import InvestigationService
from app.services.llms.gemini_service import GeminiService
from app.services.ocr.vision_service import VisionOCRService
from app.services.state import MemoryStateStore, RedisStateStore, StateStore
from app.services.verification import ArchiveResolver, BatchVerificationCoordinator, FetchGate, SourceVerifier

logger = get_logger(__name__)

# Global service instances (created on startup, released on shutdown)
_store: StateStore | None = None
_fetch_gate: FetchGate | None = None
_gemini: GeminiService | None = None
_vision: VisionOCRService | None = None


async def _create_store() -> StateStore:
    if settings.REDIS_URL:
        store = RedisStateStore(redis_url=settings.REDIS_URL)
        try:
            await store.connect()
            logger.info(f"[Main] Shared state backed by Redis={settings.REDIS_URL}")
            return store
        except Exception as e:
            logger.error(f"[Main] Redis unavailable ({e}); falling back to in-process state")
    else:
        logger.info("[Main] REDIS_URL not set; using in-process state (single instance only)")
    return MemoryStateStore()


async def startup_event() -> None:
    """Build the investigation pipeline and register it with the router."""
    global _store, _fetch_gate, _gemini, _vision

    _store = await _create_store()
    _fetch_gate = FetchGate()
    _gemini = GeminiService()
    _vision = VisionOCRService()

    verifier = SourceVerifier(_fetch_gate, ArchiveResolver(_fetch_gate))
    coordinator = BatchVerificationCoordinator(verifier, max_concurrent=settings.VERIFY_MAX_CONCURRENT)

    set_investigation_service(
        InvestigationService(
            store=_store,
            model_client=_gemini,
            coordinator=coordinator,
            ocr_service=_vision,
        )
    )

    if not settings.GEN_API_KEY:
        logger.warning("[Main] GEN_API_KEY is not set; investigations will fail with upstream-unavailable")
    logger.info(
        f"[Main] Investigation service ready (rate={settings.RATE_LIMIT_PER_MIN}/min, "
        f"quota={settings.DAILY_QUOTA}/day, cache_ttl={settings.CACHE_TTL_SECONDS}s)"
    )


async def shutdown_event() -> None:
    """Cleanup on app shutdown."""
    set_investigation_service(None)

    for name, resource in (("FetchGate", _fetch_gate), ("Gemini", _gemini), ("VisionOCR", _vision)):
        if resource is None:
            continue
        try:
            await resource.aclose()
        except Exception as e:
            logger.warning(f"[Main] Error closing {name}: {e}")

    if _store:
        await _store.close()
        logger.info("[Main] State store closed")


app = FastAPI(title="Claim Investigation Service", version="1.0.0")

# Register startup/shutdown events
app.add_event_handler("startup", startup_event)
app.add_event_handler("shutdown", shutdown_event)

# Include routers
app.include_router(investigate_router)

logger.info("Claim Investigation Service initialized")
