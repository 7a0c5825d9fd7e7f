"""Health check endpoints."""

import logging
from datetime import datetime
from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from qaptain import __version__
from qaptain.database.connection import get_session_factory
from qaptain.routers.dependencies import get_generator, get_limiter
from qaptain.utils.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {"status": "healthy", "service": "qaptain-api", "version": __version__, "timestamp": _now()}


@router.get("/health/live")
async def liveness_check():
    return {"alive": True, "timestamp": _now()}


@router.get("/health/ready")
async def readiness_check(request: Request):
    """
    Ready when the oracle answers, the scenario store answers and a run
    slot is free.
    """
    provider = get_generator(request).provider
    checks = {"oracle": provider is not None and await provider.is_available()}

    try:
        async with get_session_factory()() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = True
    except SQLAlchemyError as e:
        logger.error(f"Readiness: scenario store unavailable: {e}")
        checks["database"] = False

    limiter = await get_limiter(request).get_status()
    checks["run_capacity"] = limiter["available_slots"] > 0

    return {"ready": all(checks.values()), "checks": checks, "timestamp": _now()}


@router.get("/health/config")
async def config_check(request: Request):
    """Show non-sensitive configuration."""
    return {
        "environment": settings.ENVIRONMENT,
        "browser_mode": settings.BROWSER_MODE,
        "llm_provider": settings.LLM_PROVIDER,
        "llm_model": settings.LLM_MODEL_NAME,
        "stop_on_step_failure": settings.STOP_ON_STEP_FAILURE,
        "oracle_timeout_seconds": settings.ORACLE_TIMEOUT_SECONDS,
        "navigation_timeout_ms": settings.NAVIGATION_TIMEOUT_MS,
        "golden_scenarios": bool(settings.GOLDEN_SCENARIOS_PATH),
        "rate_limiter": await get_limiter(request).get_status(),
    }
