"""
QAptain API - AI-assisted form testing

Endpoints:
- POST /analyze-url - Extract page context from a URL
- POST /generate-scenarios - Ask the oracle for test scenarios
- POST /interpret-scenario - Turn a user story into steps
- POST /interpret-steps - Preview the typed actions for steps
- POST /run-test - Run scenarios in a browser and report results
- GET/POST/PUT /saved-scenarios - Reusable scenarios
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from qaptain import __version__
from qaptain.database import close_db, init_db
from qaptain.errors import (
    CapacityExceeded,
    ExtractionError,
    GenerationError,
    GuardError,
    LaunchError,
    NoUsableForms,
    QaptainError,
)
from qaptain.routers import health, runs, saved_scenarios
from qaptain.services.ai.provider_factory import close_providers
from qaptain.services.browser_manager import get_browser_manager
from qaptain.utils.config import settings, validate_settings
from qaptain.utils.logging import setup_logging

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    GuardError: 400,
    NoUsableForms: 404,
    CapacityExceeded: 429,
    ExtractionError: 500,
    GenerationError: 500,
    LaunchError: 503,
}


def error_status(error: QaptainError) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    try:
        validate_settings()
    except ValueError as e:
        # The oracle-dependent endpoints report this per request
        logger.warning(str(e))
    await init_db()
    logger.info("QAptain API starting...")
    yield
    await get_browser_manager().close_all()
    await close_providers()
    await close_db()
    logger.info("QAptain API shutting down...")


app = FastAPI(
    title="QAptain API",
    description="AI-assisted form testing against live web pages",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.ENABLE_DOCS else None,
    redoc_url="/redoc" if settings.ENABLE_DOCS else None,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(QaptainError)
async def qaptain_error_handler(request: Request, exc: QaptainError):
    status = error_status(exc)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=status, content={"error": exc.message, "details": exc.details})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail), "details": str(exc.detail)})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} crashed: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(exc)})


app.include_router(health.router, tags=["health"])
app.include_router(runs.router, tags=["runs"])
app.include_router(saved_scenarios.router, tags=["saved-scenarios"])


@app.get("/")
async def root():
    return {
        "service": "QAptain API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": [
            "/analyze-url",
            "/generate-scenarios",
            "/interpret-scenario",
            "/interpret-steps",
            "/run-test",
            "/saved-scenarios",
        ]
    }


def run():
    """Console entry point."""
    import uvicorn

    uvicorn.run("qaptain.main:app", host=settings.API_HOST, port=settings.API_PORT)
