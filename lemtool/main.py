"""
main.py — LEMtool FastAPI application entry point.

Start with: uvicorn lemtool.main:app --reload --port 8000
(run from the repository root)
"""
import asyncio
import logging
import os
import subprocess
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lemtool.config import settings
from lemtool.errors import make_error_response

# ---------------------------------------------------------------------------
# Logging — configured before anything else
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Concurrent Mistral vision calls per process (body slices run in parallel)
ANALYSIS_CONCURRENCY = 4


# ---------------------------------------------------------------------------
# Lifespan — startup & shutdown hooks
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      1. Run Alembic migrations
      2. Initialize Redis connection pool (participant drafts)
      3. Mistral client, or None when no API key is configured (demo mode)
      4. asyncio.Semaphore bounding concurrent vision calls
    Shutdown:
      1. Close Redis pool
    """
    # --- 1. Database: run Alembic migrations ---
    package_dir = os.path.dirname(os.path.abspath(__file__))
    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        capture_output=True,
        text=True,
        cwd=package_dir,
    )
    if result.returncode != 0:
        logger.error("Alembic migration failed:\n%s", result.stderr)
        raise RuntimeError(f"Alembic migration failed: {result.stderr}")
    msg = result.stdout.strip() or "No pending migrations"
    logger.info("Alembic: %s", msg)

    # --- 2. Redis ---
    from lemtool.cache import create_redis_pool
    app.state.redis = await create_redis_pool()

    # --- 3. Mistral client — singleton for HTTP connection pool reuse ---
    if settings.mistral_api_key:
        from mistralai import Mistral
        app.state.mistral = Mistral(api_key=settings.mistral_api_key)
        logger.info("Mistral client initialized model=%s", settings.mistral_model)
    else:
        app.state.mistral = None
        logger.warning("MISTRAL_API_KEY not set — analyses will use demo content")

    # --- 4. asyncio.Semaphore — MUST be created inside async context (not module level) ---
    app.state.analysis_semaphore = asyncio.Semaphore(ANALYSIS_CONCURRENCY)
    logger.info("Analysis semaphore initialized (concurrency=%d)", ANALYSIS_CONCURRENCY)

    logger.info("LEMtool v%s starting up", settings.app_version)
    yield

    # --- Shutdown ---
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")
    logger.info("LEMtool shutting down")


# ---------------------------------------------------------------------------
# FastAPI application instance
# ---------------------------------------------------------------------------
app = FastAPI(
    title="LEMtool API",
    version=settings.app_version,
    description=(
        "Emotion-marker UX analysis: AI annotation of website screenshots, "
        "human participant tests, AI vs. human reports and PDF export."
    ),
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# ---------------------------------------------------------------------------
# CORS middleware — restricted to frontend origins from settings
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Global exception handlers — registered BEFORE routers
# ---------------------------------------------------------------------------
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Converts Pydantic / FastAPI 422 validation errors to standard format.
    Returns ALL field violations in one response.
    """
    details = []
    for error in exc.errors():
        # Dot-notation field path, excluding the top-level 'body' loc
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        details.append({"field": field or None, "issue": error["msg"]})
    return make_error_response(
        code="VALIDATION_ERROR",
        message="Request validation failed",
        details=details,
        status_code=422,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """
    Converts FastAPI HTTPException to standard error format with semantic code.
    """
    code_map = {
        400: "BAD_REQUEST",
        401: "UNAUTHORIZED",
        402: "PAYMENT_REQUIRED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "CONFLICT",
        422: "VALIDATION_ERROR",
        429: "RATE_LIMITED",
    }
    code = code_map.get(exc.status_code, f"HTTP_{exc.status_code}")
    return make_error_response(
        code=code,
        message=str(exc.detail),
        status_code=exc.status_code,
    )


@app.exception_handler(ValueError)
async def value_error_handler(
    request: Request, exc: ValueError
) -> JSONResponse:
    """
    Catches explicit ValueError raises from business logic (validator.py).
    Surfaces as 422 VALIDATION_ERROR so the caller understands it's a data issue.
    """
    return make_error_response(
        code="VALIDATION_ERROR",
        message=str(exc),
        status_code=422,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Catch-all for unexpected errors.
    DEBUG=true  → includes exception type & message in details (dev only).
    DEBUG=false → generic message; full traceback logged server-side only.
    """
    logger.error(
        "Unhandled exception on %s %s",
        request.method,
        request.url.path,
        exc_info=True,
    )
    if settings.debug:
        details = [{"issue": f"{type(exc).__name__}: {exc}"}]
        message = "An unexpected error occurred (debug details included)"
    else:
        details = []
        message = "An unexpected error occurred"
    return make_error_response(
        code="INTERNAL_ERROR",
        message=message,
        details=details,
        status_code=500,
    )


# ---------------------------------------------------------------------------
# Health endpoint (no auth required)
# ---------------------------------------------------------------------------
@app.get("/api/health", tags=["System"])
async def health_check() -> dict:
    return {
        "status": "ok",
        "version": settings.app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ---------------------------------------------------------------------------
# Feature routers
# ---------------------------------------------------------------------------
from lemtool.projects.routes import router as projects_router  # noqa: E402
from lemtool.report.routes import router as report_router  # noqa: E402
from lemtool.sessions.routes import router as sessions_router  # noqa: E402

app.include_router(projects_router)
app.include_router(report_router)
app.include_router(sessions_router)
