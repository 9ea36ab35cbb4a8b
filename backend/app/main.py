"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.routes import ai, progress, skills
from app.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.db.database import dispose_engine, init_db
from app.db.exceptions import ConnectionError as DBConnectionError
from app.middleware.rate_limiter import limiter
from app.middleware.request_id import RequestIDLogFilter, RequestIDMiddleware
from app.models.envelope import error_response
from app.services.ai_cache import AICache
from app.services.plan_service import get_circuit_breaker
from app.services.redis_client import close_redis, get_redis
from app.services.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)

# Configure logging format based on dev_mode
if not settings.dev_mode:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='{"time":"%(asctime)s","level":"%(levelname)s","name":"%(name)s",'
               '"request_id":"%(request_id)s","message":"%(message)s"}',
    )
else:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s [%(request_id)s]: %(message)s",
    )
for _handler in logging.getLogger().handlers:
    _handler.addFilter(RequestIDLogFilter())


def build_ai_cache() -> AICache:
    """Construct the process-wide AI response cache from settings."""
    return AICache(
        ttl_seconds=settings.ai_cache_ttl_hours * 3600,
        max_entries=settings.ai_cache_max_entries,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    # Startup
    app.state.ai_cache = build_ai_cache()
    if settings.dev_mode:
        try:
            await init_db()
        except Exception:
            logger.error("Could not create database tables at startup", exc_info=True)
    await get_redis()  # Initialize Redis connection pool
    start_scheduler(app.state.ai_cache)
    yield
    # Shutdown
    stop_scheduler()
    app.state.ai_cache.clear_all()
    await close_redis()
    await dispose_engine()


app = FastAPI(
    title="Skill Sculptor API",
    description="Skill tracking, daily check-ins and AI learning plans",
    version="0.1.0",
    openapi_url="/api/v1/openapi.json",
    docs_url="/docs" if settings.dev_mode else None,
    redoc_url="/redoc" if settings.dev_mode else None,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.state.limiter = limiter


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if not settings.dev_mode:
            response.headers["Strict-Transport-Security"] = (
                "max-age=63072000; includeSubDomains"
            )
        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIDMiddleware)


# ---------------------------------------------------------------------------
# Global exception handlers
# ---------------------------------------------------------------------------

@app.exception_handler(RateLimitExceeded)
async def _rate_limit_handler(_request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content=error_response("RATE_LIMITED", str(exc.detail)),
    )


@app.exception_handler(ValidationError)
async def _validation_handler(_request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_response("VALIDATION_ERROR", str(exc), exc.field),
    )


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    return JSONResponse(
        status_code=400,
        content=error_response(
            "VALIDATION_ERROR",
            first.get("msg", "Invalid request"),
            ".".join(loc) or None,
        ),
    )


@app.exception_handler(NotFoundError)
async def _not_found_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=error_response("NOT_FOUND", str(exc)))


@app.exception_handler(DBConnectionError)
async def _db_unavailable_handler(request: Request, exc: DBConnectionError) -> JSONResponse:
    logger.error("Database unavailable on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=503,
        content=error_response("DATABASE_UNAVAILABLE", "Database temporarily unavailable"),
    )


@app.exception_handler(Exception)
async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=True)
    detail = str(exc) if settings.dev_mode else "Internal server error"
    return JSONResponse(status_code=500, content=error_response("INTERNAL_ERROR", detail))


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
)


# ---------------------------------------------------------------------------
# Routers: all under /api/v1/
# ---------------------------------------------------------------------------

app.include_router(progress.router, prefix="/api/v1/progress", tags=["progress"])
app.include_router(ai.router, prefix="/api/v1/ai", tags=["ai"])
app.include_router(skills.router, prefix="/api/v1/skills", tags=["skills"])

# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@app.get("/health")
async def health_check() -> dict:
    """Liveness check: verifies the API process is alive."""
    return {
        "status": "healthy",
        "services": {
            "ai_provider": "ok" if settings.llm_api_key else "not_configured",
            "ai_circuit": get_circuit_breaker().state.value,
        },
    }


@app.get("/health/ready")
async def readiness_check() -> JSONResponse:
    """Readiness check: verifies DB and Redis are reachable."""
    checks: dict[str, str] = {}

    try:
        from app.db.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception:
        checks["database"] = "unavailable"

    try:
        redis_client = await get_redis()
        await redis_client.ping()
        checks["redis"] = "ok"
    except Exception:
        checks["redis"] = "unavailable"

    all_ok = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": "ready" if all_ok else "degraded", "services": checks},
    )


@app.get("/api/v1/version")
async def version() -> dict:
    """Return build / version metadata."""
    return {
        "version": app.version,
        "title": app.title,
        "api_prefix": "/api/v1",
    }


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {"message": "Skill Sculptor API", "docs": "/docs"}
