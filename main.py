"""
main.py
FastAPI application entry point.
Registers all routers, middleware, startup/shutdown events.

Production-ready features:
- PostgreSQL with compare-and-swap booking writes
- Per-IP rate limiting of anonymous traffic (Redis, optional)
- Structured JSON logging with request ids
- Prometheus metrics
"""

import json
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from logging import LogRecord

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from tenacity import before_sleep_log, retry, stop_after_attempt, wait_exponential

from config.database import AsyncSessionLocal, close_db, get_db_context, init_db, ping_db
from config.redis_client import RedisRateLimiter, close_redis, init_redis
from config.settings import settings
from services.auth.service import AuthService
from shared.exceptions import DomainError, ErrorCode

# Service routers
from services.admin.router import router as admin_router
from services.auth.router import router as auth_router
from services.calendar.router import router as calendar_router


# ── Logging ──────────────────────────────────────────────────

class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "instance": os.getenv("INSTANCE_NAME", "unknown"),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


# Configure structured logging
handler = logging.StreamHandler()
handler.setFormatter(JSONFormatter())
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    handlers=[handler],
)
logger = logging.getLogger(__name__)


ERROR_STATUS = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.VALIDATION_FAILED: 422,
    ErrorCode.AUTHENTICATION_FAILED: 401,
}

RATE_LIMIT_SKIP = {"/health", "/metrics", "/docs", "/redoc", "/openapi.json"}


# ── Startup helpers ──────────────────────────────────────────

@retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def init_db_with_retry() -> None:
    """The database container may still be starting when the API boots."""
    await init_db()


async def has_admin_session(request: Request) -> bool:
    """True when the request carries a bearer token for an unexpired admin session."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        return False
    async with AsyncSessionLocal() as db:
        return await AuthService(db).validate_session(token) is not None


async def seed_calendar() -> None:
    """Insert missing calendar dates and refresh their labels. Never overwrites bookings."""
    from config.calendar import get_calendar_config
    from services.calendar.dates import RAMADAN_2026
    from services.calendar.store import CalendarStore

    async with get_db_context() as db:
        store = CalendarStore(db, get_calendar_config())
        inserted = await store.initialize_calendar(RAMADAN_2026)
        refreshed = await store.refresh_calendar_labels(RAMADAN_2026)
    logger.info(f"Calendar ready: {inserted} dates added, {refreshed} labels refreshed")


# ── Lifespan (startup/shutdown) ───────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle handler."""
    logger.info(f"Starting {settings.APP_NAME}...")

    await init_db_with_retry()
    logger.info("Database connected")

    if settings.SEED_CALENDAR_ON_STARTUP:
        await seed_calendar()

    if await init_redis():
        logger.info("Redis connected, rate limiting enabled")
    else:
        logger.info("REDIS_URL not set, rate limiting disabled")

    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} is ready")
    yield

    # Cleanup
    await close_redis()
    await close_db()
    logger.info("Server shutdown complete")


# ── App Factory ───────────────────────────────────────────────

def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="""
## Iftar Sponsorship Calendar API

Sponsorship bookings for each evening of Ramadan:
- **Calendar**: every date with its status, pricing tier and special-night info
- **Bookings**: public sponsorship requests, held for admin approval
- **Admin**: approve/reject, payment tracking, block dates, audit log, exports

### Authentication
Admin endpoints require `Authorization: Bearer <token>`.
Get a token from `POST /api/v1/admin/login`.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware (outermost first) ───────────────
    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )

    # GZip compression
    app.add_middleware(GZipMiddleware, minimum_size=500)

    # ── Custom Middleware ──────────────────────────────────────────

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Add unique X-Request-ID to every request for tracing."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.middleware("http")
    async def process_time_middleware(request: Request, call_next):
        """Track and expose request processing time."""
        start = time.perf_counter()
        response = await call_next(request)
        process_time = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Process-Time"] = f"{process_time}ms"
        return response

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        """
        Per-IP limit for anonymous traffic. Only a live admin session skips it;
        an unknown bearer token counts as anonymous.
        Fails open when Redis is unavailable.
        """
        if request.url.path in RATE_LIMIT_SKIP:
            return await call_next(request)

        from config.redis_client import redis_client
        if redis_client is None:
            return await call_next(request)
        if await has_admin_session(request):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        try:
            allowed = await RedisRateLimiter(redis_client).hit(
                f"rate:unauth:{client_ip}", settings.RATE_LIMIT_UNAUTH_PER_MINUTE
            )
        except Exception as e:
            logger.error(f"Rate limit check failed: {str(e)}")
            allowed = True

        if not allowed:
            logger.warning(f"Rate limit exceeded for IP {client_ip}")
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Please slow down."},
                headers={"Retry-After": "60"},
            )
        return await call_next(request)

    # ── Exception Handlers ─────────────────────────────────────────

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        request_id = getattr(request.state, "request_id", None)
        headers = None
        if exc.code == ErrorCode.AUTHENTICATION_FAILED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=ERROR_STATUS[exc.code],
            content={
                "detail": exc.message,
                "code": exc.code.value,
                "request_id": request_id,
            },
            headers=headers,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch-all exception handler. Never expose stack traces in production."""
        request_id = getattr(request.state, "request_id", None)
        detail = str(exc) if settings.DEBUG else "An internal server error occurred"

        logger.error(f"[{request_id}] Exception: {str(exc)}", exc_info=True)

        return JSONResponse(
            status_code=500,
            content={
                "detail": detail,
                "request_id": request_id,
            },
        )

    # ── Routes ────────────────────────────────────────────────────

    # Health check (public)
    @app.get("/health", tags=["Health"], include_in_schema=False)
    async def health_check():
        from config.redis_client import redis_client

        checks = {"status": "ok", "version": settings.APP_VERSION}

        # DB check
        try:
            await ping_db()
            checks["database"] = "ok"
        except Exception:
            checks["database"] = "error"
            checks["status"] = "degraded"

        # Redis check
        if redis_client is None:
            checks["redis"] = "disabled"
        else:
            try:
                await redis_client.ping()
                checks["redis"] = "ok"
            except Exception:
                checks["redis"] = "error"
                checks["status"] = "degraded"

        status_code = 200 if checks["status"] == "ok" else 503
        return JSONResponse(content=checks, status_code=status_code)

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "health": "/health",
            "api": settings.API_PREFIX,
        }

    # Register all service routers
    app.include_router(calendar_router, prefix=settings.API_PREFIX)
    app.include_router(auth_router, prefix=settings.API_PREFIX)
    app.include_router(admin_router, prefix=settings.API_PREFIX)

    # ── Prometheus Metrics ─────────────────────────────────────────
    Instrumentator().instrument(app).expose(app, endpoint="/metrics", tags=["Monitoring"])

    return app


# ── Entry Point ───────────────────────────────────────────────

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1 if settings.DEBUG else settings.WORKERS,
        log_level="debug" if settings.DEBUG else "info",
        access_log=True,
    )
