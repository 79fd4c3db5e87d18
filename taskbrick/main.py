"""
TaskBrick API

Multi-tenant project management (projects, tasks, sprints, teams, boards)
with a supply inventory and reorder workflow. This module wires the
middleware stack, the error handlers and the routers together.
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from pathlib import Path
import time
import uuid
from contextlib import asynccontextmanager

from taskbrick import __version__
from taskbrick.config import get_settings
from taskbrick.database import engine, init_db
from taskbrick.middleware.tenant import TenantMiddleware
from taskbrick.middleware.rate_limit import RateLimitMiddleware
from taskbrick.utils.logging import bind_request_context, setup_logging, get_logger
from taskbrick.core.exceptions import (
    AuthenticationError,
    TenantIsolationError,
)
from taskbrick.api.endpoints import (
    auth,
    boards,
    comments,
    event_logs,
    profiles,
    projects,
    registration,
    reorders,
    sprints,
    supplies,
    task_links,
    tasks,
    teams,
    tenants,
    users,
)

settings = get_settings()

setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=(settings.ENVIRONMENT == "production")
)
logger = get_logger(__name__)

ROUTERS = (
    auth,
    registration,
    tenants,
    users,
    profiles,
    projects,
    tasks,
    task_links,
    sprints,
    teams,
    comments,
    boards,
    event_logs,
    supplies,
    reorders,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting TaskBrick {__version__} ({settings.ENVIRONMENT})")

    # Tables are created here only in development; other environments
    # manage the schema themselves
    if settings.ENVIRONMENT == "development":
        logger.warning("Creating database tables (development mode)")
        init_db()

    yield

    logger.info("Shutting down, disposing database engine")
    engine.dispose()


app = FastAPI(
    title="TaskBrick",
    description="Multi-tenant project management API with teams, sprints, boards and inventory",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# ============================================================================
# MIDDLEWARE CONFIGURATION
# ============================================================================

# NOTE: Starlette runs the most recently added middleware first.
# Request order: request context -> CORS -> Tenant -> RateLimit -> routes.

# Rate limiting reads request.state.tenant, so it sits inside the
# tenant middleware
app.add_middleware(RateLimitMiddleware)

# CRITICAL: resolves and validates the tenant for every scoped route
app.add_middleware(TenantMiddleware)

# SECURITY: restrict CORS_ORIGINS to the real front-end domains in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """
    Tag the request with an id (client supplied X-Request-ID or a new one)
    for log correlation, and report the handling time.
    """
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    bind_request_context(request_id=request_id)
    request.state.request_id = request_id

    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{elapsed_ms / 1000:.6f}"
    logger.debug(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)",
        extra={"path": request.url.path, "method": request.method,
               "status_code": response.status_code, "duration_ms": round(elapsed_ms, 1)}
    )
    return response


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

def _typed_error(exc, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": error_type},
        headers=getattr(exc, "headers", None) or {}
    )


@app.exception_handler(TenantIsolationError)
async def tenant_isolation_error_handler(request: Request, exc: TenantIsolationError):
    """
    CRITICAL: a request tried to reach data outside its tenant. Always
    logged at ERROR so it can be alerted on.
    """
    logger.error(
        f"TENANT ISOLATION VIOLATION: {exc.detail}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "tenant_id": getattr(request.state, "tenant_id", None)
        }
    )
    return _typed_error(exc, "tenant_isolation_error")


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return _typed_error(exc, "authentication_error")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all for unexpected errors.

    SECURITY: the message is returned only in DEBUG; otherwise the client
    gets a generic 500 and the traceback goes to the log.
    """
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True,
        extra={"path": request.url.path, "method": request.method}
    )

    content = {"detail": "Internal server error", "type": "internal_error"}
    if settings.DEBUG:
        content = {"detail": str(exc), "type": type(exc).__name__}
    content["request_id"] = getattr(request.state, "request_id", None)
    return JSONResponse(status_code=500, content=content)


# ============================================================================
# ROUTES
# ============================================================================

@app.get("/health", tags=["health"])
async def health_check():
    """Liveness plus a database round trip; 503 when the database is unreachable."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Health check database failure: {e}")
        database = "unavailable"

    body = {
        "status": "healthy" if database == "ok" else "degraded",
        "database": database,
        "environment": settings.ENVIRONMENT,
        "version": __version__,
    }
    return JSONResponse(status_code=200 if database == "ok" else 503, content=body)


@app.get("/", tags=["root"])
async def root():
    return {
        "message": "TaskBrick API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


for module in ROUTERS:
    app.include_router(module.router, prefix="/api")

# Logos, profile pictures and comment attachments
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "taskbrick.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
