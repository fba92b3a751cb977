"""
CoastWatch API - FastAPI Application Entry Point

Hazard report lifecycle and geospatial query service.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from coastwatch.api.responses import error_response
from coastwatch.api.routes import analytics, auth, maps, reports, users
from coastwatch.config import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    get_settings,
)
from coastwatch.db import close_db, init_db
from coastwatch.db import health_check as db_health_check
from coastwatch.exceptions import CoastwatchError, ValidationError

settings = get_settings()
logger = get_logger(__name__)

# Request-model locations that carry no information for the client
_LOCATION_PREFIXES = {"body", "query", "path", "header"}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    # Startup
    configure_logging(
        json_format=settings.is_production,
        log_level="DEBUG" if settings.debug else "INFO",
    )
    logger.info(
        "Starting CoastWatch API",
        environment=settings.environment,
        version=settings.app_version,
    )

    await init_db(
        pool_size=5,
        max_overflow=10,
        echo=settings.debug,
        create_tables=settings.is_development,
    )
    logger.info("Database connection established")

    if settings.redis_url is not None:
        import redis.asyncio as aioredis

        app.state.redis = aioredis.from_url(
            settings.redis_url.get_secret_value(),
            encoding="utf-8",
            decode_responses=True,
        )
        logger.info("Redis connection established")
    else:
        logger.info("Redis not configured, rate limiting disabled")

    yield

    # Shutdown
    if app.state.redis is not None:
        await app.state.redis.aclose()
        app.state.redis = None
        logger.info("Redis connection closed")

    await close_db()
    logger.info("Shutting down CoastWatch API")


app = FastAPI(
    title=settings.app_name,
    description="Hazard report lifecycle and geospatial query service",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)
app.state.redis = None

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Bind a fresh logging context per request."""
    clear_context()
    bind_context(request_id=uuid4().hex, path=request.url.path)
    return await call_next(request)


@app.exception_handler(CoastwatchError)
async def coastwatch_error_handler(
    request: Request, exc: CoastwatchError
) -> JSONResponse:
    """Render core errors raised outside the operations facade."""
    if exc.code == "storage_unavailable":
        logger.error("Request failed: storage unavailable", path=request.url.path)
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report request-model validation failures as 400 envelopes."""
    field_errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        field_errors.append(
            {
                "field": ".".join(loc) or "body",
                "message": err.get("msg", "Invalid value"),
            }
        )
    return error_response(ValidationError("Invalid request", field_errors))


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])
app.include_router(maps.router, prefix="/api/map", tags=["Map"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["Analytics"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])


@app.get("/health")
async def health_check() -> dict[str, str | bool | None]:
    """Health check endpoint for Docker and load balancers."""
    db_ok = await db_health_check()

    # Redis is optional; None means not configured
    redis_ok: bool | None = None
    if app.state.redis is not None:
        try:
            await app.state.redis.ping()
            redis_ok = True
        except (RedisError, OSError) as e:
            logger.warning("Redis health check failed", error=str(e))
            redis_ok = False

    all_ok = db_ok and redis_ok is not False
    return {
        "status": "healthy" if all_ok else "degraded",
        "version": settings.app_version,
        "database": db_ok,
        "redis": redis_ok,
    }


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


def run() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    uvicorn.run(
        "coastwatch.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        workers=1 if settings.is_development else settings.workers,
    )


if __name__ == "__main__":
    run()
