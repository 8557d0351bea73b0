"""
Main application for LiveCount
"""

import signal
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from livecount.core.config.settings import settings
from livecount.core.logging import get_logger
from livecount.shared.helpers import now_utc

from livecount.domains.ingestion.api import collect_router
from livecount.domains.presence.api import presence_router
from livecount.domains.presence.services import presence_broadcaster

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    await initialize_services()

    yield

    # Shutdown
    await cleanup_services()


# Create FastAPI app
app = FastAPI(
    title="LiveCount",
    description="Storefront live-visitor presence and event ingestion",
    version=settings.VERSION,
    lifespan=lifespan,
)

# Include API routers
app.include_router(collect_router)
app.include_router(presence_router)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


async def initialize_services():
    """Prepare backing stores; neither is required for the app to start"""
    logger.info("Starting service initialization...")

    # 1. Durable store: create tables when configured, otherwise run degraded
    if settings.database.is_configured:
        from livecount.core.database import create_all_tables

        try:
            created = await create_all_tables()
        except Exception as e:
            created = False
            logger.error("Database unavailable at startup", error=str(e))

        if created:
            logger.info("Database tables verified/created")
        else:
            logger.warning("Table creation failed, ingestion will run degraded")
    else:
        logger.warning("DATABASE_URL not set, ingestion will run degraded")

    # 2. Check Redis connectivity (non-blocking - log warning but continue)
    if settings.presence.PRESENCE_ENABLED:
        from livecount.core.redis.health import check_redis_health

        redis_health = await check_redis_health()
        if redis_health.is_healthy:
            logger.info("Redis connection verified")
        else:
            logger.warning(
                "Redis connection check failed, presence will run degraded",
                error=redis_health.error_message,
            )
    else:
        logger.warning("Presence store disabled, presence will run degraded")

    logger.info("Service initialization complete")


async def cleanup_services():
    """Cleanup all services"""
    from livecount.core.database import close_engine, reset_session_factory
    from livecount.core.redis import close_redis_client

    try:
        await presence_broadcaster.close()
        await close_engine()
        reset_session_factory()
        await close_redis_client()
    except Exception as e:
        logger.error("Failed to cleanup services", error=str(e))


# Health check endpoint
@app.get("/health")
async def health_check():
    """Liveness probe"""
    return {"ok": True}


@app.get("/health/ready")
async def readiness_check():
    """Backing-store status; degraded stores are reported, not fatal"""
    from livecount.core.database import check_engine_health
    from livecount.core.redis.health import check_redis_health

    if settings.database.is_configured:
        database = "healthy" if await check_engine_health() else "unavailable"
    else:
        database = "not_configured"

    if settings.presence.PRESENCE_ENABLED:
        redis_health = await check_redis_health()
        redis = "healthy" if redis_health.is_healthy else "unavailable"
    else:
        redis = "not_configured"

    return {
        "ok": True,
        "timestamp": now_utc().isoformat(),
        "version": settings.VERSION,
        "database": database,
        "redis": redis,
    }


# Error handlers
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler"""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={"ok": False, "error": "internal_error"},
    )


def setup_signal_handlers():
    """Setup signal handlers for graceful shutdown"""

    def signal_handler(signum, frame):
        logger.info("Received shutdown signal", signum=signum)
        # The lifespan manager will handle the actual cleanup

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


if __name__ == "__main__":
    # Setup signal handlers for graceful shutdown
    setup_signal_handlers()

    uvicorn.run(
        "livecount.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info",
    )
