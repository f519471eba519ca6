"""Main FastAPI application."""

from contextlib import asynccontextmanager

import sentry_sdk
import structlog
import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from megajob.api.v1 import api_router
from megajob.config import settings
from megajob.core.exceptions import register_exception_handlers
from megajob.core.kv_store import KeyValueStore, get_kv_store, kv_store
from megajob.core.logging import setup_logging
from megajob.db.mongo import COLLECTIONS, get_db, mongo
from megajob.utils import helpers

# Setup logging
setup_logging()
logger = structlog.get_logger(__name__)

# Initialize Sentry for error tracking (only if DSN is properly configured)
if settings.SENTRY_DSN and settings.SENTRY_DSN.startswith("https://"):
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(),
            LoggingIntegration(level=None, event_level="ERROR"),
        ],
        release=settings.APP_VERSION,
        attach_stacktrace=True,
        send_default_pii=False,
    )
else:
    logger.info("sentry_disabled", reason="SENTRY_DSN not configured")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    await mongo.connect()
    await kv_store.connect()
    logger.info("server_started", port=settings.PORT, environment=settings.ENVIRONMENT)
    yield
    # Shutdown
    await kv_store.disconnect()
    mongo.close()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="MegaJobNepal job portal API: authentication, jobs, companies and applications",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    swagger_ui_parameters={"persistAuthorization": True},
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API router
app.include_router(api_router, prefix="/api")


async def _ping(db) -> bool:
    if db is None:
        return False
    try:
        await db.command("ping")
        return True
    except Exception as e:
        logger.warning("database_ping_failed", error=str(e))
        return False


@app.get("/health", tags=["Health"])
async def health_check(db=Depends(get_db)):
    """Liveness probe with database connectivity."""
    connected = await _ping(db)
    return {
        "status": "OK",
        "timestamp": helpers.utcnow().isoformat(),
        "database": "Connected" if connected else "Disconnected",
    }


@app.get("/api/status", tags=["Health"])
async def api_status(db=Depends(get_db), kv: KeyValueStore = Depends(get_kv_store)):
    """Database status with per-collection document counts."""
    if not await _ping(db):
        raise HTTPException(status_code=500, detail="Database connection error")

    try:
        collections = {name: await db[name].count_documents({}) for name in COLLECTIONS}
    except Exception as e:
        logger.error("status_count_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Database connection error")

    return {
        "status": "Connected",
        "database": settings.MONGODB_DB_NAME,
        "collections": collections,
        "keyValueStore": "Connected" if await kv.is_healthy() else "Unavailable",
        "timestamp": helpers.utcnow().isoformat(),
    }


if __name__ == "__main__":
    uvicorn.run(
        "megajob.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
    )
