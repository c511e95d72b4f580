# backend/main.py
"""
List subscription API: field editing helpers, subscription validation and
the settings used by subscription notifications
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from core.config import settings
from database import close_async_client, ensure_indexes
from routes import fields, setting
import celery_app  # noqa: F401  binds shared tasks to the configured broker

# ===== LOGGING SETUP =====
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})")
    try:
        await ensure_indexes()
    except PyMongoError as e:
        logger.warning(f"Index creation failed, continuing without: {e}")
    yield
    close_async_client()
    logger.info(f"{settings.APP_NAME} stopped")


# ===== CREATE APP =====
app = FastAPI(
    debug=settings.DEBUG_MODE,
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def timing_middleware(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time

    if process_time > 2.0:
        logger.warning(f"Slow request: {request.method} {request.url.path} - {process_time:.3f}s")

    response.headers["X-Process-Time"] = str(round(process_time, 3))
    return response


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.APP_VERSION,
    }


app.include_router(fields.router, prefix="/api")
app.include_router(setting.router, prefix="/api")
