"""
FastAPI Application Entry Point.

This module initializes the FastAPI application and includes all routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.api.v1.router import api_router
from app.core.metrics import router as metrics_router
from app.core.rate_limiter import limiter, rate_limit_exceeded_handler
from app.core.sentry import init_sentry
from app.db.base import Base
from app.db.session import engine
from app.middleware.metrics_middleware import MetricsMiddleware
from app import models  # noqa: F401  registers tables on Base.metadata

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup."""
    Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()


init_sentry()

app = FastAPI(
    title=settings.APP_NAME,
    description="Document upload with searchable, S3-mirrored metadata",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.add_middleware(MetricsMiddleware)

origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Metadata-Sync-Warning"],
)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)
app.include_router(metrics_router)


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """
    Health check endpoint.

    Returns:
        dict: Status of the application.
    """
    return {"status": "healthy"}
