# backend/coachbook/main.py
"""
FastAPI application for the coach availability engine.

Run with:
    uvicorn coachbook.main:app --app-dir backend
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI

from .core.config import settings
from .database import init_db
from .errors import register_error_handlers
from .middleware.prometheus_middleware import PrometheusMiddleware
from .routes import prometheus
from .routes.v1 import availability as availability_v1

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{settings.api_title} starting up...")
    logger.info(f"Environment: {settings.environment}")
    init_db()
    yield
    logger.info(f"{settings.api_title} shutting down...")


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)

# Register unified error envelope handlers
register_error_handlers(app)

app.add_middleware(PrometheusMiddleware)

# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(availability_v1.router, prefix="/coaches/{coach_id}/availability")

app.include_router(api_v1)
app.include_router(prometheus.router)


@app.get("/health", include_in_schema=False)
def health_check() -> dict[str, str]:
    return {"status": "healthy", "environment": settings.environment}
