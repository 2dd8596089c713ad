"""Main FastAPI application for the Health-Sieve API.

This module sets up the FastAPI application with all routes, middleware,
and configuration for the upload and live ingestion API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.dashboard.api.logging_config import setup_logging
from src.dashboard.api.middleware import setup_middleware
from src.dashboard.api.routes import health, ingest, upload
from src.infrastructure.settings import settings

setup_logging(use_json=settings.json_logs, log_level=settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info(f"{settings.app_name} API starting up...")
    logger.info("API documentation available at /api/docs")
    logger.info(f"Upload directory: {settings.ingestion.upload_dir}")
    logger.info(f"Logging level: {settings.log_level}, JSON logs: {settings.json_logs}")
    yield
    logger.info(f"{settings.app_name} API shutting down...")


app = FastAPI(
    title=f"{settings.app_name} API",
    description="Upload Apple Health exports and stream their records as server-sent events",
    version=settings.app_version,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan
)

# In production, replace with specific origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # Next.js dev server
        "http://localhost:3001",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:3001",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time"],
)

setup_middleware(app)

app.include_router(health.router)
app.include_router(upload.router)
app.include_router(ingest.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"{settings.app_name} API",
        "version": settings.app_version,
        "docs": "/api/docs",
        "health": "/api/health",
        "upload": "/api/upload",
        "stream": "/api/parse-xml"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.dashboard.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
