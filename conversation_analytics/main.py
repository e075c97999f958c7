"""
FastAPI application entry point for the Conversation Analytics API.

Configures logging, CORS and the analytics router. Tenant connection pools are
opened lazily on first use and closed when the application shuts down.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from conversation_analytics import __version__
from conversation_analytics.api import api_router
from conversation_analytics.core.config import get_settings
from conversation_analytics.core.database import close_registry

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for application startup and shutdown.

    No pool is opened on startup; tenants connect on their first request.
    On shutdown every tenant pool held by the registry is closed.
    """
    logger.info("Conversation Analytics API starting")

    yield

    logger.info("Conversation Analytics API shutting down")
    await close_registry()
    logger.info("Tenant connection pools closed")


# Create FastAPI application
app = FastAPI(
    title="Conversation Analytics API",
    version=__version__,
    description=(
        "Multi-tenant analytics over customer-service conversation logs: "
        "summaries, heatmaps, trends, funnels, agent quality, listings "
        "and AI response-time estimation."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """
    Liveness probe for this service (not for any tenant store).

    Returns:
        Dict with status 'healthy'
    """
    return {"status": "healthy"}


@app.get("/")
async def root():
    return {
        "name": "Conversation Analytics API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "conversation_analytics.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
