"""
API package initialization.

Router modules:
- analytics: tenant analytics, listings, month comparison, health check
"""

from fastapi import APIRouter

from conversation_analytics.api.analytics import router as analytics_router

# Create main API router
api_router = APIRouter()

api_router.include_router(analytics_router, prefix="/analytics", tags=["analytics"])

__all__ = [
    "api_router",
    "analytics_router",
]
