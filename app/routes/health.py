"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.core.exceptions import NetworkError
from app.core.settings import settings
from app.db.base import DocumentStore
from app.routes.deps import get_db_store


router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if service is running.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/db")
async def database_health(store: DocumentStore = Depends(get_db_store)):
    """
    Database connectivity check.
    Performs a lightweight read against the configured store.
    """
    if not store.ping():
        raise NetworkError("Database connection failed")

    return {
        "status": "healthy",
        "database": type(store).__name__,
        "connected": True,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
