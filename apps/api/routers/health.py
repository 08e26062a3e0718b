"""
Health check and diagnostic endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import engine, get_db
from services.connectors import ProviderRegistry, connector_capabilities, get_provider_registry

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns overall system health status.
    """
    health_status = {
        "status": "healthy",
        "api": "up",
        "database": "unknown",
    }

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["database"] = "up"
    except Exception as e:
        health_status["database"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    return health_status


@router.get("/health/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db),
    registry: ProviderRegistry = Depends(get_provider_registry),
):
    """Ready once the database answers and at least one platform can be connected."""
    missing = [platform for platform in registry.platforms if not registry.has_credentials(platform)]
    database = "up"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        database = f"down: {e.__class__.__name__}"

    ready = database == "up" and len(missing) < len(registry.platforms)
    content = {"ready": ready, "database": database, "missing": missing}
    if not ready:
        return JSONResponse(status_code=503, content=content)
    return content


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}


@router.get("/info")
async def info(registry: ProviderRegistry = Depends(get_provider_registry)):
    """Configuration diagnostics; reports only whether credentials are present."""
    return {
        "message": "API is functioning properly",
        "env": {
            "app_url": settings.APP_URL,
            "environment": settings.ENVIRONMENT,
            "platforms": {platform: registry.credential_presence(platform) for platform in registry.platforms},
        },
        "capabilities": connector_capabilities(registry),
        "server_time": datetime.now(timezone.utc).isoformat(),
    }
