"""
Connected social accounts for the current user.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, get_auth_context
from services.connections import ConnectionRecord, delete_connection, get_connection, get_connections
from services.connectors import PersistenceError, ProviderRegistry, UnknownPlatformError, get_provider_registry

router = APIRouter()


class ConnectionResponse(BaseModel):
    platform: str
    connected: bool
    profile_id: Optional[str] = None
    profile_name: Optional[str] = None
    expires_at: Optional[int] = None


class ConnectionListResponse(BaseModel):
    user_id: str
    connections: List[ConnectionResponse]


def _to_response(record: ConnectionRecord) -> ConnectionResponse:
    return ConnectionResponse(
        platform=record.platform,
        connected=record.connected,
        profile_id=record.profile_id,
        profile_name=record.profile_name,
        expires_at=record.expires_at,
    )


def _require_platform(registry: ProviderRegistry, platform: str) -> str:
    try:
        return registry.config_for(platform).platform
    except UnknownPlatformError:
        raise HTTPException(status_code=400, detail="Invalid platform")


@router.get("", response_model=ConnectionListResponse)
async def list_connections(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """List linked accounts; token values are never returned."""
    records = await get_connections(db, auth.user_id)
    return ConnectionListResponse(
        user_id=auth.user_id,
        connections=[_to_response(record) for record in records],
    )


@router.get("/{platform}", response_model=ConnectionResponse)
async def connection_status(
    platform: str,
    auth: AuthContext = Depends(get_auth_context),
    registry: ProviderRegistry = Depends(get_provider_registry),
    db: AsyncSession = Depends(get_db),
):
    platform_key = _require_platform(registry, platform)
    record = await get_connection(db, auth.user_id, platform_key)
    if record is None:
        return ConnectionResponse(platform=platform_key, connected=False)
    return _to_response(record)


@router.delete("/{platform}")
async def disconnect_platform(
    platform: str,
    auth: AuthContext = Depends(get_auth_context),
    registry: ProviderRegistry = Depends(get_provider_registry),
    db: AsyncSession = Depends(get_db),
):
    """Disconnect a platform by removing its stored connection."""
    platform_key = _require_platform(registry, platform)
    try:
        deleted = await delete_connection(db, auth.user_id, platform_key)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    if not deleted:
        raise HTTPException(status_code=404, detail=f"{platform_key} is not connected")
    return {"platform": platform_key, "disconnected": True}
