"""Connection store: persisted per-user, per-platform provider links."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.connection import Connection
from models.user import User
from services.connectors.types import ConnectionData, PersistenceError
from services.crypto import decrypt_optional, decrypt_token, encrypt_optional, encrypt_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionRecord:
    user_id: str
    platform: str
    access_token: str
    refresh_token: Optional[str]
    expires_at: Optional[int]
    profile_id: Optional[str]
    profile_name: Optional[str]
    connected: bool


def _to_record(connection: Connection) -> ConnectionRecord:
    return ConnectionRecord(
        user_id=connection.user_id,
        platform=connection.platform,
        access_token=decrypt_token(connection.access_token_encrypted),
        refresh_token=decrypt_optional(connection.refresh_token_encrypted),
        expires_at=connection.expires_at,
        profile_id=connection.profile_id,
        profile_name=connection.profile_name,
        connected=bool(connection.connected),
    )


async def _find(db: AsyncSession, user_id: str, platform: str) -> Optional[Connection]:
    result = await db.execute(
        select(Connection).where(
            Connection.user_id == user_id,
            Connection.platform == platform,
        )
    )
    return result.scalar_one_or_none()


async def save_connection(db: AsyncSession, user_id: str, platform: str, data: ConnectionData) -> None:
    """Create or replace the connection for ``(user_id, platform)``."""
    try:
        user_result = await db.execute(select(User).where(User.id == user_id))
        if user_result.scalar_one_or_none() is None:
            db.add(User(id=user_id))
            await db.flush()

        connection = await _find(db, user_id, platform)
        if connection is None:
            connection = Connection(id=str(uuid.uuid4()), user_id=user_id, platform=platform)
            db.add(connection)

        connection.access_token_encrypted = encrypt_token(data.access_token)
        connection.refresh_token_encrypted = encrypt_optional(data.refresh_token)
        connection.expires_at = data.expires_at
        connection.profile_id = data.profile_id
        connection.profile_name = data.profile_name
        connection.connected = True
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to save %s connection for user %s", platform, user_id)
        raise PersistenceError(f"Could not save {platform} connection") from exc

    logger.info("connection_saved user=%s platform=%s profile=%s", user_id, platform, data.profile_id)


async def get_connections(db: AsyncSession, user_id: str) -> List[ConnectionRecord]:
    result = await db.execute(
        select(Connection).where(Connection.user_id == user_id).order_by(Connection.platform)
    )
    return [_to_record(connection) for connection in result.scalars().all()]


async def get_connection(db: AsyncSession, user_id: str, platform: str) -> Optional[ConnectionRecord]:
    if not user_id:
        return None
    connection = await _find(db, user_id, platform)
    return _to_record(connection) if connection else None


async def is_platform_connected(db: AsyncSession, user_id: str, platform: str) -> bool:
    if not user_id:
        return False
    connection = await _find(db, user_id, platform)
    return bool(connection and connection.connected)


async def delete_connection(db: AsyncSession, user_id: str, platform: str) -> bool:
    """Remove a connection; returns False when none existed."""
    connection = await _find(db, user_id, platform)
    if connection is None:
        return False
    try:
        await db.delete(connection)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise PersistenceError(f"Could not delete {platform} connection") from exc
    logger.info("connection_deleted user=%s platform=%s", user_id, platform)
    return True
