"""Connection model for OAuth tokens."""

from sqlalchemy import BigInteger, Boolean, Column, String, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base


class Connection(Base):
    """Linked social account, one per (user, platform)."""

    __tablename__ = "connections"
    __table_args__ = (UniqueConstraint("user_id", "platform", name="uq_connections_user_platform"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    platform = Column(String, nullable=False)  # facebook, instagram, twitter, tiktok, youtube
    profile_id = Column(String, nullable=True, index=True)
    profile_name = Column(String, nullable=True)
    access_token_encrypted = Column(Text, nullable=False)
    refresh_token_encrypted = Column(Text, nullable=True)
    expires_at = Column(BigInteger, nullable=True)  # epoch millis
    connected = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="connections")
