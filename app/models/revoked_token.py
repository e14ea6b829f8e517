"""Revoked session tokens."""

from datetime import datetime
from uuid import uuid4
from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID

from app.core.database import Base


class RevokedToken(Base):
    """A session token invalidated by logout, kept until its natural expiry."""

    __tablename__ = "revoked_tokens"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    jti = Column(String(36), unique=True, nullable=False, index=True)  # JWT ID
    user_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    revoked_at = Column(DateTime, default=datetime.utcnow)
    ip = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)

    # Index for cleanup of expired tokens
    __table_args__ = (
        Index("ix_revoked_tokens_expires_at", "expires_at"),
    )
