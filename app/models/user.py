import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, String, DateTime, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)  # Always stored lowercased
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    # Email verification
    is_email_verified = Column(Boolean, nullable=False, default=False)
    email_verified_at = Column(DateTime, nullable=True)
    email_verification_token = Column(String(64), nullable=True)  # SHA-256 hash
    email_verification_expires = Column(DateTime, nullable=True)

    # Password reset
    password_reset_token = Column(String(64), nullable=True)  # SHA-256 hash
    password_reset_expires = Column(DateTime, nullable=True)
    # Sessions issued before this instant are rejected
    password_changed_at = Column(DateTime, nullable=True)

    # Relationships
    stories = relationship("Story", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_users_email_verification_token", "email_verification_token"),
        Index("ix_users_password_reset_token", "password_reset_token"),
    )

    def __repr__(self):
        return f"<User {self.email}>"
