import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, String, Text, Integer, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.database import Base


class Story(Base):
    __tablename__ = "stories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    theme = Column(Text, nullable=False)
    main_character_name = Column(String(255), nullable=False)
    main_character_traits = Column(Text, nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    favorite = Column(Boolean, nullable=False, default=False)
    extended_count = Column(Integer, nullable=False, default=0)
    image_url = Column(Text, nullable=True)
    audio_url = Column(Text, nullable=True)
    text_file_url = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="stories")

    __table_args__ = (
        Index("ix_stories_user_id", "user_id"),
        Index("ix_stories_created_at", "created_at"),
        Index("ix_stories_favorite", "favorite"),
    )

    def __repr__(self):
        return f"<Story {self.title}>"
