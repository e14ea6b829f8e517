from datetime import datetime
from typing import Optional, List
from uuid import UUID

from pydantic import Field

from app.schemas.common import CamelModel


# Request schemas
class StoryCreate(CamelModel):
    theme: str = Field(..., min_length=1)
    main_character_name: str = Field(..., min_length=1, max_length=255)
    main_character_traits: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    text_file_url: Optional[str] = None


class StoryUpdate(CamelModel):
    content: Optional[str] = None
    image_url: Optional[str] = None
    audio_url: Optional[str] = None
    text_file_url: Optional[str] = None
    extended_count: Optional[int] = Field(None, ge=0)
    favorite: Optional[bool] = None


# Response schemas
class StoryResponse(CamelModel):
    id: UUID
    theme: str
    main_character_name: str
    main_character_traits: str
    title: str
    content: str
    favorite: bool
    extended_count: int
    image_url: Optional[str] = None
    audio_url: Optional[str] = None
    text_file_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    user_id: UUID


class StoryStats(CamelModel):
    total_stories: int
    favorite_stories: int


class StoryListData(CamelModel):
    stories: List[StoryResponse]
    stats: Optional[StoryStats] = None


class StoryListResponse(CamelModel):
    success: bool = True
    data: StoryListData


class StoryData(CamelModel):
    story: StoryResponse


class StoryEnvelope(CamelModel):
    success: bool = True
    data: StoryData
