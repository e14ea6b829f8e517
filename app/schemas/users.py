from datetime import datetime
from typing import Optional
from uuid import UUID

from app.schemas.common import CamelModel
from app.schemas.stories import StoryStats


class UserProfile(CamelModel):
    id: UUID
    email: str
    name: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    is_email_verified: bool
    email_verified_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class UserProfileData(CamelModel):
    user: UserProfile
    stats: StoryStats


class UserProfileResponse(CamelModel):
    success: bool = True
    data: UserProfileData
