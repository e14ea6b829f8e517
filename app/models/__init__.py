from app.models.user import User
from app.models.revoked_token import RevokedToken
from app.models.story import Story

__all__ = [
    "User",
    "RevokedToken",
    "Story",
]
