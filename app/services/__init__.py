from app.services.auth_service import AuthService
from app.services.email_service import EmailService
from app.services.revocation_service import RevocationService
from app.services.session_service import SessionService
from app.services.story_service import StoryService

__all__ = [
    "AuthService",
    "EmailService",
    "RevocationService",
    "SessionService",
    "StoryService",
]
