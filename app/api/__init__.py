from app.api.routes.auth import router as auth_router
from app.api.routes.account import router as account_router
from app.api.routes.stories import router as stories_router
from app.api.routes.users import router as users_router
from app.api.routes.audio import router as audio_router

__all__ = ["auth_router", "account_router", "stories_router", "users_router", "audio_router"]
