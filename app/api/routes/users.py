from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_session
from app.core.exceptions import NotFoundError
from app.schemas.stories import StoryStats
from app.schemas.users import UserProfile, UserProfileData, UserProfileResponse
from app.services.auth_service import AuthService
from app.services.session_service import Authenticated
from app.services.story_service import StoryService


router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserProfileResponse)
def get_my_profile(
    session: Authenticated = Depends(require_session),
    db: Session = Depends(get_db),
):
    """
    Get the current user's profile with story statistics.
    """
    user = AuthService.get_user_by_id(db, session.account_id)
    if user is None:
        raise NotFoundError("User")

    return UserProfileResponse(
        data=UserProfileData(
            user=UserProfile.model_validate(user),
            stats=StoryStats(**StoryService.get_stats(db, session.account_id)),
        )
    )
