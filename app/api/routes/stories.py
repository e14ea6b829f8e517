import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_session
from app.core.exceptions import NotFoundError
from app.core.sanitization import sanitize_search
from app.models import Story
from app.schemas.common import MessageResponse
from app.schemas.stories import (
    StoryCreate,
    StoryData,
    StoryEnvelope,
    StoryListData,
    StoryListResponse,
    StoryResponse,
    StoryStats,
    StoryUpdate,
)
from app.services.session_service import Authenticated
from app.services.story_service import StoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stories", tags=["Stories"])


def _get_owned_story(db: Session, story_id: UUID, session: Authenticated) -> Story:
    """Another account's story is reported exactly like a missing one."""
    story = StoryService.get_story(db, story_id, session.account_id)
    if story is None:
        raise NotFoundError("Story")
    return story


def _envelope(story: Story) -> StoryEnvelope:
    return StoryEnvelope(data=StoryData(story=StoryResponse.model_validate(story)))


@router.get("", response_model=StoryListResponse)
def list_stories(
    search: Optional[str] = None,
    include_stats: bool = Query(False, alias="includeStats"),
    session: Authenticated = Depends(require_session),
    db: Session = Depends(get_db),
):
    """
    List the current user's stories, newest first.
    Optional free-text search and story statistics.
    """
    text = sanitize_search(search) if search else ""
    if text:
        stories = StoryService.search_stories(db, session.account_id, text)
    else:
        stories = StoryService.list_stories(db, session.account_id)

    data = StoryListData(stories=[StoryResponse.model_validate(s) for s in stories])
    if include_stats:
        data.stats = StoryStats(**StoryService.get_stats(db, session.account_id))

    return StoryListResponse(data=data)


@router.post("", response_model=StoryEnvelope, status_code=status.HTTP_201_CREATED)
def create_story(
    data: StoryCreate,
    session: Authenticated = Depends(require_session),
    db: Session = Depends(get_db),
):
    """Save a generated story for the current user."""
    story = StoryService.create_story(db, session.account_id, data)
    logger.info(f"Story {story.id} created for user {session.account_id}")
    return _envelope(story)


@router.delete("", response_model=MessageResponse)
def delete_all_stories(
    session: Authenticated = Depends(require_session),
    db: Session = Depends(get_db),
):
    """Delete every story owned by the current user."""
    deleted = StoryService.delete_all_stories(db, session.account_id)
    logger.info(f"Deleted {deleted} stories for user {session.account_id}")
    return MessageResponse(message=f"{deleted} stories deleted.")


@router.get("/{story_id}", response_model=StoryEnvelope)
def get_story(
    story_id: UUID,
    session: Authenticated = Depends(require_session),
    db: Session = Depends(get_db),
):
    return _envelope(_get_owned_story(db, story_id, session))


@router.put("/{story_id}", response_model=StoryEnvelope)
def update_story(
    story_id: UUID,
    data: StoryUpdate,
    session: Authenticated = Depends(require_session),
    db: Session = Depends(get_db),
):
    """
    Update content, media URLs, favorite flag or extension count.
    """
    story = _get_owned_story(db, story_id, session)
    story = StoryService.update_story(db, story, data)
    return _envelope(story)


@router.delete("/{story_id}", response_model=MessageResponse)
def delete_story(
    story_id: UUID,
    session: Authenticated = Depends(require_session),
    db: Session = Depends(get_db),
):
    story = _get_owned_story(db, story_id, session)
    StoryService.delete_story(db, story)
    logger.info(f"Story {story_id} deleted by user {session.account_id}")
    return MessageResponse(message="Story deleted successfully.")
