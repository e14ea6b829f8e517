import logging
from typing import Optional, List
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models import Story
from app.schemas.stories import StoryCreate, StoryUpdate

logger = logging.getLogger(__name__)


class StoryService:
    """
    Story persistence. Every lookup is scoped to the owner, so a story that
    belongs to another account is indistinguishable from a missing one.
    """

    @staticmethod
    def get_story(db: Session, story_id: UUID, user_id: UUID) -> Optional[Story]:
        return db.query(Story).filter(
            Story.id == story_id,
            Story.user_id == user_id,
        ).first()

    @staticmethod
    def list_stories(db: Session, user_id: UUID) -> List[Story]:
        return db.query(Story).filter(
            Story.user_id == user_id
        ).order_by(Story.created_at.desc()).all()

    @staticmethod
    def search_stories(db: Session, user_id: UUID, text: str) -> List[Story]:
        """Case-insensitive search over title, content, theme and character name."""
        # LIKE wildcards in the query match literally
        escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        return db.query(Story).filter(
            Story.user_id == user_id,
            or_(
                Story.title.ilike(pattern, escape="\\"),
                Story.content.ilike(pattern, escape="\\"),
                Story.theme.ilike(pattern, escape="\\"),
                Story.main_character_name.ilike(pattern, escape="\\"),
            ),
        ).order_by(Story.created_at.desc()).all()

    @staticmethod
    def get_stats(db: Session, user_id: UUID) -> dict:
        total = db.query(Story).filter(Story.user_id == user_id).count()
        favorites = db.query(Story).filter(
            Story.user_id == user_id,
            Story.favorite == True,  # noqa: E712
        ).count()
        return {"total_stories": total, "favorite_stories": favorites}

    @staticmethod
    def create_story(db: Session, user_id: UUID, data: StoryCreate) -> Story:
        story = Story(
            user_id=user_id,
            theme=data.theme,
            main_character_name=data.main_character_name,
            main_character_traits=data.main_character_traits,
            title=data.title,
            content=data.content,
            image_url=data.image_url,
            text_file_url=data.text_file_url,
        )
        db.add(story)
        db.commit()
        db.refresh(story)
        return story

    @staticmethod
    def update_story(db: Session, story: Story, data: StoryUpdate) -> Story:
        """
        Apply a partial update. Extending the content bumps extended_count
        (unless given explicitly) and drops narration recorded for the old text.
        """
        updates = data.model_dump(exclude_unset=True)

        new_content = updates.get("content")
        if new_content and new_content != story.content:
            if "extended_count" not in updates:
                updates["extended_count"] = (story.extended_count or 0) + 1
            if story.audio_url and "audio_url" not in updates:
                updates["audio_url"] = None

        for field, value in updates.items():
            if value is None and field in ("content", "extended_count", "favorite"):
                continue
            if field in ("image_url", "audio_url", "text_file_url") and value == "":
                value = None
            setattr(story, field, value)

        db.commit()
        db.refresh(story)
        logger.info(f"Story {story.id} updated")
        return story

    @staticmethod
    def delete_story(db: Session, story: Story) -> None:
        db.delete(story)
        db.commit()

    @staticmethod
    def delete_all_stories(db: Session, user_id: UUID) -> int:
        deleted = db.query(Story).filter(
            Story.user_id == user_id
        ).delete(synchronize_session=False)
        db.commit()
        return deleted
