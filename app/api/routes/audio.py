import logging
import os

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from app.api.deps import require_session
from app.core.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.core.sanitization import validate_audio_filename
from app.services.session_service import Authenticated

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/audio", tags=["Audio"])

MEDIA_TYPES = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
}


@router.get("/{filename}")
def get_audio(
    filename: str,
    session: Authenticated = Depends(require_session),
):
    """
    Serve a cached narration file. Only bare file names are accepted.
    """
    if not validate_audio_filename(filename):
        logger.warning(f"Rejected audio filename from user {session.account_id}: {filename!r}")
        raise ValidationError("Invalid file name.")

    path = os.path.join(settings.AUDIO_CACHE_DIR, filename)
    if not os.path.isfile(path):
        raise NotFoundError("Audio file")

    extension = os.path.splitext(filename)[1].lower()
    return FileResponse(path, media_type=MEDIA_TYPES[extension], filename=filename)
