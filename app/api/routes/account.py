import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_email_service, get_ip, get_rate_limit_store
from app.core.config import settings
from app.core.exceptions import StorySparksException
from app.core.rate_limit import RateLimitStore, rate_limit_email, register_limiter
from app.schemas.auth import EmailRequest, RegisterRequest, RegisterResponse, ResetPasswordRequest
from app.schemas.common import MessageResponse
from app.services.auth_service import REGISTERED_MESSAGE, AuthService
from app.services.email_service import EmailService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Account"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    store: RateLimitStore = Depends(get_rate_limit_store),
    ip: str = Depends(get_ip),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Create an account. The user must verify their email before signing in.
    """
    AuthService.register(
        db,
        register_limiter(store),
        ip,
        email_service,
        data.email,
        data.password,
        data.name,
    )
    return RegisterResponse(message=REGISTERED_MESSAGE)


@router.get("/verify-email")
def verify_email(
    token: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Target of the emailed link. Redirects to the frontend with the outcome.
    """
    try:
        AuthService.verify_email(db, token)
    except StorySparksException as e:
        logger.warning(f"Email verification failed: {e.detail}")
        query = urlencode({"error": "verification_failed", "message": e.detail})
        return RedirectResponse(f"{settings.FRONTEND_URL}/?{query}", status_code=status.HTTP_302_FOUND)

    query = urlencode({
        "verified": "true",
        "message": "Email verified successfully. You can now sign in.",
    })
    return RedirectResponse(f"{settings.FRONTEND_URL}/?{query}", status_code=status.HTTP_302_FOUND)


@router.post("/verify-email", response_model=MessageResponse)
@rate_limit_email()
def resend_verification(
    request: Request,
    data: EmailRequest,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Send a fresh verification link."""
    message = AuthService.resend_verification(db, email_service, data.email)
    return MessageResponse(message=message)


@router.post("/forgot-password", response_model=MessageResponse)
@rate_limit_email()
def forgot_password(
    request: Request,
    data: EmailRequest,
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """
    Start a password reset. The reply does not reveal whether the email is
    registered.
    """
    message = AuthService.request_password_reset(db, email_service, data.email)
    return MessageResponse(message=message)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
):
    """Set a new password using the emailed reset token."""
    AuthService.reset_password(db, data.token, data.new_password)
    return MessageResponse(
        message="Password updated successfully. You can now sign in with your new password."
    )
