from typing import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.cookies import get_session_token
from app.core.database import SessionLocal
from app.core.exceptions import AuthorizationError
from app.core.rate_limit import RateLimitStore, get_attempt_store, get_client_ip
from app.services.email_service import EmailService
from app.services.session_service import Authenticated, SessionResult, SessionService


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_email_service() -> EmailService:
    """Outbound email collaborator."""
    return EmailService.from_settings()


def get_rate_limit_store() -> RateLimitStore:
    return get_attempt_store()


def get_ip(request: Request) -> str:
    return get_client_ip(request)


def get_session(
    request: Request,
    db: Session = Depends(get_db),
) -> SessionResult:
    """
    Resolve the request's session.
    Protected paths are already resolved by SessionMiddleware; anything
    else is validated here.
    """
    resolved = getattr(request.state, "session", None)
    if resolved is not None:
        return resolved
    return SessionService.validate_session(db, get_session_token(request))


def require_session(
    session: SessionResult = Depends(get_session),
) -> Authenticated:
    """
    Dependency to require an authenticated session.
    Raises AuthorizationError if the session is anonymous.
    """
    if not isinstance(session, Authenticated):
        raise AuthorizationError()
    return session
