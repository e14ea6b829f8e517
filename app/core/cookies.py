"""Session cookie helpers."""

from datetime import datetime
from typing import Optional

from fastapi import Request, Response

from app.core.config import settings


def get_session_token(request: Request) -> Optional[str]:
    """
    Read the session token from the cookie, falling back to a Bearer header
    for non-browser API clients.
    """
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token

    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def set_session_cookie(response: Response, token: str, expires_at: Optional[datetime] = None) -> None:
    """Set the httpOnly session cookie. max_age follows the token's own expiry."""
    max_age = settings.SESSION_MAX_AGE_DAYS * 24 * 60 * 60
    if expires_at is not None:
        max_age = max(0, int((expires_at - datetime.utcnow()).total_seconds()))

    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
