import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_ip, get_rate_limit_store, get_session
from app.core.cookies import clear_session_cookie, get_session_token, set_session_cookie
from app.core.exceptions import AuthorizationError, InternalServerError
from app.core.rate_limit import RateLimitStore, login_limiter
from app.core.security import decode_session_token
from app.models import User
from app.schemas.auth import LoginRequest, LoginResponse, SessionResponse, SessionUser
from app.services.auth_service import AuthService
from app.services.revocation_service import RevocationService
from app.services.session_service import Authenticated, SessionResult, SessionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _session_user(user: User) -> SessionUser:
    return SessionUser(
        id=user.id,
        name=user.name,
        email=user.email,
        email_verified=user.is_email_verified,
    )


@router.post("/login", response_model=LoginResponse)
def login(
    data: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    store: RateLimitStore = Depends(get_rate_limit_store),
    ip: str = Depends(get_ip),
):
    """
    Authenticate with email and password and set the session cookie.
    """
    user, session = AuthService.login(db, login_limiter(store), ip, data.email, data.password)
    set_session_cookie(response, session.token, session.expires_at)
    return LoginResponse(user=_session_user(user))


@router.post("/revoke-token")
def revoke_token(
    request: Request,
    db: Session = Depends(get_db),
    ip: str = Depends(get_ip),
):
    """
    Logout: revoke the presented token and clear the cookie.
    Only signature and expiry are checked so that repeating the call with an
    already revoked token still succeeds.
    """
    token = get_session_token(request)
    payload = decode_session_token(token) if token else None
    if payload is None:
        raise AuthorizationError()

    try:
        user_id = UUID(str(payload["sub"]))
    except ValueError:
        raise AuthorizationError()

    try:
        RevocationService.revoke(
            db,
            jti=str(payload["jti"]),
            expires_at=datetime.utcfromtimestamp(int(payload["exp"])),
            user_id=user_id,
            ip=ip,
            user_agent=request.headers.get("user-agent"),
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to revoke session for user {user_id}: {e}", exc_info=True)
        error = InternalServerError("Could not close the session. Please try again.")
        # The cookie is dropped even though the token could not be recorded
        response = JSONResponse(
            status_code=error.status_code,
            content={"success": False, "error": error.detail, "error_code": error.error_code},
        )
        clear_session_cookie(response)
        return response

    logger.info(f"Session revoked for user {user_id}")
    response = JSONResponse(content={"success": True, "message": "Session closed successfully."})
    clear_session_cookie(response)
    return response


@router.get("/session", response_model=SessionResponse, response_model_exclude_none=True)
def get_session_info(
    response: Response,
    session: SessionResult = Depends(get_session),
    db: Session = Depends(get_db),
):
    """
    Report the current session. A valid session has its cookie written again
    (renewed when due), which is what clients call to resynchronise cookies.
    """
    if not isinstance(session, Authenticated):
        return SessionResponse(authenticated=False)

    user = AuthService.get_user_by_id(db, session.account_id)
    if user is None:
        return SessionResponse(authenticated=False)

    renewed = SessionService.refresh(db, session)
    if renewed is not None:
        set_session_cookie(response, renewed.token, renewed.expires_at)
        expires = renewed.expires_at
    else:
        set_session_cookie(response, session.token, session.expires_at)
        expires = session.expires_at

    return SessionResponse(authenticated=True, user=_session_user(user), expires=expires)
