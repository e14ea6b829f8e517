from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4
import hashlib
import secrets

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Token type constant
TOKEN_TYPE_SESSION = "session"

REQUIRED_CLAIMS = ("sub", "jti", "iat", "exp")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def hash_token(token: str) -> str:
    """Create SHA-256 hash of a token for storage."""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_one_time_token() -> tuple[str, str]:
    """
    Create a random token for email verification or password reset.
    Returns (raw_token, token_hash). Only the hash is stored.
    """
    raw = secrets.token_hex(32)
    return raw, hash_token(raw)


def session_max_age() -> timedelta:
    return timedelta(days=settings.SESSION_MAX_AGE_DAYS)


def session_update_age() -> timedelta:
    return timedelta(hours=settings.SESSION_UPDATE_AGE_HOURS)


def create_session_token(
    user_id: str,
    email_verified: bool,
    issued_at: Optional[datetime] = None,
    expires_delta: Optional[timedelta] = None,
) -> tuple[str, dict]:
    """
    Create a signed session JWT.
    Returns (token, claims).
    """
    now = issued_at or datetime.utcnow()
    expire = now + (expires_delta or session_max_age())

    claims = {
        "sub": str(user_id),
        "jti": str(uuid4()),
        "iat": now,
        "exp": expire,
        "email_verified": bool(email_verified),
        "type": TOKEN_TYPE_SESSION,
    }

    # jose rewrites datetime claims in place; keep the caller's copy as datetimes
    encoded_jwt = jwt.encode(dict(claims), settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt, claims


def decode_session_token(token: str) -> Optional[dict]:
    """
    Verify a session JWT and return its payload if the signature, expiry,
    type and required claims are all valid.
    """
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None

    if payload.get("type") != TOKEN_TYPE_SESSION:
        return None

    for claim in REQUIRED_CLAIMS:
        if payload.get(claim) in (None, ""):
            return None

    if not isinstance(payload["iat"], (int, float)) or not isinstance(payload["exp"], (int, float)):
        return None

    return payload
