"""
Session tokens: issuance and validation.

Every privileged request goes through validate_session exactly once. It
never raises: an invalid, expired, revoked or unverifiable token yields an
Anonymous result and callers treat it as unauthenticated.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.security import (
    create_session_token,
    decode_session_token,
    session_update_age,
)
from app.models import User
from app.services.revocation_service import RevocationService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Anonymous:
    """No usable session. reason is for logs only, never shown to clients."""
    reason: str = "missing"

    @property
    def is_authenticated(self) -> bool:
        return False


@dataclass(frozen=True)
class Authenticated:
    account_id: UUID
    email_verified: bool
    jti: str
    issued_at: datetime
    expires_at: datetime
    token: str

    @property
    def is_authenticated(self) -> bool:
        return True

    def needs_refresh(self, now: Optional[datetime] = None) -> bool:
        """True once the token is older than the session update age."""
        now = now or datetime.utcnow()
        return now - self.issued_at >= session_update_age()


SessionResult = Union[Anonymous, Authenticated]


@dataclass(frozen=True)
class IssuedSession:
    token: str
    jti: str
    expires_at: datetime


def _epoch(value: datetime) -> int:
    return calendar.timegm(value.utctimetuple())


class SessionService:
    """Mint and validate signed session tokens."""

    @staticmethod
    def issue(user: User) -> IssuedSession:
        """Mint a session token carrying the account id and verification flag."""
        token, claims = create_session_token(str(user.id), user.is_email_verified)
        return IssuedSession(token=token, jti=claims["jti"], expires_at=claims["exp"])

    @staticmethod
    def validate_session(db: Session, token: Optional[str]) -> SessionResult:
        """
        Check, in order: signature/shape/expiry, revocation, account existence,
        and that the token was not issued before the last password change.
        """
        if not token:
            return Anonymous("missing")

        payload = decode_session_token(token)
        if payload is None:
            return Anonymous("invalid")

        try:
            account_id = UUID(str(payload["sub"]))
        except ValueError:
            return Anonymous("invalid")

        jti = str(payload["jti"])
        issued_at = int(payload["iat"])

        try:
            if RevocationService.is_revoked(db, jti):
                return Anonymous("revoked")

            user = db.query(User).filter(User.id == account_id).first()
        except SQLAlchemyError as e:
            # Deny on storage failure
            logger.error(f"Session validation failed on storage lookup: {e}")
            db.rollback()
            return Anonymous("error")

        if user is None:
            return Anonymous("unknown_account")

        if user.password_changed_at is not None and issued_at < _epoch(user.password_changed_at):
            return Anonymous("superseded")

        return Authenticated(
            account_id=account_id,
            email_verified=bool(payload.get("email_verified", user.is_email_verified)),
            jti=jti,
            issued_at=datetime.utcfromtimestamp(issued_at),
            expires_at=datetime.utcfromtimestamp(int(payload["exp"])),
            token=token,
        )

    @staticmethod
    def refresh(db: Session, session: Authenticated) -> Optional[IssuedSession]:
        """
        Re-issue a token for a session older than the update age.
        Returns None when no refresh is due, the account is gone, or the
        account lookup fails; the current token stays in use.
        """
        if not session.needs_refresh():
            return None
        try:
            user = db.query(User).filter(User.id == session.account_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Session refresh skipped on storage lookup: {e}")
            db.rollback()
            return None
        if user is None:
            return None
        return SessionService.issue(user)
