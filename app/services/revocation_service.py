import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models import RevokedToken

logger = logging.getLogger(__name__)


class RevocationService:
    """Durable record of session tokens invalidated before their expiry."""

    @staticmethod
    def is_revoked(db: Session, jti: str) -> bool:
        """Point lookup on the unique jti index."""
        return (
            db.query(RevokedToken.id).filter(RevokedToken.jti == jti).first()
            is not None
        )

    @staticmethod
    def revoke(
        db: Session,
        jti: str,
        expires_at: datetime,
        user_id: Optional[UUID] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> bool:
        """
        Revoke a token until expires_at.
        Idempotent: an existing record is left untouched, expiry included.
        Returns True if a new record was written.
        """
        if RevocationService.is_revoked(db, jti):
            return False

        db.add(RevokedToken(
            jti=jti,
            user_id=user_id,
            expires_at=expires_at,
            revoked_at=datetime.utcnow(),
            ip=ip,
            user_agent=user_agent[:512] if user_agent else None,
        ))
        try:
            db.commit()
        except IntegrityError:
            # Concurrent logout with the same token inserted first
            db.rollback()
            return False
        return True

    @staticmethod
    def sweep(db: Session, now: Optional[datetime] = None) -> int:
        """
        Delete records whose token has expired on its own.
        Returns number of records removed.
        """
        cutoff = now or datetime.utcnow()
        deleted = db.query(RevokedToken).filter(
            RevokedToken.expires_at < cutoff
        ).delete(synchronize_session=False)
        db.commit()
        return deleted

    @staticmethod
    def count(db: Session) -> int:
        return db.query(RevokedToken).count()


def sweep_revoked_tokens() -> int:
    """Scheduled job: drop revocation records past their token's expiry."""
    from app.core.database import SessionLocal

    db = SessionLocal()
    try:
        removed = RevocationService.sweep(db)
        logger.info(f"Revocation sweep removed {removed} expired records")
        return removed
    except Exception as e:
        db.rollback()
        logger.error(f"Revocation sweep failed: {e}")
        return 0
    finally:
        db.close()
