import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    AlreadyExistsError,
    InvalidCredentialsError,
    RateLimitError,
    UnverifiedAccountError,
    ValidationError,
)
from app.core.rate_limit import AttemptLimiter
from app.core.sanitization import (
    MAX_LENGTHS,
    normalize_email,
    sanitize_name,
    validate_email,
)
from app.core.security import (
    generate_one_time_token,
    get_password_hash,
    hash_token,
    pwd_context,
    verify_password,
)
from app.models import User
from app.services.email_service import EmailService
from app.services.session_service import IssuedSession, SessionService

logger = logging.getLogger(__name__)


MIN_PASSWORD_LENGTH = 8

RESEND_VERIFICATION_MESSAGE = (
    "If the email is registered, you will receive a new verification link."
)
PASSWORD_RESET_REQUEST_MESSAGE = (
    "If the email is registered, you will receive a link to reset your password."
)
REGISTERED_MESSAGE = (
    "Account created! We sent you a verification email. Check your inbox and "
    "click the link to activate your account."
)


def validate_password_strength(password: str) -> None:
    """Validate password meets minimum requirements. Raises ValidationError if weak."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password) > MAX_LENGTHS["password"]:
        raise ValidationError(f"Password must be at most {MAX_LENGTHS['password']} characters")
    if not any(c.isupper() for c in password):
        raise ValidationError("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in password):
        raise ValidationError("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in password):
        raise ValidationError("Password must contain at least one number")


class AuthService:
    """Service for handling authentication business logic."""

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get a user by (lowercased) email address."""
        return db.query(User).filter(User.email == normalize_email(email)).first()

    @staticmethod
    def get_user_by_id(db: Session, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def authorize(
        db: Session,
        limiter: AttemptLimiter,
        ip: str,
        email: Optional[str],
        password: Optional[str],
    ) -> User:
        """
        Verify credentials. Each failure mode raises its own error:
        missing fields, bad email format, rate limit (IP, then email),
        unknown account or wrong password (same message for both),
        unverified email.
        """
        if not email or not password:
            logger.warning("Login attempt with missing credentials")
            raise ValidationError("Please enter your email and password.")

        email = normalize_email(email)
        if not validate_email(email):
            logger.warning(f"Login attempt with invalid email format: {email}")
            raise ValidationError("The email format is not valid.")

        if not limiter.allow_ip(ip):
            logger.warning(f"Login rate limit exceeded for IP {ip} (email: {email})")
            raise RateLimitError(
                "Too many sign-in attempts. Please try again later."
            )
        if not limiter.allow_email(email):
            logger.warning(f"Login rate limit exceeded for email: {email}")
            raise RateLimitError(
                "Too many sign-in attempts. Please try again later."
            )

        user = AuthService.get_user_by_email(db, email)
        if user is None:
            # Keep response time in line with a real hash comparison
            pwd_context.dummy_verify()
            logger.warning(f"Failed login attempt for email: {email}")
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            logger.warning(f"Failed login attempt for email: {email}")
            raise InvalidCredentialsError()

        if not user.is_email_verified:
            logger.warning(f"Login attempt with unverified email: {email}")
            raise UnverifiedAccountError()

        return user

    @staticmethod
    def login(
        db: Session,
        limiter: AttemptLimiter,
        ip: str,
        email: Optional[str],
        password: Optional[str],
    ) -> tuple[User, IssuedSession]:
        """Authorize credentials and mint a session token."""
        user = AuthService.authorize(db, limiter, ip, email, password)

        user.last_login_at = datetime.utcnow()
        db.commit()
        db.refresh(user)

        session = SessionService.issue(user)
        logger.info(f"Successful login for user: {user.email}")
        return user, session

    @staticmethod
    def register(
        db: Session,
        limiter: AttemptLimiter,
        ip: str,
        email_service: EmailService,
        email: Optional[str],
        password: Optional[str],
        name: Optional[str],
    ) -> User:
        """
        Create an unverified account and send the verification link.
        Does not sign the user in.
        """
        if not email or not password or not name:
            logger.warning("Register attempt with missing fields")
            raise ValidationError("Please enter your name, email and password.")

        email = normalize_email(email)

        if not limiter.allow_ip(ip):
            logger.warning(f"Register rate limit exceeded for IP: {ip}")
            raise RateLimitError(
                "Too many registration requests. Please try again later."
            )
        if not limiter.allow_email(email):
            logger.warning(f"Register rate limit exceeded for email: {email}")
            raise RateLimitError(
                "Too many registration attempts for this email. Please try again later."
            )

        if len(email) > MAX_LENGTHS["email"]:
            logger.warning("Register attempt with oversized email")
            raise ValidationError("The email is too long.")
        if not validate_email(email):
            logger.warning(f"Register attempt with invalid email format: {email}")
            raise ValidationError("The email format is not valid.")

        validate_password_strength(password)

        clean_name = sanitize_name(name)
        if not clean_name:
            raise ValidationError("Please enter your name, email and password.")

        if AuthService.get_user_by_email(db, email):
            logger.warning(f"Registration attempt with existing email: {email}")
            raise AlreadyExistsError(detail="This email is already registered.")

        raw_token, token_hash = generate_one_time_token()
        user = User(
            email=email,
            name=clean_name,
            password_hash=get_password_hash(password),
            is_email_verified=False,
            email_verification_token=token_hash,
            email_verification_expires=datetime.utcnow()
            + timedelta(hours=settings.VERIFICATION_TOKEN_EXPIRE_HOURS),
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        # The account stays usable if sending fails; a resend can be requested
        try:
            email_service.send_verification_email(user.email, user.name or "there", raw_token)
        except Exception as e:
            logger.error(f"Error sending verification email to {user.email}: {e}")

        logger.info(f"Successful registration for user: {user.email}")
        return user

    @staticmethod
    def verify_email(db: Session, token: Optional[str]) -> User:
        """Flip the verification flag for an unexpired, unused token."""
        if not token:
            raise ValidationError("Verification token is required.")

        user = db.query(User).filter(
            User.email_verification_token == hash_token(token),
            User.email_verification_expires > datetime.utcnow(),
            User.is_email_verified == False,  # noqa: E712
        ).first()

        if user is None:
            raise ValidationError(
                "Invalid or expired verification token. Please request a new verification link."
            )

        user.is_email_verified = True
        user.email_verified_at = datetime.utcnow()
        user.email_verification_token = None
        user.email_verification_expires = None
        db.commit()
        db.refresh(user)

        logger.info(f"Email verified successfully for user: {user.email}")
        return user

    @staticmethod
    def resend_verification(
        db: Session,
        email_service: EmailService,
        email: Optional[str],
    ) -> str:
        """Issue a fresh verification token. Unknown emails get the same reply."""
        if not email:
            raise ValidationError("Email is required.")

        user = AuthService.get_user_by_email(db, email)
        if user is None:
            return RESEND_VERIFICATION_MESSAGE

        if user.is_email_verified:
            raise ValidationError("This email has already been verified.")

        raw_token, token_hash = generate_one_time_token()
        user.email_verification_token = token_hash
        user.email_verification_expires = datetime.utcnow() + timedelta(
            hours=settings.VERIFICATION_TOKEN_EXPIRE_HOURS
        )
        db.commit()

        # Same reply as for unknown emails even when sending fails
        try:
            email_service.send_verification_email(user.email, user.name or "there", raw_token)
            logger.info(f"Verification email resent to: {user.email}")
        except Exception as e:
            logger.error(f"Error resending verification email to {user.email}: {e}", exc_info=True)
        return RESEND_VERIFICATION_MESSAGE

    @staticmethod
    def request_password_reset(
        db: Session,
        email_service: EmailService,
        email: Optional[str],
    ) -> str:
        """Issue a one-hour reset token. Unknown emails get the same reply."""
        if not email:
            raise ValidationError("Email is required.")

        user = AuthService.get_user_by_email(db, email)
        if user is None:
            logger.warning(f"Password reset requested for unknown email: {normalize_email(email)}")
            return PASSWORD_RESET_REQUEST_MESSAGE

        raw_token, token_hash = generate_one_time_token()
        user.password_reset_token = token_hash
        user.password_reset_expires = datetime.utcnow() + timedelta(
            minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES
        )
        db.commit()

        try:
            email_service.send_password_reset_email(user.email, user.name or "there", raw_token)
        except Exception as e:
            logger.error(f"Error sending password reset email to {user.email}: {e}", exc_info=True)
        return PASSWORD_RESET_REQUEST_MESSAGE

    @staticmethod
    def reset_password(db: Session, token: Optional[str], new_password: Optional[str]) -> User:
        """
        Set a new password from a reset token. Sessions issued before the
        reset stop validating.
        """
        if not token or not new_password:
            raise ValidationError("Token and new password are required.")

        user = db.query(User).filter(
            User.password_reset_token == hash_token(token),
            User.password_reset_expires > datetime.utcnow(),
        ).first()

        if user is None:
            raise ValidationError("Invalid or expired token.")

        validate_password_strength(new_password)

        user.password_hash = get_password_hash(new_password)
        user.password_reset_token = None
        user.password_reset_expires = None
        user.password_changed_at = datetime.utcnow()
        db.commit()
        db.refresh(user)

        logger.info(f"Password reset completed for user: {user.email}")
        return user
