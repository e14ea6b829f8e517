import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
from urllib.parse import urlencode

from app.core.config import settings
from app.core.sanitization import escape_for_display

logger = logging.getLogger(__name__)


class EmailService:
    """
    Transactional email sender (verification and password reset links).
    When SMTP_HOST is not configured the message is logged instead of sent.
    """

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        smtp_use_tls: bool = True,
        from_email: Optional[str] = None,
        app_base_url: str = "http://localhost:8000",
        frontend_url: str = "http://localhost:3000",
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or smtp_user
        self.app_base_url = app_base_url.rstrip("/")
        self.frontend_url = frontend_url.rstrip("/")

    @classmethod
    def from_settings(cls) -> "EmailService":
        return cls(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
            smtp_use_tls=settings.SMTP_USE_TLS,
            from_email=settings.EMAIL_FROM,
            app_base_url=settings.APP_BASE_URL,
            frontend_url=settings.FRONTEND_URL,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    @staticmethod
    def _redact(email: str) -> str:
        if "@" not in email:
            return "redacted"
        local, domain = email.split("@", 1)
        return f"{local[:2]}***@{domain}"

    def verification_url(self, token: str) -> str:
        return f"{self.app_base_url}/api/verify-email?{urlencode({'token': token})}"

    def password_reset_url(self, token: str) -> str:
        return f"{self.frontend_url}/reset-password?{urlencode({'token': token})}"

    def send_verification_email(self, email: str, name: str, token: str) -> None:
        url = self.verification_url(token)
        html_body = (
            f"<p>Hi <strong>{escape_for_display(name)}</strong>,</p>"
            "<p>Welcome to Story Sparks! Confirm your email address to start "
            "creating stories.</p>"
            f'<p><a href="{url}">Verify my account</a></p>'
            f"<p>Or paste this link into your browser: {url}</p>"
            f"<p>This link expires in {settings.VERIFICATION_TOKEN_EXPIRE_HOURS} hours. "
            "If you did not create this account you can ignore this email.</p>"
        )
        text_body = (
            f"Hi {name},\n\nVerify your Story Sparks account: {url}\n\n"
            f"This link expires in {settings.VERIFICATION_TOKEN_EXPIRE_HOURS} hours."
        )
        self._send(email, "Verify your Story Sparks account", html_body, text_body)

    def send_password_reset_email(self, email: str, name: str, token: str) -> None:
        url = self.password_reset_url(token)
        html_body = (
            f"<p>Hi <strong>{escape_for_display(name)}</strong>,</p>"
            "<p>We received a request to reset your Story Sparks password.</p>"
            f'<p><a href="{url}">Reset my password</a></p>'
            f"<p>Or paste this link into your browser: {url}</p>"
            f"<p>This link expires in {settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES} minutes. "
            "If you did not ask for a reset your account stays protected and you "
            "can ignore this email.</p>"
        )
        text_body = (
            f"Hi {name},\n\nReset your Story Sparks password: {url}\n\n"
            f"This link expires in {settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES} minutes."
        )
        self._send(email, "Reset your Story Sparks password", html_body, text_body)

    def _send(self, to_email: str, subject: str, html_body: str, text_body: str) -> None:
        """Send via SMTP. Raises smtplib.SMTPException / OSError on failure."""
        if not self.is_configured:
            logger.info(
                f"Email not configured, logging instead of sending to "
                f"{self._redact(to_email)}: {subject}\n{text_body}"
            )
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"Story Sparks <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        context = ssl.create_default_context()
        if self.smtp_use_tls:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                server.starttls(context=context)
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())
        else:
            with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context, timeout=30) as server:
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())

        logger.info(f"Email sent to {self._redact(to_email)}: {subject}")
