"""HTTP middleware for the Story Sparks API."""

import logging
from typing import Callable, Optional
from urllib.parse import urlencode

from fastapi import Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings
from app.core.cookies import get_session_token, set_session_cookie

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"

        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"

        # Control referrer information
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "img-src 'self' data: https:; "
            "media-src 'self' blob:; "
            "frame-ancestors 'none'; "
            "base-uri 'self'; "
            "form-action 'self'"
        )

        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # Session-bearing API responses must not be cached
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
            response.headers["Pragma"] = "no-cache"

        return response


class RequestValidationMiddleware(BaseHTTPMiddleware):
    """Validate incoming requests for security."""

    # Maximum request body size (10MB, stories may carry inline images)
    MAX_BODY_SIZE = 10 * 1024 * 1024

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Check content length
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return JSONResponse(
                {"success": False, "error": "Request body too large", "error_code": "PAYLOAD_TOO_LARGE"},
                status_code=413,
            )

        # Validate content type for POST/PUT/PATCH
        if request.method in ("POST", "PUT", "PATCH"):
            content_type = request.headers.get("content-type", "")
            allowed_types = [
                "application/json",
                "application/x-www-form-urlencoded",
                "multipart/form-data",
            ]
            if content_type and not any(t in content_type for t in allowed_types):
                return JSONResponse(
                    {"success": False, "error": "Unsupported content type", "error_code": "UNSUPPORTED_MEDIA_TYPE"},
                    status_code=415,
                )

        return await call_next(request)


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Gatekeeper for protected paths.

    Only paths under PROTECTED_API_PREFIXES or PROTECTED_PAGE_PREFIXES are
    intercepted. An unauthenticated API call gets a 401 JSON body; an
    unauthenticated page request is redirected to the sign-in page. An
    authenticated request continues with request.state.session set, and
    gets a fresh cookie when its token is due for renewal.
    """

    PROTECTED_API_PREFIXES = ("/api/stories", "/api/users", "/api/audio")
    PROTECTED_PAGE_PREFIXES = ("/stories",)

    @staticmethod
    def _under(path: str, prefix: str) -> bool:
        return path == prefix or path.startswith(prefix + "/")

    @classmethod
    def classify(cls, path: str) -> Optional[str]:
        """Return "api", "page" or None for paths the middleware ignores."""
        if any(cls._under(path, p) for p in cls.PROTECTED_API_PREFIXES):
            return "api"
        if any(cls._under(path, p) for p in cls.PROTECTED_PAGE_PREFIXES):
            return "page"
        return None

    @staticmethod
    def _resolve(request: Request):
        from app.core.database import SessionLocal
        from app.services.session_service import Authenticated, SessionService

        factory = getattr(request.app.state, "db_session_factory", SessionLocal)
        db = factory()
        try:
            result = SessionService.validate_session(db, get_session_token(request))
            renewed = None
            if isinstance(result, Authenticated):
                renewed = SessionService.refresh(db, result)
            return result, renewed
        finally:
            db.close()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        kind = self.classify(request.url.path)
        if kind is None or request.method == "OPTIONS":
            return await call_next(request)

        result, renewed = await run_in_threadpool(self._resolve, request)

        if not result.is_authenticated:
            logger.info(f"Rejected {request.method} {request.url.path}: session {result.reason}")
            if kind == "api":
                return JSONResponse(
                    {"success": False, "error": "Not authorized", "error_code": "UNAUTHORIZED"},
                    status_code=401,
                )
            query = urlencode({"callbackUrl": str(request.url)})
            return RedirectResponse(f"{settings.SIGN_IN_URL}?{query}", status_code=307)

        request.state.session = result
        response = await call_next(request)

        if renewed is not None:
            set_session_cookie(response, renewed.token, renewed.expires_at)
        return response
