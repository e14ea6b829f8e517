from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import text
from slowapi.errors import RateLimitExceeded
import logging

from app.core.config import settings
from app.core.database import SessionLocal, engine
from app.core.exceptions import StorySparksException
from app.core.rate_limit import public_limiter
from app.core.middleware import (
    SecurityHeadersMiddleware,
    RequestValidationMiddleware,
    SessionMiddleware,
)
from app.api.routes.auth import router as auth_router
from app.api.routes.account import router as account_router
from app.api.routes.stories import router as stories_router
from app.api.routes.users import router as users_router
from app.api.routes.audio import router as audio_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def run_migrations():
    """Run database migrations on startup."""
    try:
        from alembic.config import Config
        from alembic import command

        logger.info("Running database migrations...")
        alembic_cfg = Config("alembic.ini")
        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations completed successfully")
    except Exception as e:
        # Startup continues, migrations might already be applied
        logger.error(f"Failed to run migrations: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info("Starting Story Sparks API...")

    for error in settings.validate_required_secrets():
        logger.warning(f"Configuration problem: {error}")

    # Run migrations in production
    if settings.is_production:
        run_migrations()

    # Start rate-limit and revocation sweeps
    from app.core.scheduler import start_scheduler, shutdown_scheduler
    if settings.SCHEDULER_ENABLED:
        start_scheduler()

    logger.info("Story Sparks API started successfully")
    yield
    # Shutdown
    shutdown_scheduler()
    logger.info("Shutting down Story Sparks API...")


app = FastAPI(
    title="Story Sparks API",
    description="Personalised children's stories with account-scoped libraries",
    version="1.0.0",
    lifespan=lifespan,
    # Disable docs in production
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)

# Route-level rate limiting
app.state.limiter = public_limiter

# Session middleware opens its own database sessions
app.state.db_session_factory = SessionLocal


def _error_response(status_code: int, error: str, error_code: str, **extra) -> JSONResponse:
    content = {"success": False, "error": error, "error_code": error_code}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


# Exception handlers
@app.exception_handler(StorySparksException)
async def story_sparks_exception_handler(request: Request, exc: StorySparksException):
    """Handle custom Story Sparks exceptions."""
    response = _error_response(exc.status_code, exc.detail, exc.error_code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request schema errors."""
    details = [
        {"field": ".".join(str(part) for part in error["loc"][1:]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return _error_response(400, "Invalid request data.", "VALIDATION_ERROR", details=details)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    """Handle slowapi route limits."""
    logger.warning(f"Route rate limit exceeded for {request.url.path}: {exc.detail}")
    return _error_response(
        429,
        "Too many requests. Please try again later.",
        "RATE_LIMIT_EXCEEDED",
    )


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle database errors."""
    logger.error(f"Database error: {exc}", exc_info=True)
    return _error_response(500, "A database error occurred", "DATABASE_ERROR")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return _error_response(500, "An unexpected error occurred", "INTERNAL_ERROR")


# Middleware (order matters - last added runs first)
app.add_middleware(SessionMiddleware)
app.add_middleware(RequestValidationMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# Configure CORS with tightened settings
allowed_origins = [settings.FRONTEND_URL]
if not settings.is_production:
    # Allow localhost variations in development
    allowed_origins.extend([
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ])

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-Requested-With",
        "X-Retry-Auth",
    ],
    max_age=600,  # Cache preflight requests for 10 minutes
)

# Include routers
app.include_router(auth_router, prefix="/api")
app.include_router(account_router, prefix="/api")
app.include_router(stories_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(audio_router, prefix="/api")


@app.get("/")
def root():
    return {"message": "Welcome to Story Sparks API"}


@app.get("/health")
def health_check():
    """Health check endpoint for load balancers and monitoring."""
    health_status = {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": "1.0.0",
    }

    # Check database connectivity
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["database"] = "disconnected"

    return health_status
