from datetime import datetime
from typing import Optional
from uuid import UUID

from app.schemas.common import CamelModel


# Request schemas
# Fields are optional so that missing values reach the credential checks and
# produce their own messages instead of a generic schema error.
class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RegisterRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class EmailRequest(CamelModel):
    email: Optional[str] = None


class ResetPasswordRequest(CamelModel):
    token: Optional[str] = None
    new_password: Optional[str] = None


# Response schemas
class SessionUser(CamelModel):
    """Account projection exposed to clients. Never includes secrets."""
    id: UUID
    name: Optional[str] = None
    email: str
    email_verified: bool


class LoginResponse(CamelModel):
    success: bool = True
    message: str = "Signed in successfully."
    user: SessionUser
    redirect: str = "/home"


class SessionResponse(CamelModel):
    authenticated: bool
    user: Optional[SessionUser] = None
    expires: Optional[datetime] = None


class RegisterResponse(CamelModel):
    success: bool = True
    message: str
    requires_verification: bool = True
