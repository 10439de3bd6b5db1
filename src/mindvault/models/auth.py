"""Account request models."""

from typing import Optional

from pydantic import BaseModel


class RegisterRequest(BaseModel):
    """Request model for account registration."""

    email: Optional[str] = None
    password: Optional[str] = None
    username: Optional[str] = None


class LoginRequest(BaseModel):
    """Request model for login."""

    email: Optional[str] = None
    password: Optional[str] = None
