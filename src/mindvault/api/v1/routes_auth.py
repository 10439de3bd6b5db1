"""Account registration and login routes.

No session or token is issued; clients pass ``userId`` explicitly on
later calls.
"""

import logging

from fastapi import APIRouter, Body, Depends

from mindvault.api.dependencies import get_credential_store, get_settings
from mindvault.core.config import Settings
from mindvault.core.exceptions import (
    ConflictError,
    InternalError,
    InvalidCredentialsError,
    MindvaultError,
    ValidationError,
)
from mindvault.models.auth import LoginRequest, RegisterRequest
from mindvault.storage.credentials import (
    BCRYPT_MAX_PASSWORD_BYTES,
    CredentialStore,
    hash_password,
    verify_password,
)

router = APIRouter(tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/register", status_code=201)
async def register(
    request: RegisterRequest = Body(...),
    store: CredentialStore = Depends(get_credential_store),
    app_settings: Settings = Depends(get_settings),
) -> dict:
    """Create an account."""
    if not request.email or not request.password or not request.username:
        raise ValidationError("email, password and username are required")
    if len(request.password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")

    try:
        if await store.find_by_email(request.email) is not None:
            raise ConflictError("Email is already registered")
        password_hash = await hash_password(request.password, rounds=app_settings.BCRYPT_ROUNDS)
        user = await store.create_user(request.email, password_hash, request.username)

    except MindvaultError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during registration: {e}", exc_info=True)
        raise InternalError("Internal server error", details=str(e)) from e

    return {"message": "Registration successful", "user": user.public_dict()}


@router.post("/login")
async def login(
    request: LoginRequest = Body(...),
    store: CredentialStore = Depends(get_credential_store),
) -> dict:
    """Check credentials and return the account's public fields."""
    if not request.email or not request.password:
        raise ValidationError("email and password are required")

    try:
        user = await store.find_by_email(request.email)
        if user is None or not await verify_password(request.password, user.password_hash):
            logger.info("Login rejected", extra={"email_domain": request.email.rpartition("@")[2]})
            raise InvalidCredentialsError("Invalid email or password")

    except MindvaultError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during login: {e}", exc_info=True)
        raise InternalError("Internal server error", details=str(e)) from e

    return {
        "message": "Login successful",
        "user": {"id": user.id, "email": user.email, "username": user.username},
    }
