"""Authentication utilities for JWT tokens and password hashing.

Sessions are either anonymous (a fresh user id with no credentials) or
email/password. Both yield the same token shape; the inventory layer only
needs the user id from the ``sub`` claim.
"""

import logging
import os
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt
from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Dummy hash for constant-time comparison when user doesn't exist
DUMMY_HASH = "$2b$12$LQv3c1yqBWVHxkd0LHAkCOYz6TtxMQJqhN8/X4.F3z3z3z3z3z3z3"

# JWT settings
_DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60
REFRESH_TOKEN_EXPIRE_DAYS = 30


class SecretKeyError(Exception):
    """Raised when SECRET_KEY is not properly configured for production."""

    pass


def _get_secret_key() -> str:
    """Get the SECRET_KEY with security checks.

    Raises:
        SecretKeyError: If SECRET_KEY is not set outside debug mode.

    Returns:
        The configured secret key.
    """
    secret_key = os.getenv("JWT_SECRET_KEY", os.getenv("SECRET_KEY", _DEFAULT_SECRET_KEY))
    debug_mode = os.getenv("DEBUG", "false").lower() in ("true", "1", "yes")
    env = os.getenv("ENV", os.getenv("ENVIRONMENT", "development")).lower()
    is_production = env in ("production", "prod")

    if secret_key == _DEFAULT_SECRET_KEY:
        if is_production or not debug_mode:
            raise SecretKeyError(
                "SECRET_KEY must be set to a secure value in production. "
                'Generate one with: python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        logger.warning(
            "Using default SECRET_KEY. This is insecure and should only be used for development."
        )

    return secret_key


# Validate and get SECRET_KEY at module load time
SECRET_KEY = _get_secret_key()


class TokenData(BaseModel):
    """Data stored in JWT token."""

    user_id: str
    email: Optional[str] = None
    is_anonymous: bool = False


class Token(BaseModel):
    """Token response model with access and refresh tokens."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user_id: str


class AccessTokenResponse(BaseModel):
    """Response model for token refresh endpoint."""

    access_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(BaseModel):
    """Request model for token refresh endpoint."""

    refresh_token: str


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return bcrypt.hashpw(
        password.encode("utf-8"), bcrypt.gensalt()
    ).decode("utf-8")


def validate_password(password: str) -> tuple[bool, str]:
    """Validate password meets complexity requirements.

    Requirements:
    - At least 8 characters
    - At least one letter
    - At least one number

    Returns:
        Tuple of (is_valid, error_message). If valid, error_message is empty.
    """
    if len(password) < 8:
        return False, "Password must be at least 8 characters"
    if not re.search(r"[A-Za-z]", password):
        return False, "Password must contain at least one letter"
    if not re.search(r"\d", password):
        return False, "Password must contain at least one number"
    return True, ""


def _create_token(
    token_type: str,
    user_id: str,
    email: Optional[str],
    is_anonymous: bool,
    expires_delta: timedelta,
) -> str:
    to_encode = {
        "sub": user_id,
        "email": email,
        "anon": is_anonymous,
        "exp": datetime.now(timezone.utc) + expires_delta,
        "type": token_type,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_access_token(
    user_id: str,
    email: Optional[str] = None,
    is_anonymous: bool = False,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token.

    Args:
        user_id: The user's ID
        email: The user's email (None for anonymous sessions)
        is_anonymous: Whether the session is anonymous
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    return _create_token(
        "access",
        user_id,
        email,
        is_anonymous,
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(
    user_id: str,
    email: Optional[str] = None,
    is_anonymous: bool = False,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT refresh token with longer expiry."""
    return _create_token(
        "refresh",
        user_id,
        email,
        is_anonymous,
        expires_delta or timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
    )


def _decode_token(token: str, expected_type: str) -> Optional[TokenData]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != expected_type:
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    return TokenData(
        user_id=str(user_id),
        email=payload.get("email"),
        is_anonymous=bool(payload.get("anon", False)),
    )


def decode_access_token(token: str) -> Optional[TokenData]:
    """Decode and validate a JWT access token.

    Returns:
        TokenData if valid, None if invalid, expired, or not an access token
    """
    return _decode_token(token, "access")


def decode_refresh_token(token: str) -> Optional[TokenData]:
    """Decode and validate a JWT refresh token.

    Returns:
        TokenData if valid refresh token, None if invalid, expired, or wrong type
    """
    return _decode_token(token, "refresh")
