"""
app/core/security.py

Purpose: Password hashing and JWT handling

- bcrypt hashing / verification
- Access and refresh token issuance (HS256)
- Token decoding with type checks
- Bearer header parsing
"""

import jwt
import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.core.logging import get_logger
from utils.constants import MAX_PASSWORD_BYTES

logger = get_logger(__name__)

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not password or not hashed:
        return False
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash stored on the account
        logger.warning("Stored password hash could not be parsed")
        return False


def _create_token(user_id: str, email: str, role: str, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "email": email,
        "role": role,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: str, email: str, role: str) -> str:
    """
    Generate a JWT access token.

    Args:
        user_id: User ObjectId as string
        email: User email
        role: user / owner / admin

    Returns:
        Encoded JWT token
    """
    return _create_token(
        user_id, email, role, TOKEN_TYPE_ACCESS,
        timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    )


def create_refresh_token(user_id: str, email: str, role: str) -> str:
    return _create_token(
        user_id, email, role, TOKEN_TYPE_REFRESH,
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    )


def create_token_pair(user_id: str, email: str, role: str) -> Dict[str, Any]:
    return {
        "access_token": create_access_token(user_id, email, role),
        "refresh_token": create_refresh_token(user_id, email, role),
        "token_type": "Bearer",
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_DAYS * 24 * 3600,
    }


def decode_token(token: str, expected_type: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify and decode a JWT token.

    Args:
        token: Encoded JWT
        expected_type: "access" or "refresh"; None accepts either

    Returns:
        Decoded payload

    Raises:
        AuthenticationError: If the token is invalid, expired or of the wrong type
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise AuthenticationError("Invalid or expired token")
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected invalid token: {e}")
        raise AuthenticationError("Invalid or expired token")

    # Tokens issued before typed tokens existed carry no type and count as access tokens
    token_type = payload.get("type", TOKEN_TYPE_ACCESS)
    if expected_type and token_type != expected_type:
        raise AuthenticationError("Invalid or expired token")

    if not payload.get("userId"):
        raise AuthenticationError("Invalid or expired token")

    return payload


def extract_token_from_header(authorization: Optional[str]) -> Optional[str]:
    """Returns the token from 'Bearer <token>', or None for anything else."""
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]
