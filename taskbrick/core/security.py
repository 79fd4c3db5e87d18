"""
Security Module

Handles password hashing, JWT access/refresh token generation and validation.
Uses passlib with bcrypt and python-jose.

SECURITY NOTES:
- Access tokens are short-lived and carry the tenant the session is bound to
- Refresh tokens are signed with a separate secret and are also stored
  server-side, so they can be revoked (logout) and rotated
"""
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
import secrets
import uuid

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from taskbrick.config import get_settings

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class RefreshTokenExpired(Exception):
    """Refresh token signature is valid but the token has expired."""


class RefreshTokenInvalid(Exception):
    """Refresh token is malformed, forged, or not a refresh token."""


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash (constant-time)."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    NOTE: Intentionally slow. Don't call this in hot paths or tight loops.
    """
    return pwd_context.hash(password)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Token payload includes:
    - sub: user_id
    - tenant_id: the tenant this session is bound to
    - email, role, first_name, last_name: for the client's convenience
    - exp / iat / type
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    # iat is backdated slightly to tolerate clock skew between services
    to_encode.update({
        "exp": expire,
        "iat": datetime.utcnow() - timedelta(seconds=30),
        "type": ACCESS_TOKEN_TYPE,
    })

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT access token.

    Returns the payload if valid, None if invalid/expired or not an access token.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return payload


def create_refresh_token(user_id: str, expires_delta: Optional[timedelta] = None) -> tuple[str, datetime]:
    """
    Create a refresh token for a user.

    Returns (token, expires_at). The jti makes every token unique even when
    two are issued for the same user within the same second.
    """
    expire = datetime.utcnow() + (expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))
    payload = {
        "sub": user_id,
        "jti": uuid.uuid4().hex,
        "exp": expire,
        "iat": datetime.utcnow(),
        "type": REFRESH_TOKEN_TYPE,
    }
    token = jwt.encode(payload, settings.REFRESH_SECRET_KEY, algorithm=settings.ALGORITHM)
    return token, expire


def decode_refresh_token(token: str) -> Dict[str, Any]:
    """
    Decode a refresh token.

    Raises RefreshTokenExpired or RefreshTokenInvalid; callers map these to
    different client messages.
    """
    try:
        payload = jwt.decode(token, settings.REFRESH_SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as exc:
        raise RefreshTokenExpired() from exc
    except JWTError as exc:
        raise RefreshTokenInvalid() from exc

    if payload.get("type") != REFRESH_TOKEN_TYPE or not payload.get("sub"):
        raise RefreshTokenInvalid()
    return payload


def generate_reset_token() -> str:
    """Random token for password-reset links (40 hex chars)."""
    return secrets.token_hex(20)
