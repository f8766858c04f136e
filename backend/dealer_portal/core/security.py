"""
Security utilities for authentication and signed portal cookies
"""
from datetime import timedelta
from typing import Any, Optional

import bcrypt
from jose import JWTError, jwt

from dealer_portal.core.config import settings
from dealer_portal.core.timezone import utc_now


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    password_bytes = plain_password.encode('utf-8')
    hash_bytes = hashed_password.encode('utf-8')
    return bcrypt.checkpw(password_bytes, hash_bytes)


def get_password_hash(password: str) -> str:
    """Generate password hash"""
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def create_access_token(
    subject: str,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[dict[str, Any]] = None
) -> str:
    """Create JWT access token for staff users"""
    if expires_delta:
        expire = utc_now() + expires_delta
    else:
        expire = utc_now() + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode = {
        "sub": subject,
        "exp": expire,
        "type": "access"
    }

    if additional_claims:
        to_encode.update(additional_claims)

    encoded_jwt = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.algorithm
    )
    return encoded_jwt


def decode_token(token: str) -> Optional[dict[str, Any]]:
    """Decode and validate JWT token"""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm]
        )
        return payload
    except JWTError:
        return None


def verify_token(token: str, token_type: str = "access") -> Optional[str]:
    """Verify token and return subject if valid"""
    payload = decode_token(token)
    if payload is None:
        return None

    if payload.get("type") != token_type:
        return None

    return payload.get("sub")


def sign_cookie_value(key: str, value: str, max_age: Optional[int] = None) -> str:
    """
    Sign a portal storage value so the browser cannot forge it.
    The storage key is bound into the token, a value signed for one
    cookie is rejected when replayed into another.
    """
    to_encode: dict[str, Any] = {"k": key, "v": value, "type": "portal_cookie"}
    if max_age is not None:
        to_encode["exp"] = utc_now() + timedelta(seconds=max_age)
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def unsign_cookie_value(key: str, token: str) -> Optional[str]:
    """Return the signed value, or None when the token is forged, expired or for another key"""
    payload = decode_token(token)
    if payload is None:
        return None
    if payload.get("type") != "portal_cookie" or payload.get("k") != key:
        return None
    value = payload.get("v")
    return value if isinstance(value, str) else None
