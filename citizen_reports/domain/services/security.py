"""
JWT Security utilities for CitizenX authentication.

Access tokens carry the numeric user id in an `id` claim next to the
user's email. Passwords are hashed with bcrypt; device (MAC address)
users have no password at all.
"""
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from jose import jwt, JWTError

from citizen_reports.core.config import settings

ACCESS_TOKEN_TYPE = "access"
USER_ID_CLAIM = "id"
BCRYPT_MAX_LEN = 72  # bcrypt max password length in bytes


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to sign (see `build_user_claims`)
        expires_delta: Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT token string
    """
    now = datetime.utcnow()
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = dict(data, exp=now + lifetime, iat=now, type=ACCESS_TOKEN_TYPE)
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def build_user_claims(user_id: int, email: Optional[str] = None) -> dict:
    return {USER_ID_CLAIM: user_id, "email": email}


def verify_token(token: str, token_type: str = ACCESS_TOKEN_TYPE) -> Optional[dict]:
    """
    Decode a JWT and check its type.

    Returns:
        The claims, or None if the token is malformed, expired, signed with
        another key or of a different type
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None

    if payload.get("type") != token_type:
        return None
    return payload


def get_user_id_from_payload(payload: dict) -> Optional[int]:
    """
    Numeric user id from the `id` claim.

    JSON has a single number type, so an integral float (42.0) is accepted.
    Returns None for a missing claim, strings, booleans and fractions.
    """
    user_id = payload.get(USER_ID_CLAIM)

    # bool is an int subclass; a true/false claim is not a user id
    if isinstance(user_id, bool):
        return None
    if isinstance(user_id, int):
        return user_id
    if isinstance(user_id, float) and user_id.is_integer():
        return int(user_id)
    return None


# =============================================================================
# Password Hashing (bcrypt)
# =============================================================================

def _password_bytes(password: str) -> bytes:
    return password.encode('utf-8')[:BCRYPT_MAX_LEN]


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=12)).decode('utf-8')


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """
    Check a password against its bcrypt hash.
    Users without a password (device logins) never match.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode('utf-8'))
    except ValueError:
        return False
