"""
Zoo Registry API: Password Hashing & Bearer Tokens
===================================================

What:  bcrypt hashing/verification and HS256 JWT issue/verify.
How:   bcrypt with a per-hash random salt (cost factor from settings);
       python-jose for signing. Both are pure functions of their inputs and
       settings; no state is kept between calls.
Who:   IdentityService only.

Token claims:
    sub       user id (the only claim trusted for authorization)
    username  denormalized, informational
    iat       issued-at (UTC epoch seconds)
    exp       expiry, judged against wall-clock time at verification

Security Note:
    Neither plaintext passwords, hashes nor tokens are ever logged here.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from zoo_api.config import settings
from zoo_api.exceptions import AuthError, ValidationError

# bcrypt silently ignores input past 72 bytes; longer passwords are refused
BCRYPT_MAX_BYTES = 72


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a plaintext password with a fresh random salt.

    Raises:
        ValidationError: The UTF-8 encoding exceeds bcrypt's 72-byte limit.
    """
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise ValidationError(
            f"Password must be at most {BCRYPT_MAX_BYTES} bytes",
            field="password",
        )
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Re-derive the hash from the stored salt and compare digests."""
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_access_token(
    user_id: str,
    username: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Issue a signed token for `user_id`, valid for the configured window."""
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    claims = {
        "sub": user_id,
        "username": username,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + expires_delta).timestamp()),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises:
        AuthError: Expired, badly signed, malformed, or missing `sub`.
    """
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except ExpiredSignatureError as e:
        raise AuthError("Token has expired") from e
    except JWTError as e:
        raise AuthError("Invalid token") from e

    if not claims.get("sub"):
        raise AuthError("Invalid token")
    return claims
