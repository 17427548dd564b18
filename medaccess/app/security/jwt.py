# medaccess/app/security/jwt.py
"""
JWT helpers (python-jose).

Access and refresh tokens carry the same claims ``{id, iat, exp, jti}``
but are signed with different secrets and lifetimes, so a refresh token
can never pass as an access token and vice versa.
"""
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from medaccess.app.core.config import Settings
from medaccess.app.core.dates import utcnow


def _encode(data: Dict[str, Any], secret: str, algorithm: str, expires_delta: timedelta) -> str:
    now = utcnow()
    to_encode = data.copy()
    to_encode.update({
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
        # Two tokens minted in the same second must still differ
        "jti": uuid.uuid4().hex,
    })
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def create_access_token(data: Dict[str, Any], settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(data, settings.ACCESS_TOKEN_SECRET, settings.ALGORITHM, expires_delta)


def create_refresh_token(data: Dict[str, Any], settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta is None:
        expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(data, settings.REFRESH_TOKEN_SECRET, settings.ALGORITHM, expires_delta)


def verify(token: Optional[str], secret: str, algorithm: str = "HS256") -> Optional[Dict[str, Any]]:
    """
    Check signature and expiry.

    Returns the claims, or None for any invalid/expired/malformed token,
    so callers treat None uniformly as "unauthenticated".
    """
    if not token:
        return None
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None
    if not claims.get("id"):
        return None
    return claims


def unverified_expiry(token: str) -> Optional[int]:
    """Read ``exp`` without checking the signature (used for denylist TTLs)."""
    try:
        exp = jwt.get_unverified_claims(token).get("exp")
    except JWTError:
        return None
    return int(exp) if exp is not None else None
