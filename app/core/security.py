"""Courier access tokens (JWT, HS256 by default)."""
from datetime import datetime, timedelta, timezone
from typing import Optional, Any
import uuid

from jose import JWTError, jwt

from app.config import settings

ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    courier_id: str | uuid.UUID,
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[dict[str, Any]] = None
) -> str:
    """
    Issue an access token whose subject is the courier ID.

    Args:
        courier_id: Courier the token authenticates
        expires_delta: Lifetime, ACCESS_TOKEN_EXPIRE_MINUTES when omitted
        additional_claims: Extra claims merged into the payload
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        "sub": str(courier_id),
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "jti": str(uuid.uuid4()),
        "type": ACCESS_TOKEN_TYPE,
    }
    if additional_claims:
        claims.update(additional_claims)

    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[dict[str, Any]]:
    """Claims of a valid token, None when the signature or expiry check fails."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def verify_access_token(token: str) -> Optional[str]:
    """Courier ID carried by an access token, or None."""
    claims = decode_token(token)
    if claims is None or claims.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return claims.get("sub")
