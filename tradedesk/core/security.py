# File: tradedesk/core/security.py
"""
Token utilities for TradeDesk.

Login and user management live in the identity layer; this module only
issues and verifies the bearer tokens that layer hands out.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from jose import JWTError, jwt

from tradedesk.core.config import settings
from tradedesk.core.exceptions import UnauthorizedException

ALGORITHM = settings.JWT_ALGORITHM


def create_access_token(
    subject: Union[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: Token subject (typically the user e-mail or ID)
        expires_delta: Optional token expiration time

    Returns:
        str: JWT access token
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"exp": expire, "sub": str(subject), "type": "access"}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate an access token.

    Raises:
        UnauthorizedException: If the token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise UnauthorizedException() from e

    if not payload.get("sub") or payload.get("type") != "access":
        raise UnauthorizedException()
    return payload
