"""
Access token helpers (HS256 JWT).
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from consultrack.core.config import settings
from consultrack.core.logging import get_logger

logger = get_logger(__name__)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token.
    
    Args:
        data: Claims to embed; ``sub`` should carry the user id
        expires_delta: Lifetime override, defaults to ACCESS_TOKEN_EXPIRE_MINUTES
        
    Returns:
        Encoded JWT string
    """
    now = datetime.now(timezone.utc)
    expires = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = dict(data)
    if "sub" in payload:
        payload["sub"] = str(payload["sub"])
    payload.update({"iat": now, "exp": expires, "type": "access"})
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify an access token.
    
    Returns:
        The claims, or None when the token is invalid or expired
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired access token")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected invalid access token: {e}")
        return None
    
    if payload.get("type") != "access":
        return None
    return payload
