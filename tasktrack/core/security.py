from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from jose import JWTError, jwt

from tasktrack.core.config import get_settings


def create_access_token(user_id: UUID, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token for a user."""
    settings = get_settings()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    
    to_encode = {
        "sub": str(user_id),
        "exp": expire,
        "type": "access"
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> Optional[UUID]:
    """Decode and validate JWT token. Returns user_id if valid."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        user_id: str = payload.get("sub")
        
        if user_id is None or payload.get("type") != "access":
            return None
        
        return UUID(user_id)
    except (JWTError, ValueError):
        return None
