# core/security.py
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError, ExpiredSignatureError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db
from core.exceptions import Forbidden, Unauthorized
from models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(user_id: int, expires_minutes: Optional[int] = None) -> str:
    """Issue a short-lived access token for ``user_id``."""
    minutes = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    expires = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload = {
        "user_id": user_id,
        "type": "access",
        "exp": expires,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> int:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise Unauthorized("Token expired", code="TOKEN_EXPIRED")
    except JWTError:
        raise Unauthorized("Invalid token", code="INVALID_TOKEN")

    if payload.get("type") != "access":
        raise Unauthorized("Invalid token", code="INVALID_TOKEN")
    user_id = payload.get("user_id")
    if user_id is None:
        raise Unauthorized("Invalid token", code="INVALID_TOKEN")
    return int(user_id)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized("Unauthorized - No token provided", code="NO_TOKEN")

    user_id = decode_access_token(credentials.credentials)
    user = await db.get(User, user_id)
    if not user:
        raise Unauthorized("User not found")
    if not user.is_active:
        raise Forbidden("Account is deactivated")
    return user
