from __future__ import annotations

import os
import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from shoplist.db.database import get_db
from shoplist.db.models import User

TOKEN_COOKIE = "token"
_JWT_ALGORITHM = "HS256"
_JWT_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days


def _jwt_secret() -> str:
    return os.getenv("JWT_SECRET", "")


def create_access_token(user: User) -> str:
    secret = _jwt_secret()
    if not secret:
        raise RuntimeError("JWT_SECRET environment variable not set")
    expire = datetime.utcnow() + timedelta(minutes=_JWT_EXPIRE_MINUTES)
    claims = {"sub": str(user.id), "email": user.email, "exp": expire}
    return jwt.encode(claims, secret, algorithm=_JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify a token and return its claims. Raises JWTError (ExpiredSignatureError on expiry)."""
    secret = _jwt_secret()
    if not secret:
        raise JWTError("JWT secret not configured")
    return jwt.decode(token, secret, algorithms=[_JWT_ALGORITHM])


def decode_access_token_raw(token: str) -> Optional[str]:
    """Decode a JWT token and return the user_id (sub claim), or None if invalid."""
    try:
        return decode_access_token(token).get("sub")
    except JWTError:
        return None


def extract_token(request: Request) -> Optional[str]:
    """Token from the auth cookie, falling back to an ``Authorization: Bearer`` header.

    Mobile browsers (iOS Safari in particular) drop cross-site cookies, so the
    client also keeps the token it received on the OAuth redirect and sends it
    as a bearer header.
    """
    token = request.cookies.get(TOKEN_COOKIE)
    if token:
        return token
    header = request.headers.get("authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def _load_user(db: AsyncSession, user_id: Optional[str]) -> Optional[User]:
    if not user_id:
        return None
    try:
        uid = uuid.UUID(user_id)
    except ValueError:
        return None
    return await db.get(User, uid)


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    token = extract_token(request)
    if not token:
        raise _unauthorized("Authentication required")

    try:
        claims = decode_access_token(token)
    except ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except JWTError:
        raise _unauthorized("Invalid token")

    user = await _load_user(db, claims.get("sub"))
    if user is None:
        raise _unauthorized("User not found")
    return user


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but returns None instead of raising."""
    token = extract_token(request)
    if not token:
        return None
    user_id = decode_access_token_raw(token)
    if not user_id:
        return None
    return await _load_user(db, user_id)
