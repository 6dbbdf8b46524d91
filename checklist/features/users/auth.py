"""
Bearer token helpers.

Tokens are JWTs signed with ``JWT_SECRET``; the ``sub`` claim carries the
user id that every service receives as the acting user.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import HTTPException, status

from checklist.core import config


def verify_jwt_token(token: str) -> dict:
    """
    Verify a JWT and return its payload.

    Raises:
        HTTPException: 401 if the token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            config.JWT_SECRET,
            algorithms=[config.JWT_ALGORITHM],
            options={"require": ["sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


def create_access_token(user_id: str, expires_in: Optional[timedelta] = timedelta(hours=12)) -> str:
    """Issue a token for ``user_id``; used by scripts and tests."""
    payload: dict = {"sub": user_id, "iat": datetime.now(timezone.utc)}
    if expires_in is not None:
        payload["exp"] = datetime.now(timezone.utc) + expires_in
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)
