"""
Authentication utilities for the Orders service.

Validates JWT tokens issued by the auth provider and turns them into the
Actor the order core works with. A missing or invalid token yields no actor;
the access rules decide what that means for each operation.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY
from .schemas import Role

logger = logging.getLogger(__name__)

# Security scheme for JWT bearer tokens; absence is handled by access rules
security = HTTPBearer(auto_error=False)


class Actor(BaseModel):
    """Current authenticated user information."""
    id: int
    email: str
    role: Role


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary containing the claims to encode in the token
        expires_delta: Optional custom expiration time delta

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_actor(token: str) -> Optional[Actor]:
    """Decode a bearer token into an Actor, or None if it cannot be trusted."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id_str = payload.get("sub")
        email = payload.get("email")
        role = payload.get("role")

        if user_id_str is None or email is None or role is None:
            return None

        return Actor(id=int(user_id_str), email=email, role=role)
    except (JWTError, ValueError, ValidationError) as e:
        logger.error(f"JWT validation error: {e}")
        return None


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[Actor]:
    """
    FastAPI dependency to get the actor behind the request, if any.

    Args:
        credentials: HTTP Authorization credentials (injected)

    Returns:
        The authenticated actor, or None for anonymous requests
    """
    if credentials is None:
        return None
    return decode_actor(credentials.credentials)

