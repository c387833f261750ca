"""Authentication helpers and FastAPI security dependencies.

This module hashes passwords, issues and decodes session tokens (JWT)
and provides the dependencies used by the routers:

- `get_current_user` validates the token taken from the
  `Authorization: Bearer` header or, failing that, from the session
  cookie, and returns the `User` row;
- `require_roles(*roles)` builds a dependency that additionally checks
  the user's role.

Token verification raises HTTPExceptions so the helpers can be used
directly inside route dependencies.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .database import get_session

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return PWD_CTX.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return PWD_CTX.verify(password, password_hash)
    except ValueError:
        # malformed stored hash
        return False


def create_token(user: models.User):
    """Sign a session token for `user`.

    Returns `(token, payload)`; the payload carries `user_id`, `role`,
    a unique `jti` (used for revocation) and `exp`.
    """
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
    payload = {
        "user_id": user.id,
        "role": user.role.value,
        "jti": uuid.uuid4().hex,
        "exp": int(expire.timestamp()),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, payload


def decode_token(token: str):
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="invalid token")


def token_from_request(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.AUTH_COOKIE_NAME)


def resolve_user(token: str, db: Session):
    """Return `(user, payload)` for a valid, unrevoked token of an active user."""
    payload = decode_token(token)
    user_id = payload.get("user_id")
    jti = payload.get("jti")
    if not user_id or not jti:
        raise HTTPException(status_code=401, detail="invalid token payload")
    if repositories.TokenRepository(db).is_revoked(jti):
        raise HTTPException(status_code=401, detail="token revoked")
    user = repositories.UserRepository(db).get(user_id)
    if not user:
        raise HTTPException(status_code=401, detail="user not found")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="account deactivated")
    return user, payload


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_session),
) -> models.User:
    """FastAPI dependency that returns the authenticated user.

    Raises an HTTPException(401) for any authentication issue. The decoded
    token payload is kept on `request.state.token_payload` for logout.
    """
    token = token_from_request(request, credentials)
    if not token:
        raise HTTPException(status_code=401, detail="not authenticated")
    user, payload = resolve_user(token, db)
    request.state.token_payload = payload
    return user


def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_session),
) -> Optional[models.User]:
    """Like `get_current_user` but returns `None` instead of failing (HTML pages)."""
    token = token_from_request(request, credentials)
    if not token:
        return None
    try:
        user, _ = resolve_user(token, db)
    except HTTPException:
        return None
    return user


def require_roles(*roles: models.Role):
    """Dependency factory: the current user must hold one of `roles` (403 otherwise)."""
    allowed = set(roles)

    def _dependency(user: models.User = Depends(get_current_user)) -> models.User:
        if user.role not in allowed:
            raise HTTPException(status_code=403, detail="forbidden")
        return user

    return _dependency
