"""Authentication endpoints: register, login, logout, current user."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlmodel import Session

from .. import models, services
from ..auth import get_current_user
from ..config import settings
from ..database import get_session
from ..responses import ok
from ..schemas import LoginIn, RegisterIn
from ..utils.rate_limit import InMemoryRateLimiter

router = APIRouter(prefix="/api/auth", tags=["auth"])

login_limiter = InMemoryRateLimiter(settings.LOGIN_RATE_LIMIT_PER_MIN, settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS)


def _enforce_login_rate_limit(request: Request, email: str) -> None:
    key = f"{request.client.host if request.client else 'unknown'}:{email}"
    allowed, retry_after = login_limiter.allow(key)
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail=f"too many login attempts; retry after {retry_after}s",
            headers={"Retry-After": str(retry_after)},
        )


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Self-registration; the new account is always a STUDENT."""
    user = services.AuthService(db).register(payload.email, payload.password, payload.name)
    return ok(services.public_user(user))


@router.post("/login")
def login(payload: LoginIn, request: Request, response: Response, db: Session = Depends(get_session)):
    """Check credentials, set the session cookie and return the token.

    The token is also returned in the body for API clients that prefer
    the `Authorization: Bearer` header.
    """
    _enforce_login_rate_limit(request, payload.email)
    user, token, _ = services.AuthService(db).authenticate(payload.email, payload.password)
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        token,
        max_age=settings.JWT_EXPIRE_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.COOKIE_SECURE,
    )
    return ok({"access_token": token, "token_type": "bearer", "user": services.public_user(user)})


@router.post("/logout")
def logout(request: Request, response: Response, user: models.User = Depends(get_current_user),
           db: Session = Depends(get_session)):
    services.AuthService(db).revoke(request.state.token_payload)
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return ok({"logged_out": True})


@router.get("/me")
def me(user: models.User = Depends(get_current_user)):
    return ok(services.public_user(user))
