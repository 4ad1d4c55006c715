# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Auth endpoints – registration, email verification, login, current user.

The handlers are thin: every rule lives in :class:`auth.service.AuthService`
and failures surface as :class:`auth.errors.AuthError` subclasses, rendered
by the handler registered in ``main``.
"""

from fastapi import APIRouter, Depends, Request, status

from auth.schemas import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResendVerificationRequest,
    UserInfoResponse,
)
from auth.service import AuthService, get_auth_service
from core.ratelimit import LOGIN_LIMIT, REGISTER_LIMIT, limiter
from core.security import get_current_user
from models.user import User

router = APIRouter(prefix="/api/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# POST /api/auth/register
# ---------------------------------------------------------------------------


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
def register(request: Request, body: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    """Create an unverified account and send the verification email."""
    user = auth.register(body.username, body.email, body.password)
    return RegisterResponse(
        message="Registration successful! Please check your email to verify your account.",
        email=user.email,
    )


# ---------------------------------------------------------------------------
# POST /api/auth/login
# ---------------------------------------------------------------------------


@router.post("/login", response_model=LoginResponse)
@limiter.limit(LOGIN_LIMIT)
def login(request: Request, body: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """Authenticate by username or email and return a signed JWT."""
    result = auth.login(body.username, body.password)
    return LoginResponse(token=result.token, user=result.user)


# ---------------------------------------------------------------------------
# GET /api/auth/me
# ---------------------------------------------------------------------------


@router.get("/me", response_model=UserInfoResponse)
def me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user's public profile (no secrets)."""
    return current_user


# ---------------------------------------------------------------------------
# GET /api/auth/verify-email/{token}
# ---------------------------------------------------------------------------


@router.get("/verify-email/{token}", response_model=MessageResponse)
def verify_email(token: str, auth: AuthService = Depends(get_auth_service)):
    if auth.verify_email(token):
        return MessageResponse(message="Email verified successfully! You can now login.")
    return MessageResponse(message="Email already verified. You can now login.")


# ---------------------------------------------------------------------------
# POST /api/auth/resend-verification
# ---------------------------------------------------------------------------


@router.post("/resend-verification", response_model=MessageResponse)
def resend_verification(body: ResendVerificationRequest, auth: AuthService = Depends(get_auth_service)):
    return MessageResponse(message=auth.resend_verification(body.email))
