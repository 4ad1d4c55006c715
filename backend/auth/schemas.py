# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the auth endpoints."""

from datetime import datetime

from pydantic import BaseModel


# -- Requests --------------------------------------------------------------


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str


class LoginRequest(BaseModel):
    username: str  # username or email
    password: str


class ResendVerificationRequest(BaseModel):
    email: str


# -- Responses -------------------------------------------------------------


class UserInfoResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str
    email_verified: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserInfoResponse


class RegisterResponse(BaseModel):
    message: str
    email: str


class MessageResponse(BaseModel):
    message: str
    success: bool = True
