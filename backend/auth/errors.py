# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Auth-flow error taxonomy.

Each error carries the HTTP status, a stable machine-readable ``code`` and
the user-facing ``detail``.  ``main`` registers one exception handler that
renders any :class:`AuthError` as ``{"detail", "code", ...extra}``.
"""

from datetime import datetime
from typing import Optional


class AuthError(Exception):
    status_code = 400
    code = "auth_error"
    detail = "Authentication error"

    def __init__(self, detail: Optional[str] = None, **extra):
        self.detail = detail or type(self).detail
        self.extra = extra
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail, "code": self.code, **self.extra}


class ValidationError(AuthError):
    """Malformed input; ``errors`` lists ``{"field", "message"}`` pairs."""

    code = "validation_error"
    detail = "Invalid input"

    def __init__(self, errors: list[dict]):
        super().__init__(errors[0]["message"] if errors else None, errors=errors)
        self.errors = errors


class DuplicateAccount(AuthError):
    status_code = 409
    code = "duplicate_account"
    detail = "User already exists"


class InvalidCredentials(AuthError):
    status_code = 401
    code = "invalid_credentials"
    detail = "Invalid credentials"


class EmailNotVerified(AuthError):
    status_code = 403
    code = "email_not_verified"
    detail = "Please verify your email before logging in"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, email_not_verified=True)


class AccountLocked(AuthError):
    status_code = 403
    code = "account_locked"
    detail = "Account locked"

    def __init__(self, minutes_remaining: int, locked_until: datetime, detail: Optional[str] = None):
        super().__init__(
            detail or f"Account locked. Try again in {minutes_remaining} minutes.",
            locked=True,
            minutes_remaining=minutes_remaining,
            locked_until=locked_until.isoformat(),
        )
        self.minutes_remaining = minutes_remaining
        self.locked_until = locked_until


class TokenNotFound(AuthError):
    code = "token_not_found"
    detail = "Invalid or expired verification token"


class TokenExpired(AuthError):
    code = "token_expired"
    detail = "Verification token has expired. Please request a new one."


class AlreadyVerified(AuthError):
    code = "already_verified"
    detail = "Email is already verified"


class InternalError(AuthError):
    """Store or hashing failure.  Details go to the log, never to the caller."""

    status_code = 500
    code = "internal_error"
    detail = "Server error"
