# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Central security module.  All cryptographic primitives and auth guards live
here.  No other module should touch raw crypto directly.

Responsibilities
----------------
1. Password hashing / verification          (passlib pbkdf2_sha256)
2. Session tokens + verification tokens     (PyJWT / HS256, secrets)
3. FastAPI dependency guards                (get_current_user, require_admin)

The hasher and token issuer are plain objects built once in
``main.create_app`` and stored on ``app.state``; the guards below fetch them
from there.
"""

import secrets
from datetime import datetime, timedelta
from typing import Optional

import jwt as _jwt        # PyJWT
from passlib.hash import pbkdf2_sha256 as _pbkdf2  # pure Python, no binary deps
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from core.clock import SystemClock
from database import get_db

# ---------------------------------------------------------------------------
# 1.  pbkdf2_sha256 – password hashing
# ---------------------------------------------------------------------------
# passlib embeds the random salt and the round count in the hash string, so
# raising the cost later only affects new hashes; old ones keep verifying.
# ---------------------------------------------------------------------------


class PasswordHasher:
    """Salted, adaptive one-way hash.  Plaintext is never stored or logged."""

    def __init__(self, rounds: int = 600_000):
        self._scheme = _pbkdf2.using(rounds=rounds)

    def hash(self, plain: str) -> str:
        """Return a full passlib hash string, e.g. ``$pbkdf2-sha256$...``."""
        return self._scheme.hash(plain)

    def verify(self, plain: str, digest: str) -> bool:
        """
        Constant-time comparison of *plain* against *digest*.

        Raises ``ValueError`` if *digest* is not a pbkdf2_sha256 hash; the
        caller treats that as an internal error, not as a wrong password.
        """
        return self._scheme.verify(plain, digest)


# ---------------------------------------------------------------------------
# 2.  Tokens
# ---------------------------------------------------------------------------


class InvalidToken(Exception):
    """Session token failed signature, structure or expiry checks."""


class TokenIssuer:
    """
    Issues two kinds of credentials:

    * session tokens – self-contained HS256 JWTs ``{user_id, username, exp}``
    * verification tokens – random hex strings stored on the user row, so
      they can be revoked simply by clearing the column.
    """

    def __init__(
        self,
        secret_key: str,
        clock=None,
        *,
        algorithm: str = "HS256",
        session_ttl: timedelta = timedelta(days=7),
        verification_ttl: timedelta = timedelta(hours=24),
        verification_bytes: int = 32,
    ):
        self._secret_key = secret_key
        self._clock = clock or SystemClock()
        self.algorithm = algorithm
        self.session_ttl = session_ttl
        self.verification_ttl = verification_ttl
        self.verification_bytes = verification_bytes

    def issue_session_token(self, user) -> str:
        payload = {
            "user_id": user.id,
            "username": user.username,
            "exp": self._clock.now() + self.session_ttl,
        }
        return _jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def decode_session_token(self, token: str) -> dict:
        """
        Verify signature and expiry.  Every failure is reported as the same
        :class:`InvalidToken` so callers cannot tell forgery from expiry.

        Expiry is checked against the injected clock rather than PyJWT's
        wall-clock check.
        """
        try:
            payload = _jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False, "require": ["exp"]},
            )
        except _jwt.InvalidTokenError as exc:
            raise InvalidToken("Invalid token") from exc

        if payload["exp"] <= self._clock.now().timestamp():
            raise InvalidToken("Invalid token")
        if not isinstance(payload.get("user_id"), int):
            raise InvalidToken("Invalid token")
        return payload

    def new_verification_token(self) -> tuple[str, datetime]:
        """Return ``(token, expires_at)``; 32 random bytes → 64 hex chars."""
        token = secrets.token_hex(self.verification_bytes)
        return token, self._clock.now() + self.verification_ttl


# ---------------------------------------------------------------------------
# 3.  FastAPI dependency guards
# ---------------------------------------------------------------------------

# The tokenUrl here is only used by the auto-generated OpenAPI docs;
# the actual login endpoint takes a JSON body.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_current_user(
    token: str = Depends(oauth2_scheme),
    tokens: TokenIssuer = Depends(get_token_issuer),
    db: Session = Depends(get_db),
):
    """
    Dependency: decode the JWT and load the User row.  Returns the User ORM
    instance.

    Raises 401 if the token is invalid or the user no longer exists.
    """
    try:
        payload = tokens.decode_session_token(token)
    except InvalidToken:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Lazy import to avoid circular dependency at module load time
    from models.user import User  # noqa: E402

    user = db.query(User).filter(User.id == payload["user_id"]).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def require_admin(current_user=Depends(get_current_user)):
    """
    Dependency: wraps :func:`get_current_user` and additionally asserts
    ``role == 'admin'``.  The role is read from the database row, never from
    the token.  Raises 403 otherwise.
    """
    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied: Admin only",
        )
    return current_user


# -- IP Address extraction ----------------------------------------------------


def get_client_ip(request: Request) -> Optional[str]:
    """
    Extract the client IP address from the request.
    Checks X-Forwarded-For header first (for proxies), then falls back to client host.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs, take the first (original client)
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return None
