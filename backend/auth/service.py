# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Account-security flow: register → verify email → login → session.

``AuthService`` is built per request by :func:`get_auth_service` around the
request's DB session.  Its collaborators (hasher, token issuer, lockout
policy, mailer, clock) are created once by :func:`build_auth_components` in
``main.create_app`` and read from ``app.state``.

Security notes
--------------
* Unknown identifier and wrong password both raise ``InvalidCredentials``.
* ``EmailNotVerified`` is deliberately distinct so the UI can offer a resend,
  which confirms the account exists.
* A locked account is rejected before the password is hashed.
* Mail delivery failures never fail registration; the verification link is
  logged instead so an operator can pass it on.
"""

import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from auth.errors import (
    AccountLocked,
    AlreadyVerified,
    DuplicateAccount,
    EmailNotVerified,
    InternalError,
    InvalidCredentials,
    TokenExpired,
    TokenNotFound,
    ValidationError,
)
from auth.lockout import LockState, LockoutPolicy
from core.clock import as_utc
from core.logger import get_logger
from core.security import PasswordHasher, TokenIssuer, get_client_ip
from database import get_db
from models.audit_log import AuditLog
from models.user import User

log = get_logger("auth")

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")

_RESEND_GENERIC = "If that email is registered, a verification email has been sent."


@dataclass(frozen=True)
class AuthConfig:
    """Values the flow needs from configuration, assembled at start-up."""

    app_url: str
    min_username_length: int = 3
    max_username_length: int = 64
    min_password_length: int = 6

    @classmethod
    def from_settings(cls, settings) -> "AuthConfig":
        return cls(
            app_url=settings.app_url,
            min_username_length=settings.min_username_length,
            min_password_length=settings.min_password_length,
        )


@dataclass
class LoginResult:
    token: str
    user: User


@dataclass(frozen=True)
class AuthComponents:
    """The long-lived collaborators every ``AuthService`` is built from."""

    config: AuthConfig
    hasher: PasswordHasher
    tokens: TokenIssuer
    lockout: LockoutPolicy


def build_auth_components(settings, clock) -> AuthComponents:
    """Shared by ``main.create_app`` and the bin/ scripts."""
    return AuthComponents(
        config=AuthConfig.from_settings(settings),
        hasher=PasswordHasher(rounds=settings.password_hash_rounds),
        tokens=TokenIssuer(
            settings.secret_key,
            clock,
            algorithm=settings.jwt_algorithm,
            session_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            verification_ttl=timedelta(hours=settings.verification_token_expire_hours),
        ),
        lockout=LockoutPolicy(
            max_attempts=settings.max_failed_login_attempts,
            lock_duration=timedelta(minutes=settings.lockout_minutes),
        ),
    )


def find_by_identifier(db: Session, identifier: str) -> Optional[User]:
    """
    Look a user up by username or email.  When one account's username equals
    another account's email, the email match wins.
    """
    matches = (
        db.query(User)
        .filter(or_(User.username == identifier, User.email == identifier))
        .order_by(User.id)
        .all()
    )
    for user in matches:
        if user.email == identifier:
            return user
    return matches[0] if matches else None


class AuthService:
    def __init__(
        self,
        db: Session,
        config: AuthConfig,
        *,
        hasher: PasswordHasher,
        tokens: TokenIssuer,
        lockout: LockoutPolicy,
        mailer,
        clock,
        request_ip: Optional[str] = None,
    ):
        self.db = db
        self.config = config
        self.hasher = hasher
        self.tokens = tokens
        self.lockout = lockout
        self.mailer = mailer
        self.clock = clock
        self.request_ip = request_ip

    # ------------------------------------------------------------------
    # Registration & verification
    # ------------------------------------------------------------------

    def register(self, username: str, email: str, password: str) -> User:
        """
        Create an unverified ``staff`` account and mail its verification
        link.  The returned user still carries the issued token.
        """
        username = (username or "").strip()
        email = (email or "").strip()

        errors = self._username_errors(username) + self._email_errors(email) + self._password_errors(password)
        if errors:
            raise ValidationError(errors)

        existing = (
            self.db.query(User)
            .filter(or_(User.username == username, User.email == email))
            .first()
        )
        if existing:
            raise DuplicateAccount()

        token, expires = self.tokens.new_verification_token()
        user = User(
            username=username,
            email=email,
            password_hash=self._hash(password),
            role="staff",
            email_verified=False,
            verification_token=token,
            verification_token_expires=expires,
            failed_login_attempts=0,
        )
        self.db.add(user)
        try:
            self.db.flush()  # get user.id for the audit row
            self._audit("register", user)
            self._commit()
        except IntegrityError:
            # Lost a race against a concurrent registration
            self.db.rollback()
            raise DuplicateAccount()

        log.info("Registered user id=%s username=%s", user.id, user.username)
        self._send_verification(user)
        return user

    def verify_email(self, token: str) -> bool:
        """
        Consume a verification token.  Returns True when the account was
        verified by this call, False if it already was.
        """
        user = None
        if token:
            user = self.db.query(User).filter(User.verification_token == token).first()
        if not user:
            raise TokenNotFound()

        expires = as_utc(user.verification_token_expires)
        if expires is not None and self.clock.now() > expires:
            raise TokenExpired()

        if user.email_verified:
            return False

        user.email_verified = True
        user.verification_token = None
        user.verification_token_expires = None
        self._audit("verify_email", user)
        self._commit()
        log.info("Email verified for user id=%s", user.id)
        return True

    def resend_verification(self, email: str) -> str:
        """
        Issue a fresh verification token.  The reply is the same whether or
        not the address is registered; only an already-verified account is
        reported explicitly.
        """
        email = (email or "").strip()
        errors = self._email_errors(email)
        if errors:
            raise ValidationError(errors)

        user = self.db.query(User).filter(User.email == email).first()
        if not user:
            return _RESEND_GENERIC
        if user.email_verified:
            raise AlreadyVerified()

        user.verification_token, user.verification_token_expires = self.tokens.new_verification_token()
        self._audit("resend_verification", user)
        self._commit()
        self._send_verification(user)
        return _RESEND_GENERIC

    def verification_link(self, token: str) -> str:
        return f"{self.config.app_url.rstrip('/')}/verify-email/{token}"

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, identifier: str, password: str) -> LoginResult:
        """Authenticate by username or email and issue a session token."""
        identifier = (identifier or "").strip()
        errors = []
        if not identifier:
            errors.append({"field": "username", "message": "Username is required"})
        if not password:
            errors.append({"field": "password", "message": "Password is required"})
        if errors:
            raise ValidationError(errors)

        user = find_by_identifier(self.db, identifier)
        if not user:
            raise InvalidCredentials()

        now = self.clock.now()

        if self.lockout.state(user, now) is LockState.LOCKED:
            raise AccountLocked(self.lockout.minutes_remaining(user, now), as_utc(user.locked_until))

        if self.lockout.release_expired(user, now):
            self._commit()
            log.info("Lock expired for user id=%s", user.id)

        if not user.email_verified:
            raise EmailNotVerified()

        if not self._verify_password(password, user.password_hash):
            outcome = self.lockout.record_failure(user, now)
            if outcome.locked:
                self._audit("account_locked", user, f"after {outcome.attempts} failed attempts")
                self._commit()
                log.warning("User id=%s locked until %s", user.id, outcome.locked_until.isoformat())
                raise AccountLocked(
                    self.lockout.lock_minutes,
                    outcome.locked_until,
                    detail=(
                        "Too many failed login attempts. "
                        f"Account locked for {self.lockout.lock_minutes} minutes."
                    ),
                )

            self._audit("login_failed", user, f"attempt {outcome.attempts}")
            self._commit()
            raise InvalidCredentials(
                f"Invalid credentials. {outcome.attempts_remaining} attempts remaining.",
                attempts_remaining=outcome.attempts_remaining,
            )

        self.lockout.reset(user)
        user.last_login = now
        self._audit("login", user)
        self._commit()

        return LoginResult(token=self.tokens.issue_session_token(user), user=user)

    # ------------------------------------------------------------------
    # Administrative operations
    # ------------------------------------------------------------------

    def reset_password(self, user: User, new_password: str, actor: Optional[User] = None) -> None:
        """Replace the password hash and clear any lock."""
        errors = self._password_errors(new_password, field="new_password")
        if errors:
            raise ValidationError(errors)

        user.password_hash = self._hash(new_password)
        self.lockout.reset(user)
        self._audit("reset_password", user, actor=actor)
        self._commit()

    def unlock(self, user: User, actor: Optional[User] = None) -> None:
        self.lockout.reset(user)
        self._audit("unlock_user", user, actor=actor)
        self._commit()

    def mark_verified(self, user: User, actor: Optional[User] = None) -> None:
        """Manual verification by an administrator."""
        user.email_verified = True
        user.verification_token = None
        user.verification_token_expires = None
        self._audit("manual_verify", user, actor=actor)
        self._commit()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _username_errors(self, username: str) -> list[dict]:
        if len(username) < self.config.min_username_length:
            return [{
                "field": "username",
                "message": f"Username must be at least {self.config.min_username_length} characters",
            }]
        if len(username) > self.config.max_username_length:
            return [{
                "field": "username",
                "message": f"Username must be at most {self.config.max_username_length} characters",
            }]
        return []

    @staticmethod
    def _email_errors(email: str) -> list[dict]:
        if not EMAIL_REGEX.match(email):
            return [{"field": "email", "message": "Please enter a valid email"}]
        return []

    def _password_errors(self, password: str, field: str = "password") -> list[dict]:
        if len(password or "") < self.config.min_password_length:
            return [{
                "field": field,
                "message": f"Password must be at least {self.config.min_password_length} characters",
            }]
        return []

    def _hash(self, password: str) -> str:
        try:
            return self.hasher.hash(password)
        except (ValueError, TypeError) as exc:
            log.exception("Password hashing failed")
            raise InternalError() from exc

    def _verify_password(self, password: str, digest: str) -> bool:
        try:
            return self.hasher.verify(password, digest)
        except (ValueError, TypeError) as exc:
            log.exception("Stored password hash could not be verified")
            raise InternalError() from exc

    def _send_verification(self, user: User) -> bool:
        link = self.verification_link(user.verification_token)
        subject = "Verify Your Email - Asset Manager"
        body = (
            f"Hi {user.username},\n\n"
            f"Verify your email address here: {link}\n\n"
            "This link expires in 24 hours."
        )
        html = (
            f"<p>Hi {user.username},</p>"
            f'<p>Click here to verify: <a href="{link}">{link}</a></p>'
            "<p>This link expires in 24 hours.</p>"
        )
        delivered = self.mailer.send(user.email, subject, body, html)
        if not delivered:
            log.warning(
                "Verification email failed – manual verification link for %s (%s): %s",
                user.username,
                user.email,
                link,
            )
        return delivered

    def _audit(self, action: str, user: User, detail: Optional[str] = None, actor: Optional[User] = None) -> None:
        self.db.add(AuditLog(
            actor_id=(actor or user).id,
            target_user_id=user.id,
            action=action,
            detail=detail,
            request_ip=self.request_ip,
        ))

    def _commit(self) -> None:
        """Commit, mapping store failures to ``InternalError``."""
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            log.exception("Database commit failed")
            raise InternalError() from exc


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------


def get_auth_service(request: Request, db: Session = Depends(get_db)) -> AuthService:
    state = request.app.state
    return AuthService(
        db,
        state.auth_config,
        hasher=state.password_hasher,
        tokens=state.token_issuer,
        lockout=state.lockout_policy,
        mailer=state.mailer,
        clock=state.clock,
        request_ip=get_client_ip(request),
    )
