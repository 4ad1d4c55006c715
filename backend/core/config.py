"""
Application configuration.
All secrets and connection strings are loaded from environment variables or
etc/app.conf.  Nothing sensitive is hard-coded here.

Only the composition root (``main.create_app``, ``database`` and the bin/
scripts) reads :data:`settings`.  Services receive the values they need
through their constructors.
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Project root is two levels up from this file  (backend/core/config.py → project/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    # Database
    database_url: str = f"sqlite:///{_PROJECT_ROOT / 'asset_manager.db'}"

    # JWT signing secret – must be a long, random string
    secret_key: str
    jwt_algorithm: str = "HS256"

    # Session lifetime (1 week = 7 days * 24 hours * 60 minutes)
    access_token_expire_minutes: int = 10080

    # Email verification
    verification_token_expire_hours: int = 24

    # Lockout policy
    max_failed_login_attempts: int = 5
    lockout_minutes: int = 15

    # Credentials
    password_hash_rounds: int = 600_000
    min_password_length: int = 6
    min_username_length: int = 3

    # Per-IP request limits (see core/ratelimit.py)
    rate_limit_enabled: bool = True

    # Frontend base URL – verification links and asset QR codes point here
    app_url: str = "http://localhost:5173"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:5174"]

    # SMTP.  An empty host switches to the log-only mailer.
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_from: str = "Asset Manager <noreply@asset-manager.local>"
    smtp_use_tls: bool = True

    # Attachments
    upload_dir: str = str(_PROJECT_ROOT / "uploads")
    max_upload_mb: int = 10

    # Used only by bin/seed_admin.py to bootstrap the first admin account.
    first_admin_username: str = "admin"
    first_admin_email: str = ""
    first_admin_password: str = ""

    # app.conf lives in etc/ – resolved relative to the project root so that
    # the file is found regardless of the working directory.
    model_config = {"env_file": str(_PROJECT_ROOT / "etc" / "app.conf"), "extra": "ignore"}


# Module-level singleton for the composition root: from core.config import settings
settings = Settings()
