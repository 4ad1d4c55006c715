# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Bootstrap script – creates the first admin user.

Run once after the initial migration:
    python bin/seed_admin.py

The script reads FIRST_ADMIN_USERNAME, FIRST_ADMIN_EMAIL and
FIRST_ADMIN_PASSWORD from etc/app.conf (or the environment).  After the row
is inserted those values are no longer used by the application.

The admin account is created with its email already verified, so it can
log in without a working SMTP setup.
"""

import sys
import os

# ---------------------------------------------------------------------------
# Path setup so backend modules are importable
# ---------------------------------------------------------------------------
# bin/seed_admin.py  →  ../  →  project root
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from sqlalchemy import or_                 # noqa: E402

from auth.service import build_auth_components  # noqa: E402
from core.clock import SystemClock         # noqa: E402
from core.config import settings           # noqa: E402
from core.logger import get_logger         # noqa: E402
from database import SessionLocal          # noqa: E402
from models.audit_log import AuditLog      # noqa: E402
from models.user import User               # noqa: E402

log = get_logger("seed_admin")


def seed() -> int:
    if not settings.first_admin_email or not settings.first_admin_password:
        print("[seed_admin] FIRST_ADMIN_EMAIL or FIRST_ADMIN_PASSWORD not set in etc/app.conf – nothing to do.")
        return 1
    if len(settings.first_admin_password) < settings.min_password_length:
        print(f"[seed_admin] FIRST_ADMIN_PASSWORD must be at least {settings.min_password_length} characters.")
        return 1

    db = SessionLocal()
    try:
        existing = (
            db.query(User)
            .filter(or_(
                User.email == settings.first_admin_email,
                User.username == settings.first_admin_username,
            ))
            .first()
        )
        if existing:
            print(f"[seed_admin] User '{existing.username}' <{existing.email}> already exists – skipping.")
            return 0

        hasher = build_auth_components(settings, SystemClock()).hasher
        admin = User(
            username=settings.first_admin_username,
            email=settings.first_admin_email,
            password_hash=hasher.hash(settings.first_admin_password),
            role="admin",
            email_verified=True,
            failed_login_attempts=0,
        )
        db.add(admin)
        db.flush()
        db.add(AuditLog(actor_id=admin.id, target_user_id=admin.id, action="seed_admin"))
        db.commit()
        log.info("Seeded admin id=%s username=%s", admin.id, admin.username)
        print(f"[seed_admin] Admin '{admin.username}' <{admin.email}> created successfully.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(seed())
