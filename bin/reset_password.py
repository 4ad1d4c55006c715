# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Operator script – reset a user's password from the shell.

    python bin/reset_password.py <username|email> <new_password>

Goes through the same service code as the admin endpoint, so the password
rules apply, any lockout is cleared and an audit row is written.
"""

import sys
import os

# bin/reset_password.py  →  ../  →  project root
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from auth.errors import AuthError          # noqa: E402
from auth.service import AuthService, build_auth_components, find_by_identifier  # noqa: E402
from core.clock import SystemClock         # noqa: E402
from core.config import settings           # noqa: E402
from core.mailer import LoggingMailer      # noqa: E402
from database import SessionLocal          # noqa: E402


def reset(identifier: str, new_password: str) -> int:
    clock = SystemClock()
    db = SessionLocal()
    try:
        user = find_by_identifier(db, identifier)
        if not user:
            print(f"[reset_password] No user matches '{identifier}'.")
            return 1

        auth = build_auth_components(settings, clock)
        service = AuthService(
            db,
            auth.config,
            hasher=auth.hasher,
            tokens=auth.tokens,
            lockout=auth.lockout,
            mailer=LoggingMailer(),
            clock=clock,
            request_ip="cli",
        )
        try:
            service.reset_password(user, new_password)
        except AuthError as exc:
            print(f"[reset_password] {exc.detail}")
            return 1

        print(f"[reset_password] Password for '{user.username}' reset; lockout cleared.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__.strip())
        sys.exit(2)
    sys.exit(reset(sys.argv[1], sys.argv[2]))
