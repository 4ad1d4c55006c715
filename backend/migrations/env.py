# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Alembic environment for the users, audit_logs, assets and
asset_attachments tables.

Runs against ``Settings.database_url`` through ``database.make_engine`` so
migrations see the same SQLite pragmas as the service.  Batch mode is on
because SQLite rewrites a table to change its constraints.
"""

import os
import sys

_BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from alembic import context             # noqa: E402

from core.config import settings        # noqa: E402
from database import Base, make_engine  # noqa: E402

# Registers the tables on Base.metadata for --autogenerate
import models.asset       # noqa: F401, E402
import models.audit_log   # noqa: F401, E402
import models.user        # noqa: F401, E402


def run_migrations_online():
    engine = make_engine(settings.database_url)
    with engine.connect() as conn:
        context.configure(connection=conn, target_metadata=Base.metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()


def run_migrations_offline():
    context.configure(
        url=settings.database_url,
        target_metadata=Base.metadata,
        literal_binds=True,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
