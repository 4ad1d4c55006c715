# Importing the package registers every table on Base.metadata, which
# create_all() and Alembic autogenerate both rely on.

from models.user import User  # noqa: F401
from models.asset import Asset, AssetAttachment  # noqa: F401
from models.audit_log import AuditLog  # noqa: F401
