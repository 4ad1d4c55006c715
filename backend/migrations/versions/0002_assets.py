"""Assets and asset_attachments

Revision ID: 0002_assets
Revises: 0001_initial
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0002_assets"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # -- assets ---------------------------------------------------------
    op.create_table(
        "assets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("asset_id", sa.String(64), nullable=True),        # serial number
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("unit", sa.String(32), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("department", sa.String(255), nullable=True),
        sa.Column("category", sa.String(128), nullable=True),
        sa.Column("sub_category", sa.String(128), nullable=True),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("date_of_use", sa.Date(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="In Storage"),
        sa.Column("purchase_price", sa.Numeric(14, 2), nullable=True),
        sa.Column("expected_life_years", sa.Float(), nullable=True),
        sa.Column("depreciation_annual", sa.Numeric(14, 2), nullable=True),
        sa.Column("depreciation_monthly", sa.Numeric(14, 2), nullable=True),
        sa.Column("last_calibrated_date", sa.Date(), nullable=True),
        sa.Column("next_calibration_date", sa.Date(), nullable=True),
        sa.Column("warranty_expiry_date", sa.Date(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_assets_asset_id", "assets", ["asset_id"], unique=True)

    # -- asset_attachments ----------------------------------------------
    op.create_table(
        "asset_attachments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "asset_id",
            sa.Integer(),
            sa.ForeignKey("assets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("file_url", sa.String(512), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("file_type", sa.String(128), nullable=True),
        sa.Column(
            "uploaded_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_asset_attachments_asset_id", "asset_attachments", ["asset_id"])


def downgrade() -> None:
    op.drop_index("ix_asset_attachments_asset_id", table_name="asset_attachments")
    op.drop_table("asset_attachments")
    op.drop_index("ix_assets_asset_id", table_name="assets")
    op.drop_table("assets")
