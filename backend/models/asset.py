# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Asset and AssetAttachment ORM models."""

from datetime import date

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from assets.depreciation import current_value
from database import Base

ASSET_STATUSES = ("In Storage", "In Use", "Maintenance", "Retired")
DEFAULT_STATUS = "In Storage"


def _money():
    # Stored as NUMERIC, handled as float in Python
    return Numeric(14, 2, asdecimal=False)


class Asset(Base):
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    asset_id = Column(String(64), nullable=True, unique=True, index=True)   # serial number
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    unit = Column(String(32), nullable=True)
    location = Column(String(255), nullable=True)
    department = Column(String(255), nullable=True)
    category = Column(String(128), nullable=True)
    sub_category = Column(String(128), nullable=True)
    purchase_date = Column(Date, nullable=True)
    # Depreciation only runs from the day the asset went into use
    date_of_use = Column(Date, nullable=True)
    status = Column(String(32), nullable=False, default=DEFAULT_STATUS)
    purchase_price = Column(_money(), nullable=True)
    expected_life_years = Column(Float, nullable=True)
    depreciation_annual = Column(_money(), nullable=True)
    depreciation_monthly = Column(_money(), nullable=True)
    last_calibrated_date = Column(Date, nullable=True)
    next_calibration_date = Column(Date, nullable=True)
    warranty_expiry_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    attachments = relationship(
        "AssetAttachment",
        back_populates="asset",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="AssetAttachment.id",
    )

    @property
    def current_value(self) -> float:
        return current_value(
            self.purchase_price, self.depreciation_monthly, self.date_of_use, date.today()
        )

    @property
    def attachment_count(self) -> int:
        return len(self.attachments)


class AssetAttachment(Base):
    __tablename__ = "asset_attachments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Cascade delete: removing an asset removes its attachment rows
    asset_id = Column(
        Integer,
        ForeignKey("assets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_url = Column(String(512), nullable=False)     # e.g. /uploads/1700000000000-12345.pdf
    file_name = Column(String(255), nullable=True)     # original client file name
    file_type = Column(String(128), nullable=True)     # MIME type reported by the client
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    asset = relationship("Asset", back_populates="attachments")
