# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""Pydantic request / response models for the asset endpoints."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# -- Requests --------------------------------------------------------------
# Depreciation fields are optional: when omitted they are derived from
# purchase_price / expected_life_years on the server.


class AssetCreate(BaseModel):
    asset_id: Optional[str] = None          # serial number
    name: str
    description: Optional[str] = None
    quantity: int = Field(1, ge=0)
    unit: Optional[str] = None
    location: Optional[str] = None
    department: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    purchase_date: Optional[date] = None
    date_of_use: Optional[date] = None
    status: str = "In Storage"
    purchase_price: Optional[float] = Field(None, ge=0)
    expected_life_years: Optional[float] = Field(None, ge=0)
    depreciation_annual: Optional[float] = Field(None, ge=0)
    depreciation_monthly: Optional[float] = Field(None, ge=0)
    last_calibrated_date: Optional[date] = None
    next_calibration_date: Optional[date] = None
    warranty_expiry_date: Optional[date] = None


class AssetUpdate(BaseModel):
    asset_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
    location: Optional[str] = None
    department: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    purchase_date: Optional[date] = None
    date_of_use: Optional[date] = None
    status: Optional[str] = None
    purchase_price: Optional[float] = Field(None, ge=0)
    expected_life_years: Optional[float] = Field(None, ge=0)
    depreciation_annual: Optional[float] = Field(None, ge=0)
    depreciation_monthly: Optional[float] = Field(None, ge=0)
    last_calibrated_date: Optional[date] = None
    next_calibration_date: Optional[date] = None
    warranty_expiry_date: Optional[date] = None


# -- Responses -------------------------------------------------------------


class AttachmentResponse(BaseModel):
    id: int
    asset_id: int
    file_url: str
    file_name: Optional[str]
    file_type: Optional[str]
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class AssetResponse(BaseModel):
    id: int
    asset_id: Optional[str]
    name: str
    description: Optional[str]
    quantity: int
    unit: Optional[str]
    location: Optional[str]
    department: Optional[str]
    category: Optional[str]
    sub_category: Optional[str]
    purchase_date: Optional[date]
    date_of_use: Optional[date]
    status: str
    purchase_price: Optional[float]
    expected_life_years: Optional[float]
    depreciation_annual: Optional[float]
    depreciation_monthly: Optional[float]
    last_calibrated_date: Optional[date]
    next_calibration_date: Optional[date]
    warranty_expiry_date: Optional[date]
    current_value: float                    # computed, see assets.depreciation
    attachment_count: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AssetDetailResponse(AssetResponse):
    attachments: List[AttachmentResponse]


class AssetListResponse(BaseModel):
    assets: List[AssetResponse]


class AssetSummaryResponse(BaseModel):
    total_assets: int
    in_use: int
    maintenance: int
    total_value: float


class ImportReport(BaseModel):
    success: bool = True
    total: int                  # non-blank data rows seen
    imported: int
    errors: List[str]           # "Row N: reason"
