# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Asset endpoints – CRUD, attachments, QR codes and spreadsheet import.

* Every endpoint under ``/api/assets`` requires a valid JWT (any role).
* ``/api/public/assets/{id}`` is deliberately unauthenticated: it is the
  page a scanned QR code lands on.
* Depreciation is filled in server-side whenever price / expected life are
  known and the client did not send explicit values.
"""

from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import Response
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from assets.depreciation import compute_depreciation, fill_missing_depreciation
from assets.qr import QR_SIZES, public_asset_url, render_qr_png
from assets.schemas import (
    AssetCreate,
    AssetDetailResponse,
    AssetListResponse,
    AssetSummaryResponse,
    AssetUpdate,
    AttachmentResponse,
    ImportReport,
)
from assets.spreadsheet import XLSX_MEDIA_TYPE, SpreadsheetError, build_import_template, import_assets
from assets.storage import AttachmentStorage, AttachmentTooLarge
from core.logger import get_logger
from core.security import get_client_ip, get_current_user
from database import get_db
from models.asset import ASSET_STATUSES, Asset, AssetAttachment
from models.audit_log import AuditLog
from models.user import User

log = get_logger("assets")

router = APIRouter(prefix="/api/assets", tags=["assets"])
public_router = APIRouter(prefix="/api/public", tags=["public"])


def get_attachment_storage(request: Request) -> AttachmentStorage:
    return request.app.state.attachment_storage


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_asset(asset_id: int, db: Session) -> Asset:
    asset = db.query(Asset).filter(Asset.id == asset_id).first()
    if not asset:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Asset not found")
    return asset


def _check_status(value: str) -> None:
    if value not in ASSET_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status. Must be one of: {', '.join(ASSET_STATUSES)}",
        )


def _check_serial_free(serial: str, db: Session, exclude_id: int = None) -> None:
    q = db.query(Asset.id).filter(Asset.asset_id == serial)
    if exclude_id is not None:
        q = q.filter(Asset.id != exclude_id)
    if q.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Serial number already exists")


def _audit(db: Session, request: Request, user: User, action: str, detail: str) -> None:
    db.add(AuditLog(
        actor_id=user.id,
        action=action,
        detail=detail,
        request_ip=get_client_ip(request),
    ))


def _commit_asset(db: Session) -> None:
    """Commit; a unique-index violation on the serial number becomes 409."""
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Serial number already exists")


# ---------------------------------------------------------------------------
# GET /api/assets  – list
# ---------------------------------------------------------------------------


@router.get("", response_model=AssetListResponse)
def list_assets(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """All assets, newest first, each with its attachment count."""
    assets = db.query(Asset).order_by(Asset.created_at.desc(), Asset.id.desc()).all()
    return AssetListResponse(assets=assets)


# ---------------------------------------------------------------------------
# GET /api/assets/summary  – dashboard figures
# ---------------------------------------------------------------------------


@router.get("/summary", response_model=AssetSummaryResponse)
def asset_summary(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    counts = dict(db.query(Asset.status, func.count(Asset.id)).group_by(Asset.status).all())
    assets = db.query(Asset).all()
    return AssetSummaryResponse(
        total_assets=len(assets),
        in_use=counts.get("In Use", 0),
        maintenance=counts.get("Maintenance", 0),
        total_value=round(sum(a.current_value for a in assets), 2),
    )


# ---------------------------------------------------------------------------
# GET /api/assets/import-template
# ---------------------------------------------------------------------------


@router.get("/import-template")
def import_template(current_user: User = Depends(get_current_user)):
    return Response(
        content=build_import_template(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="Asset_Import_Template.xlsx"'},
    )


# ---------------------------------------------------------------------------
# POST /api/assets/import  – bulk create from .xlsx / .csv
# ---------------------------------------------------------------------------


@router.post("/import", response_model=ImportReport)
async def import_file(
    request: Request,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Import assets from the uploaded spreadsheet.

    Valid rows are inserted; invalid rows are skipped and reported as
    ``Row N: reason``.  Whole-file problems (wrong type, no ``Asset Name``
    column) fail the request with 400.
    """
    raw = await file.read()
    try:
        report = import_assets(db, raw, file.filename)
    except SpreadsheetError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    _audit(
        db, request, current_user, "asset_import",
        f"file={file.filename}, imported={report.imported}/{report.total}",
    )
    db.commit()
    log.info(
        "User id=%s imported %d of %d rows from %s",
        current_user.id, report.imported, report.total, file.filename,
    )
    return report


# ---------------------------------------------------------------------------
# GET /api/assets/{id}
# ---------------------------------------------------------------------------


@router.get("/{asset_id}", response_model=AssetDetailResponse)
def get_asset(
    asset_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _get_asset(asset_id, db)


# ---------------------------------------------------------------------------
# GET /api/assets/{id}/qr  – printable QR label
# ---------------------------------------------------------------------------


@router.get("/{asset_id}/qr")
def asset_qr(
    asset_id: int,
    request: Request,
    size: str = Query("medium", description="small | medium | large | xlarge"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """PNG QR code encoding the public page of the asset."""
    if size not in QR_SIZES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid size. Must be one of: {', '.join(QR_SIZES)}",
        )
    asset = _get_asset(asset_id, db)
    png = render_qr_png(public_asset_url(request.app.state.app_url, asset.id), QR_SIZES[size])
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="asset-{asset.id}-qr.png"'},
    )


# ---------------------------------------------------------------------------
# POST /api/assets  – create
# ---------------------------------------------------------------------------


@router.post("", response_model=AssetDetailResponse, status_code=status.HTTP_201_CREATED)
def create_asset(
    body: AssetCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    values = body.model_dump()
    values["name"] = values["name"].strip()
    if not values["name"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Asset name is required")
    _check_status(values["status"])
    if values["asset_id"]:
        _check_serial_free(values["asset_id"], db)
    else:
        values["asset_id"] = None

    asset = Asset(**fill_missing_depreciation(values))
    db.add(asset)
    db.flush()
    _audit(db, request, current_user, "asset_create", f"id={asset.id}, name={asset.name}")
    _commit_asset(db)
    db.refresh(asset)

    log.info("User id=%s created asset id=%s", current_user.id, asset.id)
    return asset


# ---------------------------------------------------------------------------
# PUT /api/assets/{id}  – partial update
# ---------------------------------------------------------------------------


@router.put("/{asset_id}", response_model=AssetDetailResponse)
def update_asset(
    asset_id: int,
    body: AssetUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Only fields present in the body are changed.  When price or expected
    life change and no depreciation is supplied, depreciation is recomputed.
    """
    asset = _get_asset(asset_id, db)
    changes = body.model_dump(exclude_unset=True)

    if "name" in changes:
        changes["name"] = (changes["name"] or "").strip()
        if not changes["name"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Asset name is required")
    if "status" in changes:
        if changes["status"] is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Status is required")
        _check_status(changes["status"])
    if "quantity" in changes and changes["quantity"] is None:
        changes["quantity"] = 1
    if "asset_id" in changes:
        changes["asset_id"] = changes["asset_id"] or None
        if changes["asset_id"]:
            _check_serial_free(changes["asset_id"], db, exclude_id=asset.id)

    for field, value in changes.items():
        setattr(asset, field, value)

    basis_changed = "purchase_price" in changes or "expected_life_years" in changes
    explicit = "depreciation_annual" in changes or "depreciation_monthly" in changes
    if basis_changed and not explicit:
        asset.depreciation_annual, asset.depreciation_monthly = compute_depreciation(
            asset.purchase_price, asset.expected_life_years
        )

    _audit(db, request, current_user, "asset_update", f"id={asset.id}, fields={','.join(sorted(changes))}")
    _commit_asset(db)
    db.refresh(asset)
    return asset


# ---------------------------------------------------------------------------
# DELETE /api/assets/{id}
# ---------------------------------------------------------------------------


@router.delete("/{asset_id}")
def delete_asset(
    asset_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: AttachmentStorage = Depends(get_attachment_storage),
):
    """Delete the asset, its attachment rows and the files on disk."""
    asset = _get_asset(asset_id, db)
    file_urls = [a.file_url for a in asset.attachments]
    detail = f"id={asset.id}, name={asset.name}"

    db.delete(asset)
    _audit(db, request, current_user, "asset_delete", detail)
    db.commit()

    for url in file_urls:
        storage.delete(url)

    log.info("User id=%s deleted asset %s", current_user.id, detail)
    return {"message": "Asset deleted successfully"}


# ---------------------------------------------------------------------------
# POST /api/assets/{id}/attachments  – multi-file upload
# ---------------------------------------------------------------------------


@router.post(
    "/{asset_id}/attachments",
    response_model=List[AttachmentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def upload_attachments(
    asset_id: int,
    request: Request,
    files: List[UploadFile] = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: AttachmentStorage = Depends(get_attachment_storage),
):
    asset = _get_asset(asset_id, db)

    stored = []
    try:
        for upload in files:
            content = await upload.read()
            stored.append(storage.save(upload.filename, content, upload.content_type))
    except AttachmentTooLarge as exc:
        # All or nothing: drop whatever this request already wrote
        for saved in stored:
            storage.delete(saved.file_url)
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(exc))

    rows = [
        AssetAttachment(
            asset_id=asset.id,
            file_url=s.file_url,
            file_name=s.file_name,
            file_type=s.file_type,
        )
        for s in stored
    ]
    db.add_all(rows)
    _audit(db, request, current_user, "attachment_upload", f"asset_id={asset.id}, files={len(rows)}")
    db.commit()
    for row in rows:
        db.refresh(row)
    return rows


# ---------------------------------------------------------------------------
# DELETE /api/assets/attachments/{id}
# ---------------------------------------------------------------------------


@router.delete("/attachments/{attachment_id}")
def delete_attachment(
    attachment_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: AttachmentStorage = Depends(get_attachment_storage),
):
    attachment = db.query(AssetAttachment).filter(AssetAttachment.id == attachment_id).first()
    if not attachment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")

    file_url = attachment.file_url
    db.delete(attachment)
    _audit(
        db, request, current_user, "attachment_delete",
        f"asset_id={attachment.asset_id}, file={attachment.file_name}",
    )
    db.commit()
    storage.delete(file_url)

    return {"message": "Attachment deleted successfully"}


# ---------------------------------------------------------------------------
# GET /api/public/assets/{id}  – QR landing page data, no login
# ---------------------------------------------------------------------------


@public_router.get("/assets/{asset_id}", response_model=AssetDetailResponse)
def public_asset(asset_id: int, db: Session = Depends(get_db)):
    return _get_asset(asset_id, db)
