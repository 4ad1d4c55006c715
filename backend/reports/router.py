# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Report downloads.

Currently a single report: the full asset register with the computed
current value, as .xlsx or .csv.
"""

import io

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from assets.spreadsheet import XLSX_MEDIA_TYPE, build_export_csv, build_export_workbook
from core.logger import get_logger
from core.security import get_client_ip, get_current_user
from database import get_db
from models.asset import Asset
from models.audit_log import AuditLog
from models.user import User

log = get_logger("reports")

router = APIRouter(prefix="/api/reports", tags=["reports"])


# ---------------------------------------------------------------------------
# GET /api/reports/assets/export?format=xlsx|csv
# ---------------------------------------------------------------------------


@router.get("/assets/export")
def export_assets(
    request: Request,
    format: str = Query("xlsx", pattern="^(xlsx|csv)$"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Download every asset.  404 when the register is empty."""
    assets = db.query(Asset).order_by(Asset.id).all()
    if not assets:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No assets found to export")

    stamp = request.app.state.clock.now().strftime("%Y%m%d_%H%M%S")
    filename = f"Asset_Report_{stamp}.{format}"

    if format == "csv":
        # utf-8-sig so Excel detects the encoding when opening the file
        buf = io.BytesIO(build_export_csv(assets).encode("utf-8-sig"))
        media_type = "text/csv; charset=utf-8"
    else:
        buf = io.BytesIO(build_export_workbook(assets))
        media_type = XLSX_MEDIA_TYPE

    db.add(AuditLog(
        actor_id=current_user.id,
        action="asset_export",
        detail=f"format={format}, rows={len(assets)}",
        request_ip=get_client_ip(request),
    ))
    db.commit()
    log.info("User id=%s exported %d assets as %s", current_user.id, len(assets), format)

    return StreamingResponse(
        buf,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
