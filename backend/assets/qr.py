# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""QR codes pointing at the public (no login) asset page."""

import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M

# Pixel edge lengths offered by the print dialog (≈5, 7, 10 and 14 cm)
QR_SIZES = {
    "small": 150,
    "medium": 200,
    "large": 300,
    "xlarge": 400,
}

_BORDER = 4


def public_asset_url(app_url: str, asset_id: int) -> str:
    return f"{app_url.rstrip('/')}/public/assets/{asset_id}"


def render_qr_png(data: str, size_px: int = QR_SIZES["medium"]) -> bytes:
    """Render *data* as a PNG roughly *size_px* wide (whole pixels per module)."""
    qr = qrcode.QRCode(version=None, error_correction=ERROR_CORRECT_M, border=_BORDER)
    qr.add_data(data)
    qr.make(fit=True)
    qr.box_size = max(1, size_px // (qr.modules_count + 2 * _BORDER))

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
