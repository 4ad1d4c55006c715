# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Excel / CSV import and export of assets.

Import
------
* ``.xlsx`` (openpyxl) or ``.csv`` (comma or semicolon separated).
* Header cells are matched case-insensitively against the export labels
  ("Asset Name") or the field names ("name"); unknown columns are ignored.
* Rows are processed one by one: blank rows are skipped, a bad row is
  reported as ``Row N: reason`` and the rest of the file still imports.
* Serial numbers must be unique across the file and the database.

Export
------
The same column layout plus a computed "Current Value" column, so an export
can be edited and imported again.
"""

import csv
import io
from datetime import date, datetime
from typing import Optional

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from assets.depreciation import fill_missing_depreciation
from assets.schemas import ImportReport
from models.asset import ASSET_STATUSES, DEFAULT_STATUS, Asset

# (header label, model field, cell kind)
COLUMNS = [
    ("Serial Number", "asset_id", "text"),
    ("Asset Name", "name", "text"),
    ("Description", "description", "text"),
    ("Category", "category", "text"),
    ("Sub Category", "sub_category", "text"),
    ("Quantity", "quantity", "int"),
    ("Unit", "unit", "text"),
    ("Location", "location", "text"),
    ("Department", "department", "text"),
    ("Status", "status", "text"),
    ("Purchase Date", "purchase_date", "date"),
    ("Purchase Price", "purchase_price", "number"),
    ("Date of Use", "date_of_use", "date"),
    ("Expected Life (Years)", "expected_life_years", "number"),
    ("Depreciation (Annual)", "depreciation_annual", "number"),
    ("Depreciation (Monthly)", "depreciation_monthly", "number"),
    ("Last Calibrated Date", "last_calibrated_date", "date"),
    ("Next Calibration Date", "next_calibration_date", "date"),
    ("Warranty Expiry Date", "warranty_expiry_date", "date"),
]

_LABELS = {field: label for label, field, _ in COLUMNS}

_EXPORT_COLUMNS = COLUMNS[:16] + [("Current Value", "current_value", "number")] + COLUMNS[16:]
_EXPORT_WIDTHS = [15, 25, 30, 15, 15, 10, 10, 15, 15, 12, 14, 15, 14, 18, 18, 18, 15, 18, 18, 18]

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_HEADER_FONT  = Font(name="Calibri", size=11, bold=True, color="FFFFFF")
_HEADER_FILL  = PatternFill(start_color="2563EB", end_color="2563EB", fill_type="solid")
_HEADER_ALIGN = Alignment(horizontal="center", vertical="center")
_THIN_BORDER  = Border(
    left=Side(style="thin", color="CCCCCC"),
    right=Side(style="thin", color="CCCCCC"),
    top=Side(style="thin", color="CCCCCC"),
    bottom=Side(style="thin", color="CCCCCC"),
)


class SpreadsheetError(Exception):
    """The file as a whole cannot be read (wrong type, no header, ...)."""


class RowError(Exception):
    """A single data row is invalid; the import carries on."""


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def read_rows(raw: bytes, filename: str) -> list[tuple]:
    """Return every row (header first) as a tuple of cell values."""
    name = (filename or "").lower()

    if name.endswith(".xlsx"):
        try:
            wb = load_workbook(io.BytesIO(raw), read_only=True, data_only=True)
        except Exception as exc:
            raise SpreadsheetError("Could not parse the uploaded file as .xlsx") from exc
        try:
            ws = wb.active
            if ws is None:
                raise SpreadsheetError("Workbook has no active sheet")
            return [tuple(row) for row in ws.iter_rows(values_only=True)]
        finally:
            wb.close()

    if name.endswith(".csv"):
        try:
            text = raw.decode("utf-8-sig")  # utf-8-sig strips the BOM Excel writes
        except UnicodeDecodeError as exc:
            raise SpreadsheetError("CSV file must be UTF-8 encoded") from exc
        lines = text.splitlines()
        first = lines[0] if lines else ""
        separator = ";" if first.count(";") > first.count(",") else ","
        return [tuple(row) for row in csv.reader(io.StringIO(text), delimiter=separator)]

    raise SpreadsheetError("Only .xlsx and .csv files are accepted")


def _header_map(header: tuple) -> dict[str, int]:
    """field name → 0-based column index."""
    aliases = {}
    for label, field, _ in COLUMNS:
        aliases[label.lower()] = field
        aliases[field] = field

    col_map: dict[str, int] = {}
    for idx, cell_val in enumerate(header):
        if cell_val is None:
            continue
        field = aliases.get(str(cell_val).strip().lower())
        if field and field not in col_map:
            col_map[field] = idx
    return col_map


def _is_blank(row: tuple) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in row)


# ---------------------------------------------------------------------------
# Cell parsing
# ---------------------------------------------------------------------------


def _parse_text(val) -> Optional[str]:
    if val is None:
        return None
    if isinstance(val, float) and val.is_integer():
        val = int(val)  # serial numbers typed as numbers come back as 123.0
    text = str(val).strip()
    return text or None


def _parse_number(val, label: str) -> Optional[float]:
    if val is None or (isinstance(val, str) and not val.strip()):
        return None
    if isinstance(val, bool):
        raise RowError(f"{label} must be a number")
    if isinstance(val, (int, float)):
        number = float(val)
    else:
        try:
            number = float(str(val).strip().replace(",", ""))
        except ValueError:
            raise RowError(f"{label} must be a number")
    if number < 0:
        raise RowError(f"{label} cannot be negative")
    return number


def _parse_int(val, label: str) -> Optional[int]:
    number = _parse_number(val, label)
    if number is None:
        return None
    if not number.is_integer():
        raise RowError(f"{label} must be a whole number")
    return int(number)


def _parse_date(val, label: str) -> Optional[date]:
    if val is None or (isinstance(val, str) and not val.strip()):
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    text = str(val).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise RowError(f"{label} is not a valid date: {text}")


def _parse_status(val) -> str:
    text = _parse_text(val)
    if text is None:
        return DEFAULT_STATUS
    for status in ASSET_STATUSES:
        if status.lower() == text.lower():
            return status
    raise RowError(f"Invalid status '{text}' (expected one of: {', '.join(ASSET_STATUSES)})")


def parse_row(row: tuple, col_map: dict[str, int]) -> dict:
    """Turn one data row into Asset keyword arguments, applying defaults."""
    values: dict = {}
    for label, field, kind in COLUMNS:
        idx = col_map.get(field)
        val = row[idx] if idx is not None and idx < len(row) else None

        if field == "status":
            values[field] = _parse_status(val)
        elif kind == "text":
            values[field] = _parse_text(val)
        elif kind == "int":
            values[field] = _parse_int(val, label)
        elif kind == "number":
            values[field] = _parse_number(val, label)
        else:
            values[field] = _parse_date(val, label)

    if not values["name"]:
        raise RowError(f"{_LABELS['name']} is required")
    if values["quantity"] is None:
        values["quantity"] = 1

    return fill_missing_depreciation(values)


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def import_assets(db: Session, raw: bytes, filename: str) -> ImportReport:
    """
    Parse *raw* and insert every valid row.  Raises :class:`SpreadsheetError`
    only for whole-file problems; row problems end up in ``report.errors``.
    """
    rows = read_rows(raw, filename)
    if not rows or _is_blank(rows[0]):
        raise SpreadsheetError("Sheet is empty")

    col_map = _header_map(rows[0])
    if "name" not in col_map:
        raise SpreadsheetError(f"Missing required column: {_LABELS['name']}")

    # Pre-fetch existing serial numbers to detect duplicates fast
    serials: set[str] = {
        s[0] for s in db.query(Asset.asset_id).filter(Asset.asset_id.isnot(None)).all()
    }

    total = 0
    imported = 0
    errors: list[str] = []

    for row_num, row in enumerate(rows[1:], start=2):  # row 1 = header
        if _is_blank(row):
            continue
        total += 1

        try:
            values = parse_row(row, col_map)
        except RowError as exc:
            errors.append(f"Row {row_num}: {exc}")
            continue

        serial = values["asset_id"]
        if serial and serial in serials:
            errors.append(f"Row {row_num}: Serial Number '{serial}' already exists")
            continue

        db.add(Asset(**values))
        if serial:
            serials.add(serial)   # prevent duplicates within the same file
        imported += 1

    db.commit()
    return ImportReport(total=total, imported=imported, errors=errors)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def _export_value(asset: Asset, field: str, kind: str):
    val = getattr(asset, field)
    if val is None:
        return None if kind in ("number", "int") else ""
    if kind == "date":
        return val.isoformat()
    return val


def export_rows(assets: list[Asset]) -> list[list]:
    return [
        [_export_value(asset, field, kind) for _, field, kind in _EXPORT_COLUMNS]
        for asset in assets
    ]


def _styled_workbook(title: str, headers: list[str], rows: list[list], widths: list[int]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title

    # -- Header row ----------------------------------------------------------
    ws.append(headers)
    for cell in ws[1]:
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = _HEADER_ALIGN
        cell.border = _THIN_BORDER

    # -- Data rows -----------------------------------------------------------
    for row in rows:
        ws.append(row)
        row_idx = ws.max_row
        for col_idx in range(1, len(headers) + 1):
            ws.cell(row=row_idx, column=col_idx).border = _THIN_BORDER

    for col_idx, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    buf = io.BytesIO()
    wb.save(buf)
    wb.close()
    return buf.getvalue()


def build_export_workbook(assets: list[Asset]) -> bytes:
    headers = [label for label, _, _ in _EXPORT_COLUMNS]
    return _styled_workbook("Assets", headers, export_rows(assets), _EXPORT_WIDTHS)


def build_export_csv(assets: list[Asset]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([label for label, _, _ in _EXPORT_COLUMNS])
    writer.writerows(export_rows(assets))
    return buf.getvalue()


def build_import_template() -> bytes:
    """Empty import sheet with one example row."""
    headers = [label for label, _, _ in COLUMNS]
    example = [
        "SN-0001", "Laptop Dell Latitude 5440", "Office laptop", "Electronics", "Laptop",
        1, "unit", "Head Office", "IT", "In Use",
        "2025-01-15", 15000000, "2025-02-01", 4, "", "",
        "", "", "2028-01-15",
    ]
    widths = [w for i, w in enumerate(_EXPORT_WIDTHS) if i != 16]
    return _styled_workbook("Assets", headers, [example], widths)
