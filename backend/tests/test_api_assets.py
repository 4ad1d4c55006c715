"""
API tests for /api/assets, attachments, QR codes, public lookup and reports.
"""

import csv
import io
from pathlib import Path

import pytest
from openpyxl import load_workbook
from PIL import Image

from assets.qr import QR_SIZES, public_asset_url
from models.asset import Asset
from models.audit_log import AuditLog

LAPTOP = {
    "asset_id": "SN-1",
    "name": "Laptop",
    "category": "Electronics",
    "quantity": 1,
    "status": "In Use",
    "purchase_date": "2025-01-15",
    "purchase_price": 12000,
    "expected_life_years": 4,
}


@pytest.fixture
def create_asset(client, staff_headers):
    def _create(**overrides):
        resp = client.post("/api/assets", json={**LAPTOP, **overrides}, headers=staff_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create


class TestCrud:
    def test_requires_login(self, client):
        assert client.get("/api/assets").status_code == 401
        assert client.post("/api/assets", json=LAPTOP).status_code == 401

    def test_create_computes_depreciation(self, create_asset):
        asset = create_asset()

        assert asset["id"] > 0
        assert asset["depreciation_annual"] == 3000.0
        assert asset["depreciation_monthly"] == 250.0
        assert asset["current_value"] == 12000.0   # not in use yet: no date_of_use
        assert asset["attachments"] == []
        assert asset["attachment_count"] == 0

    def test_create_defaults(self, client, staff_headers):
        resp = client.post("/api/assets", json={"name": "Chair"}, headers=staff_headers)

        assert resp.status_code == 201
        body = resp.json()
        assert body["quantity"] == 1
        assert body["status"] == "In Storage"
        assert body["asset_id"] is None
        assert body["current_value"] == 0.0

    def test_create_rejects_bad_input(self, client, staff_headers):
        assert client.post("/api/assets", json={"name": "  "}, headers=staff_headers).status_code == 400
        assert client.post("/api/assets", json={"name": "X", "status": "Lost"}, headers=staff_headers).status_code == 400
        assert client.post("/api/assets", json={"name": "X", "purchase_price": -1}, headers=staff_headers).status_code == 422
        assert client.post("/api/assets", json={"quantity": 1}, headers=staff_headers).status_code == 422

    def test_duplicate_serial_is_409(self, client, staff_headers, create_asset):
        create_asset()
        resp = client.post("/api/assets", json={**LAPTOP, "name": "Other"}, headers=staff_headers)

        assert resp.status_code == 409
        assert resp.json()["detail"] == "Serial number already exists"

    def test_list_and_get(self, client, staff_headers, create_asset):
        first = create_asset()
        create_asset(asset_id="SN-2", name="Desk")

        listed = client.get("/api/assets", headers=staff_headers).json()["assets"]
        assert {a["name"] for a in listed} == {"Laptop", "Desk"}

        resp = client.get(f"/api/assets/{first['id']}", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json()["asset_id"] == "SN-1"

    def test_get_unknown_is_404(self, client, staff_headers):
        resp = client.get("/api/assets/9999", headers=staff_headers)
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Asset not found"

    def test_partial_update_recomputes_depreciation(self, client, staff_headers, create_asset):
        asset = create_asset()
        resp = client.put(f"/api/assets/{asset['id']}", json={"purchase_price": 24000}, headers=staff_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["purchase_price"] == 24000.0
        assert body["depreciation_annual"] == 6000.0
        assert body["depreciation_monthly"] == 500.0
        assert body["name"] == "Laptop"
        assert body["category"] == "Electronics"

    def test_update_keeps_explicit_depreciation(self, client, staff_headers, create_asset):
        asset = create_asset()
        resp = client.put(
            f"/api/assets/{asset['id']}",
            json={"purchase_price": 24000, "depreciation_monthly": 10, "depreciation_annual": 120},
            headers=staff_headers,
        )

        assert resp.json()["depreciation_monthly"] == 10.0
        assert resp.json()["depreciation_annual"] == 120.0

    def test_update_without_price_change_keeps_depreciation(self, client, staff_headers, create_asset):
        asset = create_asset()
        resp = client.put(f"/api/assets/{asset['id']}", json={"location": "Room 1"}, headers=staff_headers)

        assert resp.json()["location"] == "Room 1"
        assert resp.json()["depreciation_monthly"] == 250.0

    def test_update_validation(self, client, staff_headers, create_asset):
        asset = create_asset()
        create_asset(asset_id="SN-2", name="Desk")
        url = f"/api/assets/{asset['id']}"

        assert client.put(url, json={"status": "Lost"}, headers=staff_headers).status_code == 400
        assert client.put(url, json={"name": ""}, headers=staff_headers).status_code == 400
        assert client.put(url, json={"asset_id": "SN-2"}, headers=staff_headers).status_code == 409
        assert client.put(url, json={"asset_id": "SN-1"}, headers=staff_headers).status_code == 200
        assert client.put("/api/assets/9999", json={"name": "X"}, headers=staff_headers).status_code == 404

    def test_delete(self, client, staff_headers, create_asset, db_session):
        asset = create_asset()
        resp = client.delete(f"/api/assets/{asset['id']}", headers=staff_headers)

        assert resp.status_code == 200
        assert client.get(f"/api/assets/{asset['id']}", headers=staff_headers).status_code == 404
        db_session.expire_all()
        assert db_session.query(AuditLog).filter(AuditLog.action == "asset_delete").count() == 1

    def test_summary(self, client, staff_headers, create_asset):
        create_asset()
        create_asset(asset_id="SN-2", name="Lift", status="Maintenance", purchase_price=500, expected_life_years=None)
        create_asset(asset_id="SN-3", name="Chair", status="In Storage", purchase_price=None)

        summary = client.get("/api/assets/summary", headers=staff_headers).json()

        assert summary == {"total_assets": 3, "in_use": 1, "maintenance": 1, "total_value": 12500.0}


class TestAttachments:
    def upload(self, client, headers, asset_id, *files):
        return client.post(
            f"/api/assets/{asset_id}/attachments",
            files=[("files", f) for f in files],
            headers=headers,
        )

    def test_upload_and_serve(self, client, staff_headers, create_asset, settings):
        asset = create_asset()
        resp = self.upload(
            client, staff_headers, asset["id"],
            ("manual.pdf", b"%PDF-1.4 manual", "application/pdf"),
            ("photo.jpg", b"\xff\xd8\xff photo", "image/jpeg"),
        )

        assert resp.status_code == 201
        rows = resp.json()
        assert [r["file_name"] for r in rows] == ["manual.pdf", "photo.jpg"]
        assert rows[0]["file_type"] == "application/pdf"
        assert rows[0]["file_url"].startswith("/uploads/")
        assert rows[0]["file_url"].endswith(".pdf")

        stored = Path(settings.upload_dir) / Path(rows[0]["file_url"]).name
        assert stored.read_bytes() == b"%PDF-1.4 manual"
        assert client.get(rows[0]["file_url"]).content == b"%PDF-1.4 manual"

        detail = client.get(f"/api/assets/{asset['id']}", headers=staff_headers).json()
        assert detail["attachment_count"] == 2
        assert len(detail["attachments"]) == 2

    def test_too_large_is_413_and_nothing_kept(self, client, staff_headers, create_asset, settings):
        asset = create_asset()
        resp = self.upload(
            client, staff_headers, asset["id"],
            ("small.txt", b"ok", "text/plain"),
            ("big.bin", b"x" * (1024 * 1024 + 1), "application/octet-stream"),
        )

        assert resp.status_code == 413
        assert list(Path(settings.upload_dir).iterdir()) == []
        detail = client.get(f"/api/assets/{asset['id']}", headers=staff_headers).json()
        assert detail["attachment_count"] == 0

    def test_upload_to_unknown_asset_is_404(self, client, staff_headers):
        resp = self.upload(client, staff_headers, 9999, ("a.txt", b"a", "text/plain"))
        assert resp.status_code == 404

    def test_delete_attachment_removes_file(self, client, staff_headers, create_asset, settings):
        asset = create_asset()
        row = self.upload(client, staff_headers, asset["id"], ("a.txt", b"a", "text/plain")).json()[0]

        resp = client.delete(f"/api/assets/attachments/{row['id']}", headers=staff_headers)

        assert resp.status_code == 200
        assert list(Path(settings.upload_dir).iterdir()) == []
        assert client.delete(f"/api/assets/attachments/{row['id']}", headers=staff_headers).status_code == 404

    def test_delete_asset_removes_files(self, client, staff_headers, create_asset, settings, db_session):
        asset = create_asset()
        self.upload(client, staff_headers, asset["id"], ("a.txt", b"a", "text/plain"), ("b.txt", b"b", "text/plain"))

        client.delete(f"/api/assets/{asset['id']}", headers=staff_headers)

        assert list(Path(settings.upload_dir).iterdir()) == []
        db_session.expire_all()
        assert db_session.query(Asset).count() == 0


class TestQrAndPublic:
    def test_qr_png(self, client, staff_headers, create_asset):
        asset = create_asset()
        resp = client.get(f"/api/assets/{asset['id']}/qr", headers=staff_headers)

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"
        assert resp.content.startswith(b"\x89PNG")

    def test_qr_sizes(self, client, staff_headers, create_asset):
        asset = create_asset()
        widths = {}
        for size in QR_SIZES:
            resp = client.get(f"/api/assets/{asset['id']}/qr", params={"size": size}, headers=staff_headers)
            widths[size] = Image.open(io.BytesIO(resp.content)).size[0]

        assert widths["small"] < widths["large"] < widths["xlarge"]
        assert all(widths[s] <= QR_SIZES[s] for s in QR_SIZES)

    def test_qr_bad_size_is_400(self, client, staff_headers, create_asset):
        asset = create_asset()
        resp = client.get(f"/api/assets/{asset['id']}/qr", params={"size": "huge"}, headers=staff_headers)
        assert resp.status_code == 400

    def test_public_url(self):
        assert public_asset_url("http://app.test/", 42) == "http://app.test/public/assets/42"

    def test_public_lookup_without_login(self, client, create_asset):
        asset = create_asset()
        resp = client.get(f"/api/public/assets/{asset['id']}")

        assert resp.status_code == 200
        assert resp.json()["name"] == "Laptop"
        assert resp.json()["attachments"] == []
        assert client.get("/api/public/assets/9999").status_code == 404


class TestImportExport:
    def test_template_download(self, client, staff_headers):
        resp = client.get("/api/assets/import-template", headers=staff_headers)

        assert resp.status_code == 200
        ws = load_workbook(io.BytesIO(resp.content)).active
        assert ws.cell(row=1, column=2).value == "Asset Name"

    def test_import_csv(self, client, staff_headers):
        raw = b"Asset Name,Serial Number\nLaptop,SN-1\n,SN-2\n"
        resp = client.post(
            "/api/assets/import",
            files={"file": ("assets.csv", raw, "text/csv")},
            headers=staff_headers,
        )

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "total": 2,
            "imported": 1,
            "errors": ["Row 3: Asset Name is required"],
        }

    def test_import_bad_file_is_400(self, client, staff_headers):
        resp = client.post(
            "/api/assets/import",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=staff_headers,
        )
        assert resp.status_code == 400

    def test_export_empty_is_404(self, client, staff_headers):
        resp = client.get("/api/reports/assets/export", headers=staff_headers)

        assert resp.status_code == 404
        assert resp.json()["detail"] == "No assets found to export"

    def test_export_xlsx(self, client, staff_headers, create_asset):
        create_asset()
        resp = client.get("/api/reports/assets/export", headers=staff_headers)

        assert resp.status_code == 200
        assert 'filename="Asset_Report_20260105_090000.xlsx"' in resp.headers["content-disposition"]
        ws = load_workbook(io.BytesIO(resp.content)).active
        assert ws.cell(row=2, column=1).value == "SN-1"

    def test_export_csv(self, client, staff_headers, create_asset):
        create_asset()
        resp = client.get("/api/reports/assets/export", params={"format": "csv"}, headers=staff_headers)

        assert resp.status_code == 200
        rows = list(csv.reader(io.StringIO(resp.content.decode("utf-8-sig"))))
        assert rows[0][0] == "Serial Number"
        assert rows[1][1] == "Laptop"

    def test_export_bad_format_is_422(self, client, staff_headers):
        assert client.get("/api/reports/assets/export", params={"format": "pdf"}, headers=staff_headers).status_code == 422
