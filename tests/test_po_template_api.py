"""Tests for the /api/po-template pipeline routes."""

import io
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from purchasing.db.mock import mock_db
from purchasing.domain import Project, PurchaseOrder, Vendor
from purchasing.repositories.order import PurchaseOrderRepository
from purchasing.repositories.vendor import VendorRepository
from purchasing.services.po_template_service import POTemplateService
from tests.factories import HEADER, SAMPLE_ROWS, build_template

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _workbook_bytes(tmp_path, **kwargs) -> bytes:
    return build_template(tmp_path / "upload.xlsx", **kwargs).read_bytes()


async def _upload(client, content: bytes, filename: str = "발주서.xlsx"):
    return await client.post("/api/po-template/upload", files={"file": (filename, io.BytesIO(content), XLSX)})


async def _upload_and_save(client, tmp_path) -> dict:
    uploaded = (await _upload(client, _workbook_bytes(tmp_path))).json()["data"]
    resp = await client.post("/api/po-template/save", json={"orders": uploaded["parse"]["orders"]})
    assert resp.status_code == 200
    return resp.json()["data"]


def _broken_save(*args, **kwargs):
    raise OperationalError("INSERT INTO purchase_orders", {}, Exception("database is locked"))

# ============================================================================
# STATUS
# ============================================================================

async def test_db_status(auth_client):
    resp = await auth_client.get("/api/po-template/db-status")
    assert resp.status_code == 200
    assert resp.json()["data"] == {
        "connected": True, "usingMockDb": False, "message": "Database connected", "error": None,
    }


async def test_email_connection_in_test_mode(auth_client):
    resp = await auth_client.get("/api/po-template/test-email")
    assert resp.status_code == 200
    assert resp.json()["data"]["mock"] is True

# ============================================================================
# UPLOAD
# ============================================================================

async def test_upload_parses_and_validates(auth_client, tmp_path, upload_dir):
    resp = await _upload(auth_client, _workbook_bytes(tmp_path))

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["originalName"] == "발주서.xlsx"
    assert data["storedName"].endswith(".xlsx")
    assert (upload_dir / data["storedName"]).is_file()
    assert data["validation"]["isValid"] is True
    assert data["parse"]["totalOrders"] == 2
    assert data["parse"]["totalItems"] == 3
    first = data["parse"]["orders"][0]
    assert first["orderNumber"] == "PO-20240115-001"
    assert first["orderDate"] == "2024-01-15"
    assert first["totalAmount"] == 9_416_000


async def test_upload_reports_row_errors_without_failing(auth_client, tmp_path):
    row = list(SAMPLE_ROWS[0])
    row[3] = "bad-email"
    resp = await _upload(auth_client, _workbook_bytes(tmp_path, rows=[row]))

    assert resp.status_code == 200
    validation = resp.json()["data"]["validation"]
    assert validation["isValid"] is False
    assert validation["errors"][0]["field"] == "vendor_email"


async def test_upload_accepts_fixed_layout_without_known_header(auth_client, tmp_path):
    header = ["Date", "Due", "Supplier", *(f"col{i}" for i in range(16))]
    resp = await _upload(auth_client, _workbook_bytes(tmp_path, header=header))

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["validation"]["isValid"] is True
    assert data["parse"]["totalOrders"] == 2
    assert data["parse"]["totalItems"] == 3


async def test_upload_rejects_extension(auth_client):
    resp = await _upload(auth_client, b"a,b,c", filename="orders.csv")
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_upload_rejects_empty_file(auth_client):
    resp = await _upload(auth_client, b"")
    assert resp.status_code == 422


async def test_upload_without_input_sheet_is_deleted(auth_client, tmp_path, upload_dir):
    before = set(upload_dir.iterdir())
    resp = await _upload(auth_client, _workbook_bytes(tmp_path, input_title="Data"))

    assert resp.status_code == 400
    body = resp.json()["error"]
    assert body["code"] == "TEMPLATE_INVALID"
    assert body["details"]["isValid"] is False
    assert set(upload_dir.iterdir()) == before

# ============================================================================
# SAVE
# ============================================================================

async def test_save_creates_orders_vendors_and_projects(auth_client, tmp_path, session, admin_user):
    saved = await _upload_and_save(auth_client, tmp_path)

    assert saved["savedOrders"] == 2
    assert len(saved["orderIds"]) == 2
    assert saved["usingMockDb"] is False

    orders = (await session.execute(select(PurchaseOrder).order_by(PurchaseOrder.order_number))).scalars().all()
    assert [o.status for o in orders] == ["draft", "draft"]
    assert {o.source for o in orders} == {"excel_template"}
    assert orders[0].user_id == admin_user.id
    assert [i.item_name for i in orders[0].items] == ["이형철근 D13", "결속선 #8"]

    vendors = (await session.execute(select(Vendor))).scalars().all()
    assert {v.name for v in vendors} == {"대한철강", "한빛자재"}
    assert {v.contact_person for v in vendors} == {"자동생성"}

    projects = (await session.execute(select(Project))).scalars().all()
    assert all(p.project_code.startswith("AUTO-") for p in projects)


async def test_save_reuses_existing_vendor(auth_client, tmp_path, session):
    session.add(Vendor(client_id="default", name="대한철강", email="old@daehan.co.kr"))
    await session.commit()

    await _upload_and_save(auth_client, tmp_path)

    vendors = (await session.execute(select(Vendor).where(Vendor.name == "대한철강"))).scalars().all()
    assert len(vendors) == 1
    assert vendors[0].email == "old@daehan.co.kr"


async def test_save_continues_order_number_sequence(auth_client, tmp_path):
    first = await _upload_and_save(auth_client, tmp_path)

    row = list(SAMPLE_ROWS[0])
    row[2] = "세진건재"
    uploaded = (await _upload(auth_client, _workbook_bytes(tmp_path, rows=[row]))).json()["data"]
    assert uploaded["parse"]["orders"][0]["orderNumber"] == "PO-20240115-001"
    second = (await auth_client.post("/api/po-template/save", json={"orders": uploaded["parse"]["orders"]})).json()["data"]

    assert first["orderNumbers"] == ["PO-20240115-001", "PO-20240116-001"]
    assert second["savedOrders"] == 1
    assert second["errors"] == []
    assert second["orderNumbers"] == ["PO-20240115-002"]


async def _save_numbered(client, tmp_path, numbers=("PO-A-1", "PO-A-2")) -> dict:
    rows = [[numbers[0], *SAMPLE_ROWS[0]], [numbers[1], *SAMPLE_ROWS[2]]]
    content = _workbook_bytes(tmp_path, rows=rows, header=["발주번호", *HEADER])
    uploaded = (await _upload(client, content)).json()["data"]
    return (await client.post("/api/po-template/save", json={"orders": uploaded["parse"]["orders"]})).json()["data"]


async def test_save_rejects_duplicate_file_order_numbers(auth_client, tmp_path):
    await _save_numbered(auth_client, tmp_path)
    again = await _save_numbered(auth_client, tmp_path)

    assert again["savedOrders"] == 0
    assert [e["orderNumber"] for e in again["errors"]] == ["PO-A-1", "PO-A-2"]
    assert {e["message"] for e in again["errors"]} == {"Order number already exists"}


async def test_save_treats_soft_deleted_numbers_as_taken(auth_client, tmp_path, session):
    first = await _save_numbered(auth_client, tmp_path)
    order = await session.get(PurchaseOrder, first["orderIds"][0])
    order.deleted_at = datetime.now(timezone.utc)
    await session.commit()

    again = await _save_numbered(auth_client, tmp_path, numbers=("PO-A-1", "PO-C-1"))

    assert again["savedOrders"] == 1
    assert again["orderNumbers"] == ["PO-C-1"]
    assert [e["orderNumber"] for e in again["errors"]] == ["PO-A-1"]


async def test_save_constraint_failure_rejects_only_that_order(auth_client, tmp_path, monkeypatch, session):
    async def _not_taken(self, order_number):
        return False

    await _save_numbered(auth_client, tmp_path)
    monkeypatch.setattr(PurchaseOrderRepository, "number_taken", _not_taken)

    result = await _save_numbered(auth_client, tmp_path, numbers=("PO-A-1", "PO-B-1"))

    assert result["savedOrders"] == 1
    assert result["orderNumbers"] == ["PO-B-1"]
    assert result["errors"] == [{"orderNumber": "PO-A-1", "message": "Rejected by database constraints"}]
    numbers = (await session.execute(select(PurchaseOrder.order_number))).scalars().all()
    assert sorted(numbers) == ["PO-A-1", "PO-A-2", "PO-B-1"]


async def test_save_falls_back_to_mock_db(auth_client, tmp_path, monkeypatch, session):
    monkeypatch.setattr(POTemplateService, "_save_order", _broken_save)
    saved = await _upload_and_save(auth_client, tmp_path)

    assert saved["usingMockDb"] is True
    assert saved["savedOrders"] == 2
    assert "database is locked" in saved["dbError"]
    assert mock_db.get_stats()["purchaseOrders"] == 2
    assert (await session.execute(select(PurchaseOrder))).scalars().all() == []


async def test_save_requires_orders(auth_client):
    resp = await auth_client.post("/api/po-template/save", json={"orders": []})
    assert resp.status_code == 422

# ============================================================================
# STATS / HISTORY
# ============================================================================

async def test_db_stats(auth_client, tmp_path):
    await _upload_and_save(auth_client, tmp_path)
    data = (await auth_client.get("/api/po-template/db-stats")).json()["data"]

    assert data["usingMockDb"] is False
    assert data["stats"] == {"vendors": 2, "projects": 2, "purchaseOrders": 2, "purchaseOrderItems": 3}
    assert len(data["latest"]["purchaseOrderItems"]) == 3


async def test_db_stats_reports_mock_db_when_database_fails(auth_client, monkeypatch):
    monkeypatch.setattr(VendorRepository, "count", _broken_save)
    data = (await auth_client.get("/api/po-template/db-stats")).json()["data"]

    assert data["usingMockDb"] is True
    assert data["stats"]["purchaseOrders"] == 0
    assert data["dbError"]


async def test_history_lists_template_orders(auth_client, tmp_path):
    await _upload_and_save(auth_client, tmp_path)
    data = (await auth_client.get("/api/po-template/history")).json()["data"]

    assert len(data) == 2
    assert {o["source"] for o in data} == {"excel_template"}

# ============================================================================
# DOCUMENTS / EMAIL
# ============================================================================

async def test_extract_sheets(auth_client, uploaded_template):
    resp = await auth_client.post("/api/po-template/extract-sheets", json={"filePath": uploaded_template.name})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["sheetNames"] == ["갑지", "을지"]
    assert data["extractedPath"].endswith(".xlsx")


async def test_extract_rejects_paths_outside_uploads(auth_client, template_path):
    resp = await auth_client.post("/api/po-template/extract-sheets", json={"filePath": str(template_path)})
    assert resp.status_code == 422


async def test_extract_missing_file(auth_client):
    resp = await auth_client.post("/api/po-template/extract-sheets", json={"filePath": "missing.xlsx"})
    assert resp.status_code == 404


async def test_convert_to_pdf(auth_client, uploaded_template):
    resp = await auth_client.post("/api/po-template/convert-to-pdf", json={"filePath": str(uploaded_template)})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["pdfPath"].endswith(".pdf")
    assert data["fileSize"] > 0


async def test_send_email(auth_client, uploaded_template):
    resp = await auth_client.post("/api/po-template/send-email", json={
        "filePath": uploaded_template.name,
        "to": ["vendor@example.com"],
        "orderNumber": "PO-20240115-001",
        "orderDate": date(2024, 1, 15).isoformat(),
    })

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["success"] is True
    assert data["mock"] is True
    assert data["attachments"] == ["발주서_PO-20240115-001.xlsx", "발주서_PO-20240115-001.pdf"]


async def test_send_email_failure_is_502(auth_client, upload_dir):
    path = build_template(upload_dir / "no-output-sheets.xlsx", output_sheets=())
    try:
        resp = await auth_client.post("/api/po-template/send-email", json={
            "filePath": path.name, "to": ["vendor@example.com"],
        })
    finally:
        path.unlink()

    assert resp.status_code == 502
    assert resp.json()["error"]["code"] == "EMAIL_DELIVERY_ERROR"

# ============================================================================
# PROCESS COMPLETE
# ============================================================================

async def test_process_complete(auth_client, tmp_path, upload_dir):
    resp = await auth_client.post(
        "/api/po-template/process-complete",
        files={"file": ("orders.xlsx", io.BytesIO(_workbook_bytes(tmp_path)), XLSX)},
        data={"generatePDF": "true", "sendEmail": "true", "emailTo": "a@example.com, b@example.com"},
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["success"] is True
    assert {name: step["success"] for name, step in data["steps"].items()} == {
        "validation": True, "parsing": True, "saving": True, "extraction": True, "pdf": True, "email": True,
    }
    assert data["summary"]["savedOrders"] == 2
    assert data["summary"]["pdfGenerated"] is True
    assert data["summary"]["emailSent"] is True
    assert data["email"]["accepted"] == ["a@example.com", "b@example.com"]
    assert list(upload_dir.glob("extracted-*")) == []
    assert list(upload_dir.glob("po-sheets-*")) == []


async def test_process_complete_skips_optional_steps(auth_client, tmp_path):
    resp = await auth_client.post(
        "/api/po-template/process-complete",
        files={"file": ("orders.xlsx", io.BytesIO(_workbook_bytes(tmp_path)), XLSX)},
        data={"generatePDF": "false"},
    )

    steps = resp.json()["data"]["steps"]
    assert steps["pdf"]["skipped"] is True
    assert steps["email"]["skipped"] is True
    assert resp.json()["data"]["email"] is None


async def test_process_complete_rejects_invalid_template(auth_client, tmp_path):
    row = list(SAMPLE_ROWS[0])
    row[1] = date(2023, 12, 1)
    resp = await auth_client.post(
        "/api/po-template/process-complete",
        files={"file": ("orders.xlsx", io.BytesIO(_workbook_bytes(tmp_path, rows=[row])), XLSX)},
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["details"]["errors"][0]["field"] == "due_date"
