"""Shared fixtures: throwaway SQLite database, HTTP client, users, workbooks."""

import os
import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="purchasing-tests-"))

# Must be set before anything imports purchasing.core.config
os.environ.update({
    "APP_ENV": "test",
    "DATABASE_URL": f"sqlite+aiosqlite:///{_TMP / 'test.db'}",
    "UPLOAD_DIR": str(_TMP / "uploads"),
    "AUDIT_ENABLED": "false",
    "AUTO_CREATE_TABLES": "false",
    "SMTP_PASS": "",
    "SESSION_SECRET": "test-secret",
})

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from purchasing.core.config import settings  # noqa: E402
from purchasing.core.security import hash_password  # noqa: E402
from purchasing.db.base import Base, async_session_factory, engine  # noqa: E402
from purchasing.db.mock import mock_db  # noqa: E402
from purchasing.domain import (  # noqa: E402
    PurchaseOrder,
    PurchaseOrderItem,
    Project,
    User,
    Vendor,
)
from purchasing.main import app  # noqa: E402
from tests.factories import build_template  # noqa: E402

CLIENT_ID = settings.default_client_id
ADMIN_PASSWORD = "admin-pass-123"
WORKER_PASSWORD = "worker-pass-123"
# Cheap hash so each login test stays fast
TEST_HASH_METHOD = "pbkdf2:sha256:1000"


@pytest.fixture(autouse=True)
def _isolated_upload_dir(tmp_path, monkeypatch):
    """Give every test its own UPLOAD_DIR so files left by one test don't leak into another."""
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))


@pytest.fixture
def upload_dir() -> Path:
    root = Path(settings.upload_dir).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@pytest.fixture
def template_path(tmp_path) -> Path:
    return build_template(tmp_path / "template.xlsx")


@pytest.fixture
def uploaded_template(upload_dir) -> Path:
    """A valid template already sitting in UPLOAD_DIR."""
    path = build_template(upload_dir / f"uploaded-{os.urandom(4).hex()}.xlsx")
    yield path
    path.unlink(missing_ok=True)

# ============================================================================
# DATABASE / HTTP
# ============================================================================

@pytest.fixture(autouse=True)
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    mock_db.clear()
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session():
    async with async_session_factory() as s:
        yield s


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


async def _create_user(session, email: str, password: str, role: str) -> User:
    user = User(
        client_id=CLIENT_ID,
        email=email,
        password_hash=hash_password(password, method=TEST_HASH_METHOD),
        name=email.split("@")[0],
        role=role,
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def admin_user(session) -> User:
    return await _create_user(session, "admin@example.com", ADMIN_PASSWORD, "admin")


@pytest.fixture
async def worker_user(session) -> User:
    return await _create_user(session, "worker@example.com", WORKER_PASSWORD, "field_worker")


@pytest.fixture
async def auth_client(client, admin_user):
    resp = await client.post("/api/auth/login", json={"email": admin_user.email, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return client


@pytest.fixture
async def make_order(session):
    """Factory: persist a vendor + project + order with two items."""
    counter = {"n": 0}

    async def _make(status: str = "draft", *, vendor_email: str | None = "vendor@example.com") -> PurchaseOrder:
        counter["n"] += 1
        n = counter["n"]
        vendor = Vendor(client_id=CLIENT_ID, name=f"Vendor {n}", email=vendor_email, contact_person="Kim")
        project = Project(client_id=CLIENT_ID, project_name=f"Site {n}", project_code=f"P-{n:03d}")
        session.add_all([vendor, project])
        await session.flush()

        order = PurchaseOrder(
            client_id=CLIENT_ID,
            order_number=f"PO-20240115-{n:03d}",
            project_id=project.id,
            vendor_id=vendor.id,
            order_date=date(2024, 1, 15),
            delivery_date=date(2024, 1, 30),
            status=status,
            total_amount=Decimal("121000"),
        )
        session.add(order)
        await session.flush()
        session.add_all([
            PurchaseOrderItem(
                order_id=order.id, line_no=1, item_name="Rebar D13", unit="ton",
                quantity=Decimal("1"), unit_price=Decimal("100000"), supply_amount=Decimal("100000"),
                tax_amount=Decimal("10000"), total_amount=Decimal("110000"),
            ),
            PurchaseOrderItem(
                order_id=order.id, line_no=2, item_name="Tie wire", unit="roll",
                quantity=Decimal("1"), unit_price=Decimal("10000"), supply_amount=Decimal("10000"),
                tax_amount=Decimal("1000"), total_amount=Decimal("11000"),
            ),
        ])
        await session.commit()
        return order

    return _make
