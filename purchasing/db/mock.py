"""In-memory Mock DB used when the primary database is unreachable.

Mirrors the subset of tables the PO template pipeline writes to (vendors,
projects, purchase orders, items) so uploads keep working during a database
outage. Data lives for the lifetime of the process only.
"""

from __future__ import annotations

import itertools
import logging
import threading
from datetime import datetime, timezone
from typing import Any

from purchasing.schemas.po_template import ParsedOrder

logger = logging.getLogger(__name__)

_TABLES = ("vendors", "projects", "purchaseOrders", "purchaseOrderItems")


class MockDB:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.clear()

    def clear(self) -> None:
        with self._lock:
            self._data: dict[str, list[dict[str, Any]]] = {name: [] for name in _TABLES}
            self._ids = {name: itertools.count(1) for name in _TABLES}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        row = {"id": next(self._ids[table]), **row, "createdAt": datetime.now(timezone.utc).isoformat()}
        self._data[table].append(row)
        return row

    def _find(self, table: str, field: str, value: Any) -> dict[str, Any] | None:
        return next((r for r in self._data[table] if r.get(field) == value), None)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def save_orders(self, orders: list[ParsedOrder], user_id: str | None) -> int:
        """Persist parsed template orders; returns the number of orders saved."""
        saved = 0
        with self._lock:
            for order in orders:
                vendor = self._find("vendors", "name", order.vendor_name)
                if vendor is None:
                    vendor = self._insert("vendors", {
                        "name": order.vendor_name,
                        "email": order.vendor_email,
                        "contactPerson": "자동생성",
                    })
                project = self._find("projects", "projectName", order.site_name)
                if project is None:
                    project = self._insert("projects", {
                        "projectName": order.site_name,
                        "projectCode": f"MOCK-{len(self._data['projects']) + 1:04d}",
                        "status": "active",
                    })
                if self._find("purchaseOrders", "orderNumber", order.order_number):
                    logger.warning("Mock DB: skipping duplicate order %s", order.order_number)
                    continue

                po = self._insert("purchaseOrders", {
                    "orderNumber": order.order_number,
                    "vendorId": vendor["id"],
                    "projectId": project["id"],
                    "userId": user_id,
                    "orderDate": order.order_date.isoformat() if order.order_date else None,
                    "deliveryDate": order.due_date.isoformat() if order.due_date else None,
                    "totalAmount": order.total_amount,
                    "status": "draft",
                })
                for item in order.items:
                    self._insert("purchaseOrderItems", {
                        "orderId": po["id"],
                        **item.model_dump(by_alias=True, exclude={"row_index"}),
                    })
                saved += 1
        logger.info("Mock DB: saved %d of %d orders", saved, len(orders))
        return saved

    def get_stats(self) -> dict[str, int]:
        return {
            "vendors": len(self._data["vendors"]),
            "projects": len(self._data["projects"]),
            "purchaseOrders": len(self._data["purchaseOrders"]),
            "purchaseOrderItems": len(self._data["purchaseOrderItems"]),
        }

    def get_all_data(self) -> dict[str, list[dict[str, Any]]]:
        return {name: list(rows) for name, rows in self._data.items()}


mock_db = MockDB()
