"""Purchase order repository — orders, line items, history and aggregate queries."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import and_, func, select
from sqlalchemy.orm import selectinload

from purchasing.domain.attachment import Attachment
from purchasing.domain.order import OrderHistory, OrderStatus, PurchaseOrder, PurchaseOrderItem
from purchasing.repositories.base import BaseRepository


class PurchaseOrderRepository(BaseRepository[PurchaseOrder]):
    model = PurchaseOrder

    async def get_with_details(self, order_id: str) -> PurchaseOrder | None:
        """Load an order with fresh items, attachments, vendor, project and company."""
        result = await self._session.execute(
            self._base_query()
            .where(PurchaseOrder.id == order_id)
            .options(
                selectinload(PurchaseOrder.items),
                selectinload(PurchaseOrder.attachments),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def number_taken(self, order_number: str) -> bool:
        """True when any row holds *order_number*, across tenants and soft-deleted rows."""
        stmt = select(PurchaseOrder.id).where(PurchaseOrder.order_number == order_number).limit(1)
        return (await self._session.scalar(stmt)) is not None

    async def next_order_number(self, order_date: date) -> str:
        """Next free ``PO-YYYYMMDD-NNN`` for *order_date*, continuing from existing numbers."""
        prefix = f"PO-{order_date:%Y%m%d}-"
        numbers = await self._session.scalars(
            select(PurchaseOrder.order_number).where(PurchaseOrder.order_number.like(f"{prefix}%"))
        )
        used = [int(n[len(prefix):]) for n in numbers if n[len(prefix):].isdigit()]
        return f"{prefix}{max(used, default=0) + 1:03d}"

    async def add_item(self, order_id: str, **fields: Any) -> PurchaseOrderItem:
        item = PurchaseOrderItem(order_id=order_id, **fields)
        self._session.add(item)
        await self._session.flush()
        return item

    async def add_history(
        self, order_id: str, action: str, *, user_id: str | None = None, changes: dict | None = None,
    ) -> OrderHistory:
        entry = OrderHistory(
            client_id=self._client_id,
            order_id=order_id,
            user_id=user_id,
            action=action,
            changes=changes,
        )
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def history(self, order_id: str) -> list[OrderHistory]:
        result = await self._session.execute(
            select(OrderHistory)
            .where(OrderHistory.order_id == order_id)
            .order_by(OrderHistory.created_at)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Draft processing
    # ------------------------------------------------------------------

    async def drafts_without_pdf(self, limit: int = 10) -> list[PurchaseOrder]:
        """Draft orders that have no PDF attachment yet, newest first."""
        pdf_count = (
            select(func.count(Attachment.id))
            .where(
                and_(
                    Attachment.order_id == PurchaseOrder.id,
                    Attachment.mime_type == "application/pdf",
                    Attachment.deleted_at.is_(None),
                )
            )
            .correlate(PurchaseOrder)
            .scalar_subquery()
        )
        result = await self._session.execute(
            self._base_query()
            .where(PurchaseOrder.status == OrderStatus.DRAFT)
            .where(pdf_count == 0)
            .order_by(PurchaseOrder.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Aggregates (dashboard / history)
    # ------------------------------------------------------------------

    async def total_amount(self, filters: dict[str, Any] | None = None) -> Decimal:
        q = self._apply_filters(self._base_query(), filters).subquery()
        result = await self._session.execute(select(func.coalesce(func.sum(q.c.total_amount), 0)))
        return Decimal(str(result.scalar_one()))

    async def count_by_status(self, project_id: str | None = None) -> dict[str, int]:
        q = (
            select(PurchaseOrder.status, func.count(PurchaseOrder.id))
            .where(PurchaseOrder.client_id == self._client_id)
            .where(PurchaseOrder.deleted_at.is_(None))
        )
        if project_id:
            q = q.where(PurchaseOrder.project_id == project_id)
        rows = (await self._session.execute(q.group_by(PurchaseOrder.status))).all()
        counts = {status: 0 for status in OrderStatus.ALL}
        counts.update({status: n for status, n in rows})
        return counts

    async def recent(self, limit: int = 5) -> list[PurchaseOrder]:
        result = await self._session.execute(
            self._base_query()
            .order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def template_history(self, user_id: str, limit: int = 50) -> list[PurchaseOrder]:
        result = await self._session.execute(
            self._base_query()
            .where(PurchaseOrder.user_id == user_id)
            .where(PurchaseOrder.source == "excel_template")
            .order_by(PurchaseOrder.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())


class PurchaseOrderItemRepository(BaseRepository[PurchaseOrderItem]):
    model = PurchaseOrderItem
