"""SQLAlchemy ORM models for Purchase Orders, their line items and history.

Order lifecycle (``status``)::

    draft ──> created ──> sent ──> delivered
      │  <──     │
      └──> cancelled <──┘

``delivered`` and ``cancelled`` are terminal.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import Date, DateTime, ForeignKey, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from purchasing.db.base import Base
from purchasing.domain.mixins import SoftDeleteMixin, TenantMixin, TimestampMixin, new_id, utcnow


class OrderStatus:
    DRAFT = "draft"
    CREATED = "created"
    SENT = "sent"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    ALL = (DRAFT, CREATED, SENT, DELIVERED, CANCELLED)


ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.DRAFT: frozenset({OrderStatus.CREATED, OrderStatus.CANCELLED}),
    OrderStatus.CREATED: frozenset({OrderStatus.DRAFT, OrderStatus.SENT, OrderStatus.CANCELLED}),
    OrderStatus.SENT: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class PurchaseOrder(Base, TenantMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "purchase_orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)

    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    vendor_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True, index=True
    )
    company_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("companies.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    delivery_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    # draft | created | sent | delivered | cancelled
    status: Mapped[str] = mapped_column(
        String(20), default=OrderStatus.DRAFT, nullable=False, index=True
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=0, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # "manual" | "excel_template"
    source: Mapped[str] = mapped_column(String(30), default="manual", nullable=False)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    vendor: Mapped[Optional["Vendor"]] = relationship(back_populates="orders", lazy="selectin")
    project: Mapped["Project"] = relationship(back_populates="orders", lazy="selectin")
    company: Mapped[Optional["Company"]] = relationship(lazy="selectin")
    items: Mapped[List["PurchaseOrderItem"]] = relationship(
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.line_no",
    )
    attachments: Mapped[List["Attachment"]] = relationship(
        back_populates="order", lazy="selectin", cascade="all, delete-orphan"
    )


class PurchaseOrderItem(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "purchase_order_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    line_no: Mapped[int] = mapped_column(default=1, nullable=False)

    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    specification: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(15, 3), default=0, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=0, nullable=False)
    supply_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=0, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=0, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=0, nullable=False)

    category_lv1: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category_lv2: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category_lv3: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    delivery_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    delivery_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    order: Mapped["PurchaseOrder"] = relationship(back_populates="items")


class OrderHistory(Base, TenantMixin):
    """Append-only log of actions taken on an order."""

    __tablename__ = "order_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    # created | status_changed | pdf_generated | sent
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    changes: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
