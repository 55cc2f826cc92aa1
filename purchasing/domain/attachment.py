"""SQLAlchemy ORM model for files attached to purchase orders.

Files live either on disk (``file_path`` relative to the working directory)
or inline in the row: ``file_path = "db://<name>"`` with Base64 ``file_data``.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from purchasing.db.base import Base
from purchasing.domain.mixins import SoftDeleteMixin, TenantMixin, TimestampMixin, new_id

DB_STORAGE_PREFIX = "db://"


class Attachment(Base, TenantMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "attachments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    stored_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(150), nullable=True, index=True)
    file_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True, deferred=True)
    uploaded_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    order: Mapped["PurchaseOrder"] = relationship(back_populates="attachments")

    @property
    def stored_in_db(self) -> bool:
        return self.file_path.startswith(DB_STORAGE_PREFIX)
