"""SQLAlchemy ORM model for the issuing Company printed on PO documents."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from purchasing.db.base import Base
from purchasing.domain.mixins import SoftDeleteMixin, TenantMixin, TimestampMixin, new_id


class Company(Base, TenantMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    business_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    representative: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
