"""SQLAlchemy ORM model for Projects (construction sites / 현장)."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Boolean, Date, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from purchasing.db.base import Base
from purchasing.domain.mixins import SoftDeleteMixin, TenantMixin, TimestampMixin, new_id

PROJECT_TYPES = ("residential", "commercial", "industrial", "infrastructure")
PROJECT_STATUSES = ("active", "completed", "on_hold", "cancelled")


class Project(Base, TenantMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "projects"
    __table_args__ = (UniqueConstraint("client_id", "project_code", name="uq_projects_client_code"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    project_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    project_code: Mapped[str] = mapped_column(String(50), nullable=False)
    client_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    project_type: Mapped[str] = mapped_column(String(50), default="commercial", nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    # "active" | "completed" | "on_hold" | "cancelled"
    status: Mapped[str] = mapped_column(String(50), default="active", nullable=False, index=True)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    total_budget: Mapped[Optional[Decimal]] = mapped_column(Numeric(15, 2), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    orders: Mapped[List["PurchaseOrder"]] = relationship(back_populates="project", lazy="noload")
