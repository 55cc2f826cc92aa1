"""SQLAlchemy ORM model for application users."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from purchasing.db.base import Base
from purchasing.domain.mixins import SoftDeleteMixin, TenantMixin, TimestampMixin, new_id

USER_ROLES = ("admin", "project_manager", "field_worker")


class User(Base, TenantMixin, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # "admin" | "project_manager" | "field_worker"
    role: Mapped[str] = mapped_column(String(50), default="field_worker", nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
