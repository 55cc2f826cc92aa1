"""Domain package — all ORM models are imported here so Alembic autogenerate detects them.

Folder intent:
  vendor.py      — Vendors (거래처)
  project.py     — Projects / construction sites (현장)
  company.py     — Issuing company printed on PO documents
  user.py        — Application users and roles
  order.py       — Purchase orders, line items, order history, status rules
  attachment.py  — Files attached to orders (disk or Base64-in-DB)
  audit.py       — Immutable audit trail (never updated or deleted)
  mixins.py      — TenantMixin, TimestampMixin, SoftDeleteMixin, id helpers
"""

from purchasing.domain.attachment import Attachment
from purchasing.domain.audit import AuditTrail
from purchasing.domain.company import Company
from purchasing.domain.order import OrderHistory, OrderStatus, PurchaseOrder, PurchaseOrderItem
from purchasing.domain.project import Project
from purchasing.domain.user import User
from purchasing.domain.vendor import Vendor

__all__ = [
    "Attachment",
    "AuditTrail",
    "Company",
    "OrderHistory",
    "OrderStatus",
    "Project",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "User",
    "Vendor",
]
