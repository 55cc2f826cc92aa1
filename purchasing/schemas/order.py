"""Purchase order response models and request bodies."""

from datetime import date, datetime

from pydantic import Field

from purchasing.schemas.common import CamelModel


class VendorBrief(CamelModel):
    id: str
    name: str
    email: str | None = None
    contact_person: str | None = None


class ProjectBrief(CamelModel):
    id: str
    project_name: str
    project_code: str
    status: str


class OrderItemOut(CamelModel):
    id: str
    line_no: int
    item_name: str
    specification: str | None = None
    unit: str | None = None
    quantity: float
    unit_price: float
    supply_amount: float
    tax_amount: float
    total_amount: float
    category_lv1: str | None = None
    category_lv2: str | None = None
    category_lv3: str | None = None
    delivery_name: str | None = None
    delivery_email: str | None = None
    notes: str | None = None


class AttachmentOut(CamelModel):
    id: str
    original_name: str
    file_size: int | None = None
    mime_type: str | None = None
    created_at: datetime


class OrderSummary(CamelModel):
    id: str
    order_number: str
    status: str
    order_date: date
    delivery_date: date | None = None
    total_amount: float
    source: str
    vendor: VendorBrief | None = None
    project: ProjectBrief | None = None
    created_at: datetime


class OrderOut(OrderSummary):
    company_id: str | None = None
    user_id: str | None = None
    notes: str | None = None
    sent_at: datetime | None = None
    updated_at: datetime
    items: list[OrderItemOut] = Field(default_factory=list)
    attachments: list[AttachmentOut] = Field(default_factory=list)


class StatusUpdate(CamelModel):
    status: str
    reason: str | None = None


class OrderEmailRequest(CamelModel):
    to: list[str] | None = None
    cc: list[str] = Field(default_factory=list)
    subject: str | None = None
    message: str | None = None


class DraftProcessingResult(CamelModel):
    total: int = 0
    processed: int = 0
    failed: int = 0
    order_ids: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
