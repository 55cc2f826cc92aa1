"""PO template pipeline schemas: parsed orders, validation reports, step payloads."""

from datetime import date

from pydantic import Field

from purchasing.schemas.common import CamelModel
from purchasing.schemas.email import EmailResult

# ---------------------------------------------------------------------------
# Parser output
# ---------------------------------------------------------------------------

class ParsedOrderItem(CamelModel):
    row_index: int
    item_name: str
    specification: str | None = None
    unit: str | None = None
    quantity: float = 0
    unit_price: float = 0
    supply_amount: float = 0
    tax_amount: float = 0
    total_amount: float = 0
    category_lv1: str | None = None
    category_lv2: str | None = None
    category_lv3: str | None = None
    delivery_name: str | None = None
    delivery_email: str | None = None
    notes: str | None = None


class ParsedOrder(CamelModel):
    order_number: str
    # False when the parser generated a provisional number; saving allocates the real one
    number_from_file: bool = False
    order_date: date | None = None
    due_date: date | None = None
    vendor_name: str
    vendor_email: str | None = None
    site_name: str
    total_amount: float = 0
    items: list[ParsedOrderItem] = Field(default_factory=list)


class ParseResult(CamelModel):
    success: bool
    total_orders: int = 0
    total_items: int = 0
    orders: list[ParsedOrder] = Field(default_factory=list)
    error: str | None = None

# ---------------------------------------------------------------------------
# Validator output
# ---------------------------------------------------------------------------

class ValidationIssue(CamelModel):
    row: int | None = None
    field: str | None = None
    message: str


class ValidationReport(CamelModel):
    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    total_rows: int = 0
    valid_rows: int = 0
    sheet_names: list[str] = Field(default_factory=list)

# ---------------------------------------------------------------------------
# Route payloads
# ---------------------------------------------------------------------------

class UploadResult(CamelModel):
    file_path: str
    original_name: str
    stored_name: str
    file_size: int
    validation: ValidationReport
    parse: ParseResult


class SaveOrdersRequest(CamelModel):
    orders: list[ParsedOrder] = Field(min_length=1)


class OrderSaveError(CamelModel):
    order_number: str
    message: str


class SaveResult(CamelModel):
    saved_orders: int = 0
    order_ids: list[str] = Field(default_factory=list)
    order_numbers: list[str] = Field(default_factory=list)
    errors: list[OrderSaveError] = Field(default_factory=list)
    using_mock_db: bool = False
    db_error: str | None = None


class ExtractSheetsRequest(CamelModel):
    file_path: str
    sheet_names: list[str] | None = None


class ExtractResult(CamelModel):
    extracted_path: str
    sheet_names: list[str]


class ConvertPdfRequest(CamelModel):
    file_path: str
    sheet_names: list[str] | None = None


class ConvertPdfResult(CamelModel):
    pdf_path: str
    file_size: int


class TemplateEmailRequest(CamelModel):
    file_path: str
    to: list[str] = Field(min_length=1)
    cc: list[str] = Field(default_factory=list)
    subject: str | None = None
    order_number: str | None = None
    vendor_name: str | None = None
    order_date: date | None = None
    due_date: date | None = None
    total_amount: float | None = None
    additional_message: str | None = None
    use_original_format: bool = False
    additional_attachments: list[str] = Field(default_factory=list)


class DbStatus(CamelModel):
    connected: bool
    using_mock_db: bool
    message: str
    error: str | None = None


class StepResult(CamelModel):
    success: bool
    skipped: bool = False
    message: str | None = None
    data: dict | None = None


class ProcessSummary(CamelModel):
    total_orders: int = 0
    total_items: int = 0
    saved_orders: int = 0
    extracted: bool = False
    pdf_generated: bool = False
    email_sent: bool = False
    using_mock_db: bool = False


class ProcessCompleteResult(CamelModel):
    success: bool
    steps: dict[str, StepResult] = Field(default_factory=dict)
    summary: ProcessSummary = Field(default_factory=ProcessSummary)
    email: EmailResult | None = None


class DbStats(CamelModel):
    using_mock_db: bool
    stats: dict[str, int] = Field(default_factory=dict)
    latest: dict[str, list[dict]] = Field(default_factory=dict)
    db_error: str | None = None
