"""Email dispatch schemas shared by the template pipeline and order routes."""

from datetime import date

from pydantic import Field

from purchasing.schemas.common import CamelModel


class EmailOptions(CamelModel):
    """What to send and to whom. Order fields fill the summary body."""

    to: list[str] = Field(min_length=1)
    cc: list[str] = Field(default_factory=list)
    subject: str | None = None
    order_number: str | None = None
    vendor_name: str | None = None
    order_date: date | None = None
    due_date: date | None = None
    total_amount: float | None = None
    additional_message: str | None = None
    additional_attachments: list[str] = Field(default_factory=list)


class EmailAttachment(CamelModel):
    filename: str
    path: str
    content_type: str = "application/octet-stream"


class EmailResult(CamelModel):
    success: bool
    message_id: str | None = None
    accepted: list[str] = Field(default_factory=list)
    rejected: list[str] = Field(default_factory=list)
    attachments: list[str] = Field(default_factory=list)
    mock: bool = False
    error: str | None = None


class ConnectionCheck(CamelModel):
    success: bool
    mock: bool = False
    message: str
