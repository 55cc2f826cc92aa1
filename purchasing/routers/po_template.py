"""PO template pipeline routes (/api/po-template/*).

Upload an order workbook, persist its orders (Mock DB fallback), cut out the
갑지/을지 sheets, render PDFs and email vendors. Every route requires a
logged-in user; file paths in request bodies must point inside UPLOAD_DIR.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.core.config import settings
from purchasing.core.exceptions import EmailDeliveryError, ValidationError
from purchasing.core.response import DataResponse
from purchasing.core.security import get_current_user, require_admin
from purchasing.db.base import get_db
from purchasing.db.mock import mock_db
from purchasing.domain.user import User
from purchasing.schemas.email import ConnectionCheck, EmailOptions, EmailResult
from purchasing.schemas.order import OrderSummary
from purchasing.schemas.po_template import (
    ConvertPdfRequest,
    ConvertPdfResult,
    DbStats,
    DbStatus,
    ExtractResult,
    ExtractSheetsRequest,
    ProcessCompleteResult,
    SaveOrdersRequest,
    SaveResult,
    TemplateEmailRequest,
    UploadResult,
)
from purchasing.services.email_service import POEmailService
from purchasing.services.excel_pdf import convert_excel_to_pdf
from purchasing.services.filenames import decode_filename, resolve_upload_path, sibling_path, stored_name, upload_root
from purchasing.services.po_template_service import POTemplateService
from purchasing.services.sheet_extractor import extract_sheets_to_file
from purchasing.services.template_validator import ALLOWED_EXTENSIONS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/po-template", tags=["PO Template"])


def _svc(session: AsyncSession) -> POTemplateService:
    return POTemplateService(session, settings.default_client_id)


async def _store_upload(file: UploadFile) -> tuple[Path, str]:
    """Check type and size, then write the upload under UPLOAD_DIR."""
    original_name = decode_filename(file.filename or "upload.xlsx")
    if Path(original_name).suffix.lower() not in ALLOWED_EXTENSIONS:
        raise ValidationError("Only Excel files (.xlsx, .xlsm) are accepted")

    contents = await file.read()
    if not contents:
        raise ValidationError("Uploaded file is empty")
    if len(contents) > settings.max_upload_size_bytes:
        raise ValidationError(f"File exceeds the {settings.max_upload_size_mb} MB limit")

    path = upload_root() / stored_name(original_name)
    path.write_bytes(contents)
    logger.info("Stored upload %s as %s (%d bytes)", original_name, path.name, len(contents))
    return path, original_name


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("/db-status", response_model=DataResponse[DbStatus])
async def db_status(
    _: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await _svc(session).db_status()}


@router.post("/upload", response_model=DataResponse[UploadResult])
async def upload_template(
    file: UploadFile = File(...),
    _: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Store, validate and parse an order workbook. Rejected files are deleted."""
    path, original_name = await _store_upload(file)
    return {"data": _svc(session).ingest_upload(path, original_name)}


@router.post("/save", response_model=DataResponse[SaveResult])
async def save_orders(
    body: SaveOrdersRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await _svc(session).save_orders(body.orders, user.id)}


@router.post("/extract-sheets", response_model=DataResponse[ExtractResult])
async def extract_sheets(
    body: ExtractSheetsRequest,
    _: User = Depends(get_current_user),
):
    src = resolve_upload_path(body.file_path)
    result = extract_sheets_to_file(src, sibling_path(src, "extracted", ".xlsx"), body.sheet_names)
    return {"data": result}


@router.post("/convert-to-pdf", response_model=DataResponse[ConvertPdfResult])
async def convert_to_pdf(
    body: ConvertPdfRequest,
    _: User = Depends(get_current_user),
):
    src = resolve_upload_path(body.file_path)
    sheets = body.sheet_names or settings.extract_sheet_names
    result = convert_excel_to_pdf(src, sibling_path(src, "po-sheets", ".pdf"), sheets)
    return {"data": result}


@router.post("/send-email", response_model=DataResponse[EmailResult])
async def send_email(
    body: TemplateEmailRequest,
    _: User = Depends(get_current_user),
):
    src = resolve_upload_path(body.file_path)
    options = EmailOptions(
        **body.model_dump(exclude={"file_path", "use_original_format", "additional_attachments"}),
        additional_attachments=[str(resolve_upload_path(p)) for p in body.additional_attachments],
    )
    mailer = POEmailService()
    if body.use_original_format:
        result = await mailer.send_po_with_original_format(src, options)
    else:
        result = await mailer.send_po_with_attachments(src, options)
    if not result.success:
        raise EmailDeliveryError(result.error or "Email delivery failed")
    return {"data": result}


@router.get("/db-stats", response_model=DataResponse[DbStats])
async def db_stats(
    _: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    return {"data": await _svc(session).db_stats()}


@router.post("/process-complete", response_model=DataResponse[ProcessCompleteResult])
async def process_complete(
    file: UploadFile = File(...),
    generate_pdf: bool = Form(default=True, alias="generatePDF"),
    email_enabled: bool = Form(default=False, alias="sendEmail"),
    email_to: str | None = Form(default=None, alias="emailTo"),
    email_subject: str | None = Form(default=None, alias="emailSubject"),
    email_message: str | None = Form(default=None, alias="emailMessage"),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    """Upload -> validate -> parse -> save -> extract -> PDF -> email in one request.

    ``emailTo`` takes a comma-separated recipient list.
    """
    path, original_name = await _store_upload(file)
    recipients = [r.strip() for r in (email_to or "").split(",") if r.strip()] if email_enabled else []
    result = await _svc(session).process_complete(
        path,
        original_name,
        user.id,
        generate_pdf=generate_pdf,
        email_to=recipients,
        email_subject=email_subject,
        email_message=email_message,
    )
    return {"data": result}


@router.get("/test-email", response_model=DataResponse[ConnectionCheck])
async def test_email(_: User = Depends(get_current_user)):
    return {"data": await POEmailService().test_connection()}


@router.post("/reset-db")
async def reset_mock_db(_: User = Depends(require_admin)):
    mock_db.clear()
    logger.info("Mock DB cleared")
    return {"data": mock_db.get_stats()}


@router.get("/history", response_model=DataResponse[list[OrderSummary]])
async def template_history(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
):
    orders = await _svc(session).history(user.id)
    return {"data": [OrderSummary.model_validate(o) for o in orders]}
