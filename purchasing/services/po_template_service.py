"""PO template service — upload intake, persistence with Mock DB fallback,
and the one-shot upload-to-email pipeline.

Rule: No FastAPI here. Routers hand over paths on disk and plain values.
"""

import logging
import uuid
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.core.exceptions import DocumentGenerationError, TemplateValidationError
from purchasing.db.base import ping
from purchasing.db.mock import mock_db
from purchasing.domain.order import OrderStatus, PurchaseOrder
from purchasing.repositories.order import PurchaseOrderItemRepository, PurchaseOrderRepository
from purchasing.repositories.project import ProjectRepository
from purchasing.repositories.vendor import VendorRepository
from purchasing.schemas.email import EmailOptions
from purchasing.schemas.order import OrderItemOut, OrderSummary, ProjectBrief, VendorBrief
from purchasing.schemas.po_template import (
    DbStats,
    DbStatus,
    OrderSaveError,
    ParsedOrder,
    ProcessCompleteResult,
    ProcessSummary,
    SaveResult,
    StepResult,
    UploadResult,
)
from purchasing.services.email_service import POEmailService
from purchasing.services.excel_pdf import convert_excel_to_pdf
from purchasing.services.filenames import sibling_path
from purchasing.services.sheet_extractor import extract_sheets_to_file
from purchasing.services.template_parser import parse_input_sheet
from purchasing.services.template_validator import quick_validate, validate_template_file

logger = logging.getLogger(__name__)

TEMPLATE_ORDER_NOTE = "created from PO template"
AUTO_VENDOR_CONTACT = "자동생성"


def _decimal(value: float | int | None) -> Decimal:
    return Decimal(str(value or 0))


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not delete %s: %s", path, exc)


class POTemplateService:
    def __init__(self, session: AsyncSession, client_id: str):
        self._session = session
        self._orders = PurchaseOrderRepository(session, client_id)
        self._items = PurchaseOrderItemRepository(session, client_id)
        self._vendors = VendorRepository(session, client_id)
        self._projects = ProjectRepository(session, client_id)

    # ------------------------------------------------------------------
    # Database status
    # ------------------------------------------------------------------

    async def db_status(self) -> DbStatus:
        try:
            await ping(self._session)
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Database check failed, Mock DB in use: %s", exc)
            return DbStatus(
                connected=False, using_mock_db=True,
                message="Database unavailable, falling back to Mock DB", error=str(exc),
            )
        return DbStatus(connected=True, using_mock_db=False, message="Database connected")

    # ------------------------------------------------------------------
    # Upload intake
    # ------------------------------------------------------------------

    def ingest_upload(self, path: Path, original_name: str) -> UploadResult:
        """Quick-validate, parse and fully validate a stored upload.

        The file is deleted when it cannot be used.
        """
        quick = quick_validate(path)
        if not quick.is_valid:
            _discard(path)
            raise TemplateValidationError(
                "Template validation failed: " + "; ".join(e.message for e in quick.errors),
                details=quick.model_dump(by_alias=True),
            )

        parsed = parse_input_sheet(path)
        if not parsed.success:
            _discard(path)
            raise TemplateValidationError(f"Template parsing failed: {parsed.error}")

        report = validate_template_file(path)
        return UploadResult(
            file_path=str(path),
            original_name=original_name,
            stored_name=path.name,
            file_size=path.stat().st_size,
            validation=report,
            parse=parsed,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _vendor_id(self, order: ParsedOrder) -> str:
        vendor = await self._vendors.get_by_name(order.vendor_name)
        if vendor is None:
            vendor = await self._vendors.create(
                name=order.vendor_name,
                email=order.vendor_email,
                contact_person=AUTO_VENDOR_CONTACT,
            )
            logger.info("Auto-created vendor %s", order.vendor_name)
        return vendor.id

    async def _project_id(self, order: ParsedOrder) -> str:
        site = order.site_name or "미지정 현장"
        project = await self._projects.get_by_name(site)
        if project is None:
            project = await self._projects.create(
                project_name=site,
                project_code=f"AUTO-{uuid.uuid4().hex[:8].upper()}",
                status="active",
            )
            logger.info("Auto-created project %s (%s)", site, project.project_code)
        return project.id

    async def _save_order(self, order: ParsedOrder, user_id: str | None) -> PurchaseOrder:
        order_date = order.order_date or date.today()
        if order.number_from_file:
            order_number = order.order_number
        else:
            order_number = await self._orders.next_order_number(order_date)
        po = await self._orders.create(
            order_number=order_number,
            project_id=await self._project_id(order),
            vendor_id=await self._vendor_id(order),
            user_id=user_id,
            order_date=order_date,
            delivery_date=order.due_date,
            status=OrderStatus.DRAFT,
            total_amount=_decimal(order.total_amount),
            notes=TEMPLATE_ORDER_NOTE,
            source="excel_template",
        )
        for line_no, item in enumerate(order.items, start=1):
            await self._orders.add_item(
                po.id,
                line_no=line_no,
                item_name=item.item_name,
                specification=item.specification,
                unit=item.unit,
                quantity=_decimal(item.quantity),
                unit_price=_decimal(item.unit_price),
                supply_amount=_decimal(item.supply_amount),
                tax_amount=_decimal(item.tax_amount),
                total_amount=_decimal(item.total_amount),
                category_lv1=item.category_lv1,
                category_lv2=item.category_lv2,
                category_lv3=item.category_lv3,
                delivery_name=item.delivery_name,
                delivery_email=item.delivery_email,
                notes=item.notes,
            )
        await self._orders.add_history(
            po.id, "created", user_id=user_id,
            changes={"source": "excel_template", "items": len(order.items)},
        )
        return po

    async def save_orders(self, orders: list[ParsedOrder], user_id: str | None) -> SaveResult:
        """Persist parsed orders, each in its own savepoint.

        Numbers taken from the file must be unused; generated numbers are
        allocated from the existing ``PO-YYYYMMDD-NNN`` sequence. A rejected
        order never affects the others. Falls back to the Mock DB when the
        database fails.
        """
        result = SaveResult()
        try:
            for order in orders:
                if order.number_from_file and await self._orders.number_taken(order.order_number):
                    result.errors.append(OrderSaveError(
                        order_number=order.order_number, message="Order number already exists",
                    ))
                    continue
                try:
                    async with self._session.begin_nested():
                        po = await self._save_order(order, user_id)
                except IntegrityError as exc:
                    logger.warning("Order %s rejected by constraints: %s", order.order_number, exc.orig)
                    result.errors.append(OrderSaveError(
                        order_number=order.order_number, message="Rejected by database constraints",
                    ))
                    continue
                result.order_ids.append(po.id)
                result.order_numbers.append(po.order_number)
        except SQLAlchemyError as exc:
            await self._session.rollback()
            logger.error("Database save failed, falling back to Mock DB: %s", exc)
            saved = mock_db.save_orders(orders, user_id)
            return SaveResult(saved_orders=saved, using_mock_db=True, db_error=str(exc))

        result.saved_orders = len(result.order_ids)
        logger.info(
            "Saved %d template orders (%d rejected) for user %s",
            result.saved_orders, len(result.errors), user_id,
        )
        return result

    # ------------------------------------------------------------------
    # Stats and history
    # ------------------------------------------------------------------

    async def db_stats(self) -> DbStats:
        try:
            stats = {
                "vendors": await self._vendors.count(),
                "projects": await self._projects.count(),
                "purchaseOrders": await self._orders.count(),
                "purchaseOrderItems": await self._items.count(),
            }
            latest: dict[str, list[dict[str, Any]]] = {
                "vendors": [VendorBrief.model_validate(v).model_dump(by_alias=True) for v in await self._vendors.latest()],
                "projects": [ProjectBrief.model_validate(p).model_dump(by_alias=True) for p in await self._projects.latest()],
                "purchaseOrders": [
                    OrderSummary.model_validate(o).model_dump(by_alias=True, mode="json")
                    for o in await self._orders.latest()
                ],
                "purchaseOrderItems": [
                    OrderItemOut.model_validate(i).model_dump(by_alias=True) for i in await self._items.latest()
                ],
            }
        except SQLAlchemyError as exc:
            logger.warning("Database stats unavailable, reporting Mock DB: %s", exc)
            data = mock_db.get_all_data()
            return DbStats(
                using_mock_db=True,
                stats=mock_db.get_stats(),
                latest={name: rows[-3:] for name, rows in data.items()},
                db_error=str(exc),
            )
        return DbStats(using_mock_db=False, stats=stats, latest=latest)

    async def history(self, user_id: str) -> list[PurchaseOrder]:
        return await self._orders.template_history(user_id)

    # ------------------------------------------------------------------
    # Full pipeline
    # ------------------------------------------------------------------

    async def process_complete(
        self,
        path: Path,
        original_name: str,
        user_id: str | None,
        *,
        generate_pdf: bool = True,
        email_to: list[str] | None = None,
        email_subject: str | None = None,
        email_message: str | None = None,
    ) -> ProcessCompleteResult:
        """Validate -> parse -> save -> extract -> [PDF] -> [email] in one call."""
        steps: dict[str, StepResult] = {}

        validation = validate_template_file(path)
        steps["validation"] = StepResult(
            success=validation.is_valid, data=validation.model_dump(by_alias=True),
        )
        if not validation.is_valid:
            _discard(path)
            raise TemplateValidationError(
                "Template validation failed", details=validation.model_dump(by_alias=True),
            )

        parsed = parse_input_sheet(path)
        if not parsed.success:
            _discard(path)
            raise TemplateValidationError(f"Template parsing failed: {parsed.error}")
        steps["parsing"] = StepResult(
            success=True,
            message=f"{parsed.total_orders} orders, {parsed.total_items} items",
        )

        saved = await self.save_orders(parsed.orders, user_id)
        steps["saving"] = StepResult(
            success=saved.saved_orders > 0,
            message="Saved to Mock DB" if saved.using_mock_db else None,
            data=saved.model_dump(by_alias=True),
        )

        summary = ProcessSummary(
            total_orders=parsed.total_orders,
            total_items=parsed.total_items,
            saved_orders=saved.saved_orders,
            using_mock_db=saved.using_mock_db,
        )

        extracted_path = sibling_path(path, "extracted", ".xlsx")
        pdf_path = sibling_path(path, "po-sheets", ".pdf")
        try:
            try:
                extracted = extract_sheets_to_file(path, extracted_path)
                steps["extraction"] = StepResult(success=True, data=extracted.model_dump(by_alias=True))
                summary.extracted = True
            except DocumentGenerationError as exc:
                steps["extraction"] = StepResult(success=False, message=exc.message)

            if not generate_pdf:
                steps["pdf"] = StepResult(success=False, skipped=True, message="PDF generation not requested")
            elif not summary.extracted:
                steps["pdf"] = StepResult(success=False, skipped=True, message="No extracted sheets to convert")
            else:
                try:
                    pdf = convert_excel_to_pdf(extracted_path, pdf_path)
                    steps["pdf"] = StepResult(success=True, data=pdf.model_dump(by_alias=True))
                    summary.pdf_generated = True
                except DocumentGenerationError as exc:
                    steps["pdf"] = StepResult(success=False, message=exc.message)
        finally:
            # Intermediate documents are reported but never served afterwards
            _discard(extracted_path)
            _discard(pdf_path)

        email_result = None
        if not email_to:
            steps["email"] = StepResult(success=False, skipped=True, message="No recipients given")
        else:
            first = parsed.orders[0]
            options = EmailOptions(
                to=email_to,
                subject=email_subject,
                order_number=saved.order_numbers[0] if saved.order_numbers else first.order_number,
                vendor_name=first.vendor_name,
                order_date=first.order_date,
                due_date=first.due_date,
                total_amount=first.total_amount,
                additional_message=email_message,
            )
            mailer = POEmailService()
            if summary.extracted:
                email_result = await mailer.send_po_with_attachments(path, options)
            else:
                email_result = await mailer.send_po_with_original_format(path, options)
            steps["email"] = StepResult(success=email_result.success, message=email_result.error)
            summary.email_sent = email_result.success

        logger.info(
            "Processed %s: %d orders, saved=%d, pdf=%s, email=%s",
            original_name, parsed.total_orders, saved.saved_orders, summary.pdf_generated, summary.email_sent,
        )
        return ProcessCompleteResult(success=True, steps=steps, summary=summary, email=email_result)
