"""Purchase order lifecycle: status transitions, PDF documents, email dispatch,
and the draft batch processor.
"""

import base64
import logging
import time
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.core.exceptions import (
    AppException,
    DocumentGenerationError,
    EmailDeliveryError,
    NotFoundError,
    StatusTransitionError,
    ValidationError,
)
from purchasing.core.pagination import PaginationParams
from purchasing.domain.attachment import DB_STORAGE_PREFIX, Attachment
from purchasing.domain.order import OrderStatus, PurchaseOrder, can_transition
from purchasing.repositories.attachment import AttachmentRepository
from purchasing.repositories.order import PurchaseOrderRepository
from purchasing.schemas.email import EmailAttachment, EmailOptions, EmailResult
from purchasing.schemas.order import DraftProcessingResult, OrderEmailRequest
from purchasing.services.email_service import POEmailService, render_po_email
from purchasing.services.filenames import upload_root
from purchasing.services.order_pdf import create_purchase_order_pdf

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, session: AsyncSession, client_id: str):
        self._session = session
        self._repo = PurchaseOrderRepository(session, client_id)
        self._attachments = AttachmentRepository(session, client_id)

    async def list_orders(
        self,
        pagination: PaginationParams,
        *,
        status: str | None = None,
        project_id: str | None = None,
        vendor_id: str | None = None,
    ):
        if status and status not in OrderStatus.ALL:
            raise ValidationError(f"Unknown status '{status}'")
        return await self._repo.list(
            offset=pagination.offset,
            limit=pagination.limit,
            order_by=pagination.sort,
            order=pagination.order,
            filters={"status": status, "project_id": project_id, "vendor_id": vendor_id},
        )

    async def get_order(self, order_id: str) -> PurchaseOrder:
        order = await self._repo.get_with_details(order_id)
        if not order:
            raise NotFoundError("Purchase order", order_id)
        return order

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def change_status(
        self, order_id: str, target: str, *, user_id: str | None = None, reason: str | None = None,
    ) -> PurchaseOrder:
        if target not in OrderStatus.ALL:
            raise ValidationError(f"Unknown status '{target}'")
        order = await self.get_order(order_id)
        current = order.status
        if not can_transition(current, target):
            raise StatusTransitionError(current, target)

        values: dict = {"status": target}
        if target == OrderStatus.SENT:
            values["sent_at"] = datetime.now(timezone.utc)
        await self._repo.update(order_id, **values)

        changes = {"from": current, "to": target}
        if reason:
            changes["reason"] = reason
        await self._repo.add_history(order_id, "status_changed", user_id=user_id, changes=changes)
        logger.info("Order %s: %s -> %s", order.order_number, current, target)
        return await self.get_order(order_id)

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    async def generate_pdf(self, order_id: str, *, user_id: str | None = None) -> Attachment:
        """Render the order document and store it as a ``db://`` attachment."""
        order = await self.get_order(order_id)
        try:
            filename, content = create_purchase_order_pdf(order)
        except Exception as exc:
            raise DocumentGenerationError(f"Could not render PDF for {order.order_number}: {exc}") from exc

        stored = f"PO_{order.order_number}_{int(time.time() * 1000)}.pdf"
        attachment = await self._attachments.create(
            order_id=order.id,
            original_name=filename,
            stored_name=stored,
            file_path=f"{DB_STORAGE_PREFIX}{stored}",
            file_size=len(content),
            mime_type="application/pdf",
            file_data=base64.b64encode(content).decode("ascii"),
            uploaded_by=user_id,
        )
        await self._repo.add_history(
            order.id, "pdf_generated", user_id=user_id,
            changes={"attachmentId": attachment.id, "size": len(content)},
        )
        logger.info("Generated PDF %s for order %s (%d bytes)", stored, order.order_number, len(content))
        return attachment

    async def _latest_pdf(self, order: PurchaseOrder) -> Attachment | None:
        pdfs = [a for a in order.attachments if a.mime_type == "application/pdf" and a.deleted_at is None]
        if not pdfs:
            return None
        newest = max(pdfs, key=lambda a: a.created_at)
        return await self._attachments.get_with_data(newest.id)

    # ------------------------------------------------------------------
    # Email
    # ------------------------------------------------------------------

    async def send_email(
        self, order_id: str, body: OrderEmailRequest, *, user_id: str | None = None,
    ) -> EmailResult:
        """Email the order PDF to the vendor and mark the order as sent."""
        order = await self.get_order(order_id)
        if not can_transition(order.status, OrderStatus.SENT):
            raise StatusTransitionError(order.status, OrderStatus.SENT)

        recipients = list(body.to or [])
        if not recipients and order.vendor and order.vendor.email:
            recipients = [order.vendor.email]
        if not recipients:
            raise ValidationError("No recipient: the vendor has no email address")

        pdf = await self._latest_pdf(order)
        if pdf is None:
            pdf = await self.generate_pdf(order_id, user_id=user_id)
            pdf = await self._attachments.get_with_data(pdf.id)

        outgoing = upload_root() / "outgoing"
        outgoing.mkdir(parents=True, exist_ok=True)
        temp_path = outgoing / pdf.stored_name
        temp_path.write_bytes(base64.b64decode(pdf.file_data or ""))

        options = EmailOptions(
            to=recipients,
            cc=body.cc,
            subject=body.subject,
            order_number=order.order_number,
            vendor_name=order.vendor.name if order.vendor else None,
            order_date=order.order_date,
            due_date=order.delivery_date,
            total_amount=float(order.total_amount or 0),
            additional_message=body.message,
        )
        try:
            result = await POEmailService().send_email(
                to=options.to,
                cc=options.cc,
                subject=options.subject or f"발주서 전송 - {order.order_number}",
                html_body=render_po_email(options, [pdf.original_name]),
                attachments=[EmailAttachment(
                    filename=pdf.original_name, path=str(temp_path), content_type="application/pdf",
                )],
            )
        finally:
            Path(temp_path).unlink(missing_ok=True)

        if not result.success:
            raise EmailDeliveryError(result.error or "Email delivery failed")

        await self.change_status(order_id, OrderStatus.SENT, user_id=user_id)
        await self._repo.add_history(
            order_id, "sent", user_id=user_id,
            changes={"to": result.accepted, "messageId": result.message_id},
        )
        return result

    # ------------------------------------------------------------------
    # Draft batch
    # ------------------------------------------------------------------

    async def process_drafts(self, limit: int = 10, *, user_id: str | None = None) -> DraftProcessingResult:
        """Generate PDFs for drafts that have none and move them to ``created``."""
        drafts = await self._repo.drafts_without_pdf(limit)
        result = DraftProcessingResult(total=len(drafts))
        # Plain values: a rolled-back savepoint expires the ORM rows
        for order_id, number in [(o.id, o.order_number) for o in drafts]:
            try:
                async with self._session.begin_nested():
                    await self.generate_pdf(order_id, user_id=user_id)
                    await self.change_status(order_id, OrderStatus.CREATED, user_id=user_id, reason="draft processing")
            except (AppException, SQLAlchemyError) as exc:
                message = exc.message if isinstance(exc, AppException) else str(exc)
                result.failed += 1
                result.errors.append(f"{number}: {message}")
                logger.error("Draft %s failed: %s", number, message)
                continue
            result.processed += 1
            result.order_ids.append(order_id)
        logger.info("Draft processing: %d/%d processed, %d failed", result.processed, result.total, result.failed)
        return result
