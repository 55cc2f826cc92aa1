"""
Purchase order email dispatch over SMTP.

Two attachment strategies:

* ``send_po_with_attachments`` — only the 갑지/을지 sheets, as Excel plus a
  PDF rendering. A PDF failure aborts the send.
* ``send_po_with_original_format`` — every sheet except Input, keeping the
  workbook's own formatting. A PDF failure is tolerated (Excel only).

When no real SMTP password is configured (or APP_ENV=test) messages are not
sent; a synthetic ``test_message_*`` id is returned instead.
"""

import asyncio
import html
import logging
import mimetypes
import smtplib
import ssl
import time
import uuid
from datetime import date
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from pathlib import Path

from purchasing.core.config import settings
from purchasing.core.exceptions import DocumentGenerationError
from purchasing.schemas.email import ConnectionCheck, EmailAttachment, EmailOptions, EmailResult
from purchasing.services.excel_pdf import convert_excel_to_pdf
from purchasing.services.sheet_extractor import extract_sheets_to_file, remove_input_sheets

logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def format_krw(amount: float) -> str:
    return f"₩{amount:,.0f}"


def format_korean_date(value: date) -> str:
    return f"{value.year}년 {value.month}월 {value.day}일"


def render_po_email(options: EmailOptions, attachment_names: list[str] | None = None) -> str:
    """Plain HTML summary of the order being sent."""
    rows = []
    if options.order_number:
        rows.append(("발주번호", html.escape(options.order_number)))
    if options.vendor_name:
        rows.append(("거래처명", html.escape(options.vendor_name)))
    if options.order_date:
        rows.append(("발주일자", format_korean_date(options.order_date)))
    if options.due_date:
        rows.append(("납기일자", format_korean_date(options.due_date)))
    if options.total_amount:
        rows.append(("총 금액", f"<strong>{format_krw(options.total_amount)}</strong>"))

    table = ""
    if rows:
        cells = "".join(
            f'<tr><th style="text-align:left;padding:8px;border:1px solid #ddd;background:#e9ecef">{label}</th>'
            f'<td style="padding:8px;border:1px solid #ddd">{value}</td></tr>'
            for label, value in rows
        )
        table = f'<table style="border-collapse:collapse;width:100%;margin:16px 0">{cells}</table>'

    files = ""
    if attachment_names:
        files = "<h3>첨부파일</h3><ul>" + "".join(f"<li>{html.escape(n)}</li>" for n in attachment_names) + "</ul>"

    message = ""
    if options.additional_message:
        message = "<p>" + html.escape(options.additional_message).replace("\n", "<br>") + "</p>"

    return (
        '<!DOCTYPE html><html><head><meta charset="UTF-8"></head>'
        "<body style=\"font-family:'Malgun Gothic',Arial,sans-serif;color:#333;max-width:600px;margin:0 auto\">"
        "<h2>발주서 송부</h2>"
        "<p>안녕하세요,</p><p>발주서를 송부드립니다. 첨부된 파일을 확인하여 주시기 바랍니다.</p>"
        f"{table}{files}{message}"
        '<p style="font-size:12px;color:#666">본 메일은 구매 발주 관리 시스템에서 자동 발송되었습니다.</p>'
        "</body></html>"
    )


class POEmailService:
    def __init__(self, *, test_mode: bool | None = None, work_dir: str | Path | None = None):
        self.test_mode = settings.email_test_mode if test_mode is None else test_mode
        self.work_dir = Path(work_dir or Path(settings.upload_dir) / "outgoing")
        if self.test_mode:
            logger.info("Email service running in test mode (messages are not delivered)")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _temp_paths(self, stem: str) -> tuple[Path, Path]:
        self.work_dir.mkdir(parents=True, exist_ok=True)
        base = self.work_dir / f"{stem}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"
        return base.with_suffix(".xlsx"), base.with_suffix(".pdf")

    @staticmethod
    def _cleanup(paths: list[Path]) -> None:
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not remove temp file %s: %s", path, exc)

    @staticmethod
    def _display_name(options: EmailOptions, suffix: str) -> str:
        return f"발주서_{options.order_number or int(time.time())}{suffix}"

    @staticmethod
    def _subject(options: EmailOptions) -> str:
        return options.subject or f"발주서 전송 - {options.order_number or ''}".rstrip(" -")

    # ------------------------------------------------------------------
    # PO sends
    # ------------------------------------------------------------------

    async def send_po_with_attachments(self, path: str | Path, options: EmailOptions) -> EmailResult:
        """Send the 갑지/을지 sheets of *path* as Excel + PDF."""
        xlsx_path, pdf_path = self._temp_paths("po-sheets")
        try:
            try:
                extract_sheets_to_file(path, xlsx_path)
            except DocumentGenerationError as exc:
                return EmailResult(success=False, error=f"Sheet extraction failed: {exc.message}")
            try:
                convert_excel_to_pdf(xlsx_path, pdf_path)
            except DocumentGenerationError as exc:
                return EmailResult(success=False, error=f"PDF conversion failed: {exc.message}")

            attachments = [
                EmailAttachment(filename=self._display_name(options, ".xlsx"), path=str(xlsx_path), content_type=XLSX_MIME),
                EmailAttachment(filename=self._display_name(options, ".pdf"), path=str(pdf_path), content_type="application/pdf"),
            ]
            return await self.send_email(
                to=options.to,
                cc=options.cc,
                subject=self._subject(options),
                html_body=render_po_email(options, [a.filename for a in attachments]),
                attachments=attachments,
            )
        finally:
            self._cleanup([xlsx_path, pdf_path])

    async def send_po_with_original_format(self, path: str | Path, options: EmailOptions) -> EmailResult:
        """Send every non-Input sheet of *path* with its formatting intact."""
        xlsx_path, pdf_path = self._temp_paths("po-original")
        try:
            try:
                remaining = remove_input_sheets(path, xlsx_path)
            except DocumentGenerationError as exc:
                return EmailResult(success=False, error=f"Input sheet removal failed: {exc.message}")

            attachments: list[EmailAttachment] = []
            if xlsx_path.exists():
                attachments.append(EmailAttachment(
                    filename=self._display_name(options, ".xlsx"), path=str(xlsx_path), content_type=XLSX_MIME,
                ))
            try:
                convert_excel_to_pdf(xlsx_path, pdf_path, remaining)
                attachments.append(EmailAttachment(
                    filename=self._display_name(options, ".pdf"), path=str(pdf_path), content_type="application/pdf",
                ))
            except DocumentGenerationError as exc:
                logger.warning("PDF conversion failed, sending Excel only: %s", exc.message)

            for extra in options.additional_attachments:
                extra_path = Path(extra)
                if not extra_path.is_file():
                    logger.warning("Additional attachment not found: %s", extra_path)
                    continue
                attachments.append(EmailAttachment(
                    filename=extra_path.name,
                    path=str(extra_path),
                    content_type=mimetypes.guess_type(extra_path.name)[0] or "application/octet-stream",
                ))

            if not attachments:
                return EmailResult(success=False, error="No attachments were produced")

            return await self.send_email(
                to=options.to,
                cc=options.cc,
                subject=self._subject(options),
                html_body=render_po_email(options, [a.filename for a in attachments]),
                attachments=attachments,
            )
        finally:
            self._cleanup([xlsx_path, pdf_path])

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _build_message(
        self, to: list[str], cc: list[str], subject: str, html_body: str, attachments: list[EmailAttachment],
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((settings.smtp_sender_name, settings.smtp_user or "noreply@localhost"))
        msg["To"] = ", ".join(to)
        if cc:
            msg["Cc"] = ", ".join(cc)
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid(domain=(settings.smtp_user or "localhost").split("@")[-1])
        msg.set_content("발주서를 송부드립니다. HTML을 지원하는 메일 클라이언트에서 확인해 주세요.")
        msg.add_alternative(html_body, subtype="html")

        for attachment in attachments:
            maintype, _, subtype = attachment.content_type.partition("/")
            msg.add_attachment(
                Path(attachment.path).read_bytes(),
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )
        return msg

    def _deliver(self, msg: EmailMessage, recipients: list[str]) -> dict:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout) as smtp:
            smtp.ehlo()
            smtp.starttls(context=ssl.create_default_context())
            smtp.ehlo()
            smtp.login(settings.smtp_user or "", settings.smtp_pass or "")
            return smtp.send_message(msg, to_addrs=recipients)

    async def send_email(
        self,
        *,
        to: list[str],
        subject: str,
        html_body: str,
        cc: list[str] | None = None,
        attachments: list[EmailAttachment] | None = None,
    ) -> EmailResult:
        cc = cc or []
        attachments = attachments or []
        names = [a.filename for a in attachments]

        if self.test_mode:
            message_id = f"test_message_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
            logger.info("Test mode: simulated email to %s (%d attachments) id=%s", ", ".join(to), len(names), message_id)
            return EmailResult(
                success=True, message_id=message_id, accepted=[*to, *cc], attachments=names, mock=True,
            )

        recipients = [*to, *cc]
        try:
            msg = self._build_message(to, cc, subject, html_body, attachments)
            refused = await asyncio.to_thread(self._deliver, msg, recipients)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery to %s failed: %s", ", ".join(recipients), exc)
            return EmailResult(success=False, rejected=recipients, attachments=names, error=str(exc))

        rejected = list(refused.keys())
        logger.info("Email %s sent to %d recipient(s)", msg["Message-ID"], len(recipients) - len(rejected))
        return EmailResult(
            success=True,
            message_id=msg["Message-ID"],
            accepted=[r for r in recipients if r not in refused],
            rejected=rejected,
            attachments=names,
        )

    async def test_connection(self) -> ConnectionCheck:
        if self.test_mode:
            return ConnectionCheck(success=True, mock=True, message="Email test mode: SMTP server not contacted")

        def _check_login() -> None:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout) as smtp:
                smtp.ehlo()
                smtp.starttls(context=ssl.create_default_context())
                smtp.login(settings.smtp_user or "", settings.smtp_pass or "")
                smtp.noop()

        try:
            await asyncio.to_thread(_check_login)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP connection test failed: %s", exc)
            return ConnectionCheck(success=False, message=f"SMTP connection failed: {exc}")
        return ConnectionCheck(success=True, message=f"Connected to {settings.smtp_host}:{settings.smtp_port}")
