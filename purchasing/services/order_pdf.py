"""Purchase order PDF document rendered straight from database records."""

import logging
from decimal import Decimal
from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from reportlab.platypus import Table, TableStyle

from purchasing.domain.order import PurchaseOrder
from purchasing.services.excel_pdf import KOREAN_FONT, font_for

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 50
CONTENT_WIDTH = PAGE_WIDTH - (2 * MARGIN)

PRIMARY_COLOR = colors.HexColor("#1F3A93")

# Line items per page before continuing on a new one
ITEMS_PER_PAGE = 25


def format_krw(amount: Decimal | float | int | None) -> str:
    return f"{float(amount or 0):,.0f}"


def _qty(value: Decimal | float | None) -> str:
    value = float(value or 0)
    return f"{value:,.0f}" if value.is_integer() else f"{value:,.3f}".rstrip("0")


def _font_commands(data: list[list[str]]) -> list[tuple]:
    """Switch individual cells to the CID font when they contain Hangul."""
    commands = []
    for r, row in enumerate(data):
        for c, text in enumerate(row):
            if text and font_for(text) == KOREAN_FONT:
                commands.append(("FONTNAME", (c, r), (c, r), KOREAN_FONT))
    return commands


class PurchaseOrderPDFGenerator:
    """Renders one PurchaseOrder (with vendor, project, company and items loaded)."""

    def __init__(self, order: PurchaseOrder):
        self.order = order
        self.buffer = BytesIO()
        self.pdf = canvas.Canvas(self.buffer, pagesize=A4)
        self.pdf.setTitle(f"발주서 {order.order_number}")
        self.y_position = PAGE_HEIGHT - MARGIN

    @property
    def filename(self) -> str:
        return f"발주서_{self.order.order_number}.pdf"

    def generate(self) -> bytes:
        try:
            self.y_position = self.add_header(self.y_position)
            self.y_position = self.add_parties(self.y_position)
            self.y_position = self.add_line_items(self.y_position)
            self.y_position = self.add_notes(self.y_position)
            self.pdf.save()
        except Exception:
            logger.exception("Error generating PDF for order %s", self.order.order_number)
            raise
        return self.buffer.getvalue()

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _draw_text(self, x: float, y: float, text: str, size: int, *, bold: bool = False) -> None:
        self.pdf.setFont(font_for(text, bold=bold), size)
        self.pdf.drawString(x, y, text)

    def _draw_table(self, table: Table, y_position: float) -> float:
        _, height = table.wrap(CONTENT_WIDTH, PAGE_HEIGHT)
        table.drawOn(self.pdf, MARGIN, y_position - height)
        return y_position - height

    def add_header(self, y_position: float) -> float:
        order = self.order
        self.pdf.setFillColor(PRIMARY_COLOR)
        self._draw_text(MARGIN, y_position, "발주서", 22)
        self._draw_text(MARGIN + 90, y_position, "PURCHASE ORDER", 12, bold=True)
        self.pdf.setFillColor(colors.black)
        y_position -= 30

        details = [
            ["Order No.", order.order_number],
            ["Order Date", order.order_date.isoformat()],
            ["Delivery Date", order.delivery_date.isoformat() if order.delivery_date else "-"],
            ["Status", order.status],
        ]
        table = Table(details, colWidths=[100, 200])
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTNAME", (1, 0), (1, -1), "Helvetica"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            *_font_commands(details),
        ]))
        return self._draw_table(table, y_position) - 20

    def add_parties(self, y_position: float) -> float:
        vendor = self.order.vendor
        project = self.order.project
        company = self.order.company

        data = [
            ["Vendor", vendor.name if vendor else "-", "Project", project.project_name if project else "-"],
            ["Contact", (vendor.contact_person or "-") if vendor else "-",
             "Code", project.project_code if project else "-"],
            ["Email", (vendor.email or "-") if vendor else "-",
             "Location", (project.location or "-") if project else "-"],
            ["Phone", (vendor.phone or "-") if vendor else "-",
             "Issued by", company.company_name if company else "-"],
        ]
        table = Table(data, colWidths=[60, CONTENT_WIDTH / 2 - 60, 60, CONTENT_WIDTH / 2 - 60])
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTNAME", (2, 0), (2, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("BOX", (0, 0), (-1, -1), 0.5, colors.grey),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            *_font_commands(data),
        ]))
        y_position = self._draw_table(table, y_position) - 15
        self.pdf.setStrokeColor(colors.lightgrey)
        self.pdf.line(MARGIN, y_position, PAGE_WIDTH - MARGIN, y_position)
        return y_position - 20

    def _items_table(self, rows: list[list[str]], with_total: bool) -> Table:
        header = ["No", "품목", "규격", "수량", "단위", "단가", "공급가액", "세액", "합계"]
        data = [header, *rows]
        if with_total:
            data.append(["", "", "", "", "", "", "", "Total (KRW)", format_krw(self.order.total_amount)])

        widths = [0.05, 0.22, 0.13, 0.08, 0.06, 0.11, 0.12, 0.10, 0.13]
        table = Table(data, colWidths=[CONTENT_WIDTH * w for w in widths], repeatRows=1)
        style = [
            ("BACKGROUND", (0, 0), (-1, 0), PRIMARY_COLOR),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("ALIGN", (0, 0), (-1, 0), "CENTER"),
            ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("ALIGN", (3, 1), (-1, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("GRID", (0, 0), (-1, -1 if not with_total else -2), 0.5, colors.grey),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            *_font_commands(data),
        ]
        if with_total:
            style += [
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("LINEABOVE", (0, -1), (-1, -1), 1, colors.black),
            ]
        table.setStyle(TableStyle(style))
        return table

    def add_line_items(self, y_position: float) -> float:
        self._draw_text(MARGIN, y_position, "Order Items", 13, bold=True)
        y_position -= 20

        rows = [
            [
                str(i),
                item.item_name,
                item.specification or "",
                _qty(item.quantity),
                item.unit or "",
                format_krw(item.unit_price),
                format_krw(item.supply_amount),
                format_krw(item.tax_amount),
                format_krw(item.total_amount),
            ]
            for i, item in enumerate(self.order.items, start=1)
        ]
        chunks = [rows[i:i + ITEMS_PER_PAGE] for i in range(0, len(rows), ITEMS_PER_PAGE)] or [[]]

        for idx, chunk in enumerate(chunks):
            table = self._items_table(chunk, with_total=idx == len(chunks) - 1)
            _, height = table.wrap(CONTENT_WIDTH, PAGE_HEIGHT)
            if y_position - height < MARGIN + 40:
                self.pdf.showPage()
                y_position = PAGE_HEIGHT - MARGIN
                self._draw_text(MARGIN, y_position, "Order Items (Continued)", 13, bold=True)
                y_position -= 20
            y_position = self._draw_table(table, y_position) - 20
        return y_position

    def add_notes(self, y_position: float) -> float:
        if not self.order.notes:
            return y_position
        if y_position < MARGIN + 60:
            self.pdf.showPage()
            y_position = PAGE_HEIGHT - MARGIN
        self._draw_text(MARGIN, y_position, "Notes", 11, bold=True)
        y_position -= 16
        for line in self.order.notes.splitlines() or [""]:
            self._draw_text(MARGIN, y_position, line[:120], 9)
            y_position -= 12
        return y_position


def create_purchase_order_pdf(order: PurchaseOrder) -> tuple[str, bytes]:
    """Return ``(filename, pdf bytes)`` for *order*."""
    generator = PurchaseOrderPDFGenerator(order)
    return generator.filename, generator.generate()
