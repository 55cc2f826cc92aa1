"""Excel -> PDF conversion for order sheets.

Each selected sheet is rendered as a reportlab table on its own landscape A4
page (long sheets continue on following pages). Only the used range is
drawn; merged ranges become table spans.
"""

import logging
import zipfile
from datetime import date, datetime
from pathlib import Path
from typing import Any
from xml.sax.saxutils import escape

from openpyxl import load_workbook
from openpyxl.cell.cell import MergedCell
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from purchasing.core.exceptions import DocumentGenerationError
from purchasing.schemas.po_template import ConvertPdfResult

logger = logging.getLogger(__name__)

# Built-in Adobe CID font; renders Hangul without shipping a TTF.
KOREAN_FONT = "HYSMyeongJo-Medium"
pdfmetrics.registerFont(UnicodeCIDFont(KOREAN_FONT))

LATIN_FONT = "Helvetica"
LATIN_FONT_BOLD = "Helvetica-Bold"

PAGE_WIDTH, PAGE_HEIGHT = landscape(A4)
MARGIN = 30
CONTENT_WIDTH = PAGE_WIDTH - (2 * MARGIN)

_DEFAULT_COLUMN_WIDTH = 8.43  # Excel default, in characters

styles = getSampleStyleSheet()


def font_for(text: str, *, bold: bool = False) -> str:
    """Helvetica for plain ASCII, the CID font as soon as anything else appears."""
    if any(ord(ch) > 127 for ch in text):
        return KOREAN_FONT
    return LATIN_FONT_BOLD if bold else LATIN_FONT


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.strftime("%Y-%m-%d %H:%M")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float):
        return f"{value:,.0f}" if value.is_integer() else f"{value:,.2f}"
    if isinstance(value, int):
        return f"{value:,}"
    return str(value).strip()

# ---------------------------------------------------------------------------
# Sheet -> table
# ---------------------------------------------------------------------------

def _used_bounds(ws) -> tuple[int, int, int, int] | None:
    """(min_row, min_col, max_row, max_col) of cells that hold a value."""
    rows: list[int] = []
    cols: list[int] = []
    for row in ws.iter_rows():
        for cell in row:
            if isinstance(cell, MergedCell):
                continue
            if cell.value is not None and str(cell.value).strip() != "":
                rows.append(cell.row)
                cols.append(cell.column)
    if not rows:
        return None
    return min(rows), min(cols), max(rows), max(cols)


def _column_widths(ws, min_col: int, max_col: int) -> list[float]:
    raw = []
    for col in range(min_col, max_col + 1):
        dim = ws.column_dimensions.get(get_column_letter(col))
        raw.append(dim.width if dim is not None and dim.width else _DEFAULT_COLUMN_WIDTH)
    total = sum(raw)
    return [CONTENT_WIDTH * w / total for w in raw]


def _sheet_table(ws) -> Table | None:
    bounds = _used_bounds(ws)
    if bounds is None:
        return None
    min_row, min_col, max_row, max_col = bounds
    n_cols = max_col - min_col + 1
    font_size = 8 if n_cols <= 12 else 6

    data: list[list[str]] = []
    commands: list[tuple] = [
        ("FONTNAME", (0, 0), (-1, -1), LATIN_FONT),
        ("FONTSIZE", (0, 0), (-1, -1), font_size),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
    ]

    for r_idx, row in enumerate(
        ws.iter_rows(min_row=min_row, max_row=max_row, min_col=min_col, max_col=max_col)
    ):
        values = []
        for c_idx, cell in enumerate(row):
            text = "" if isinstance(cell, MergedCell) else format_cell(cell.value)
            values.append(text)
            if text and font_for(text) == KOREAN_FONT:
                commands.append(("FONTNAME", (c_idx, r_idx), (c_idx, r_idx), KOREAN_FONT))
            if isinstance(cell.value, (int, float)) and not isinstance(cell.value, bool):
                commands.append(("ALIGN", (c_idx, r_idx), (c_idx, r_idx), "RIGHT"))
        data.append(values)

    for merged in ws.merged_cells.ranges:
        if merged.min_row < min_row or merged.min_col < min_col:
            continue
        if merged.max_row > max_row or merged.max_col > max_col:
            continue
        commands.append((
            "SPAN",
            (merged.min_col - min_col, merged.min_row - min_row),
            (merged.max_col - min_col, merged.max_row - min_row),
        ))

    table = Table(data, colWidths=_column_widths(ws, min_col, max_col), repeatRows=0)
    table.setStyle(TableStyle(commands))
    return table


def _title(text: str) -> Paragraph:
    style = ParagraphStyle(
        "SheetTitle", parent=styles["Heading3"], fontName=font_for(text, bold=True),
    )
    return Paragraph(escape(text), style)

# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def convert_excel_to_pdf(
    xlsx_path: str | Path,
    pdf_path: str | Path,
    sheet_names: list[str] | None = None,
) -> ConvertPdfResult:
    """Render *sheet_names* (default: every sheet) of *xlsx_path* into *pdf_path*."""
    try:
        wb = load_workbook(xlsx_path, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise DocumentGenerationError(f"Cannot open workbook: {exc}") from exc

    try:
        selected = [n for n in (sheet_names or wb.sheetnames) if n in wb.sheetnames]
        if not selected:
            raise DocumentGenerationError("No matching sheets to convert")

        story: list = []
        for i, name in enumerate(selected):
            if i:
                story.append(PageBreak())
            story.append(_title(name))
            story.append(Spacer(1, 6))
            table = _sheet_table(wb[name])
            story.append(table if table is not None else Paragraph("(empty sheet)", styles["Normal"]))
    finally:
        wb.close()

    Path(pdf_path).parent.mkdir(parents=True, exist_ok=True)
    doc = SimpleDocTemplate(
        str(pdf_path),
        pagesize=landscape(A4),
        leftMargin=MARGIN, rightMargin=MARGIN, topMargin=MARGIN, bottomMargin=MARGIN,
        title=Path(xlsx_path).stem,
    )
    try:
        doc.build(story)
    except Exception as exc:
        logger.exception("PDF rendering failed for %s", xlsx_path)
        raise DocumentGenerationError(f"PDF rendering failed: {exc}") from exc

    size = Path(pdf_path).stat().st_size
    logger.info("Converted %s (%s) -> %s (%d bytes)", Path(xlsx_path).name, ", ".join(selected), Path(pdf_path).name, size)
    return ConvertPdfResult(pdf_path=str(pdf_path), file_size=size)
