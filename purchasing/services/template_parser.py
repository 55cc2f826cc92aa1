"""
PO template parser: turns the ``Input`` sheet of an order workbook into
normalized purchase orders.

Uses **openpyxl** (read-only, cached values) to walk the sheet row by row.

Layout
------
Row 1 is the header. Columns are located by header text (Korean or English
labels); when the header is not recognised the fixed template positions
A..S are used instead::

    A 발주일자   B 납기일자   C 거래처명   D 거래처 이메일   E 현장명
    F 대분류     G 중분류     H 소분류     I 품목명         J 규격
    K 단위       L 수량       M 단가       N 공급가액       O 세액
    P 합계       Q 납품처명   R 납품처 이메일   S 비고

An optional 발주번호 (order number) column groups rows explicitly; without
it rows are grouped by (order date, vendor, site).
"""

import logging
import re
import zipfile
from collections import OrderedDict
from datetime import date, datetime
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.datetime import from_excel
from openpyxl.utils.exceptions import InvalidFileException

from purchasing.core.config import settings
from purchasing.schemas.po_template import ParsedOrder, ParsedOrderItem, ParseResult

logger = logging.getLogger(__name__)

__all__ = [
    "FIXED_COLUMNS",
    "REQUIRED_HEADERS",
    "find_input_sheets",
    "parse_date",
    "parse_input_sheet",
    "parse_number",
    "read_input_rows",
    "resolve_columns",
]

# Fixed template positions, column A first.
FIXED_COLUMNS = (
    "order_date", "due_date", "vendor_name", "vendor_email", "site_name",
    "category_lv1", "category_lv2", "category_lv3",
    "item_name", "specification", "unit", "quantity", "unit_price",
    "supply_amount", "tax_amount", "total_amount",
    "delivery_name", "delivery_email", "notes",
)

_HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "order_number": ("발주번호", "ordernumber", "orderno", "ponumber", "pono"),
    "order_date": ("발주일자", "발주일", "orderdate"),
    "due_date": ("납기일자", "납기일", "납기", "duedate", "deliverydate"),
    "vendor_name": ("거래처명", "거래처", "업체명", "vendor", "vendorname"),
    "vendor_email": ("거래처이메일", "거래처email", "vendoremail"),
    "site_name": ("현장명", "현장", "site", "sitename", "project", "projectname"),
    "category_lv1": ("대분류", "categorylv1", "category1"),
    "category_lv2": ("중분류", "categorylv2", "category2"),
    "category_lv3": ("소분류", "categorylv3", "category3"),
    "item_name": ("품목명", "품목", "품명", "item", "itemname"),
    "specification": ("규격", "spec", "specification"),
    "unit": ("단위", "unit"),
    "quantity": ("수량", "qty", "quantity"),
    "unit_price": ("단가", "unitprice", "price"),
    "supply_amount": ("공급가액", "공급가", "supplyamount"),
    "tax_amount": ("세액", "부가세", "tax", "taxamount", "vat"),
    "total_amount": ("합계", "합계금액", "총액", "total", "totalamount"),
    "delivery_name": ("납품처명", "납품처", "deliveryname"),
    "delivery_email": ("납품처이메일", "납품처email", "deliveryemail"),
    "notes": ("비고", "notes", "note", "remarks", "memo"),
}

_ALIAS_LOOKUP = {alias: field for field, aliases in _HEADER_ALIASES.items() for alias in aliases}

# Headers that must be present for a template to be accepted.
REQUIRED_HEADERS = ("order_date", "vendor_name", "site_name", "item_name", "quantity", "unit_price")

_DATE_RE = re.compile(r"^\s*(\d{4})[-./](\d{1,2})[-./](\d{1,2})")

# ---------------------------------------------------------------------------
# Cell helpers
# ---------------------------------------------------------------------------

def _normalize_header(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"[\s_\-()]+", "", str(value)).lower()


def _text(value: Any) -> str | None:
    """Cell value as stripped text; None for empty cells."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def parse_number(value: Any) -> float | None:
    """Parse a numeric cell. Accepts ``1,200``, ``1200원`` and plain numbers.

    Returns None for empty or unparseable input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = re.sub(r"[,\s원₩]", "", str(value))
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def parse_date(value: Any) -> date | None:
    """Normalize an Excel date cell or ``YYYY-MM-DD`` / ``YYYY.MM.DD`` / ``YYYY/MM/DD`` text."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Raw serial number in a cell without a date format
        try:
            converted = from_excel(value)
        except (ValueError, OverflowError):
            return None
        return converted.date() if isinstance(converted, datetime) else None
    m = _DATE_RE.match(str(value))
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None

# ---------------------------------------------------------------------------
# Sheet access (shared with the validator)
# ---------------------------------------------------------------------------

def find_input_sheets(sheet_names: list[str], prefix: str | None = None) -> list[str]:
    """Names of the sheets that hold raw order input (case-insensitive prefix)."""
    prefix = (prefix or settings.input_sheet_prefix).lower()
    return [name for name in sheet_names if name.strip().lower().startswith(prefix)]


def resolve_columns(header_row: tuple | list) -> tuple[dict[str, int], bool]:
    """Map field name -> zero-based column index.

    Returns ``(columns, from_header)``. ``from_header`` is False when the
    header was not recognised and the fixed A..S layout was applied.
    """
    columns: dict[str, int] = {}
    for idx, cell in enumerate(header_row):
        field = _ALIAS_LOOKUP.get(_normalize_header(cell))
        if field and field not in columns:
            columns[field] = idx

    if {"vendor_name", "item_name"} <= columns.keys():
        return columns, True
    return {field: idx for idx, field in enumerate(FIXED_COLUMNS)}, False


def _row_values(row: tuple, columns: dict[str, int]) -> dict[str, Any]:
    return {field: (row[idx] if idx < len(row) else None) for field, idx in columns.items()}


def _is_blank(row: tuple) -> bool:
    return all(cell is None or (isinstance(cell, str) and not cell.strip()) for cell in row)


def read_input_rows(path: str | Path) -> tuple[list[str], dict[str, int] | None, bool, list[tuple[int, dict[str, Any]]]]:
    """Read the first Input sheet of a workbook.

    Returns ``(sheet_names, columns, from_header, rows)`` where *rows* holds
    ``(excel_row_number, {field: raw value})`` for every non-blank data row.
    *columns* is None when the workbook has no Input sheet.
    """
    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        sheet_names = list(wb.sheetnames)
        input_sheets = find_input_sheets(sheet_names)
        if not input_sheets:
            return sheet_names, None, False, []

        ws = wb[input_sheets[0]]
        rows_iter = ws.iter_rows(values_only=True)
        header = next(rows_iter, ())
        columns, from_header = resolve_columns(header or ())

        rows: list[tuple[int, dict[str, Any]]] = []
        for row_number, row in enumerate(rows_iter, start=2):
            if row is None or _is_blank(row):
                continue
            rows.append((row_number, _row_values(row, columns)))
        return sheet_names, columns, from_header, rows
    finally:
        wb.close()

# ---------------------------------------------------------------------------
# Row -> order item
# ---------------------------------------------------------------------------

def _build_item(row_number: int, values: dict[str, Any], vat_rate: float) -> ParsedOrderItem:
    quantity = parse_number(values.get("quantity")) or 0.0
    unit_price = parse_number(values.get("unit_price")) or 0.0

    supply = parse_number(values.get("supply_amount"))
    if supply is None:
        supply = quantity * unit_price
    tax = parse_number(values.get("tax_amount"))
    if tax is None:
        tax = supply * vat_rate
    total = parse_number(values.get("total_amount"))
    if total is None:
        total = supply + tax

    return ParsedOrderItem(
        row_index=row_number,
        item_name=_text(values.get("item_name")) or "",
        specification=_text(values.get("specification")),
        unit=_text(values.get("unit")),
        quantity=quantity,
        unit_price=unit_price,
        supply_amount=round(supply, 2),
        tax_amount=round(tax, 2),
        total_amount=round(total, 2),
        category_lv1=_text(values.get("category_lv1")),
        category_lv2=_text(values.get("category_lv2")),
        category_lv3=_text(values.get("category_lv3")),
        delivery_name=_text(values.get("delivery_name")),
        delivery_email=_text(values.get("delivery_email")),
        notes=_text(values.get("notes")),
    )


def _next_order_number(order_date: date | None, sequences: dict[str, int]) -> str:
    """Provisional per-file number; replaced from the database sequence on save."""
    stamp = (order_date or date.today()).strftime("%Y%m%d")
    sequences[stamp] = sequences.get(stamp, 0) + 1
    return f"PO-{stamp}-{sequences[stamp]:03d}"

# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def parse_input_sheet(path: str | Path, *, vat_rate: float | None = None) -> ParseResult:
    """Parse the Input sheet of *path* into orders.

    Never raises for bad input; failures come back as ``success=False`` with
    an ``error`` message.
    """
    vat = settings.vat_rate if vat_rate is None else vat_rate
    try:
        _, columns, _, rows = read_input_rows(path)
    except FileNotFoundError:
        return ParseResult(success=False, error=f"File not found: {path}")
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        logger.warning("Cannot open workbook %s: %s", path, exc)
        return ParseResult(success=False, error=f"Cannot read workbook: {exc}")

    if columns is None:
        return ParseResult(success=False, error="No Input sheet found in workbook")

    groups: "OrderedDict[Any, ParsedOrder]" = OrderedDict()
    sequences: dict[str, int] = {}
    skipped = 0

    for row_number, values in rows:
        vendor_name = _text(values.get("vendor_name"))
        item_name = _text(values.get("item_name"))
        if not vendor_name or not item_name:
            skipped += 1
            continue

        order_date = parse_date(values.get("order_date"))
        site_name = _text(values.get("site_name")) or ""
        explicit_number = _text(values.get("order_number"))
        key = explicit_number or (order_date, vendor_name, site_name)

        order = groups.get(key)
        if order is None:
            order = ParsedOrder(
                order_number=explicit_number or _next_order_number(order_date, sequences),
                number_from_file=explicit_number is not None,
                order_date=order_date,
                due_date=parse_date(values.get("due_date")),
                vendor_name=vendor_name,
                vendor_email=_text(values.get("vendor_email")),
                site_name=site_name,
            )
            groups[key] = order

        order.items.append(_build_item(row_number, values, vat))

    orders = list(groups.values())
    for order in orders:
        order.total_amount = round(sum(item.total_amount for item in order.items), 2)

    if skipped:
        logger.info("Skipped %d Input rows without vendor or item name", skipped)

    if not orders:
        return ParseResult(success=False, error="No order rows found in Input sheet")

    total_items = sum(len(o.items) for o in orders)
    logger.info("Parsed %d orders (%d items) from %s", len(orders), total_items, Path(path).name)
    return ParseResult(
        success=True,
        total_orders=len(orders),
        total_items=total_items,
        orders=orders,
    )
