"""PO template validation: structural quick checks and per-row rules."""

import logging
import re
import zipfile
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from purchasing.core.config import settings
from purchasing.schemas.po_template import ValidationIssue, ValidationReport
from purchasing.services.template_parser import (
    FIXED_COLUMNS,
    REQUIRED_HEADERS,
    find_input_sheets,
    parse_date,
    parse_number,
    read_input_rows,
    resolve_columns,
)

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".xlsx", ".xlsm")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Absolute tolerance (KRW) when comparing a stated total with supply + tax.
_TOTAL_TOLERANCE = 1.0

_FIELD_LABELS = {
    "order_date": "발주일자",
    "due_date": "납기일자",
    "vendor_name": "거래처명",
    "vendor_email": "거래처 이메일",
    "site_name": "현장명",
    "item_name": "품목명",
    "quantity": "수량",
    "unit_price": "단가",
    "total_amount": "합계",
    "delivery_email": "납품처 이메일",
}


def _issue(message: str, *, row: int | None = None, field: str | None = None) -> ValidationIssue:
    return ValidationIssue(row=row, field=field, message=message)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())

# ---------------------------------------------------------------------------
# Quick validation (structure only)
# ---------------------------------------------------------------------------

def _matches_fixed_layout(ws) -> bool:
    """True when the first data row has a date in A, a vendor in C and an item in I."""
    columns = {field: idx for idx, field in enumerate(FIXED_COLUMNS)}
    for row in ws.iter_rows(min_row=2, values_only=True):
        if not row or all(_blank(cell) for cell in row):
            continue
        values = {field: (row[idx] if idx < len(row) else None) for field, idx in columns.items()}
        return (
            parse_date(values["order_date"]) is not None
            and not _blank(values["vendor_name"])
            and not _blank(values["item_name"])
        )
    return False


def quick_validate(path: str | Path) -> ValidationReport:
    """Check the file can be used as a PO template without reading its rows."""
    path = Path(path)
    errors: list[ValidationIssue] = []

    if not path.is_file():
        return ValidationReport(is_valid=False, errors=[_issue(f"File not found: {path.name}")])
    if path.suffix.lower() not in ALLOWED_EXTENSIONS:
        return ValidationReport(
            is_valid=False,
            errors=[_issue(f"Unsupported file type '{path.suffix}'. Use .xlsx or .xlsm")],
        )

    try:
        wb = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        return ValidationReport(is_valid=False, errors=[_issue(f"Cannot open workbook: {exc}")])

    try:
        sheet_names = list(wb.sheetnames)
        input_sheets = find_input_sheets(sheet_names)
        if not input_sheets:
            errors.append(_issue(f"No sheet named '{settings.input_sheet_prefix}*' found"))
        else:
            ws = wb[input_sheets[0]]
            header = next(ws.iter_rows(min_row=1, max_row=1, values_only=True), ())
            columns, from_header = resolve_columns(header or ())
            if from_header:
                for field in REQUIRED_HEADERS:
                    if field not in columns:
                        errors.append(_issue(f"Missing required column '{_FIELD_LABELS[field]}'", field=field))
            elif not _matches_fixed_layout(ws):
                errors.append(_issue(
                    "Header not recognised and the first data row does not follow the fixed A..S layout",
                ))
    finally:
        wb.close()

    return ValidationReport(is_valid=not errors, errors=errors, sheet_names=sheet_names)

# ---------------------------------------------------------------------------
# Full validation
# ---------------------------------------------------------------------------

def _validate_row(row: int, values: dict[str, Any]) -> tuple[list[ValidationIssue], list[ValidationIssue]]:
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    for field in ("vendor_name", "item_name", "order_date"):
        if _blank(values.get(field)):
            errors.append(_issue(f"{_FIELD_LABELS[field]} is required", row=row, field=field))

    for field in ("quantity", "unit_price"):
        raw = values.get(field)
        if _blank(raw):
            continue
        number = parse_number(raw)
        if number is None:
            errors.append(_issue(f"{_FIELD_LABELS[field]} must be a number", row=row, field=field))
        elif number < 0:
            errors.append(_issue(f"{_FIELD_LABELS[field]} cannot be negative", row=row, field=field))

    order_date = due_date = None
    for field in ("order_date", "due_date"):
        raw = values.get(field)
        if _blank(raw):
            continue
        parsed = parse_date(raw)
        if parsed is None:
            errors.append(_issue(f"{_FIELD_LABELS[field]} is not a valid date", row=row, field=field))
        elif field == "order_date":
            order_date = parsed
        else:
            due_date = parsed
    if order_date and due_date and due_date < order_date:
        errors.append(_issue("납기일자 cannot be earlier than 발주일자", row=row, field="due_date"))

    for field in ("vendor_email", "delivery_email"):
        raw = values.get(field)
        if not _blank(raw) and not _EMAIL_RE.match(str(raw).strip()):
            errors.append(_issue(f"{_FIELD_LABELS[field]} is not a valid email", row=row, field=field))

    stated_total = parse_number(values.get("total_amount"))
    if stated_total is not None:
        supply = parse_number(values.get("supply_amount"))
        if supply is None:
            supply = (parse_number(values.get("quantity")) or 0) * (parse_number(values.get("unit_price")) or 0)
        tax = parse_number(values.get("tax_amount"))
        if tax is None:
            tax = supply * settings.vat_rate
        if abs(stated_total - (supply + tax)) > _TOTAL_TOLERANCE:
            warnings.append(_issue(
                f"합계 {stated_total:,.0f} differs from supply + tax {supply + tax:,.0f}",
                row=row, field="total_amount",
            ))

    return errors, warnings


def validate_template_file(path: str | Path) -> ValidationReport:
    """Structural checks plus row rules over every data row of the Input sheet."""
    quick = quick_validate(path)
    if not quick.is_valid:
        return quick

    try:
        sheet_names, _, _, rows = read_input_rows(path)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        return ValidationReport(is_valid=False, errors=[_issue(f"Cannot read workbook: {exc}")])

    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    valid_rows = 0

    if not rows:
        errors.append(_issue("Input sheet has no data rows"))

    for row_number, values in rows:
        row_errors, row_warnings = _validate_row(row_number, values)
        errors.extend(row_errors)
        warnings.extend(row_warnings)
        if not row_errors:
            valid_rows += 1

    input_sheets = set(find_input_sheets(sheet_names))
    extractable = [n for n in sheet_names if n in settings.extract_sheet_names]
    if not extractable:
        others = [n for n in sheet_names if n not in input_sheets]
        warnings.append(_issue(
            "No 갑지/을지 sheets found; "
            + ("the remaining sheets will be sent as-is" if others else "there is nothing to attach besides the data")
        ))

    report = ValidationReport(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        total_rows=len(rows),
        valid_rows=valid_rows,
        sheet_names=sheet_names,
    )
    logger.info(
        "Validated %s: %d/%d rows valid, %d errors, %d warnings",
        Path(path).name, valid_rows, len(rows), len(errors), len(warnings),
    )
    return report
