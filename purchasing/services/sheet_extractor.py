"""Sheet-level workbook surgery for outgoing order documents.

Both operations copy the workbook with openpyxl and delete the unwanted
sheets, so the remaining sheets keep their column widths, merges, borders
and fills. Formulas are replaced by their cached values because the Input
sheet they usually reference is removed.
"""

import logging
import zipfile
from pathlib import Path

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from purchasing.core.config import settings
from purchasing.core.exceptions import DocumentGenerationError
from purchasing.schemas.po_template import ExtractResult
from purchasing.services.template_parser import find_input_sheets

logger = logging.getLogger(__name__)


def _sheet_names(src: str | Path) -> list[str]:
    try:
        wb = load_workbook(src, read_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise DocumentGenerationError(f"Cannot open workbook: {exc}") from exc
    try:
        return list(wb.sheetnames)
    finally:
        wb.close()


def _keep_only(src: str | Path, dest: str | Path, keep: list[str]) -> list[str]:
    wb = load_workbook(src, data_only=True)
    try:
        for name in list(wb.sheetnames):
            if name not in keep:
                wb.remove(wb[name])
        wb.active = 0
        Path(dest).parent.mkdir(parents=True, exist_ok=True)
        wb.save(dest)
        return list(wb.sheetnames)
    finally:
        wb.close()


def extract_sheets_to_file(
    src: str | Path,
    dest: str | Path,
    sheet_names: list[str] | None = None,
) -> ExtractResult:
    """Write a copy of *src* to *dest* holding only *sheet_names* (default 갑지/을지)."""
    wanted = sheet_names or settings.extract_sheet_names
    available = _sheet_names(src)

    keep = [name for name in wanted if name in available]
    if not keep:
        raise DocumentGenerationError(
            f"None of the sheets {', '.join(wanted)} exist in {Path(src).name}"
        )

    kept = _keep_only(src, dest, keep)
    logger.info("Extracted sheets %s from %s -> %s", kept, Path(src).name, Path(dest).name)
    return ExtractResult(extracted_path=str(dest), sheet_names=kept)


def remove_input_sheets(src: str | Path, dest: str | Path) -> list[str]:
    """Write a copy of *src* to *dest* without its Input sheets; returns the remaining sheet names."""
    available = _sheet_names(src)

    input_sheets = set(find_input_sheets(available))
    keep = [name for name in available if name not in input_sheets]
    if not keep:
        raise DocumentGenerationError("Workbook has no sheets besides the Input sheet")

    remaining = _keep_only(src, dest, keep)
    logger.info("Removed %d Input sheet(s) from %s, kept %s", len(input_sheets), Path(src).name, remaining)
    return remaining
