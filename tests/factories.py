"""Workbook builders shared by the test modules."""

from datetime import date
from pathlib import Path

from openpyxl import Workbook

HEADER = [
    "발주일자", "납기일자", "거래처명", "거래처 이메일", "현장명",
    "대분류", "중분류", "소분류", "품목명", "규격", "단위", "수량", "단가",
    "공급가액", "세액", "합계", "납품처명", "납품처 이메일", "비고",
]

# Two orders: 대한철강 (two lines) and 한빛자재 (one line)
SAMPLE_ROWS = [
    [date(2024, 1, 15), date(2024, 1, 30), "대한철강", "sales@daehan.co.kr", "서울 현장",
     "철근", "이형철근", "SD400", "이형철근 D13", "D13", "톤", 10, 850000,
     None, None, None, "서울 현장 사무소", "site@example.com", "오전 납품"],
    [date(2024, 1, 15), date(2024, 1, 30), "대한철강", "sales@daehan.co.kr", "서울 현장",
     "철근", "결속선", None, "결속선 #8", "#8", "롤", 5, 12000,
     None, None, None, "서울 현장 사무소", "site@example.com", None],
    [date(2024, 1, 16), date(2024, 2, 5), "한빛자재", "order@hanbit.kr", "부산 현장",
     "자재", "시멘트", None, "포틀랜드 시멘트", "40kg", "포", 100, 3500,
     None, None, None, None, None, None],
]


def build_template(
    path: Path,
    rows: list[list] | None = None,
    *,
    header: list | None = None,
    input_title: str = "Input",
    output_sheets: tuple[str, ...] = ("갑지", "을지"),
) -> Path:
    """Write a PO template workbook: an Input sheet plus formatted output sheets."""
    wb = Workbook()
    ws = wb.active
    ws.title = input_title
    ws.append(header if header is not None else HEADER)
    for row in SAMPLE_ROWS if rows is None else rows:
        ws.append(row)

    for name in output_sheets:
        out = wb.create_sheet(name)
        out["A1"] = f"{name} PURCHASE ORDER"
        out.merge_cells("A1:D1")
        out.column_dimensions["A"].width = 24
        out.append(["Item", "Qty", "Price", "Total"])
        out.append(["Rebar D13", 10, 850000, 9350000])

    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    return path
