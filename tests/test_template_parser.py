"""Tests for the Input sheet parser."""

from datetime import date, datetime

import pytest

from purchasing.services.template_parser import (
    FIXED_COLUMNS,
    find_input_sheets,
    parse_date,
    parse_input_sheet,
    parse_number,
    resolve_columns,
)
from tests.factories import HEADER, SAMPLE_ROWS, build_template

# ============================================================================
# VALUE HELPERS
# ============================================================================

@pytest.mark.parametrize("raw,expected", [
    (1200, 1200.0),
    (12.5, 12.5),
    ("1,200", 1200.0),
    ("3,500원", 3500.0),
    ("₩ 9,000", 9000.0),
    ("", None),
    ("abc", None),
    (None, None),
    (True, None),
])
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    (datetime(2024, 1, 15, 9, 30), date(2024, 1, 15)),
    (date(2024, 1, 15), date(2024, 1, 15)),
    ("2024-01-15", date(2024, 1, 15)),
    ("2024.1.5", date(2024, 1, 5)),
    ("2024/12/31", date(2024, 12, 31)),
    (45306, date(2024, 1, 15)),
    ("2024-02-30", None),
    ("next week", None),
    (None, None),
])
def test_parse_date(raw, expected):
    assert parse_date(raw) == expected


def test_find_input_sheets_is_case_insensitive():
    assert find_input_sheets(["갑지", "input", "Input 2", "을지"]) == ["input", "Input 2"]


def test_resolve_columns_from_korean_header():
    columns, from_header = resolve_columns(HEADER)
    assert from_header is True
    assert columns["vendor_name"] == 2
    assert columns["vendor_email"] == 3
    assert columns["delivery_email"] == 17


def test_resolve_columns_falls_back_to_fixed_layout():
    columns, from_header = resolve_columns(["a", "b", "c"])
    assert from_header is False
    assert columns == {field: idx for idx, field in enumerate(FIXED_COLUMNS)}

# ============================================================================
# PARSING
# ============================================================================

def test_groups_rows_into_orders(template_path):
    result = parse_input_sheet(template_path)

    assert result.success is True
    assert result.total_orders == 2
    assert result.total_items == 3

    first, second = result.orders
    assert first.vendor_name == "대한철강"
    assert first.site_name == "서울 현장"
    assert first.vendor_email == "sales@daehan.co.kr"
    assert first.due_date == date(2024, 1, 30)
    assert [i.item_name for i in first.items] == ["이형철근 D13", "결속선 #8"]
    assert second.vendor_name == "한빛자재"
    assert len(second.items) == 1


def test_computes_missing_amounts(template_path):
    first = parse_input_sheet(template_path).orders[0]
    rebar = first.items[0]

    assert rebar.supply_amount == 8_500_000
    assert rebar.tax_amount == 850_000
    assert rebar.total_amount == 9_350_000
    assert first.total_amount == 9_350_000 + 66_000


def test_keeps_stated_amounts(tmp_path):
    row = list(SAMPLE_ROWS[2])
    row[13:16] = [350000, 0, 350000]
    result = parse_input_sheet(build_template(tmp_path / "t.xlsx", [row]))

    item = result.orders[0].items[0]
    assert item.tax_amount == 0
    assert item.total_amount == 350_000


def test_generates_order_numbers_per_date(tmp_path):
    rows = [list(r) for r in SAMPLE_ROWS]
    rows[2][0] = date(2024, 1, 15)
    result = parse_input_sheet(build_template(tmp_path / "t.xlsx", rows))

    assert [o.order_number for o in result.orders] == ["PO-20240115-001", "PO-20240115-002"]
    assert not any(o.number_from_file for o in result.orders)


def test_explicit_order_number_column_groups_rows(tmp_path):
    header = ["발주번호", *HEADER]
    rows = [["PO-A", *SAMPLE_ROWS[0]], ["PO-A", *SAMPLE_ROWS[2]], ["PO-B", *SAMPLE_ROWS[1]]]
    result = parse_input_sheet(build_template(tmp_path / "t.xlsx", rows, header=header))

    assert [o.order_number for o in result.orders] == ["PO-A", "PO-B"]
    assert all(o.number_from_file for o in result.orders)
    assert len(result.orders[0].items) == 2


def test_fixed_layout_when_header_unrecognised(tmp_path):
    header = [f"col{i}" for i in range(len(FIXED_COLUMNS))]
    result = parse_input_sheet(build_template(tmp_path / "t.xlsx", header=header))

    assert result.success is True
    assert result.total_orders == 2
    assert result.orders[0].vendor_name == "대한철강"


def test_skips_rows_without_vendor_or_item(tmp_path):
    incomplete = list(SAMPLE_ROWS[0])
    incomplete[8] = None
    rows = [SAMPLE_ROWS[0], incomplete, [None] * len(HEADER)]
    result = parse_input_sheet(build_template(tmp_path / "t.xlsx", rows))

    assert result.total_items == 1
    assert result.orders[0].items[0].row_index == 2


def test_string_numbers_and_dates(tmp_path):
    row = list(SAMPLE_ROWS[2])
    row[0], row[1] = "2024.01.16", "2024-02-05"
    row[11], row[12] = "1,000", "3,500원"
    result = parse_input_sheet(build_template(tmp_path / "t.xlsx", [row]))

    order = result.orders[0]
    assert order.order_date == date(2024, 1, 16)
    assert order.items[0].supply_amount == 3_500_000


def test_missing_input_sheet(tmp_path):
    result = parse_input_sheet(build_template(tmp_path / "t.xlsx", input_title="Data"))
    assert result.success is False
    assert "Input" in result.error


def test_no_data_rows(tmp_path):
    result = parse_input_sheet(build_template(tmp_path / "t.xlsx", []))
    assert result.success is False


def test_unreadable_file(tmp_path):
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a zip archive")
    result = parse_input_sheet(path)
    assert result.success is False
    assert result.error


def test_custom_vat_rate(template_path):
    rebar = parse_input_sheet(template_path, vat_rate=0).orders[0].items[0]
    assert rebar.tax_amount == 0
    assert rebar.total_amount == rebar.supply_amount
