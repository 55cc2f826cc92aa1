"""Tests for template quick checks and row-level validation."""

from datetime import date

from purchasing.services.template_validator import quick_validate, validate_template_file
from tests.factories import HEADER, SAMPLE_ROWS, build_template


def _fields(issues):
    return {(i.row, i.field) for i in issues}

# ============================================================================
# QUICK VALIDATION
# ============================================================================

def test_quick_validate_accepts_template(template_path):
    report = quick_validate(template_path)
    assert report.is_valid is True
    assert report.sheet_names == ["Input", "갑지", "을지"]


def test_quick_validate_missing_file(tmp_path):
    report = quick_validate(tmp_path / "nope.xlsx")
    assert report.is_valid is False
    assert "not found" in report.errors[0].message


def test_quick_validate_rejects_extension(tmp_path):
    path = tmp_path / "orders.csv"
    path.write_text("a,b,c")
    report = quick_validate(path)
    assert report.is_valid is False
    assert ".csv" in report.errors[0].message


def test_quick_validate_requires_input_sheet(tmp_path):
    report = quick_validate(build_template(tmp_path / "t.xlsx", input_title="Sheet1"))
    assert report.is_valid is False
    assert "Input" in report.errors[0].message


def test_quick_validate_reports_missing_columns(tmp_path):
    header = [h for h in HEADER if h not in ("현장명", "단가")]
    report = quick_validate(build_template(tmp_path / "t.xlsx", [], header=header))

    assert report.is_valid is False
    assert {e.field for e in report.errors} == {"site_name", "unit_price"}


def test_quick_validate_accepts_fixed_layout(tmp_path):
    header = ["Date", "Due", "Supplier", *(f"col{i}" for i in range(16))]
    report = quick_validate(build_template(tmp_path / "t.xlsx", header=header))

    assert report.is_valid is True, report.errors


def test_quick_validate_rejects_unrecognised_layout(tmp_path):
    header = ["Supplier", "Product", "When"]
    rows = [["대한철강", "철근", "2024-01-15"]]
    report = quick_validate(build_template(tmp_path / "t.xlsx", rows, header=header))

    assert report.is_valid is False
    assert "fixed A..S layout" in report.errors[0].message

# ============================================================================
# FULL VALIDATION
# ============================================================================

def test_valid_template(template_path):
    report = validate_template_file(template_path)

    assert report.is_valid is True
    assert report.errors == []
    assert report.total_rows == 3
    assert report.valid_rows == 3


def test_row_errors(tmp_path):
    bad = list(SAMPLE_ROWS[0])
    bad[2] = None                      # vendor
    bad[3] = "not-an-email"
    bad[11] = -5                       # quantity
    bad[12] = "abc"                    # unit price
    late = list(SAMPLE_ROWS[2])
    late[1] = date(2024, 1, 1)         # due before order date
    report = validate_template_file(build_template(tmp_path / "t.xlsx", [bad, late, SAMPLE_ROWS[1]]))

    assert report.is_valid is False
    assert _fields(report.errors) == {
        (2, "vendor_name"),
        (2, "vendor_email"),
        (2, "quantity"),
        (2, "unit_price"),
        (3, "due_date"),
    }
    assert report.total_rows == 3
    assert report.valid_rows == 1


def test_invalid_date_text(tmp_path):
    row = list(SAMPLE_ROWS[0])
    row[0] = "someday"
    report = validate_template_file(build_template(tmp_path / "t.xlsx", [row]))
    assert _fields(report.errors) == {(2, "order_date")}


def test_total_mismatch_is_a_warning(tmp_path):
    row = list(SAMPLE_ROWS[2])
    row[15] = 400000                   # supply 350,000 + tax 35,000 expected
    report = validate_template_file(build_template(tmp_path / "t.xlsx", [row]))

    assert report.is_valid is True
    assert _fields(report.warnings) == {(2, "total_amount")}


def test_total_within_tolerance(tmp_path):
    row = list(SAMPLE_ROWS[2])
    row[15] = 385000.5
    report = validate_template_file(build_template(tmp_path / "t.xlsx", [row]))
    assert report.warnings == []


def test_no_data_rows_is_an_error(tmp_path):
    report = validate_template_file(build_template(tmp_path / "t.xlsx", []))
    assert report.is_valid is False
    assert report.total_rows == 0


def test_warns_without_output_sheets(tmp_path):
    report = validate_template_file(build_template(tmp_path / "t.xlsx", output_sheets=()))
    assert report.is_valid is True
    assert any("갑지" in w.message for w in report.warnings)
