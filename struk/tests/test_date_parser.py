"""Tests for purchase date extraction."""

from datetime import date

from struk.receipt.ocr_parser.date_parser import INDONESIAN_MONTHS, extract_purchase_date


def test_keyword_line_day_month_year(today: date) -> None:
    assert extract_purchase_date(["Tanggal: 15/08/2025"], today=today) == ("2025-08-15", 0.85)


def test_indonesian_month_name_without_keyword(today: date) -> None:
    assert extract_purchase_date(["12 Agustus 2025"], today=today) == ("2025-08-12", 0.85)


def test_abbreviated_month_name(today: date) -> None:
    assert extract_purchase_date(["25 Sep 2025"], today=today)[0] == "2025-09-25"
    assert extract_purchase_date(["03 Ags. 2025"], today=today)[0] == "2025-08-03"


def test_iso_date_is_not_read_as_short_year(today: date) -> None:
    assert extract_purchase_date(["2025-12-01"], today=today)[0] == "2025-12-01"
    assert extract_purchase_date(["DATE: 2024-12-21 14:02"], today=today)[0] == "2024-12-21"


def test_two_digit_year(today: date) -> None:
    assert extract_purchase_date(["Tgl 01-09-25"], today=today)[0] == "2025-09-01"


def test_year_out_of_range_is_rejected(today: date) -> None:
    assert extract_purchase_date(["Tanggal: 15/08/2019"], today=today) == (None, 0.0)
    assert extract_purchase_date(["Tanggal: 15/08/2030"], today=today) == (None, 0.0)


def test_next_year_is_allowed(today: date) -> None:
    assert extract_purchase_date(["Tanggal: 02/01/2026"], today=today)[0] == "2026-01-02"


def test_impossible_calendar_date_keeps_scanning(today: date) -> None:
    lines = ["Tanggal: 31/02/2025", "Cetak 05/03/2025"]
    assert extract_purchase_date(lines, today=today)[0] == "2025-03-05"


def test_unrelated_lines_are_ignored(today: date) -> None:
    lines = ["ALFAMART", "Jam 14:30", "TOTAL Rp 7.500"]
    assert extract_purchase_date(lines, today=today) == (None, 0.0)


def test_unknown_month_name_is_rejected(today: date) -> None:
    assert extract_purchase_date(["12 Foo 2025"], today=today) == (None, 0.0)


def test_month_table_covers_ocr_variants() -> None:
    assert INDONESIAN_MONTHS["AGS"] == 8
    assert INDONESIAN_MONTHS["SEPT"] == 9
    assert INDONESIAN_MONTHS["DESEMBER"] == 12
