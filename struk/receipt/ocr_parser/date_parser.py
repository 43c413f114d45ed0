"""Purchase date extraction for Indonesian receipts."""

import re
from datetime import date

from .common import DATE_CONFIDENCE, DATE_KEYWORDS

# Full names, 3-letter abbreviations, and a few common OCR/printer variants
INDONESIAN_MONTHS: dict[str, int] = {
    "JANUARI": 1,
    "JAN": 1,
    "FEBRUARI": 2,
    "FEB": 2,
    "MARET": 3,
    "MAR": 3,
    "APRIL": 4,
    "APR": 4,
    "MEI": 5,
    "JUNI": 6,
    "JUN": 6,
    "JULI": 7,
    "JUL": 7,
    "AGUSTUS": 8,
    "AGU": 8,
    "AGS": 8,
    "SEPTEMBER": 9,
    "SEP": 9,
    "SEPT": 9,
    "OKTOBER": 10,
    "OKT": 10,
    "NOVEMBER": 11,
    "NOV": 11,
    "DESEMBER": 12,
    "DES": 12,
}

MIN_RECEIPT_YEAR = 2020

# Fixed priority order. Numeric fields may not be glued to neighbouring
# digits, otherwise "2024-12-21" would also read as "24-12-21".
DMY_LONG = re.compile(r"(?<!\d)(\d{1,2})[/-](\d{1,2})[/-](\d{4})(?!\d)")
DMY_SHORT = re.compile(r"(?<!\d)(\d{1,2})[/-](\d{1,2})[/-](\d{2})(?!\d)")
DAY_MONTH_NAME = re.compile(r"(?<!\d)(\d{1,2})\s+([A-Z]{3,})\.?\s+(\d{4})(?!\d)")
ISO_YMD = re.compile(r"(?<!\d)(\d{4})[/-](\d{1,2})[/-](\d{1,2})(?!\d)")

DATE_PATTERNS: tuple[re.Pattern[str], ...] = (DMY_LONG, DMY_SHORT, DAY_MONTH_NAME, ISO_YMD)


def _looks_date_related(upper_line: str) -> bool:
    if DATE_KEYWORDS.search(upper_line):
        return True
    return any(pattern.search(upper_line) for pattern in DATE_PATTERNS)


def _match_to_parts(pattern: re.Pattern[str], match: re.Match[str]) -> tuple[int, int, int]:
    """Return (day, month, year) for a match; month is 0 when the name is unknown."""
    if pattern is ISO_YMD:
        return int(match.group(3)), int(match.group(2)), int(match.group(1))
    if pattern is DAY_MONTH_NAME:
        return int(match.group(1)), INDONESIAN_MONTHS.get(match.group(2), 0), int(match.group(3))

    year = int(match.group(3))
    if pattern is DMY_SHORT:
        year += 2000
    return int(match.group(1)), int(match.group(2)), year


def _validated_date(day: int, month: int, year: int, today: date) -> date | None:
    if not (1 <= day <= 31 and 1 <= month <= 12 and MIN_RECEIPT_YEAR <= year <= today.year + 1):
        return None
    try:
        return date(year, month, day)
    except ValueError:
        # In range but not on the calendar, e.g. 31/02
        return None


def extract_purchase_date(lines: list[str], today: date | None = None) -> tuple[str | None, float]:
    """
    Find the first valid purchase date in receipt lines.

    Only lines with a date keyword (TANGGAL/TGL/DATE) or a date-shaped token
    are examined. Each candidate line is tried against DD/MM/YYYY,
    DD/MM/YY, "DD <bulan> YYYY" and YYYY-MM-DD in that order; matches that
    fail validation are skipped and scanning continues.

    Returns:
        (ISO date string, confidence) or (None, 0.0)
    """
    today = today or date.today()

    for line in lines:
        upper_line = line.upper()
        if not _looks_date_related(upper_line):
            continue

        for pattern in DATE_PATTERNS:
            match = pattern.search(upper_line)
            if not match:
                continue
            day, month, year = _match_to_parts(pattern, match)
            parsed = _validated_date(day, month, year, today)
            if parsed is not None:
                return parsed.isoformat(), DATE_CONFIDENCE

    return None, 0.0
