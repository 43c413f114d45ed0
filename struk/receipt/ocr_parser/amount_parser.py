"""Money amount extraction with Indonesian/Western separator handling.

Indonesian receipts group thousands with periods and use a comma as the
decimal separator (``Rp 12.345,67``), but Western formatting (``12,345``)
shows up too, especially on imported POS software. The amount shapes below
are tried in order and the matched token is disambiguated by its
punctuation.
"""

import re
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

from .common import CURRENCY_SYMBOLS, MIN_PLAUSIBLE_AMOUNT

# A token may not start right after a digit or separator, and may not stop in
# front of another digit (optionally behind a separator). This keeps
# "12,345" from being read as "12,34".
_TOKEN_START = r"(?<![\d.,])"
_TOKEN_END = r"(?![.,]?\d)"

AMOUNT_PATTERNS: tuple[re.Pattern[str], ...] = (
    # Indonesian grouping: 12.345 or 12.345,67
    re.compile(_TOKEN_START + r"\d{1,3}(?:\.\d{3})*(?:,\d{2})?" + _TOKEN_END),
    # Western grouping: 12,345 or 12,345.67
    re.compile(_TOKEN_START + r"\d{1,3}(?:,\d{3})*(?:\.\d{2})?" + _TOKEN_END),
    # Bare digit run of at least three digits: 15000
    re.compile(r"\d{3,}"),
)

_DECIMAL_COMMA = re.compile(r"^\d+,\d{2}$")


def _currency_pattern(symbols: Iterable[str]) -> re.Pattern[str] | None:
    # Longest first so "RUPIAH" is not left as "UPIAH" after stripping "RP".
    ordered = sorted((s for s in symbols if s), key=len, reverse=True)
    if not ordered:
        return None
    # "Rp." is a common abbreviation; its period must not glue onto the number.
    return re.compile("|".join(re.escape(s) + r"\.?" for s in ordered), re.IGNORECASE)


_DEFAULT_CURRENCY_PATTERN = _currency_pattern(CURRENCY_SYMBOLS)


def clean_amount_text(line: str, currency_symbols: Iterable[str] | None = None) -> str:
    """Strip currency markers and everything that cannot be part of a number."""
    pattern = _DEFAULT_CURRENCY_PATTERN if currency_symbols is None else _currency_pattern(currency_symbols)
    without_currency = pattern.sub(" ", line) if pattern is not None else line
    return re.sub(r"[^\d.,\s]", " ", without_currency).strip()


def parse_amount_token(token: str) -> Decimal | None:
    """
    Convert a matched number token into a Decimal.

    - Both separators: the rightmost one is the decimal point.
    - Periods only: every period groups thousands ("25.500" -> 25500).
    - Commas only: a single comma before exactly two digits is a decimal
      comma ("12,50"); otherwise commas group thousands ("12,345").
    - Neither: plain integer, rejected below the minimum plausible amount.
    """
    has_period = "." in token
    has_comma = "," in token

    if has_period and has_comma:
        if token.rfind(",") > token.rfind("."):
            integer_part, _, decimal_part = token.rpartition(",")
            normalized = f"{integer_part.replace('.', '')}.{decimal_part}"
        else:
            normalized = token.replace(",", "")
    elif has_period:
        normalized = token.replace(".", "")
    elif has_comma:
        if _DECIMAL_COMMA.match(token):
            normalized = token.replace(",", ".")
        else:
            normalized = token.replace(",", "")
    else:
        normalized = token

    try:
        value = Decimal(normalized)
    except InvalidOperation:
        return None

    if not (has_period or has_comma) and value < MIN_PLAUSIBLE_AMOUNT:
        return None
    return value


def extract_amount_from_line(line: str, currency_symbols: Iterable[str] | None = None) -> Decimal | None:
    """
    Extract a non-negative money amount from a line of receipt text.

    Shapes are tried in priority order; within a shape, matches are tried
    left to right. The first token that parses wins.

    Examples:
        >>> extract_amount_from_line("TOTAL Rp 12.345,67")
        Decimal('12345.67')
        >>> extract_amount_from_line("JUMLAH: 12,345")
        Decimal('12345')
    """
    cleaned = clean_amount_text(line, currency_symbols)
    if not cleaned:
        return None

    for pattern in AMOUNT_PATTERNS:
        for match in pattern.finditer(cleaned):
            amount = parse_amount_token(match.group(0))
            if amount is not None:
                return amount
    return None
