"""Merchant and total amount extraction helpers."""

import re
from collections.abc import Sequence
from decimal import Decimal

from .amount_parser import extract_amount_from_line
from .common import (
    CURRENCY_SYMBOLS,
    DEFAULT_TOTAL_KEYWORDS,
    FALLBACK_TOTAL_CONFIDENCE,
    MERCHANT_CONFIDENCE,
    MERCHANT_NOISE_WORDS,
    SHORT_MERCHANT_CONFIDENCE,
    TOTAL_CONFIDENCE,
    TOTAL_EXCLUDED_PHRASES,
    has_label,
    normalize_label_text,
)

# Merchants are printed in the receipt header
MERCHANT_HEADER_LINES = 3


def _is_merchant_candidate(line: str) -> bool:
    """Return True unless the line looks like a price, date or metadata line."""
    if len(line) <= 3:
        return False
    if not re.search(r"\w", line):
        return False
    if re.search(r"\d{2,}", line):
        return False
    upper = line.upper()
    return not any(word in upper for word in MERCHANT_NOISE_WORDS)


def clean_merchant_name(line: str, max_length: int = 80) -> str:
    """Replace punctuation with spaces, collapse whitespace and truncate."""
    cleaned = re.sub(r"[^\w\s]", " ", line)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned[:max_length].rstrip()


def extract_merchant(lines: list[str], max_length: int = 80) -> tuple[str | None, float]:
    """
    Pick the merchant name from the first header lines.

    Lines with digit runs (phone numbers, addresses with house numbers) or
    price/date/cashier labels are skipped. The first surviving line is
    cleaned and returned.

    Returns:
        (merchant, confidence) or (None, 0.0)
    """
    for line in lines[:MERCHANT_HEADER_LINES]:
        if not _is_merchant_candidate(line):
            continue
        merchant = clean_merchant_name(line, max_length)
        if not merchant:
            return None, 0.0
        confidence = MERCHANT_CONFIDENCE if len(merchant) > 3 else SHORT_MERCHANT_CONFIDENCE
        return merchant, confidence
    return None, 0.0


def _is_excluded_total_line(line: str) -> bool:
    normalized = normalize_label_text(line)
    return any(phrase in normalized for phrase in TOTAL_EXCLUDED_PHRASES)


def extract_total_amount(
    lines: list[str],
    total_keywords: Sequence[str] = DEFAULT_TOTAL_KEYWORDS,
    currency_symbols: Sequence[str] = CURRENCY_SYMBOLS,
) -> tuple[Decimal | None, float]:
    """
    Extract the amount due.

    Keywords are tried in priority order. For each keyword, lines are
    scanned bottom-up (the final total sits below running totals) and the
    amount is read from the labelled line, or from the line below it.
    Without any labelled amount, the largest amount on the receipt is used.

    Returns:
        (amount, confidence) or (None, 0.0)
    """
    for keyword in total_keywords:
        for idx in range(len(lines) - 1, -1, -1):
            line = lines[idx]
            if not has_label(line, keyword) or _is_excluded_total_line(line):
                continue
            amount = extract_amount_from_line(line, currency_symbols)
            if amount is None and idx + 1 < len(lines):
                amount = extract_amount_from_line(lines[idx + 1], currency_symbols)
            if amount is not None:
                return amount, TOTAL_CONFIDENCE

    largest: Decimal | None = None
    for line in lines:
        amount = extract_amount_from_line(line, currency_symbols)
        if amount is not None and (largest is None or amount > largest):
            largest = amount

    if largest is None or largest <= 0:
        return None, 0.0
    return largest, FALLBACK_TOTAL_CONFIDENCE
