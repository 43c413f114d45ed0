"""Shared constants and helpers for Indonesian receipt parsing."""

import re
from dataclasses import dataclass

CURRENCY = "IDR"

# Printed currency markers, stripped before reading amounts
CURRENCY_SYMBOLS: tuple[str, ...] = ("Rp", "IDR", "RUPIAH")

# Labels used to locate the amount due, highest priority first
DEFAULT_TOTAL_KEYWORDS: tuple[str, ...] = (
    "TOTAL",
    "Grand Total",
    "GRAND TOTAL",
    "JUMLAH",
    "TAGIHAN",
    "SUBTOTAL",
    "PEMBAYARAN",
)

# "TOTAL ..." lines that count items or savings rather than the amount due
TOTAL_EXCLUDED_PHRASES: tuple[str, ...] = (
    "TOTAL ITEM",
    "TOTAL QTY",
    "TOTAL DISKON",
    "TOTAL HEMAT",
    "TOTAL DISCOUNT",
    "TOTAL SAVING",
)

# Metadata words that disqualify a header line from being the merchant name
MERCHANT_NOISE_WORDS: tuple[str, ...] = ("RP", "IDR", "TOTAL", "TANGGAL", "JAM", "KASIR")

DATE_KEYWORDS = re.compile(r"TANGGAL|TGL|DATE", re.IGNORECASE)

# Fixed per-field trust constants. Downstream validation thresholds are
# calibrated against these values.
MERCHANT_CONFIDENCE = 0.8
SHORT_MERCHANT_CONFIDENCE = 0.4
TOTAL_CONFIDENCE = 0.9
FALLBACK_TOTAL_CONFIDENCE = 0.5
DATE_CONFIDENCE = 0.85

# Smallest bare number accepted as a money amount
MIN_PLAUSIBLE_AMOUNT = 100

_SUB_TOTAL = re.compile(r"SUB\s+TOTAL")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ParsingConfig:
    """Tunable knobs for the receipt parser."""

    min_confidence: float = 0.6
    max_merchant_length: int = 80
    currency_symbols: tuple[str, ...] = CURRENCY_SYMBOLS
    total_keywords: tuple[str, ...] = DEFAULT_TOTAL_KEYWORDS
    default_ocr_confidence: float = 0.8  # Used when the OCR engine reports none


DEFAULT_PARSING_CONFIG = ParsingConfig()


def split_lines(text: str) -> list[str]:
    """Split OCR text into trimmed, non-empty lines."""
    return [line.strip() for line in text.split("\n") if line.strip()]


def normalize_label_text(line: str) -> str:
    """Uppercase a line and fold label spelling variants (``Sub Total`` -> ``SUBTOTAL``)."""
    upper = _WHITESPACE.sub(" ", line.upper()).strip()
    return _SUB_TOTAL.sub("SUBTOTAL", upper)


def has_label(line: str, keyword: str) -> bool:
    """Return True if ``keyword`` appears in ``line`` as a whole word, case-insensitively."""
    label = normalize_label_text(keyword)
    pattern = r"(?<![A-Z0-9])" + re.escape(label).replace(r"\ ", r"\s+") + r"(?![A-Z0-9])"
    return re.search(pattern, normalize_label_text(line)) is not None
