"""Composable Indonesian receipt field extractors."""

from .amount_parser import extract_amount_from_line, parse_amount_token
from .common import DEFAULT_PARSING_CONFIG, ParsingConfig, split_lines
from .date_parser import INDONESIAN_MONTHS, extract_purchase_date
from .fields_parser import clean_merchant_name, extract_merchant, extract_total_amount

__all__ = [
    "DEFAULT_PARSING_CONFIG",
    "INDONESIAN_MONTHS",
    "ParsingConfig",
    "clean_merchant_name",
    "extract_amount_from_line",
    "extract_merchant",
    "extract_purchase_date",
    "extract_total_amount",
    "parse_amount_token",
    "split_lines",
]
