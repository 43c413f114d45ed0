"""Format receipt data for display and JSON output."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from struk.domain.receipt import OCRMetrics, ParsedReceipt, ParseOutcome, StabilizationState

_LEADING_NUMBER = re.compile(r"^-?\d+(?:\.\d+)?")


def _group_thousands(integer_digits: str) -> str:
    groups = []
    while len(integer_digits) > 3:
        groups.insert(0, integer_digits[-3:])
        integer_digits = integer_digits[:-3]
    groups.insert(0, integer_digits)
    return ".".join(groups)


def _format_number(amount: Decimal, fraction_digits: int) -> str:
    """Indonesian number formatting: ``.`` groups thousands, ``,`` is the decimal mark."""
    quantum = Decimal(1).scaleb(-fraction_digits)
    rounded = abs(amount).quantize(quantum, rounding=ROUND_HALF_UP)
    integer_part, _, fraction_part = f"{rounded:f}".partition(".")
    formatted = _group_thousands(integer_part)
    if fraction_part:
        formatted = f"{formatted},{fraction_part}"
    return formatted


def format_idr(
    amount: Decimal | int | float,
    show_symbol: bool = True,
    show_code: bool = False,
    fraction_digits: int = 0,
) -> str:
    """
    Format an amount as Indonesian Rupiah.

    Examples:
        >>> format_idr(Decimal("1234567"))
        'Rp 1.234.567'
        >>> format_idr(-2500, show_symbol=False, show_code=True)
        '-2.500 IDR'
    """
    value = Decimal(str(amount))
    formatted = _format_number(value, fraction_digits)

    if show_symbol:
        result = f"Rp {formatted}"
    elif show_code:
        result = f"{formatted} IDR"
    else:
        result = formatted

    if value < 0:
        result = f"-{result}"
    return result


def format_compact_idr(amount: Decimal | int | float) -> str:
    """Short form for tight UI spots: ``Rp 1.2M`` (miliar), ``Rp 1.5Jt`` (juta), ``Rp 500.0K``."""
    value = Decimal(str(amount))
    abs_value = abs(value)

    one_place = Decimal("0.1")
    if abs_value >= 1_000_000_000:
        result = f"Rp {(abs_value / 1_000_000_000).quantize(one_place, rounding=ROUND_HALF_UP)}M"
    elif abs_value >= 1_000_000:
        result = f"Rp {(abs_value / 1_000_000).quantize(one_place, rounding=ROUND_HALF_UP)}Jt"
    elif abs_value >= 1_000:
        result = f"Rp {(abs_value / 1_000).quantize(one_place, rounding=ROUND_HALF_UP)}K"
    else:
        result = f"Rp {_format_number(abs_value, 0)}"

    if value < 0:
        result = f"-{result}"
    return result


def parse_idr(text: str) -> Decimal:
    """Parse a formatted Rupiah string back to a Decimal; unreadable input yields 0."""
    cleaned = re.sub(r"[Rp\s]", "", text).replace(".", "").replace(",", ".")
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return Decimal("0")
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return Decimal("0")


def _json_amount(amount: Decimal | None) -> int | float | None:
    if amount is None:
        return None
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


def receipt_to_dict(receipt: ParsedReceipt) -> dict[str, Any]:
    return {
        "merchant": receipt.merchant,
        "total_amount": _json_amount(receipt.total_amount),
        "purchase_date": receipt.purchase_date,
        "currency": receipt.currency,
        "confidence": {
            "merchant": receipt.confidence.merchant,
            "total": receipt.confidence.total,
            "date": receipt.confidence.date,
            "overall": receipt.confidence.overall,
        },
        "raw_text": receipt.raw_text,
    }


def outcome_to_dict(outcome: ParseOutcome) -> dict[str, Any]:
    return {
        "success": outcome.success,
        "data": receipt_to_dict(outcome.data) if outcome.data is not None else None,
        "errors": list(outcome.errors),
        "processing_time_ms": round(outcome.processing_time_ms, 3),
    }


def state_to_dict(state: StabilizationState) -> dict[str, Any]:
    last_stable = state.last_stable_result
    return {
        "is_active": state.is_active,
        "is_stable": state.is_stable,
        "last_stable_result": receipt_to_dict(last_stable) if last_stable is not None else None,
        "frame_count": state.frame_count,
        "status": state.status,
        "error_message": state.error_message,
    }


def metrics_to_dict(metrics: OCRMetrics) -> dict[str, Any]:
    return {
        "avg_processing_time_ms": round(metrics.avg_processing_time_ms, 3),
        "frame_processing_rate": round(metrics.frame_processing_rate, 3),
        "success_rate": metrics.success_rate,
        "last_processed_at": metrics.last_processed_at,
        "total_frames_processed": metrics.total_frames_processed,
    }


def format_receipt_summary(receipt: ParsedReceipt, warnings: list[str] | None = None) -> str:
    """Human-readable block for terminal review."""
    total = format_idr(receipt.total_amount) if receipt.total_amount is not None else "UNKNOWN"
    lines = [
        "=" * 60,
        "PARSED RECEIPT",
        "=" * 60,
        f"Merchant: {receipt.merchant or 'UNKNOWN'}",
        f"Date: {receipt.purchase_date or 'UNKNOWN'}",
        f"Total: {total}",
        f"Confidence: {round(receipt.confidence.overall * 100)}%",
    ]
    if warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"  - {warning}" for warning in warnings)
    lines.append("=" * 60)
    return "\n".join(lines)
