"""Tests for IDR formatting and JSON serializers."""

from collections.abc import Callable
from decimal import Decimal

from struk.domain.receipt import OCRMetrics, ParsedReceipt, ParseOutcome, StabilizationState
from struk.receipt.formatter import (
    format_compact_idr,
    format_idr,
    format_receipt_summary,
    metrics_to_dict,
    outcome_to_dict,
    parse_idr,
    receipt_to_dict,
    state_to_dict,
)


def test_format_idr() -> None:
    assert format_idr(Decimal("1234567")) == "Rp 1.234.567"
    assert format_idr(500) == "Rp 500"
    assert format_idr(0) == "Rp 0"
    assert format_idr(Decimal("-2500")) == "-Rp 2.500"


def test_format_idr_variants() -> None:
    assert format_idr(2500, show_symbol=False, show_code=True) == "2.500 IDR"
    assert format_idr(2500, show_symbol=False) == "2.500"
    assert format_idr(Decimal("12345.675"), fraction_digits=2) == "Rp 12.345,68"
    assert format_idr(Decimal("999.5")) == "Rp 1.000"


def test_format_compact_idr() -> None:
    assert format_compact_idr(1_200_000_000) == "Rp 1.2M"
    assert format_compact_idr(1_500_000) == "Rp 1.5Jt"
    assert format_compact_idr(500_000) == "Rp 500.0K"
    assert format_compact_idr(750) == "Rp 750"
    assert format_compact_idr(-25_000) == "-Rp 25.0K"


def test_parse_idr() -> None:
    assert parse_idr("Rp 1.234.567") == Decimal("1234567")
    assert parse_idr("Rp 12.345,67") == Decimal("12345.67")
    assert parse_idr("-Rp 2.500") == Decimal("-2500")
    assert parse_idr("gratis") == Decimal("0")


def test_receipt_to_dict(make_receipt: Callable[..., ParsedReceipt]) -> None:
    data = receipt_to_dict(make_receipt(total_amount=Decimal("12345.67")))
    assert data["merchant"] == "ALFAMART"
    assert data["total_amount"] == 12345.67
    assert data["purchase_date"] == "2025-08-15"
    assert data["currency"] == "IDR"
    assert data["confidence"]["total"] == 0.9

    assert receipt_to_dict(make_receipt(total_amount=7500))["total_amount"] == 7500
    assert receipt_to_dict(make_receipt(total_amount=None))["total_amount"] is None


def test_outcome_to_dict_failure() -> None:
    outcome = ParseOutcome(success=False, data=None, errors=["No text detected in OCR result"], processing_time_ms=0.5)
    assert outcome_to_dict(outcome) == {
        "success": False,
        "data": None,
        "errors": ["No text detected in OCR result"],
        "processing_time_ms": 0.5,
    }


def test_state_and_metrics_to_dict(make_receipt: Callable[..., ParsedReceipt]) -> None:
    state = StabilizationState(is_active=True, is_stable=True, last_stable_result=make_receipt(), frame_count=3)
    data = state_to_dict(state)
    assert data["is_stable"] is True
    assert data["status"] == "detecting"
    assert data["last_stable_result"]["merchant"] == "ALFAMART"

    assert metrics_to_dict(OCRMetrics(total_frames_processed=2, success_rate=0.5))["success_rate"] == 0.5


def test_format_receipt_summary(make_receipt: Callable[..., ParsedReceipt]) -> None:
    summary = format_receipt_summary(make_receipt(), warnings=["Tanggal pembelian tidak terdeteksi"])
    assert "Merchant: ALFAMART" in summary
    assert "Total: Rp 7.500" in summary
    assert "  - Tanggal pembelian tidak terdeteksi" in summary

    unknown = format_receipt_summary(make_receipt(merchant=None, total_amount=None, purchase_date=None))
    assert "Merchant: UNKNOWN" in unknown
    assert "Total: UNKNOWN" in unknown
