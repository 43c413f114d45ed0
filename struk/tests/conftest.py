"""Shared pytest fixtures for struk tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal

import pytest

from struk.domain.receipt import ConfidenceReport, ParsedReceipt

ALFAMART_RECEIPT = """ALFAMART
Jl. Sudirman No. 12
Tanggal: 15/08/2025
Indomie Goreng 3.500
Aqua 600ml 4.000
SUBTOTAL 7.500
TOTAL Rp 7.500
TUNAI Rp 10.000
KEMBALI Rp 2.500"""


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def today() -> date:
    return date(2025, 10, 1)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def alfamart_text() -> str:
    return ALFAMART_RECEIPT


@pytest.fixture
def make_receipt() -> Callable[..., ParsedReceipt]:
    def _make(
        merchant: str | None = "ALFAMART",
        total_amount: Decimal | int | None = 7500,
        purchase_date: str | None = "2025-08-15",
        overall: float = 0.86,
    ) -> ParsedReceipt:
        amount = Decimal(total_amount) if total_amount is not None else None
        return ParsedReceipt(
            merchant=merchant,
            total_amount=amount,
            purchase_date=purchase_date,
            confidence=ConfidenceReport(
                merchant=0.8 if merchant else 0.0,
                total=0.9 if amount is not None else 0.0,
                date=0.85 if purchase_date else 0.0,
                overall=overall,
            ),
            raw_text="",
        )

    return _make
