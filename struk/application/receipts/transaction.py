"""Convert confirmed receipts into expense transaction drafts."""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal

from struk.domain.receipt import ParsedReceipt
from struk.domain.transaction import TransactionCheck, TransactionDraft
from struk.runtime.rule_engine import DEFAULT_CATEGORY, MerchantInfo, RuleEngine, get_rule_engine

SMALL_PURCHASE_LIMIT = Decimal("50000")
MEDIUM_PURCHASE_LIMIT = Decimal("200000")
LARGE_AMOUNT_WARNING = Decimal("10000000")

# Below this overall confidence the note records the score for reviewers
NOTE_CONFIDENCE_THRESHOLD = 0.8
LOW_OVERALL_CONFIDENCE = 0.6
LOW_TOTAL_CONFIDENCE = 0.7
MIN_MERCHANT_LENGTH = 2

AUTO_NOTE = "Dibuat otomatis dari scan struk"


def _title_case(merchant: str) -> str:
    cleaned = re.sub(r"[^\w\s]", " ", merchant)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return " ".join(word[:1].upper() + word[1:].lower() for word in cleaned.split(" "))


def build_transaction_title(receipt: ParsedReceipt) -> str:
    if receipt.merchant:
        return f"Belanja di {_title_case(receipt.merchant)}"

    amount = receipt.total_amount
    if amount:
        if amount < SMALL_PURCHASE_LIMIT:
            return "Pembelian kecil"
        if amount < MEDIUM_PURCHASE_LIMIT:
            return "Pembelian sedang"
        return "Pembelian besar"

    return "Transaksi dari struk"


def _format_local_date(iso_date: str) -> str:
    """Indonesian short date, e.g. ``15/8/2025``."""
    parsed = date.fromisoformat(iso_date)
    return f"{parsed.day}/{parsed.month}/{parsed.year}"


def build_transaction_note(receipt: ParsedReceipt) -> str:
    notes: list[str] = []

    if receipt.merchant:
        notes.append(f"Merchant: {receipt.merchant}")

    if receipt.purchase_date:
        notes.append(f"Tanggal: {_format_local_date(receipt.purchase_date)}")

    if receipt.confidence.overall < NOTE_CONFIDENCE_THRESHOLD:
        notes.append(f"Confidence: {round(receipt.confidence.overall * 100)}%")

    notes.append(AUTO_NOTE)
    return " | ".join(notes)


def convert_receipt_to_transaction(
    receipt: ParsedReceipt,
    auto_detect_category: bool = True,
    default_category: str = DEFAULT_CATEGORY,
    wallet: str | None = None,
    rule_engine: RuleEngine | None = None,
    today: date | None = None,
) -> TransactionDraft:
    """
    Build an expense draft from a parsed receipt.

    Args:
        receipt: Parsed (and usually user-confirmed) receipt
        auto_detect_category: Derive the category from the merchant name
        default_category: Category used when detection is disabled
        wallet: Wallet/account the expense is paid from
        rule_engine: Merchant rules; defaults to the shared engine
        today: Fallback date when the receipt has none

    Returns:
        TransactionDraft of type "expense"
    """
    if auto_detect_category:
        engine = rule_engine or get_rule_engine()
        category = engine.categorize(
            MerchantInfo(merchant_name=receipt.merchant or "", total_amount=receipt.total_amount)
        )
    else:
        category = default_category

    return TransactionDraft(
        type="expense",
        category=category,
        title=build_transaction_title(receipt),
        note=build_transaction_note(receipt),
        amount=receipt.total_amount or Decimal("0"),
        date=receipt.purchase_date or (today or date.today()).isoformat(),
        wallet=wallet,
    )


def validate_receipt_for_transaction(receipt: ParsedReceipt) -> TransactionCheck:
    """Errors block conversion; warnings ask the user to double-check."""
    errors: list[str] = []
    warnings: list[str] = []

    amount = receipt.total_amount
    if not amount or amount <= 0:
        errors.append("Total amount harus lebih dari 0")

    if not receipt.merchant or len(receipt.merchant) < MIN_MERCHANT_LENGTH:
        warnings.append("Nama merchant tidak terdeteksi atau terlalu pendek")

    if not receipt.purchase_date:
        warnings.append("Tanggal pembelian tidak terdeteksi")

    if receipt.confidence.overall < LOW_OVERALL_CONFIDENCE:
        warnings.append("Tingkat kepercayaan OCR rendah, periksa data manual")

    if receipt.confidence.total < LOW_TOTAL_CONFIDENCE:
        warnings.append("Nominal tidak terbaca dengan jelas")

    if amount and amount > LARGE_AMOUNT_WARNING:
        warnings.append("Nominal sangat besar, pastikan benar")

    return TransactionCheck(errors=errors, warnings=warnings)
