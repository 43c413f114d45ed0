"""Receipt workflows."""

from struk.application.receipts.live import LiveScanSession, LiveScanSnapshot
from struk.application.receipts.scan import ReceiptScanRequest, ReceiptScanResult, run_receipt_scan
from struk.application.receipts.transaction import convert_receipt_to_transaction, validate_receipt_for_transaction

__all__ = [
    "LiveScanSession",
    "LiveScanSnapshot",
    "ReceiptScanRequest",
    "ReceiptScanResult",
    "run_receipt_scan",
    "convert_receipt_to_transaction",
    "validate_receipt_for_transaction",
]
