"""Core domain models for struk.

This module provides the data models used throughout the project:
- OCRInput, ParsedReceipt, ParseOutcome: receipt parsing models
- StabilizationState, OCRMetrics: live scan session snapshots
- TransactionDraft, TransactionCheck: receipt to transaction conversion

Usage:
    from struk.domain import OCRInput, ParsedReceipt
"""

from struk.domain.receipt import (
    FRAME_STATUSES,
    ConfidenceReport,
    FrameStatus,
    OCRInput,
    OCRMetrics,
    OCRTextLine,
    ParsedReceipt,
    ParseOutcome,
    StabilizationState,
)
from struk.domain.transaction import TransactionCheck, TransactionDraft

__all__ = [
    "ConfidenceReport",
    "FRAME_STATUSES",
    "FrameStatus",
    "OCRInput",
    "OCRMetrics",
    "OCRTextLine",
    "ParsedReceipt",
    "ParseOutcome",
    "StabilizationState",
    "TransactionCheck",
    "TransactionDraft",
]
