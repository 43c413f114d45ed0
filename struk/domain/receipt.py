"""Data models for receipt OCR parsing and live scan stabilization."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Literal

# Coarse, UI-facing classification of the live scan stream.
FrameStatus = Literal["detecting", "stable", "dark", "blurry", "tilted", "error"]

FRAME_STATUSES: tuple[FrameStatus, ...] = ("detecting", "stable", "dark", "blurry", "tilted", "error")


@dataclass(frozen=True)
class OCRTextLine:
    """A single line reported by an OCR engine that exposes line-level results."""

    text: str
    confidence: float


@dataclass(frozen=True)
class OCRInput:
    """Raw text produced by the OCR engine for one image or camera frame."""

    text: str
    confidence: float | None = None  # Engine-level confidence in [0, 1], if reported
    lines: tuple[OCRTextLine, ...] = ()


@dataclass(frozen=True)
class ConfidenceReport:
    """Per-field trust scores attached to every successful parse."""

    merchant: float
    total: float
    date: float
    overall: float


@dataclass(frozen=True)
class ParsedReceipt:
    """Structured transaction data extracted from receipt text."""

    merchant: str | None
    total_amount: Decimal | None  # Rupiah as printed, not cents
    purchase_date: str | None  # ISO date, YYYY-MM-DD
    confidence: ConfidenceReport
    raw_text: str = ""  # Original OCR text for review/manual correction
    currency: str = "IDR"


@dataclass(frozen=True)
class ParseOutcome:
    """Result of a single parse attempt. Always returned, even on failure."""

    success: bool
    data: ParsedReceipt | None
    errors: list[str] = field(default_factory=list)
    processing_time_ms: float = 0.0


@dataclass(frozen=True)
class StabilizationState:
    """Snapshot of a live scanning session."""

    is_active: bool = False
    is_stable: bool = False
    last_stable_result: ParsedReceipt | None = None
    frame_count: int = 0
    status: FrameStatus = "detecting"
    error_message: str | None = None


@dataclass(frozen=True)
class OCRMetrics:
    """Running, session-scoped performance counters."""

    avg_processing_time_ms: float = 0.0
    frame_processing_rate: float = 0.0  # Accepted frames per second
    success_rate: float = 0.0  # Successful parses / accepted frames, 0..1
    last_processed_at: float = 0.0  # Engine clock seconds; 0 means never
    total_frames_processed: int = 0
