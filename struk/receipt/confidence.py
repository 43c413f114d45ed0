"""Confidence scoring for parsed receipts.

Scores are fixed per field: the parser trusts "did we find a value" rather
than how strongly a pattern matched. Validation thresholds downstream
(e.g. the 0.5 overall cutoff) are calibrated against these constants.
"""

from decimal import Decimal

from struk.domain.receipt import ConfidenceReport

from .ocr_parser.common import DATE_CONFIDENCE, MERCHANT_CONFIDENCE, TOTAL_CONFIDENCE


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def score_confidence(
    merchant: str | None,
    total_amount: Decimal | None,
    purchase_date: str | None,
    ocr_confidence: float,
) -> ConfidenceReport:
    """
    Combine field presence with the OCR engine's own confidence.

    ``overall`` is the mean of the three field scores and the OCR
    confidence, clamped to [0, 1].
    """
    merchant_score = MERCHANT_CONFIDENCE if merchant else 0.0
    total_score = TOTAL_CONFIDENCE if total_amount is not None else 0.0
    date_score = DATE_CONFIDENCE if purchase_date else 0.0

    overall = (merchant_score + total_score + date_score + ocr_confidence) / 4

    return ConfidenceReport(
        merchant=merchant_score,
        total=total_score,
        date=date_score,
        overall=_clamp(overall),
    )
