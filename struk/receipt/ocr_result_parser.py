"""Parse raw OCR text into structured receipt data."""

import time
from datetime import date

from struk.domain.receipt import OCRInput, ParsedReceipt, ParseOutcome
from struk.runtime.logging import get_logger

from .confidence import score_confidence
from .ocr_parser.common import CURRENCY, DEFAULT_PARSING_CONFIG, MIN_PLAUSIBLE_AMOUNT, ParsingConfig, split_lines
from .ocr_parser.date_parser import extract_purchase_date
from .ocr_parser.fields_parser import extract_merchant, extract_total_amount

logger = get_logger(__name__)

NO_TEXT_ERROR = "No text detected in OCR result"

MIN_MERCHANT_LENGTH = 3
MIN_OVERALL_CONFIDENCE = 0.5


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def parse_receipt(
    ocr_input: OCRInput,
    config: ParsingConfig | None = None,
    today: date | None = None,
) -> ParseOutcome:
    """
    Parse OCR text from an Indonesian receipt.

    Empty text is the only expected failure. Otherwise the parse succeeds
    even when nothing could be extracted; missing fields are None and the
    overall confidence is low. Unexpected errors are reported in the
    outcome instead of being raised.

    Args:
        ocr_input: Text and optional engine confidence from the OCR engine
        config: Parser configuration (defaults to DEFAULT_PARSING_CONFIG)
        today: Reference date for purchase-date year validation

    Returns:
        ParseOutcome with processing_time_ms always populated
    """
    start = time.perf_counter()
    config = config or DEFAULT_PARSING_CONFIG

    try:
        lines = split_lines(ocr_input.text)
        if not lines:
            return ParseOutcome(
                success=False,
                data=None,
                errors=[NO_TEXT_ERROR],
                processing_time_ms=_elapsed_ms(start),
            )

        merchant, _ = extract_merchant(lines, config.max_merchant_length)
        total_amount, _ = extract_total_amount(lines, config.total_keywords, config.currency_symbols)
        purchase_date, _ = extract_purchase_date(lines, today=today)

        ocr_confidence = ocr_input.confidence
        if ocr_confidence is None:
            ocr_confidence = config.default_ocr_confidence

        receipt = ParsedReceipt(
            merchant=merchant,
            total_amount=total_amount,
            purchase_date=purchase_date,
            confidence=score_confidence(merchant, total_amount, purchase_date, ocr_confidence),
            raw_text=ocr_input.text,
            currency=CURRENCY,
        )
    except Exception as exc:
        logger.warning("Receipt parsing failed: %s", exc)
        return ParseOutcome(
            success=False,
            data=None,
            errors=[f"Parsing error: {exc}"],
            processing_time_ms=_elapsed_ms(start),
        )

    logger.debug(
        "Parsed receipt: merchant=%r total=%s date=%s overall=%.2f",
        receipt.merchant,
        receipt.total_amount,
        receipt.purchase_date,
        receipt.confidence.overall,
    )
    return ParseOutcome(success=True, data=receipt, errors=[], processing_time_ms=_elapsed_ms(start))


def validate_parsed_receipt(receipt: ParsedReceipt) -> list[str]:
    """Return user-facing validation messages; an empty list means the receipt passes."""
    errors: list[str] = []

    if not receipt.merchant or len(receipt.merchant) < MIN_MERCHANT_LENGTH:
        errors.append("Merchant name too short or missing")

    if receipt.total_amount is None or receipt.total_amount < MIN_PLAUSIBLE_AMOUNT:
        errors.append("Total amount missing or too small")

    if not receipt.purchase_date:
        errors.append("Purchase date missing")

    if receipt.confidence.overall < MIN_OVERALL_CONFIDENCE:
        errors.append("Overall confidence too low")

    return errors
