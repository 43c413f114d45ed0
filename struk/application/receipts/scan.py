"""Receipt scan workflow orchestration."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Literal

import httpx

from struk.domain.receipt import ParsedReceipt, ParseOutcome
from struk.receipt.ocr_helpers import InvalidImageError
from struk.receipt.ocr_parser.common import ParsingConfig
from struk.receipt.ocr_result_parser import parse_receipt, validate_parsed_receipt
from struk.runtime.logging import get_logger
from struk.runtime.receipt_pipeline import OCRServiceUnavailable, call_ocr_service, save_ocr_json

logger = get_logger(__name__)

ScanStatus = Literal[
    "file_not_found",
    "invalid_image",
    "ocr_unavailable",
    "parsed",
    "parse_failed",
]


@dataclass(frozen=True)
class ReceiptScanRequest:
    """Inputs for running receipt scan workflow."""

    image_path: Path
    ocr_url: str
    save_raw_ocr: bool = True
    parsing_config: ParsingConfig | None = None
    client: httpx.Client | None = None
    today: date | None = None


@dataclass(frozen=True)
class ReceiptScanResult:
    """Outcome from receipt scan workflow."""

    status: ScanStatus
    outcome: ParseOutcome | None = None
    validation_errors: list[str] = field(default_factory=list)
    ocr_json_path: Path | None = None
    error: str | None = None

    @property
    def receipt(self) -> ParsedReceipt | None:
        return self.outcome.data if self.outcome is not None else None


def run_receipt_scan(request: ReceiptScanRequest) -> ReceiptScanResult:
    """Run scan flow: OCR -> parse -> validate."""
    if not request.image_path.exists():
        return ReceiptScanResult(
            status="file_not_found",
            error=f"Receipt file not found: {request.image_path}",
        )

    try:
        raw_ocr_result, ocr_input = call_ocr_service(request.image_path, request.ocr_url, client=request.client)
    except InvalidImageError as exc:
        return ReceiptScanResult(
            status="invalid_image",
            error=f"{request.image_path.name}: {exc}",
        )
    except OCRServiceUnavailable as exc:
        return ReceiptScanResult(
            status="ocr_unavailable",
            error=str(exc),
        )

    ocr_json_path = save_ocr_json(raw_ocr_result, request.image_path) if request.save_raw_ocr else None

    outcome = parse_receipt(ocr_input, request.parsing_config, today=request.today)
    if not outcome.success or outcome.data is None:
        logger.info("Receipt %s could not be parsed: %s", request.image_path.name, "; ".join(outcome.errors))
        return ReceiptScanResult(
            status="parse_failed",
            outcome=outcome,
            ocr_json_path=ocr_json_path,
            error="; ".join(outcome.errors),
        )

    return ReceiptScanResult(
        status="parsed",
        outcome=outcome,
        validation_errors=validate_parsed_receipt(outcome.data),
        ocr_json_path=ocr_json_path,
    )
