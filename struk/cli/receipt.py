"""Receipt command handlers used by the unified CLI."""

import argparse
import json
import sys
from datetime import date
from pathlib import Path

from struk.domain.receipt import OCRInput
from struk.runtime import get_logger

logger = get_logger(__name__)


def _load_settings_or_exit(config: str | None):
    from struk.runtime.settings import SettingsError, load_settings

    try:
        return load_settings(Path(config) if config else None)
    except SettingsError as exc:
        print(f"Invalid settings: {exc}")
        sys.exit(2)


def _parse_today(value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        print(f"Invalid --today date (expected YYYY-MM-DD): {value}")
        sys.exit(2)


def cmd_parse(args: argparse.Namespace) -> None:
    """Parse OCR text from a file (or stdin) and print the outcome as JSON."""
    from struk.receipt.formatter import outcome_to_dict
    from struk.receipt.ocr_result_parser import parse_receipt, validate_parsed_receipt

    settings = _load_settings_or_exit(args.config)
    today = _parse_today(args.today)

    if args.file in (None, "-"):
        text = sys.stdin.read()
    else:
        text_path = Path(args.file)
        if not text_path.exists():
            print(f"Error: OCR text file not found: {text_path}")
            sys.exit(1)
        text = text_path.read_text(encoding="utf-8")

    outcome = parse_receipt(OCRInput(text=text, confidence=args.confidence), settings.parser, today=today)
    body = outcome_to_dict(outcome)
    body["validation_errors"] = validate_parsed_receipt(outcome.data) if outcome.data is not None else []
    print(json.dumps(body, indent=2, ensure_ascii=False))

    if not outcome.success:
        sys.exit(1)


def cmd_scan(args: argparse.Namespace) -> None:
    """Scan a receipt image through the OCR service and show the parsed fields."""
    from struk.application.receipts.scan import ReceiptScanRequest, run_receipt_scan
    from struk.application.receipts.transaction import validate_receipt_for_transaction
    from struk.receipt.formatter import format_receipt_summary

    settings = _load_settings_or_exit(args.config)
    receipt_path = Path(args.image)
    result = run_receipt_scan(
        ReceiptScanRequest(
            image_path=receipt_path,
            ocr_url=args.ocr_url,
            save_raw_ocr=not args.no_save_ocr,
            parsing_config=settings.parser,
        )
    )

    if result.status == "file_not_found":
        logger.error("%s", result.error)
        print(f"Error: {result.error}")
        sys.exit(1)

    if result.status == "invalid_image":
        logger.error("%s", result.error)
        print(f"Error: not a readable image: {result.error}")
        sys.exit(1)

    if result.status == "ocr_unavailable":
        logger.error("%s", result.error)
        print(f"OCR service unavailable: {result.error}")
        print("Make sure the OCR service is running before scanning receipts.")
        sys.exit(1)

    if result.status == "parse_failed" or result.receipt is None:
        print(f"Scan failed: {result.error or 'no receipt data'}")
        sys.exit(1)

    receipt = result.receipt
    check = validate_receipt_for_transaction(receipt)
    print(format_receipt_summary(receipt, warnings=result.validation_errors + check.warnings))

    if result.ocr_json_path is not None:
        print(f"\nRaw OCR saved to: {result.ocr_json_path}")


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the FastAPI server for parsing and live scan sessions."""
    import uvicorn

    from struk.runtime.receipt_server import create_app

    settings = _load_settings_or_exit(args.config)
    app = create_app(settings, ocr_url=args.ocr_url)

    print(f"Starting receipt server on {args.host}:{args.port}")
    print(f"Endpoints: http://{args.host}:{args.port}/parse | /sessions")
    print("Press Ctrl+C to stop")

    uvicorn.run(app, host=args.host, port=args.port)
