#!/usr/bin/env python3

import argparse
from collections.abc import Callable, Sequence

from struk.runtime.receipt_pipeline import get_ocr_service_url


def _coerce_exit_code(code: object) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    return 1


def _run_command(command: Callable[[argparse.Namespace], None], args: argparse.Namespace) -> int:
    """
    Normalize command handlers that call sys.exit().

    This keeps process termination centralized in this module's entrypoint.
    """
    try:
        command(args)
    except SystemExit as exc:
        return _coerce_exit_code(exc.code)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the CLI."""
    default_ocr_url = get_ocr_service_url()

    parser = argparse.ArgumentParser(
        description="Indonesian receipt OCR utilities",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  parse [file|-]             Parse OCR text (stdin if omitted) and print JSON
  scan <image>               OCR and parse a receipt photo
  serve [--host] [--port]    Start the parse / live scan HTTP server

Environment:
  STRUK_HOME       data root holding config/struk.toml (default: cwd)
  STRUK_LOG_LEVEL  DEBUG, INFO, WARNING or ERROR
  OCR_SERVICE_URL  OCR service base URL
""",
    )
    parser.add_argument("--config", default=None, help="Settings TOML (default: $STRUK_HOME/config/struk.toml)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # parse command
    parse_parser = subparsers.add_parser("parse", help="Parse OCR text")
    parse_parser.add_argument("file", nargs="?", default=None, help="Text file with OCR output, or - for stdin")
    parse_parser.add_argument("--confidence", type=float, default=None, help="OCR engine confidence (0..1)")
    parse_parser.add_argument("--today", default=None, help="Reference date for year validation (YYYY-MM-DD)")

    # scan command
    scan_parser = subparsers.add_parser("scan", help="Scan a receipt image")
    scan_parser.add_argument("image", help="Path to receipt image")
    scan_parser.add_argument(
        "--ocr-url", default=default_ocr_url, help=f"OCR service URL (default: {default_ocr_url})"
    )
    scan_parser.add_argument("--no-save-ocr", action="store_true", help="Do not keep the raw OCR JSON")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start receipt server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to bind to (default: 8080)")
    serve_parser.add_argument(
        "--ocr-url", default=default_ocr_url, help=f"OCR service URL for frames (default: {default_ocr_url})"
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "parse":
        from struk.cli.receipt import cmd_parse

        return _run_command(cmd_parse, args)
    elif args.command == "scan":
        from struk.cli.receipt import cmd_scan

        return _run_command(cmd_scan, args)
    elif args.command == "serve":
        from struk.cli.receipt import cmd_serve

        return _run_command(cmd_serve, args)

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
