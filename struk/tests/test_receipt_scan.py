"""Tests for the receipt scan workflow."""

import io
from collections.abc import Iterator
from datetime import date
from decimal import Decimal
from pathlib import Path

import httpx
import pytest
from PIL import Image

from struk.application.receipts.scan import ReceiptScanRequest, run_receipt_scan
from struk.runtime.paths import reset_paths

OCR_URL = "http://ocr.test"


def _detection(y: int, text: str) -> list:
    return [[[20, y], [400, y], [400, y + 20], [20, y + 20]], [text, 0.9]]


RAW_RESULT = {
    "status": "success",
    "detections": [
        _detection(10, "INDOMARET"),
        _detection(60, "Tgl 03/09/2025"),
        _detection(110, "TOTAL Rp 23.400"),
    ],
}


@pytest.fixture(autouse=True)
def struk_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    monkeypatch.setenv("STRUK_HOME", str(tmp_path))
    reset_paths()
    yield tmp_path
    reset_paths()


@pytest.fixture
def photo(tmp_path: Path) -> Path:
    path = tmp_path / "indomaret.jpg"
    Image.new("RGB", (120, 240), "white").save(path, format="JPEG")
    return path


def _client(response: httpx.Response) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(lambda request: response))


def test_scan_parses_receipt(photo: Path) -> None:
    result = run_receipt_scan(
        ReceiptScanRequest(
            image_path=photo,
            ocr_url=OCR_URL,
            client=_client(httpx.Response(200, json=RAW_RESULT)),
            today=date(2025, 10, 1),
        )
    )

    assert result.status == "parsed"
    assert result.receipt is not None
    assert result.receipt.merchant == "INDOMARET"
    assert result.receipt.total_amount == Decimal("23400")
    assert result.receipt.purchase_date == "2025-09-03"
    assert result.validation_errors == []
    assert result.ocr_json_path is not None
    assert result.ocr_json_path.name == "indomaret.json"
    assert result.ocr_json_path.exists()


def test_scan_without_saving_raw_ocr(photo: Path, struk_home: Path) -> None:
    result = run_receipt_scan(
        ReceiptScanRequest(
            image_path=photo,
            ocr_url=OCR_URL,
            save_raw_ocr=False,
            client=_client(httpx.Response(200, json=RAW_RESULT)),
        )
    )

    assert result.status == "parsed"
    assert result.ocr_json_path is None
    assert not (struk_home / "receipts").exists()


def test_scan_missing_file(tmp_path: Path) -> None:
    result = run_receipt_scan(ReceiptScanRequest(image_path=tmp_path / "nope.jpg", ocr_url=OCR_URL))
    assert result.status == "file_not_found"
    assert result.receipt is None


def test_scan_ocr_unavailable(photo: Path) -> None:
    result = run_receipt_scan(
        ReceiptScanRequest(image_path=photo, ocr_url=OCR_URL, client=_client(httpx.Response(502)))
    )
    assert result.status == "ocr_unavailable"
    assert result.error is not None
    assert "502" in result.error


def test_scan_with_no_text(photo: Path) -> None:
    result = run_receipt_scan(
        ReceiptScanRequest(
            image_path=photo,
            ocr_url=OCR_URL,
            client=_client(httpx.Response(200, json={"status": "success", "detections": []})),
        )
    )
    assert result.status == "parse_failed"
    assert result.error == "No text detected in OCR result"
    assert result.outcome is not None
    assert not result.outcome.success


def test_scan_not_an_image(tmp_path: Path) -> None:
    text_file = tmp_path / "notes.txt"
    text_file.write_text("ALFAMART\nTOTAL 7.500\n")
    client = _client(httpx.Response(200, json=RAW_RESULT))

    result = run_receipt_scan(ReceiptScanRequest(image_path=text_file, ocr_url=OCR_URL, client=client))

    assert result.status == "invalid_image"
    assert result.error is not None
    assert result.error.startswith("notes.txt: ")
    assert result.receipt is None
