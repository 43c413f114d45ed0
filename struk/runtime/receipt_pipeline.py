"""Runtime client for the receipt OCR service (non-HTTP-server side)."""

import json
import os
import time
from pathlib import Path
from typing import Any

import httpx

from struk.domain.receipt import OCRInput
from struk.receipt.ocr_helpers import resize_image_bytes, transform_detections
from struk.runtime.logging import get_logger
from struk.runtime.paths import get_paths

logger = get_logger(__name__)

DEFAULT_OCR_SERVICE_URL = "http://localhost:8001"
OCR_TIMEOUT_SECONDS = 60.0
FRAME_TIMEOUT_SECONDS = 10.0
FRAME_MAX_DIMENSION = 1280  # Camera frames are downscaled harder than photos


class OCRServiceUnavailable(RuntimeError):
    """Raised when the OCR service cannot be reached or returns an error."""


def get_ocr_service_url() -> str:
    return os.environ.get("OCR_SERVICE_URL", DEFAULT_OCR_SERVICE_URL)


def _post_image(
    image_bytes: bytes,
    filename: str,
    ocr_url: str,
    timeout: float,
    client: httpx.Client | None,
) -> dict[str, Any]:
    ocr_url = ocr_url.rstrip("/")
    files = {"file": (filename, image_bytes, "image/jpeg")}

    try:
        start_time = time.perf_counter()
        if client is None:
            response = httpx.post(f"{ocr_url}/ocr", files=files, timeout=timeout)
        else:
            response = client.post(f"{ocr_url}/ocr", files=files, timeout=timeout)
        elapsed_time = time.perf_counter() - start_time
        logger.debug("OCR service returned in %.2f seconds", elapsed_time)
    except httpx.RequestError as e:
        logger.error("Failed to connect to OCR service: %s", e)
        raise OCRServiceUnavailable(f"Failed to connect to OCR service: {e}") from e

    if response.status_code != 200:
        # Response body may echo receipt text; keep it out of non-debug logs.
        logger.error("OCR service error: %s", response.status_code)
        logger.debug("OCR service error body: %s", response.text)
        raise OCRServiceUnavailable(f"OCR service error: {response.status_code}")

    try:
        return response.json()
    except ValueError as e:
        raise OCRServiceUnavailable(f"OCR service returned invalid JSON: {e}") from e


def call_ocr_service(
    receipt_path: Path,
    ocr_url: str,
    client: httpx.Client | None = None,
) -> tuple[dict[str, Any], OCRInput]:
    """
    Send a receipt photo to the OCR service.

    Returns:
        Tuple of (raw_result, parser input).
    """
    logger.info("Sending receipt to OCR service at %s...", ocr_url)
    resized_bytes = resize_image_bytes(receipt_path.read_bytes())
    raw_result = _post_image(resized_bytes, receipt_path.name, ocr_url, OCR_TIMEOUT_SECONDS, client)
    return raw_result, transform_detections(raw_result)


def process_image(receipt_path: Path, ocr_url: str | None = None, client: httpx.Client | None = None) -> OCRInput:
    """OCR a receipt photo on disk."""
    _, ocr_input = call_ocr_service(receipt_path, ocr_url or get_ocr_service_url(), client)
    return ocr_input


def process_frame_buffer(
    frame_bytes: bytes,
    ocr_url: str | None = None,
    client: httpx.Client | None = None,
) -> OCRInput:
    """OCR one encoded camera frame (JPEG/PNG bytes)."""
    resized_bytes = resize_image_bytes(frame_bytes, max_dimension=FRAME_MAX_DIMENSION, padding=0)
    raw_result = _post_image(
        resized_bytes,
        "frame.jpg",
        ocr_url or get_ocr_service_url(),
        FRAME_TIMEOUT_SECONDS,
        client,
    )
    return transform_detections(raw_result)


def save_ocr_json(ocr_result: dict[str, Any], receipt_path: Path) -> Path:
    """Save OCR result JSON for debugging."""
    ocr_json_dir = get_paths().receipts_ocr_json
    ocr_json_dir.mkdir(parents=True, exist_ok=True)
    ocr_json_path = ocr_json_dir / f"{receipt_path.stem}.json"
    ocr_json_path.write_text(json.dumps(ocr_result, indent=2))
    logger.debug("OCR JSON saved to: %s", ocr_json_path)
    return ocr_json_path
