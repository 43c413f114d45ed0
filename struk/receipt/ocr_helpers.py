"""Pure OCR transformation helpers for receipt parsing."""

import io
from typing import Any

from struk.domain.receipt import OCRInput, OCRTextLine

MAX_IMAGE_DIMENSION = 3000  # Resize if either dimension exceeds this
OCR_IMAGE_PADDING = 50  # White padding around image to prevent edge truncation

MIN_DETECTION_CONFIDENCE = 0.3  # Below this a detection is treated as noise


class InvalidImageError(ValueError):
    """Raised when uploaded bytes cannot be decoded as an image."""


def resize_image_bytes(
    image_bytes: bytes, max_dimension: int = MAX_IMAGE_DIMENSION, padding: int = OCR_IMAGE_PADDING
) -> bytes:
    """
    Resize image bytes if it exceeds max_dimension on either side.

    Also adds white padding around the image to prevent OCR edge truncation.

    Args:
        image_bytes: Image data as bytes
        max_dimension: Maximum allowed dimension (width or height)
        padding: White padding to add around image (pixels)

    Returns:
        Image bytes (JPEG format), resized if necessary, with padding added

    Raises:
        InvalidImageError: If the bytes are not a readable image
    """
    from PIL import Image, ImageOps

    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except OSError as exc:
        raise InvalidImageError(f"Cannot decode image: {exc}") from exc

    # Apply EXIF orientation so phone photos are upright before OCR
    img = ImageOps.exif_transpose(img)

    width, height = img.size

    if width <= max_dimension and height <= max_dimension:
        img_final = img
    else:
        # Calculate new dimensions while maintaining aspect ratio
        if width > height:
            new_width = max_dimension
            new_height = int(height * (max_dimension / width))
        else:
            new_height = max_dimension
            new_width = int(width * (max_dimension / height))

        img_final = img.resize((new_width, new_height), Image.Resampling.LANCZOS)

    if padding > 0:
        img_final = ImageOps.expand(img_final, border=padding, fill="white")

    buffer = io.BytesIO()
    img_final.convert("RGB").save(buffer, format="JPEG", quality=95)
    return buffer.getvalue()


def _boxes_overlap_y(det1: dict, det2: dict, min_overlap_ratio: float = 0.5) -> bool:
    """
    Check if two detection boxes overlap in Y-axis by at least min_overlap_ratio.

    The ratio is taken against the smaller box, so a short price next to a
    tall item name still counts as the same line.
    """
    overlap_start = max(det1["y_min"], det2["y_min"])
    overlap_end = min(det1["y_max"], det2["y_max"])

    if overlap_start >= overlap_end:
        return False

    overlap = overlap_end - overlap_start
    smaller_height = min(det1["y_max"] - det1["y_min"], det2["y_max"] - det2["y_min"])

    # Degenerate boxes
    if smaller_height <= 0:
        return False

    return overlap / smaller_height >= min_overlap_ratio


def _adaptive_y_threshold(detections: list[dict]) -> float:
    """Center-distance tolerance derived from the median text height."""
    heights = [det["y_max"] - det["y_min"] for det in detections if det["y_max"] > det["y_min"]]
    if not heights:
        return 24.0

    heights.sort()
    median_height = heights[len(heights) // 2]
    # Larger text/blur -> larger tolerance. Clamp to avoid cross-row merges.
    return max(8.0, min(30.0, median_height * 0.5))


def _group_detections_into_lines(detections: list[dict]) -> list[list[dict]]:
    """Group detections into text lines, top to bottom, each line left to right."""
    if not detections:
        return []

    y_threshold = _adaptive_y_threshold(detections)
    ordered = sorted(detections, key=lambda d: (d["center_y"], d["min_x"]))

    lines: list[list[dict]] = []
    for det in ordered:
        if lines:
            current = lines[-1]
            line_center = sum(d["center_y"] for d in current) / len(current)
            if abs(det["center_y"] - line_center) <= y_threshold or any(
                _boxes_overlap_y(det, other) for other in current
            ):
                current.append(det)
                continue
        lines.append([det])

    for line in lines:
        line.sort(key=lambda d: d["min_x"])
    return lines


def transform_detections(
    raw_result: dict[str, Any],
    min_confidence: float = MIN_DETECTION_CONFIDENCE,
) -> OCRInput:
    """
    Turn a PaddleOCR-style response into parser input.

    ``raw_result["detections"]`` holds ``[bbox, [text, confidence]]`` entries
    where bbox is four ``[x, y]`` points. Detections are grouped into lines;
    the OCRInput confidence is the mean confidence of the kept detections,
    or None when nothing was kept.
    """
    detection_data = []
    for detection in raw_result.get("detections", []):
        bbox, (text, confidence) = detection
        confidence = float(confidence)
        text = str(text).strip()

        if confidence < min_confidence or not text:
            continue

        y_coords = [point[1] for point in bbox]
        detection_data.append(
            {
                "text": text,
                "confidence": confidence,
                "center_y": sum(y_coords) / len(y_coords),
                "y_min": min(y_coords),
                "y_max": max(y_coords),
                "min_x": min(point[0] for point in bbox),
            }
        )

    if not detection_data:
        return OCRInput(text="", confidence=None)

    text_lines: list[OCRTextLine] = []
    for line in _group_detections_into_lines(detection_data):
        line_text = " ".join(det["text"] for det in line)
        line_confidence = sum(det["confidence"] for det in line) / len(line)
        text_lines.append(OCRTextLine(text=line_text, confidence=line_confidence))

    overall = sum(det["confidence"] for det in detection_data) / len(detection_data)
    return OCRInput(
        text="\n".join(line.text for line in text_lines),
        confidence=overall,
        lines=tuple(text_lines),
    )
