"""Camera frame quality estimation used to gate OCR calls.

Frames that are too dark, too blurry or too flat are not worth sending
to the OCR engine. The estimates are cheap Pillow statistics on a
downscaled grayscale copy of the frame.
"""

import io
from collections.abc import Callable
from dataclasses import dataclass

from PIL import Image, ImageFilter, ImageStat

from struk.domain.receipt import FrameStatus
from struk.receipt.ocr_helpers import InvalidImageError

ANALYSIS_SIZE = (320, 320)  # Frames are thumbnailed to at most this before analysis

MIN_BRIGHTNESS = 0.25
MIN_SHARPNESS = 0.05
MIN_CONTRAST = 0.1

# Edge energy that already counts as perfectly sharp text
_SHARPNESS_SCALE = 40.0
# Luminance standard deviation of a crisp black-on-white receipt
_CONTRAST_SCALE = 100.0


@dataclass(frozen=True)
class FrameQuality:
    """Per-frame quality estimates, each in [0, 1]."""

    brightness: float
    sharpness: float
    contrast: float


@dataclass(frozen=True)
class GateDecision:
    accepted: bool
    status: FrameStatus
    quality: FrameQuality


QualityEstimator = Callable[[bytes], FrameQuality]


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def estimate_quality_from_image(image: Image.Image) -> FrameQuality:
    gray = image.convert("L")
    gray.thumbnail(ANALYSIS_SIZE)

    stat = ImageStat.Stat(gray)
    brightness = stat.mean[0] / 255
    contrast = stat.stddev[0] / _CONTRAST_SCALE

    edges = gray.filter(ImageFilter.FIND_EDGES)
    sharpness = ImageStat.Stat(edges).mean[0] / _SHARPNESS_SCALE

    return FrameQuality(
        brightness=_clamp(brightness),
        sharpness=_clamp(sharpness),
        contrast=_clamp(contrast),
    )


def estimate_frame_quality(frame_bytes: bytes) -> FrameQuality:
    """Estimate quality of an encoded frame (JPEG/PNG bytes)."""
    try:
        image = Image.open(io.BytesIO(frame_bytes))
        image.load()
    except OSError as exc:
        raise InvalidImageError(f"Cannot decode frame: {exc}") from exc

    with image:
        return estimate_quality_from_image(image)


class FrameQualityGate:
    """
    Decide whether a frame is good enough to OCR.

    The estimator is pluggable so hosts with their own camera metrics can
    skip Pillow decoding entirely.
    """

    def __init__(
        self,
        estimator: QualityEstimator | None = None,
        min_brightness: float = MIN_BRIGHTNESS,
        min_sharpness: float = MIN_SHARPNESS,
        min_contrast: float = MIN_CONTRAST,
    ) -> None:
        self.estimator = estimator or estimate_frame_quality
        self.min_brightness = min_brightness
        self.min_sharpness = min_sharpness
        self.min_contrast = min_contrast

    def classify(self, quality: FrameQuality) -> GateDecision:
        # A dark frame is also flat, so darkness is reported first.
        if quality.brightness < self.min_brightness:
            return GateDecision(accepted=False, status="dark", quality=quality)
        if quality.sharpness < self.min_sharpness or quality.contrast < self.min_contrast:
            return GateDecision(accepted=False, status="blurry", quality=quality)
        return GateDecision(accepted=True, status="detecting", quality=quality)

    def check(self, frame_bytes: bytes) -> GateDecision:
        return self.classify(self.estimator(frame_bytes))
