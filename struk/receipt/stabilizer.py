"""Stabilization of per-frame receipt parses during live scanning.

Camera frames are parsed one at a time and every parse is noisy. The
engine keeps a short buffer of confident parses and only reports a
result once recent parses agree with each other.

The engine is single-threaded: callers must serialize ``feed`` calls.
"""

import math
import re
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, replace
from decimal import Decimal

from struk.domain.receipt import FrameStatus, OCRInput, OCRMetrics, ParsedReceipt, ParseOutcome, StabilizationState
from struk.runtime.logging import get_logger

from .ocr_result_parser import parse_receipt

logger = get_logger(__name__)

# Convergence compares the newest entry against at most this many entries
COMPARISON_WINDOW = 3
CONVERGENCE_RATIO = 0.7
AMOUNT_TOLERANCE = Decimal("0.05")
PROCESSING_TIME_WINDOW = 10

# Low-confidence status heuristic
DARK_TEXT_LENGTH = 20
BLURRY_OCR_CONFIDENCE = 0.5

_NON_WORD = re.compile(r"[^\w]")


@dataclass(frozen=True)
class StabilizerConfig:
    """Tunable knobs for the stabilization engine."""

    throttle_ms: int = 300  # Minimum interval between accepted frames
    stability_threshold: int = 3  # Buffer capacity
    min_confidence: float = 0.6  # Parses below this never enter the buffer


DEFAULT_STABILIZER_CONFIG = StabilizerConfig()


def normalize_merchant(merchant: str | None) -> str:
    return _NON_WORD.sub("", (merchant or "").lower())


def amounts_match(a: Decimal | None, b: Decimal | None) -> bool:
    """Exact match, or both present and within 5% of the larger value."""
    if a == b:
        return True
    if a is None or b is None:
        return False
    larger = max(abs(a), abs(b))
    if larger == 0:
        return False
    return abs(a - b) / larger < AMOUNT_TOLERANCE


def receipts_similar(a: ParsedReceipt, b: ParsedReceipt) -> bool:
    """Two parses are similar when at least two of merchant, amount and date agree."""
    matches = 0
    if normalize_merchant(a.merchant) == normalize_merchant(b.merchant):
        matches += 1
    if amounts_match(a.total_amount, b.total_amount):
        matches += 1
    if a.purchase_date == b.purchase_date:
        matches += 1
    return matches >= 2


def has_converged(buffer: list[ParsedReceipt]) -> bool:
    """
    Check whether the newest buffered parse agrees with recent ones.

    The newest entry is compared against the last ``COMPARISON_WINDOW``
    entries (itself included) and at least ``ceil(0.7 * n)`` of them must
    be similar. A buffer with fewer than two entries never converges.
    """
    if len(buffer) < 2:
        return False
    latest = buffer[-1]
    comparisons = buffer[-COMPARISON_WINDOW:]
    required = math.ceil(CONVERGENCE_RATIO * len(comparisons))
    similar = sum(1 for entry in comparisons if receipts_similar(latest, entry))
    return similar >= required


def classify_low_confidence(ocr_input: OCRInput, receipt: ParsedReceipt) -> FrameStatus:
    """Advisory status for a parse that was too weak to buffer."""
    if len(ocr_input.text) < DARK_TEXT_LENGTH:
        return "dark"
    ocr_confidence = ocr_input.confidence if ocr_input.confidence is not None else 0.0
    if ocr_confidence < BLURRY_OCR_CONFIDENCE:
        return "blurry"
    if receipt.merchant is None and receipt.total_amount is None:
        return "tilted"
    return "detecting"


class StabilizationEngine:
    """
    Turn a stream of OCR frames into one stable receipt parse.

    Args:
        config: Throttle, buffer size and confidence floor
        parser: Callable turning an OCRInput into a ParseOutcome
        clock: Monotonic clock in seconds
        on_stable_result: Called once each time the engine becomes stable
        on_error: Called with a message when a frame fails to parse
    """

    def __init__(
        self,
        config: StabilizerConfig | None = None,
        parser: Callable[[OCRInput], ParseOutcome] | None = None,
        clock: Callable[[], float] | None = None,
        on_stable_result: Callable[[ParsedReceipt], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self.config = config or DEFAULT_STABILIZER_CONFIG
        self._parser = parser or parse_receipt
        self._clock = clock or time.monotonic
        self.on_stable_result = on_stable_result
        self.on_error = on_error

        self._state = StabilizationState()
        self._metrics = OCRMetrics()
        self._buffer: deque[ParsedReceipt] = deque(maxlen=self.config.stability_threshold)
        self._processing_times: deque[float] = deque(maxlen=PROCESSING_TIME_WINDOW)
        self._last_accepted_at: float | None = None
        self._successful_frames = 0

    @property
    def state(self) -> StabilizationState:
        return self._state

    @property
    def metrics(self) -> OCRMetrics:
        return self._metrics

    @property
    def buffer(self) -> tuple[ParsedReceipt, ...]:
        return tuple(self._buffer)

    def start(self) -> None:
        """Begin detecting. The buffer is cleared; counters are kept."""
        self._buffer.clear()
        self._last_accepted_at = None
        self._state = replace(self._state, is_active=True, is_stable=False, status="detecting", error_message=None)
        logger.info("Stabilization started")

    def stop(self) -> None:
        if not self._state.is_active:
            return
        self._state = replace(self._state, is_active=False)
        logger.info("Stabilization stopped after %d frames", self._state.frame_count)

    def reset(self) -> None:
        """Return to the initial idle state, discarding buffer and metrics."""
        self._state = StabilizationState()
        self._metrics = OCRMetrics()
        self._buffer.clear()
        self._processing_times.clear()
        self._last_accepted_at = None
        self._successful_frames = 0
        logger.info("Stabilization reset")

    def get_last_stable(self) -> ParsedReceipt | None:
        return self._state.last_stable_result

    def ready(self) -> bool:
        """True if a frame fed now would be accepted (active and not throttled)."""
        if not self._state.is_active:
            return False
        if self._last_accepted_at is None:
            return True
        return (self._clock() - self._last_accepted_at) * 1000 >= self.config.throttle_ms

    def feed(self, ocr_input: OCRInput) -> bool:
        """
        Process one OCR frame.

        Returns:
            True if the frame was accepted, False if it was ignored because
            the engine is inactive or the throttle interval has not elapsed.
        """
        if not self._state.is_active:
            return False

        now = self._clock()
        if self._last_accepted_at is not None:
            elapsed_ms = (now - self._last_accepted_at) * 1000
            if elapsed_ms < self.config.throttle_ms:
                logger.debug("Frame throttled (%.0fms since last accepted)", elapsed_ms)
                return False

        previous_accepted_at = self._last_accepted_at
        self._last_accepted_at = now
        self._state = replace(self._state, frame_count=self._state.frame_count + 1)

        success = False
        try:
            outcome = self._parser(ocr_input)
            self._record_processing_time(outcome.processing_time_ms)
            if outcome.success and outcome.data is not None:
                success = True
                self._handle_parsed(ocr_input, outcome.data)
            else:
                self._handle_error("; ".join(outcome.errors) or "Parsing failed")
        except Exception as exc:
            logger.warning("Frame processing failed: %s", exc)
            self._handle_error(str(exc) or exc.__class__.__name__)

        self._update_metrics(now, previous_accepted_at, success)
        return True

    def _record_processing_time(self, processing_time_ms: float) -> None:
        self._processing_times.append(processing_time_ms)

    def _handle_parsed(self, ocr_input: OCRInput, receipt: ParsedReceipt) -> None:
        if receipt.confidence.overall < self.config.min_confidence:
            status = classify_low_confidence(ocr_input, receipt)
            if self._state.is_stable:
                logger.info("Stabilization lost: low confidence frame (%s)", status)
            self._state = replace(self._state, is_stable=False, status=status, error_message=None)
            return

        self._buffer.append(receipt)
        converged = has_converged(list(self._buffer))

        if converged and not self._state.is_stable:
            self._state = replace(
                self._state,
                is_stable=True,
                last_stable_result=receipt,
                status="stable",
                error_message=None,
            )
            logger.info("Receipt stabilized after %d frames", self._state.frame_count)
            if self.on_stable_result is not None:
                self.on_stable_result(receipt)
        elif not converged and self._state.is_stable:
            self._state = replace(self._state, is_stable=False, status="detecting", error_message=None)
            logger.info("Stabilization lost: frames no longer agree")
        elif not self._state.is_stable:
            self._state = replace(self._state, status="detecting", error_message=None)

    def _handle_error(self, message: str) -> None:
        self._state = replace(self._state, is_stable=False, status="error", error_message=message)
        if self.on_error is None:
            return
        try:
            self.on_error(message)
        except Exception as exc:
            logger.warning("Error callback failed: %s", exc)

    def _update_metrics(self, now: float, previous_accepted_at: float | None, success: bool) -> None:
        if success:
            self._successful_frames += 1
        total = self._metrics.total_frames_processed + 1

        if previous_accepted_at is not None and now > previous_accepted_at:
            frame_rate = 1 / (now - previous_accepted_at)
        elif self.config.throttle_ms > 0:
            frame_rate = 1000 / self.config.throttle_ms
        else:
            frame_rate = 0.0

        avg = sum(self._processing_times) / len(self._processing_times) if self._processing_times else 0.0

        self._metrics = OCRMetrics(
            avg_processing_time_ms=avg,
            frame_processing_rate=frame_rate,
            success_rate=self._successful_frames / total,
            last_processed_at=now,
            total_frames_processed=total,
        )
