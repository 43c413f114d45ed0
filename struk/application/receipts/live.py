"""Live camera scanning session.

A session owns one stabilization engine and serializes every call into
it, so frames may be submitted from worker threads (e.g. the HTTP
server's thread pool).
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from struk.domain.receipt import OCRInput, OCRMetrics, ParsedReceipt, ParseOutcome, StabilizationState
from struk.receipt.frame_quality import FrameQualityGate, GateDecision
from struk.receipt.ocr_helpers import InvalidImageError
from struk.receipt.ocr_parser.common import ParsingConfig
from struk.receipt.ocr_result_parser import parse_receipt
from struk.receipt.stabilizer import StabilizationEngine, StabilizerConfig
from struk.runtime.logging import get_logger
from struk.runtime.receipt_pipeline import OCRServiceUnavailable, process_frame_buffer

logger = get_logger(__name__)


@dataclass(frozen=True)
class LiveScanSnapshot:
    state: StabilizationState
    metrics: OCRMetrics
    last_quality: GateDecision | None = None
    last_error: str | None = None  # OCR service failure for the latest frame


class LiveScanSession:
    """
    Feed camera frames or OCR results into a stabilization engine.

    Args:
        stabilizer_config: Throttle, buffer size and confidence floor
        parsing_config: Parser configuration used for every frame
        quality_gate: Skips OCR for frames that are too dark or blurry
        ocr_url: OCR service used by submit_frame
        client: Optional httpx client for the OCR service
        on_stable_result: Called once each time the session becomes stable
        clock: Monotonic clock in seconds, passed to the engine
    """

    def __init__(
        self,
        stabilizer_config: StabilizerConfig | None = None,
        parsing_config: ParsingConfig | None = None,
        quality_gate: FrameQualityGate | None = None,
        ocr_url: str | None = None,
        client: httpx.Client | None = None,
        on_stable_result: Callable[[ParsedReceipt], None] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._parsing_config = parsing_config
        self.quality_gate = quality_gate
        self.ocr_url = ocr_url
        self.client = client
        self._last_quality: GateDecision | None = None
        self._last_error: str | None = None
        self._engine = StabilizationEngine(
            config=stabilizer_config,
            parser=self._parse,
            clock=clock,
            on_stable_result=on_stable_result,
        )

    def _parse(self, ocr_input: OCRInput) -> ParseOutcome:
        return parse_receipt(ocr_input, self._parsing_config)

    def start(self) -> LiveScanSnapshot:
        with self._lock:
            self._engine.start()
            self._last_error = None
            return self._snapshot()

    def stop(self) -> LiveScanSnapshot:
        with self._lock:
            self._engine.stop()
            return self._snapshot()

    def reset(self) -> LiveScanSnapshot:
        with self._lock:
            self._engine.reset()
            self._last_quality = None
            self._last_error = None
            return self._snapshot()

    def snapshot(self) -> LiveScanSnapshot:
        with self._lock:
            return self._snapshot()

    def get_last_stable(self) -> ParsedReceipt | None:
        with self._lock:
            return self._engine.get_last_stable()

    def submit_ocr(self, ocr_input: OCRInput) -> LiveScanSnapshot:
        """Feed an OCR result produced by the caller's own engine."""
        with self._lock:
            self._engine.feed(ocr_input)
            return self._snapshot()

    def submit_frame(self, frame_bytes: bytes) -> LiveScanSnapshot:
        """
        Gate, OCR and feed one encoded camera frame.

        Frames arriving while the engine is idle or throttled are dropped
        before any image work is done.

        Raises:
            InvalidImageError: If the bytes are not a decodable image. The
                message is also kept as the snapshot's last_error.
        """
        with self._lock:
            if not self._engine.ready():
                return self._snapshot()

        try:
            if self.quality_gate is not None:
                decision = self.quality_gate.check(frame_bytes)
                with self._lock:
                    self._last_quality = decision
                if not decision.accepted:
                    logger.debug("Frame rejected by quality gate: %s", decision.status)
                    return self.snapshot()

            # OCR runs outside the lock; it is the slow part and touches no session state.
            ocr_input = process_frame_buffer(frame_bytes, self.ocr_url, client=self.client)
        except InvalidImageError as exc:
            logger.warning("Frame rejected: %s", exc)
            with self._lock:
                self._last_error = str(exc)
            raise
        except OCRServiceUnavailable as exc:
            logger.warning("Frame OCR failed: %s", exc)
            with self._lock:
                self._last_error = str(exc)
                return self._snapshot()

        with self._lock:
            self._last_error = None
            self._engine.feed(ocr_input)
            return self._snapshot()

    def _snapshot(self) -> LiveScanSnapshot:
        return LiveScanSnapshot(
            state=self._engine.state,
            metrics=self._engine.metrics,
            last_quality=self._last_quality,
            last_error=self._last_error,
        )
