"""FastAPI server for receipt parsing and live scan sessions."""

import threading
import uuid
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from struk.application.receipts.live import LiveScanSession, LiveScanSnapshot
from struk.domain.receipt import OCRInput
from struk.receipt.formatter import metrics_to_dict, outcome_to_dict, state_to_dict
from struk.receipt.frame_quality import FrameQualityGate
from struk.receipt.ocr_helpers import InvalidImageError
from struk.receipt.ocr_result_parser import parse_receipt, validate_parsed_receipt
from struk.runtime.logging import get_logger
from struk.runtime.receipt_pipeline import get_ocr_service_url
from struk.runtime.settings import Settings, load_settings

logger = get_logger(__name__)


class OCRPayload(BaseModel):
    text: str
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    def to_ocr_input(self) -> OCRInput:
        return OCRInput(text=self.text, confidence=self.confidence)


class SessionRegistry:
    """Thread-safe map of live scan sessions by id."""

    def __init__(self, factory: Callable[[], LiveScanSession]) -> None:
        self._factory = factory
        self._sessions: dict[str, LiveScanSession] = {}
        self._lock = threading.Lock()

    def create(self) -> tuple[str, LiveScanSession]:
        session_id = uuid.uuid4().hex
        session = self._factory()
        with self._lock:
            self._sessions[session_id] = session
        logger.info("Created scan session %s", session_id)
        return session_id, session

    def get(self, session_id: str) -> LiveScanSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
        return session

    def remove(self, session_id: str) -> LiveScanSession:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
        logger.info("Removed scan session %s", session_id)
        return session

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def _snapshot_to_dict(session_id: str, snapshot: LiveScanSnapshot) -> dict[str, Any]:
    quality = snapshot.last_quality
    return {
        "session_id": session_id,
        "state": state_to_dict(snapshot.state),
        "metrics": metrics_to_dict(snapshot.metrics),
        "quality": (
            {
                "accepted": quality.accepted,
                "status": quality.status,
                "brightness": quality.quality.brightness,
                "sharpness": quality.quality.sharpness,
                "contrast": quality.quality.contrast,
            }
            if quality is not None
            else None
        ),
        "last_error": snapshot.last_error,
    }


def create_app(
    settings: Settings | None = None,
    ocr_url: str | None = None,
    clock: Callable[[], float] | None = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Parser/stabilizer settings; loaded from STRUK_HOME if None
        ocr_url: OCR service for frame uploads; OCR_SERVICE_URL if None
        clock: Clock injected into every session's stabilization engine
    """
    if settings is None:
        settings = load_settings()
    resolved_ocr_url = ocr_url or get_ocr_service_url()

    def new_session() -> LiveScanSession:
        return LiveScanSession(
            stabilizer_config=settings.stabilizer,
            parsing_config=settings.parser,
            quality_gate=FrameQualityGate(),
            ocr_url=resolved_ocr_url,
            clock=clock,
        )

    registry = SessionRegistry(new_session)
    app = FastAPI(title="Struk Receipt Scanner")
    app.state.sessions = registry

    # Endpoints are sync so FastAPI runs them in its thread pool; sessions lock internally.

    @app.get("/health")
    def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    @app.post("/parse")
    def parse(payload: OCRPayload) -> dict[str, Any]:
        """Parse one OCR result; validation messages are included on success."""
        outcome = parse_receipt(payload.to_ocr_input(), settings.parser)
        body = outcome_to_dict(outcome)
        body["validation_errors"] = validate_parsed_receipt(outcome.data) if outcome.data is not None else []
        return body

    @app.post("/sessions", status_code=201)
    def create_session() -> dict[str, Any]:
        session_id, session = registry.create()
        return _snapshot_to_dict(session_id, session.start())

    @app.get("/sessions/{session_id}")
    def get_session(session_id: str) -> dict[str, Any]:
        return _snapshot_to_dict(session_id, registry.get(session_id).snapshot())

    @app.post("/sessions/{session_id}/ocr")
    def submit_ocr(session_id: str, payload: OCRPayload) -> dict[str, Any]:
        session = registry.get(session_id)
        return _snapshot_to_dict(session_id, session.submit_ocr(payload.to_ocr_input()))

    @app.post("/sessions/{session_id}/frame")
    async def submit_frame(session_id: str, request: Request) -> dict[str, Any]:
        """Accept a raw JPEG/PNG camera frame as the request body."""
        session = registry.get(session_id)
        frame_bytes = await request.body()
        if not frame_bytes:
            raise HTTPException(status_code=400, detail="Empty frame")
        # Quality gating and OCR block; keep them off the event loop.
        try:
            snapshot = await run_in_threadpool(session.submit_frame, frame_bytes)
        except InvalidImageError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _snapshot_to_dict(session_id, snapshot)

    @app.post("/sessions/{session_id}/reset")
    def reset_session(session_id: str) -> dict[str, Any]:
        """Discard buffer and metrics, then resume detecting."""
        session = registry.get(session_id)
        session.reset()
        return _snapshot_to_dict(session_id, session.start())

    @app.delete("/sessions/{session_id}")
    def delete_session(session_id: str) -> dict[str, Any]:
        session = registry.remove(session_id)
        return _snapshot_to_dict(session_id, session.stop())

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
