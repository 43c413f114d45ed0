"""Tests for live scan stabilization."""

from collections.abc import Callable
from decimal import Decimal
from typing import get_args

import pytest

from struk.domain.receipt import (
    FRAME_STATUSES,
    FrameStatus,
    OCRInput,
    OCRMetrics,
    ParsedReceipt,
    ParseOutcome,
    StabilizationState,
)
from struk.receipt.ocr_result_parser import parse_receipt
from struk.receipt.stabilizer import (
    StabilizationEngine,
    StabilizerConfig,
    amounts_match,
    has_converged,
    receipts_similar,
)

STEP = 0.5  # Seconds between frames, comfortably above the default throttle


class ScriptedParser:
    """Returns a prepared outcome per OCR text and counts calls."""

    def __init__(self, outcomes: dict[str, ParseOutcome | Exception]) -> None:
        self.outcomes = outcomes
        self.calls = 0

    def __call__(self, ocr_input: OCRInput) -> ParseOutcome:
        self.calls += 1
        outcome = self.outcomes[ocr_input.text]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _ok(receipt: ParsedReceipt, processing_time_ms: float = 2.0) -> ParseOutcome:
    return ParseOutcome(success=True, data=receipt, errors=[], processing_time_ms=processing_time_ms)


def _engine(clock, parser, stable: list, errors: list | None = None, **config) -> StabilizationEngine:
    return StabilizationEngine(
        config=StabilizerConfig(**config),
        parser=parser,
        clock=clock,
        on_stable_result=stable.append,
        on_error=errors.append if errors is not None else None,
    )


def _feed(engine: StabilizationEngine, clock, text: str) -> bool:
    accepted = engine.feed(OCRInput(text=text, confidence=0.9))
    clock.advance(STEP)
    return accepted


def test_convergence_fires_callback_once(clock, make_receipt: Callable[..., ParsedReceipt]) -> None:
    parser = ScriptedParser(
        {
            "a": _ok(make_receipt(total_amount=7500)),
            "b": _ok(make_receipt(merchant="Alfamart.", total_amount=7600)),
            "c": _ok(make_receipt(total_amount=7500)),
        }
    )
    stable: list[ParsedReceipt] = []
    engine = _engine(clock, parser, stable)
    engine.start()

    for text in ("a", "b", "c"):
        _feed(engine, clock, text)

    assert len(stable) == 1
    assert engine.state.is_stable
    assert engine.state.status == "stable"
    assert engine.get_last_stable() == stable[0]

    # A 4th identical result keeps the engine stable without re-firing
    _feed(engine, clock, "c")
    assert len(stable) == 1
    assert engine.state.is_stable
    assert engine.state.frame_count == 4


def test_single_result_never_converges(clock, make_receipt: Callable[..., ParsedReceipt]) -> None:
    stable: list[ParsedReceipt] = []
    engine = _engine(clock, ScriptedParser({"a": _ok(make_receipt())}), stable)
    engine.start()
    _feed(engine, clock, "a")

    assert stable == []
    assert not engine.state.is_stable
    assert engine.state.status == "detecting"


def test_losing_agreement_returns_to_detecting_and_can_restabilize(
    clock, make_receipt: Callable[..., ParsedReceipt]
) -> None:
    parser = ScriptedParser(
        {
            "a": _ok(make_receipt()),
            "x": _ok(make_receipt(merchant="INDOMARET", total_amount=99000, purchase_date="2025-09-01")),
        }
    )
    stable: list[ParsedReceipt] = []
    engine = _engine(clock, parser, stable)
    engine.start()

    for text in ("a", "a", "a"):
        _feed(engine, clock, text)
    assert engine.state.is_stable

    _feed(engine, clock, "x")
    assert not engine.state.is_stable
    assert engine.state.status == "detecting"
    assert engine.get_last_stable() is not None
    assert engine.get_last_stable().merchant == "ALFAMART"

    _feed(engine, clock, "x")
    assert not engine.state.is_stable
    _feed(engine, clock, "x")
    assert engine.state.is_stable
    assert [r.merchant for r in stable] == ["ALFAMART", "INDOMARET"]


def test_throttle_limits_parser_calls(clock, make_receipt: Callable[..., ParsedReceipt]) -> None:
    parser = ScriptedParser({"a": _ok(make_receipt())})
    engine = _engine(clock, parser, [])
    engine.start()

    assert engine.feed(OCRInput(text="a"))
    clock.advance(0.125)
    assert not engine.ready()
    assert not engine.feed(OCRInput(text="a"))
    assert parser.calls == 1
    assert engine.state.frame_count == 1

    clock.advance(0.25)
    assert engine.ready()
    assert engine.feed(OCRInput(text="a"))
    assert parser.calls == 2


def test_feed_is_ignored_when_inactive(clock, make_receipt: Callable[..., ParsedReceipt]) -> None:
    parser = ScriptedParser({"a": _ok(make_receipt())})
    engine = _engine(clock, parser, [])

    assert not engine.feed(OCRInput(text="a"))
    engine.start()
    _feed(engine, clock, "a")
    engine.stop()
    engine.stop()
    assert not engine.feed(OCRInput(text="a"))

    assert parser.calls == 1
    assert not engine.state.is_active


def test_reset_restores_initial_values(clock, make_receipt: Callable[..., ParsedReceipt]) -> None:
    parser = ScriptedParser({"a": _ok(make_receipt())})
    engine = _engine(clock, parser, [])
    engine.start()
    for _ in range(3):
        _feed(engine, clock, "a")
    assert engine.state.frame_count == 3
    assert engine.buffer

    engine.reset()

    assert engine.state == StabilizationState()
    assert engine.metrics == OCRMetrics()
    assert engine.buffer == ()
    assert engine.get_last_stable() is None


def test_start_clears_buffer_but_keeps_counters(clock, make_receipt: Callable[..., ParsedReceipt]) -> None:
    parser = ScriptedParser({"a": _ok(make_receipt())})
    engine = _engine(clock, parser, [])
    engine.start()
    _feed(engine, clock, "a")
    engine.stop()
    engine.start()

    assert engine.buffer == ()
    assert engine.state.frame_count == 1
    assert engine.state.status == "detecting"


def test_parser_exception_is_reported_and_recovered(clock, make_receipt: Callable[..., ParsedReceipt]) -> None:
    parser = ScriptedParser({"bad": RuntimeError("boom"), "a": _ok(make_receipt())})
    errors: list[str] = []
    engine = _engine(clock, parser, [], errors)
    engine.start()

    assert _feed(engine, clock, "bad")
    assert engine.state.status == "error"
    assert engine.state.error_message == "boom"
    assert errors == ["boom"]

    _feed(engine, clock, "a")
    assert engine.state.status == "detecting"
    assert engine.state.error_message is None


def test_failed_outcome_sets_error_status(clock) -> None:
    failed = ParseOutcome(success=False, data=None, errors=["No text detected in OCR result"])
    errors: list[str] = []
    engine = _engine(clock, ScriptedParser({"": failed}), [], errors)
    engine.start()
    _feed(engine, clock, "")

    assert engine.state.status == "error"
    assert not engine.state.is_stable
    assert errors == ["No text detected in OCR result"]
    assert engine.buffer == ()


def test_failing_stable_callback_does_not_escape(clock, make_receipt: Callable[..., ParsedReceipt]) -> None:
    def explode(receipt: ParsedReceipt) -> None:
        raise ValueError("callback failed")

    errors: list[str] = []
    engine = StabilizationEngine(
        parser=ScriptedParser({"a": _ok(make_receipt())}),
        clock=clock,
        on_stable_result=explode,
        on_error=errors.append,
    )
    engine.start()
    _feed(engine, clock, "a")
    _feed(engine, clock, "a")

    assert engine.state.status == "error"
    assert errors == ["callback failed"]


@pytest.mark.parametrize(
    ("text", "confidence", "expected"),
    [
        ("ABC", 0.3, "dark"),
        ("TERIMA KASIH ATAS KUNJUNGAN ANDA", 0.3, "blurry"),
        ("** ** ** ** ** ** ** **", None, "blurry"),
        ("** ** ** ** ** ** ** **", 0.9, "tilted"),
        ("TERIMA KASIH ATAS KUNJUNGAN ANDA", 0.9, "detecting"),
    ],
)
def test_low_confidence_status(clock, text: str, confidence: float | None, expected: str) -> None:
    engine = StabilizationEngine(clock=clock)
    engine.start()
    engine.feed(OCRInput(text=text, confidence=confidence))

    assert engine.state.status == expected
    assert not engine.state.is_stable
    assert engine.buffer == ()


def test_real_parser_stabilizes(clock, alfamart_text: str) -> None:
    stable: list[ParsedReceipt] = []
    engine = StabilizationEngine(clock=clock, on_stable_result=stable.append)
    engine.start()
    for _ in range(3):
        engine.feed(OCRInput(text=alfamart_text, confidence=0.9))
        clock.advance(STEP)

    assert len(stable) == 1
    assert stable[0].total_amount == Decimal("7500")


def test_metrics(clock, make_receipt: Callable[..., ParsedReceipt]) -> None:
    parser = ScriptedParser({"a": _ok(make_receipt(), 4.0), "bad": RuntimeError("boom")})
    engine = _engine(clock, parser, [], throttle_ms=250)
    engine.start()

    engine.feed(OCRInput(text="a"))
    assert engine.metrics.frame_processing_rate == pytest.approx(4.0)
    assert engine.metrics.last_processed_at == 100.0

    clock.advance(0.5)
    engine.feed(OCRInput(text="bad"))
    metrics = engine.metrics
    assert metrics.total_frames_processed == 2
    assert metrics.success_rate == pytest.approx(0.5)
    assert metrics.frame_processing_rate == pytest.approx(2.0)
    assert metrics.avg_processing_time_ms == pytest.approx(4.0)
    assert metrics.last_processed_at == 100.5


def test_amounts_match() -> None:
    assert amounts_match(None, None)
    assert amounts_match(Decimal("100"), Decimal("104"))
    assert not amounts_match(Decimal("100"), Decimal("106"))
    assert not amounts_match(Decimal("100"), None)


def test_similarity_needs_two_of_three(make_receipt: Callable[..., ParsedReceipt]) -> None:
    base = make_receipt()
    assert receipts_similar(base, make_receipt(merchant="alfa-mart"))
    assert receipts_similar(base, make_receipt(purchase_date="2025-08-16"))
    assert not receipts_similar(base, make_receipt(merchant="INDOMARET", purchase_date=None))


def test_convergence_window(make_receipt: Callable[..., ParsedReceipt]) -> None:
    a = make_receipt()
    b = make_receipt(merchant="INDOMARET", total_amount=99000, purchase_date=None)
    assert not has_converged([a])
    assert has_converged([a, a])
    assert not has_converged([b, a])
    assert not has_converged([a, b, a])
    assert has_converged([b, a, a, a])


def test_statuses_stay_in_frame_status_domain(clock, make_receipt: Callable[..., ParsedReceipt]) -> None:
    assert set(FRAME_STATUSES) == set(get_args(FrameStatus))

    parser = ScriptedParser(
        {
            "ABC": parse_receipt(OCRInput(text="ABC", confidence=0.3)),
            "a": _ok(make_receipt()),
            "bad": RuntimeError("boom"),
        }
    )
    engine = _engine(clock, parser, [])
    engine.start()
    seen = {engine.state.status}
    for text in ("ABC", "a", "a", "bad"):
        _feed(engine, clock, text)
        seen.add(engine.state.status)

    assert seen == {"detecting", "dark", "stable", "error"}
    assert seen <= set(FRAME_STATUSES)
