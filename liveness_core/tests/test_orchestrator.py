"""End-to-end pipeline behaviour with fake collaborators."""

from __future__ import annotations

import logging
import sys
import threading
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from liveness_core import (
    InferenceFailure,
    InvalidImage,
    LivenessError,
    LivenessPipeline,
    ModelUnavailable,
    PipelineCancelled,
    PipelineConfig,
    Prediction,
    QualityScore,
)
from liveness_core.pipeline import CODES, FaceDetectorConfig, FacePresenceDetector

from .conftest import FakeFaceDetector, FakeModel, solid_image


def build(config=PipelineConfig(), face=None, occlusion=None, liveness=None, **kwargs) -> LivenessPipeline:
    return LivenessPipeline(
        config=config,
        face_detector=face if face is not None else FakeFaceDetector(present=True),
        occlusion_model=occlusion if occlusion is not None else FakeModel(output=[[0.05, 0.9, 0.05]]),
        liveness_model=liveness if liveness is not None else FakeModel(output=[[2.0]]),
        **kwargs,
    )


def test_live_verdict(gray_image, face_detector, normal_occlusion_model, live_model):
    pipeline = build(face=face_detector, occlusion=normal_occlusion_model, liveness=live_model)
    verdict = pipeline.detect_liveness(gray_image)

    assert verdict.prediction is Prediction.LIVE
    assert verdict.is_live
    assert verdict.confidence == pytest.approx(0.881, abs=1e-3)
    assert verdict.failure_reason is None
    assert verdict.reason_code is None
    assert verdict.quality.acceptable
    assert normal_occlusion_model.calls == 1
    assert face_detector.calls == 1
    assert live_model.calls == 1


def test_small_image_fails_before_any_model(face_detector, normal_occlusion_model, live_model):
    pipeline = build(face=face_detector, occlusion=normal_occlusion_model, liveness=live_model)
    with pytest.raises(InvalidImage):
        pipeline.detect_liveness(solid_image(size=(32, 32)))
    assert normal_occlusion_model.calls == 0
    assert face_detector.calls == 0
    assert live_model.calls == 0


def test_occlusion_short_circuits(gray_image, face_detector, live_model):
    occlusion = FakeModel(output=[[0.05, 0.05, 0.9]])
    pipeline = build(face=face_detector, occlusion=occlusion, liveness=live_model)
    verdict = pipeline.detect_liveness(gray_image)

    assert verdict.prediction is Prediction.SPOOF
    assert verdict.confidence == pytest.approx(0.9)
    assert "occluded" in verdict.failure_reason
    assert verdict.failure_reason == "occluded: with_mask"
    assert verdict.reason_code == CODES.OCCLUDED
    assert verdict.quality == QualityScore.skipped()
    assert face_detector.calls == 0
    assert live_model.calls == 0


def test_low_confidence_normal_short_circuits_as_hand(gray_image, live_model):
    occlusion = FakeModel(output=[[0.20, 0.65, 0.15]])
    verdict = build(occlusion=occlusion, liveness=live_model).detect_liveness(gray_image)
    assert verdict.failure_reason == "occluded: hand_over_face"
    assert verdict.confidence == pytest.approx(0.20)
    assert live_model.calls == 0


def test_unavailable_occlusion_model_fails_open(gray_image, live_model):
    occlusion = FakeModel(output=[[0.9, 0.05, 0.05]], available=False)
    verdict = build(occlusion=occlusion, liveness=live_model).detect_liveness(gray_image)
    assert verdict.prediction is Prediction.LIVE
    assert occlusion.calls == 0


def test_skip_occlusion_never_touches_occlusion_model(gray_image):
    occlusion = FakeModel(output=[[0.05, 0.05, 0.9]])
    verdict = build(PipelineConfig(skip_occlusion_check=True), occlusion=occlusion).detect_liveness(gray_image)
    assert verdict.prediction is Prediction.LIVE
    assert occlusion.calls == 0


def test_quality_rejection(dark_image, live_model):
    verdict = build(liveness=live_model).detect_liveness(dark_image)
    assert verdict.prediction is Prediction.SPOOF
    assert verdict.confidence == 0.9
    assert verdict.failure_reason.startswith("quality insufficient: ")
    assert verdict.reason_code == CODES.LOW_QUALITY
    assert not verdict.quality.acceptable
    assert live_model.calls == 0


def test_no_face_is_a_quality_rejection(gray_image, live_model):
    verdict = build(face=FakeFaceDetector(present=False), liveness=live_model).detect_liveness(gray_image)
    assert verdict.prediction is Prediction.SPOOF
    assert verdict.quality.overall == 0.0
    assert verdict.failure_reason == "quality insufficient: 0.00"
    assert live_model.calls == 0


def test_skip_quality_synthesizes_passing_score(dark_image):
    face = FakeFaceDetector(present=False)
    verdict = build(PipelineConfig(skip_quality_check=True), face=face).detect_liveness(dark_image)
    assert verdict.prediction is Prediction.LIVE
    assert verdict.quality == QualityScore.passing()
    assert verdict.quality.overall == pytest.approx(1.0)
    assert face.calls == 0


def test_spoof_logit(gray_image):
    verdict = build(liveness=FakeModel(output=[[-2.0]])).detect_liveness(gray_image)
    assert verdict.prediction is Prediction.SPOOF
    assert verdict.confidence == pytest.approx(0.881, abs=1e-3)
    assert verdict.failure_reason is None


def test_unavailable_liveness_model_is_fatal(gray_image):
    liveness = FakeModel(error=ModelUnavailable("no model"))
    with pytest.raises(ModelUnavailable):
        build(liveness=liveness).detect_liveness(gray_image)


def test_inference_failure_passes_through(gray_image):
    with pytest.raises(InferenceFailure):
        build(liveness=FakeModel(error=InferenceFailure("boom"))).detect_liveness(gray_image)


def test_unexpected_errors_are_normalized(gray_image):
    with pytest.raises(LivenessError) as exc:
        build(liveness=FakeModel(error=RuntimeError("session exploded"))).detect_liveness(gray_image)
    assert type(exc.value) is LivenessError
    assert isinstance(exc.value.__cause__, RuntimeError)
    assert exc.value.reason_code == CODES.PIPELINE_FAILURE


def test_occlusion_errors_are_normalized(gray_image):
    with pytest.raises(LivenessError) as exc:
        build(occlusion=FakeModel(error=KeyError("output"))).detect_liveness(gray_image)
    assert type(exc.value) is LivenessError


def test_check_image_quality_ignores_skip_flag(dark_image):
    face = FakeFaceDetector(present=True)
    score = build(PipelineConfig(skip_quality_check=True), face=face).check_image_quality(dark_image)
    assert face.calls == 1
    assert score.brightness == 0.0
    assert not score.acceptable


def test_check_image_quality_validates():
    with pytest.raises(InvalidImage):
        build().check_image_quality(solid_image(size=(4096, 100)))


def test_cancel_before_start(gray_image, live_model):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(PipelineCancelled):
        build(liveness=live_model).detect_liveness(gray_image, cancel_event=cancel)
    assert live_model.calls == 0


def test_stages_run_on_executor(gray_image):
    caller = threading.get_ident()
    seen = []

    def logit(tensor):
        seen.append(threading.get_ident())
        return [[2.0]]

    with ThreadPoolExecutor(max_workers=1) as executor:
        verdict = build(liveness=FakeModel(output=logit), executor=executor).detect_liveness(
            gray_image, cancel_event=threading.Event()
        )
    assert verdict.prediction is Prediction.LIVE
    assert seen and seen[0] != caller


def test_cancel_during_running_stage(gray_image):
    cancel = threading.Event()
    gate = threading.Event()

    def blocking(tensor):
        cancel.set()
        gate.wait(timeout=5)
        return [[2.0]]

    finished = threading.Event()

    def blocking_then_done(tensor):
        out = blocking(tensor)
        finished.set()
        return out

    liveness = FakeModel(output=blocking_then_done)
    with ThreadPoolExecutor(max_workers=1) as executor:
        pipeline = build(liveness=liveness, executor=executor)
        try:
            with pytest.raises(PipelineCancelled):
                pipeline.detect_liveness(gray_image, cancel_event=cancel)
            # the caller is back while the stage is still blocked in its worker
            assert not finished.is_set()
        finally:
            gate.set()

    # a started stage is not interrupted; it runs to completion
    assert finished.is_set()
    assert liveness.calls == 1


def test_concurrent_calls_do_not_share_buffers():
    # Logit derived from the red plane, so each call must see its own tensor
    liveness = FakeModel(output=lambda t: [[float(t[0, 0].mean())]])
    pipeline = build(PipelineConfig(skip_quality_check=True, skip_occlusion_check=True), liveness=liveness)
    bright = solid_image((255, 128, 128))
    dark = solid_image((0, 128, 128))
    results = {}

    def run(name, image):
        for i in range(20):
            results[(name, i)] = pipeline.detect_liveness(image).prediction

    threads = [threading.Thread(target=run, args=("bright", bright)), threading.Thread(target=run, args=("dark", dark))]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert all(p is Prediction.LIVE for (name, _), p in results.items() if name == "bright")
    assert all(p is Prediction.SPOOF for (name, _), p in results.items() if name == "dark")


def test_release_is_best_effort_and_idempotent():
    occlusion = FakeModel(output=[[0.05, 0.9, 0.05]], release_error=RuntimeError("stuck"))
    liveness = FakeModel(output=[[2.0]])
    face = FakeFaceDetector(close_error=OSError("graph busy"))
    pipeline = build(face=face, occlusion=occlusion, liveness=liveness)

    report = pipeline.release()
    assert not report.ok
    assert set(report.failures) == {"occlusion_model", "face_detector"}
    assert report.outcomes["liveness_model"] is None
    assert liveness.released == 1
    assert face.closed == 1

    second = pipeline.release()
    assert second.outcomes == {}
    assert liveness.released == 1


def test_released_pipeline_refuses_work(gray_image):
    pipeline = build()
    pipeline.release()
    assert pipeline.released
    with pytest.raises(LivenessError):
        pipeline.detect_liveness(gray_image)


def test_context_manager_releases(gray_image):
    liveness = FakeModel(output=[[2.0]])
    with build(liveness=liveness) as pipeline:
        pipeline.detect_liveness(gray_image)
    assert liveness.released == 1


def _debug_records(caplog):
    return [r for r in caplog.records if r.levelno == logging.DEBUG and r.name.startswith("liveness_core")]


def test_debug_logging_is_per_instance(gray_image, caplog):
    caplog.set_level(logging.DEBUG, logger="liveness_core")

    build(PipelineConfig(debug_logging=False)).detect_liveness(gray_image)
    assert _debug_records(caplog) == []

    build(PipelineConfig(debug_logging=True)).detect_liveness(gray_image)
    assert any("liveness detection" in r.getMessage() for r in _debug_records(caplog))


def test_injected_logger_receives_records(gray_image, caplog):
    sink = logging.getLogger("tests.sink")
    caplog.set_level(logging.DEBUG, logger="tests.sink")
    build(PipelineConfig(debug_logging=True), logger=sink).detect_liveness(gray_image)
    assert any(r.name == "tests.sink" for r in caplog.records)


def test_verdict_serializes(gray_image):
    data = build().detect_liveness(gray_image).to_dict()
    assert data["prediction"] == "Live"
    assert data["quality"]["acceptable"] is True
    assert np.isclose(data["confidence"], 0.8808, atol=1e-3)


def test_missing_face_backend_fails_instead_of_spoofing(gray_image, live_model, monkeypatch):
    monkeypatch.setitem(sys.modules, "mediapipe", None)
    pipeline = build(face=FacePresenceDetector(FaceDetectorConfig(backend="mediapipe")), liveness=live_model)
    with pytest.raises(ModelUnavailable):
        pipeline.detect_liveness(gray_image)
    assert live_model.calls == 0


def test_raw_array_input_is_invalid_image(live_model):
    pixels = np.full((128, 128, 3), 128, dtype=np.uint8)
    pipeline = build(liveness=live_model)
    with pytest.raises(InvalidImage):
        pipeline.detect_liveness(pixels)
    with pytest.raises(InvalidImage):
        pipeline.check_image_quality(pixels)
    assert live_model.calls == 0
