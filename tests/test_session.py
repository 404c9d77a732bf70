"""
Unit tests for CaptureSession.
Run with:  pytest tests/
"""

from __future__ import annotations

import logging

import numpy as np

from capture_gate.evaluator import CaptureReadinessEvaluator
from capture_gate.models import DecisionReason, ExposureSample, FaceObservation, Rect
from capture_gate.session import CaptureSession

BRIGHT = ExposureSample(f_number=2.0, exposure_time=0.01, iso_speed=100)
DARK = ExposureSample(f_number=2.0, exposure_time=5.0, iso_speed=100)
BIG_FACE = [FaceObservation(Rect(20, 20, 60, 60))]


class TestCaptureSession:

    def _session(self, captured=None):
        cb = captured.append if captured is not None else None
        return CaptureSession.for_resolution((100, 100), on_capture=cb)

    def test_viewport_from_resolution(self):
        s = self._session()
        assert s.viewport == Rect(0, 0, 100, 100)

    def test_capture_disabled_before_first_frame(self):
        captured = []
        s = self._session(captured)
        assert s.capture_enabled is False
        assert s.capture(np.zeros((100, 100, 3), dtype=np.uint8)) is False
        assert captured == []

    def test_capture_runs_callback_when_allowed(self):
        captured = []
        s = self._session(captured)
        frame = np.full((100, 100, 3), 7, dtype=np.uint8)
        d = s.process(BIG_FACE, BRIGHT)
        assert d.allowed
        assert s.capture(frame) is True
        assert len(captured) == 1
        assert s.captures == 1
        # callback receives a copy
        assert captured[0] is not frame
        assert np.array_equal(captured[0], frame)

    def test_capture_refused_when_dark(self):
        captured = []
        s = self._session(captured)
        d = s.process(BIG_FACE, DARK)
        assert d.reason is DecisionReason.INSUFFICIENT_LIGHT
        assert s.capture(np.zeros((100, 100, 3), dtype=np.uint8)) is False
        assert captured == []

    def test_decision_depends_only_on_current_frame(self):
        s = self._session()
        s.process([], BRIGHT)
        assert s.process(BIG_FACE, BRIGHT).allowed
        assert not s.process(BIG_FACE, DARK).allowed
        assert s.process(BIG_FACE, BRIGHT).allowed

    def test_transitions_logged_once(self, caplog):
        s = self._session()
        with caplog.at_level(logging.INFO, logger="capture_gate.session"):
            s.process([], BRIGHT)
            s.process([], BRIGHT)
            s.process(BIG_FACE, BRIGHT)
        messages = [r.getMessage() for r in caplog.records]
        assert sum("face_count_invalid" in m for m in messages) == 1
        assert sum("Capture enabled" in m for m in messages) == 1

    def test_just_enabled_only_on_transition(self):
        s = self._session()
        s.process([], BRIGHT)
        assert s.just_enabled is False
        s.process(BIG_FACE, BRIGHT)
        assert s.just_enabled is True
        s.process(BIG_FACE, BRIGHT)
        assert s.just_enabled is False
        s.process(BIG_FACE, DARK)
        s.process(BIG_FACE, BRIGHT)
        assert s.just_enabled is True

    def test_reset(self):
        s = self._session()
        s.process(BIG_FACE, BRIGHT)
        s.reset()
        assert s.last_decision is None
        assert s.capture_enabled is False

    def test_custom_evaluator(self):
        s = CaptureSession(
            Rect(0, 0, 100, 100),
            evaluator=CaptureReadinessEvaluator(min_overlap_percent=50.0),
        )
        assert s.process(BIG_FACE, BRIGHT).reason is DecisionReason.FACE_TOO_FAR
