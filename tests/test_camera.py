"""
Unit tests for the camera exposure helpers.
Run with:  pytest tests/

These run without camera hardware.
"""

from __future__ import annotations

import cv2
import pytest

from capture_gate.camera import (
    CaptureCamera,
    exposure_from_opencv,
    exposure_from_picamera2,
)
from capture_gate.models import InvalidExposureData


class _FakeCapture:
    def __init__(self, props):
        self._props = props

    def get(self, prop):
        return self._props.get(prop, 0.0)


class TestPicamera2Exposure:

    def test_units_converted(self):
        s = exposure_from_picamera2(
            {"ExposureTime": 10000, "AnalogueGain": 2.0, "DigitalGain": 1.5},
            f_number=1.8,
        )
        assert s.exposure_time == pytest.approx(0.01)
        assert s.iso_speed == pytest.approx(300.0)
        assert s.f_number == 1.8

    def test_missing_gain(self):
        s = exposure_from_picamera2({"ExposureTime": 10000}, f_number=1.8)
        assert s.iso_speed is None
        with pytest.raises(InvalidExposureData):
            s.validate()


class TestOpenCVExposure:

    def test_v4l2_units(self):
        cap = _FakeCapture({cv2.CAP_PROP_EXPOSURE: 100.0, cv2.CAP_PROP_ISO_SPEED: 200.0})
        s = exposure_from_opencv(cap, f_number=2.0)
        assert s.exposure_time == pytest.approx(0.01)
        assert s.iso_speed == 200.0

    def test_auto_exposure_reports_nothing(self):
        cap = _FakeCapture({cv2.CAP_PROP_EXPOSURE: -6.0})
        s = exposure_from_opencv(cap, f_number=2.0)
        assert s.exposure_time is None
        assert s.iso_speed is None


class TestCaptureCamera:

    def test_read_before_open_raises(self):
        cam = CaptureCamera()
        assert cam.is_open is False
        with pytest.raises(RuntimeError):
            cam.read()

    def test_close_without_open_is_noop(self):
        CaptureCamera().close()
