"""
Unit tests for the frame-scoped value types.
Run with:  pytest tests/
"""

from __future__ import annotations

import pytest

from capture_gate.models import (
    CaptureDecision,
    CaptureMetrics,
    DecisionReason,
    ExposureSample,
    InvalidExposureData,
    Rect,
)


class TestRect:

    def test_area(self):
        assert Rect(5, 5, 10, 4).area == 40

    def test_negative_size_is_standardised(self):
        r = Rect(10, 10, -4, -6)
        assert (r.x, r.y, r.width, r.height) == (6, 4, 4, 6)

    def test_from_corners(self):
        assert Rect.from_corners(1, 2, 4, 8) == Rect(1, 2, 3, 6)

    def test_is_finite(self):
        assert Rect(0, 0, 1, 1).is_finite
        assert not Rect(float("nan"), 0, 1, 1).is_finite

    def test_intersection(self):
        inter = Rect(0, 0, 10, 10).intersection(Rect(5, 5, 10, 10))
        assert inter == Rect(5, 5, 5, 5)

    def test_no_intersection(self):
        assert Rect(0, 0, 10, 10).intersection(Rect(20, 0, 5, 5)) is None

    def test_as_int_tuple(self):
        assert Rect(1.4, 2.6, 10.5, 3.2).as_int_tuple() == (1, 3, 10, 3)


class TestExposureSample:

    def test_luminosity_formula(self):
        s = ExposureSample(f_number=2.0, exposure_time=0.01, iso_speed=100)
        assert s.luminosity() == pytest.approx(200.0)
        assert s.luminosity(calibration_constant=25.0) == pytest.approx(100.0)

    def test_zero_exposure_time_raises(self):
        s = ExposureSample(f_number=2.0, exposure_time=0.0, iso_speed=100)
        with pytest.raises(InvalidExposureData):
            s.luminosity()

    def test_invalid_exposure_is_value_error(self):
        assert issubclass(InvalidExposureData, ValueError)

    def test_from_exif_iso_list(self):
        s = ExposureSample.from_exif(
            {"FNumber": 1.8, "ExposureTime": 0.02, "ISOSpeedRatings": [160]}
        )
        assert s == ExposureSample(f_number=1.8, exposure_time=0.02, iso_speed=160.0)

    def test_from_exif_scalar_iso_and_rationals(self):
        s = ExposureSample.from_exif(
            {"FNumber": (9, 5), "ExposureTime": (1, 50), "ISOSpeedRatings": 200}
        )
        assert s.f_number == pytest.approx(1.8)
        assert s.exposure_time == pytest.approx(0.02)
        assert s.iso_speed == 200.0

    def test_from_exif_without_exif_dict(self):
        s = ExposureSample.from_exif(None)
        assert s == ExposureSample()
        with pytest.raises(InvalidExposureData):
            s.luminosity()

    def test_negative_f_number_rejected(self):
        s = ExposureSample(f_number=-2.0, exposure_time=0.01, iso_speed=100)
        with pytest.raises(InvalidExposureData):
            s.validate()

    def test_from_exif_missing_fields(self):
        s = ExposureSample.from_exif({"FNumber": "oops", "ISOSpeedRatings": []})
        assert s == ExposureSample()
        with pytest.raises(InvalidExposureData):
            s.validate()


class TestDecision:

    @pytest.mark.parametrize("reason", [
        DecisionReason.FACE_COUNT_INVALID,
        DecisionReason.FACE_TOO_FAR,
        DecisionReason.INSUFFICIENT_LIGHT,
        DecisionReason.INVALID_EXPOSURE_DATA,
    ])
    def test_every_rejection_has_a_message(self, reason):
        assert reason.message

    def test_messages_match_capture_screen(self):
        assert DecisionReason.INSUFFICIENT_LIGHT.message == "Not enough light"
        assert "bring phone near" in DecisionReason.FACE_TOO_FAR.message

    def test_acceptance_is_silent(self):
        d = CaptureDecision(True, DecisionReason.NONE, CaptureMetrics(face_count=1))
        assert d.message is None
