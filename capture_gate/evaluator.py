"""
Capture-readiness gate.

Decides, per video frame, whether the shutter may be enabled:

  - Exactly one face must be visible.
  - That face must cover enough of the viewport (the user is close enough).
  - The scene must be bright enough, judged from the exposure metadata.

All metrics are computed whenever they can be, even after an earlier gate has
already rejected the frame, so callers can give precise feedback.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from capture_gate.models import (
    CaptureDecision,
    CaptureMetrics,
    DecisionReason,
    ExposureSample,
    FaceObservation,
    InvalidExposureData,
    Rect,
)

logger = logging.getLogger(__name__)


def overlap_percent(viewport: Rect, box: Rect) -> float:
    """Percentage of *viewport* covered by *box* (0 when they do not meet)."""
    if not (viewport.is_finite and box.is_finite):
        return 0.0
    viewport_area = viewport.area
    if viewport_area <= 0:
        return 0.0
    inter = viewport.intersection(box)
    if inter is None:
        return 0.0
    # scale before dividing so whole-pixel boxes hit thresholds exactly
    return inter.area * 100.0 / viewport_area


class CaptureReadinessEvaluator:
    """
    Stateless capture gate.

    Parameters
    ----------
    min_overlap_percent:
        Minimum share of the viewport the face box must cover.  Default: 18.
    min_luminosity:
        Minimum luminosity estimate.  Default: 4.
    calibration_constant:
        ``K`` in ``K * N^2 / (t * S)``.  Default: 50.
    """

    def __init__(
        self,
        min_overlap_percent: float = 18.0,
        min_luminosity: float = 4.0,
        calibration_constant: float = 50.0,
    ) -> None:
        self.min_overlap_percent = min_overlap_percent
        self.min_luminosity = min_luminosity
        self.calibration_constant = calibration_constant

    def evaluate(
        self,
        faces: Sequence[FaceObservation],
        exposure: ExposureSample,
        viewport: Rect,
    ) -> CaptureDecision:
        """Return the :class:`CaptureDecision` for one frame."""
        assert exposure is not None, "exposure sample is required"
        assert viewport is not None, "viewport is required"

        face_count = len(faces)

        overlap: Optional[float] = None
        if face_count == 1:
            overlap = overlap_percent(viewport, faces[0].bounding_box)

        luminosity: Optional[float] = None
        exposure_error: Optional[InvalidExposureData] = None
        try:
            luminosity = exposure.luminosity(self.calibration_constant)
        except InvalidExposureData as exc:
            exposure_error = exc

        metrics = CaptureMetrics(
            face_count=face_count,
            overlap_percent=overlap,
            luminosity=luminosity,
        )

        if face_count != 1:
            reason = DecisionReason.FACE_COUNT_INVALID
        elif overlap is None or not overlap >= self.min_overlap_percent:
            reason = DecisionReason.FACE_TOO_FAR
        elif exposure_error is not None:
            logger.debug("Exposure rejected: %s", exposure_error)
            reason = DecisionReason.INVALID_EXPOSURE_DATA
        elif not luminosity >= self.min_luminosity:
            reason = DecisionReason.INSUFFICIENT_LIGHT
        else:
            reason = DecisionReason.NONE

        decision = CaptureDecision(
            allowed=reason is DecisionReason.NONE,
            reason=reason,
            metrics=metrics,
        )
        logger.debug(
            "faces=%d overlap=%s luminosity=%s -> %s",
            face_count, overlap, luminosity, reason.value,
        )
        return decision
