"""
Per-session context around the capture gate.

Holds what one camera screen needs to remember between frames (the viewport,
the previous decision for change logging) and owns the "image captured"
callback.  The decision itself is always recomputed from the current frame.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

import numpy as np

from capture_gate.evaluator import CaptureReadinessEvaluator
from capture_gate.models import (
    CaptureDecision,
    DecisionReason,
    ExposureSample,
    FaceObservation,
    Rect,
)

logger = logging.getLogger(__name__)

CaptureCallback = Callable[[np.ndarray], None]


class CaptureSession:
    """
    Parameters
    ----------
    viewport:
        Rectangle the face overlap is measured against, normally the full
        frame ``Rect(0, 0, width, height)``.
    on_capture:
        Called with a copy of the frame when a capture is accepted.
    evaluator:
        Gate to use; a default :class:`CaptureReadinessEvaluator` otherwise.
    """

    def __init__(
        self,
        viewport: Rect,
        on_capture: Optional[CaptureCallback] = None,
        evaluator: Optional[CaptureReadinessEvaluator] = None,
    ) -> None:
        self.viewport = viewport
        self.on_capture = on_capture
        self.evaluator = evaluator or CaptureReadinessEvaluator()

        self.last_decision: Optional[CaptureDecision] = None
        self.just_enabled = False
        self.captures = 0

    @classmethod
    def for_resolution(
        cls, resolution: tuple[int, int], **kwargs
    ) -> "CaptureSession":
        w, h = resolution
        return cls(Rect(0.0, 0.0, float(w), float(h)), **kwargs)

    @property
    def capture_enabled(self) -> bool:
        return self.last_decision is not None and self.last_decision.allowed

    def process(
        self,
        faces: Sequence[FaceObservation],
        exposure: ExposureSample,
    ) -> CaptureDecision:
        """Evaluate one frame and remember the result."""
        decision = self.evaluator.evaluate(faces, exposure, self.viewport)

        previous = self.last_decision
        if previous is None or previous.reason is not decision.reason:
            if decision.allowed:
                logger.info("Capture enabled.")
            else:
                logger.info(
                    "Capture disabled: %s (faces=%d overlap=%s luminosity=%s)",
                    decision.reason.value,
                    decision.metrics.face_count,
                    _fmt(decision.metrics.overlap_percent),
                    _fmt(decision.metrics.luminosity),
                )

        self.just_enabled = decision.allowed and not (
            previous is not None and previous.allowed
        )
        self.last_decision = decision
        return decision

    def capture(self, frame: np.ndarray) -> bool:
        """
        Hand *frame* to the capture callback if the last frame was accepted.

        Returns *True* when the callback ran.
        """
        if not self.capture_enabled:
            reason = (
                self.last_decision.reason
                if self.last_decision is not None
                else DecisionReason.FACE_COUNT_INVALID
            )
            logger.info("Capture ignored: %s", reason.value)
            return False

        self.captures += 1
        if self.on_capture is not None:
            self.on_capture(frame.copy())
        logger.info("Image captured (#%d).", self.captures)
        return True

    def reset(self) -> None:
        self.last_decision = None
        self.just_enabled = False


def _fmt(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.2f}"
