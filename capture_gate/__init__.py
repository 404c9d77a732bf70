"""
Face Capture Gate — live face framing and lighting checks for photo capture.
Point the camera at one face; the shutter is enabled only while the face
fills enough of the frame and the exposure metadata says the scene is lit.
"""

from capture_gate.evaluator import CaptureReadinessEvaluator
from capture_gate.models import (
    CaptureDecision,
    CaptureMetrics,
    DecisionReason,
    ExposureSample,
    FaceObservation,
    InvalidExposureData,
    Rect,
)

__version__ = "0.1.0"

__all__ = [
    "CaptureDecision",
    "CaptureMetrics",
    "CaptureReadinessEvaluator",
    "DecisionReason",
    "ExposureSample",
    "FaceObservation",
    "InvalidExposureData",
    "Rect",
]
