"""
Frame-scoped value types shared by the capture gate and its collaborators.

Every object here describes a single video frame: it is built from one camera
callback, handed to the evaluator, and thrown away.  Nothing is retained
across frames.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional


class InvalidExposureData(ValueError):
    """Exposure metadata is missing, non-finite or non-positive."""


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned rectangle ``(x, y, width, height)``.

    Negative sizes are standardised on construction so that ``x``/``y`` is
    always the minimum corner.
    """

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width < 0:
            object.__setattr__(self, "x", self.x + self.width)
            object.__setattr__(self, "width", -self.width)
        if self.height < 0:
            object.__setattr__(self, "y", self.y + self.height)
            object.__setattr__(self, "height", -self.height)

    @classmethod
    def from_corners(cls, x0: float, y0: float, x1: float, y1: float) -> "Rect":
        return cls(x0, y0, x1 - x0, y1 - y0)

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.x, self.y, self.width, self.height))

    def intersection(self, other: "Rect") -> Optional["Rect"]:
        """Return the overlapping rectangle, or *None* if the overlap is empty."""
        x0 = max(self.x, other.x)
        y0 = max(self.y, other.y)
        x1 = min(self.max_x, other.max_x)
        y1 = min(self.max_y, other.max_y)
        if x1 <= x0 or y1 <= y0:
            return None
        return Rect(x0, y0, x1 - x0, y1 - y0)

    def as_int_tuple(self) -> tuple[int, int, int, int]:
        """``(x, y, w, h)`` rounded for OpenCV drawing calls."""
        return (
            int(round(self.x)),
            int(round(self.y)),
            int(round(self.width)),
            int(round(self.height)),
        )


@dataclass(frozen=True)
class FaceObservation:
    """One detected face; ``bounding_box`` is in viewport coordinates."""

    bounding_box: Rect


# ---------------------------------------------------------------------------
# Exposure
# ---------------------------------------------------------------------------

def _as_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    # EXIF rationals come through as (num, den) pairs from some readers
    if isinstance(value, (tuple, list)) and len(value) == 2:
        try:
            num, den = float(value[0]), float(value[1])
        except (TypeError, ValueError):
            return None
        return num / den if den else None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _is_positive(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


@dataclass(frozen=True)
class ExposureSample:
    """
    Exposure triple for one frame.

    Parameters
    ----------
    f_number:
        Lens aperture (e.g. 1.8).
    exposure_time:
        Shutter time in seconds.  Must be > 0.
    iso_speed:
        Sensor sensitivity.  Must be > 0.

    Any field may be *None* when the camera did not report it.
    """

    f_number: Optional[float] = None
    exposure_time: Optional[float] = None
    iso_speed: Optional[float] = None

    @classmethod
    def from_exif(cls, exif: Optional[Mapping[str, Any]]) -> "ExposureSample":
        """
        Build a sample from an EXIF-style dictionary.

        Reads ``FNumber``, ``ExposureTime`` and ``ISOSpeedRatings``.  The ISO
        entry is usually a list; its first element is used.  Missing or
        unparsable entries become *None* instead of raising, and a frame
        without any EXIF dictionary gives an empty sample.
        """
        if exif is None:
            return cls()
        iso = exif.get("ISOSpeedRatings")
        if isinstance(iso, (list, tuple)):
            iso = iso[0] if iso else None
        return cls(
            f_number=_as_float(exif.get("FNumber")),
            exposure_time=_as_float(exif.get("ExposureTime")),
            iso_speed=_as_float(iso),
        )

    def validate(self) -> None:
        """Raise :class:`InvalidExposureData` if the sample cannot be used."""
        if not _is_positive(self.f_number):
            raise InvalidExposureData(f"f-number must be > 0, got {self.f_number!r}")
        if not _is_positive(self.exposure_time):
            raise InvalidExposureData(
                f"exposure time must be > 0, got {self.exposure_time!r}"
            )
        if not _is_positive(self.iso_speed):
            raise InvalidExposureData(f"ISO speed must be > 0, got {self.iso_speed!r}")

    def luminosity(self, calibration_constant: float = 50.0) -> float:
        """Scene luminosity estimate ``K * N^2 / (t * S)``."""
        self.validate()
        return (calibration_constant * self.f_number ** 2) / (
            self.exposure_time * self.iso_speed
        )


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------

class DecisionReason(enum.Enum):
    NONE = "none"
    FACE_COUNT_INVALID = "face_count_invalid"
    FACE_TOO_FAR = "face_too_far"
    INSUFFICIENT_LIGHT = "insufficient_light"
    INVALID_EXPOSURE_DATA = "invalid_exposure_data"
    EXPOSURE_UNAVAILABLE = "invalid_exposure_data"  # alias

    @property
    def message(self) -> Optional[str]:
        """Advisory text shown to the user, *None* for an accepted frame."""
        return _MESSAGES.get(self)


_MESSAGES = {
    DecisionReason.FACE_COUNT_INVALID: "Make sure exactly one face is in view",
    DecisionReason.FACE_TOO_FAR: (
        "Please bring phone near to your face to capture clear image"
    ),
    DecisionReason.INSUFFICIENT_LIGHT: "Not enough light",
    DecisionReason.INVALID_EXPOSURE_DATA: "Exposure data unavailable",
}


@dataclass(frozen=True)
class CaptureMetrics:
    face_count: int
    overlap_percent: Optional[float] = None
    luminosity: Optional[float] = None


@dataclass(frozen=True)
class CaptureDecision:
    """Result of evaluating one frame.  Recomputed every frame, never stored."""

    allowed: bool
    reason: DecisionReason
    metrics: CaptureMetrics

    @property
    def message(self) -> Optional[str]:
        return self.reason.message
