"""
Camera module.

Wraps picamera2 to provide an iterator of OpenCV-compatible BGR frames, each
paired with the exposure metadata the capture gate needs.  Falls back to
OpenCV VideoCapture (any webcam) when picamera2 is unavailable.

Only the most recent frame is ever handed out: both backends are configured
with the smallest usable buffer, so frames that arrive while the previous
one is still being evaluated are dropped by the driver instead of queued.
"""

from __future__ import annotations

import logging
from typing import Any, Generator, Mapping, Optional, Tuple

import cv2
import numpy as np

from capture_gate.models import ExposureSample

logger = logging.getLogger(__name__)

Frame = Tuple[np.ndarray, ExposureSample]

# ---------------------------------------------------------------------------
# Try importing picamera2 (only available on Raspberry Pi OS)
# ---------------------------------------------------------------------------
try:
    from picamera2 import Picamera2
    from libcamera import Transform
    _PICAMERA2_AVAILABLE = True
except ImportError:
    _PICAMERA2_AVAILABLE = False
    logger.info("picamera2 not found – using OpenCV VideoCapture.")

# V4L2 reports CAP_PROP_EXPOSURE in units of 100 µs
_V4L2_EXPOSURE_UNIT_S = 1e-4


def exposure_from_picamera2(
    metadata: Mapping[str, Any], f_number: float
) -> ExposureSample:
    """
    Convert libcamera request metadata into an :class:`ExposureSample`.

    ``ExposureTime`` is reported in microseconds.  ISO is derived from the
    sensor gains (``100 × analogue × digital``).  The f-number comes from
    configuration because Pi camera modules have a fixed aperture.
    """
    exposure_us = metadata.get("ExposureTime")
    analogue = metadata.get("AnalogueGain")
    digital = metadata.get("DigitalGain", 1.0)

    exposure_time = exposure_us / 1e6 if exposure_us is not None else None
    iso = 100.0 * analogue * digital if analogue is not None else None
    return ExposureSample(f_number=f_number, exposure_time=exposure_time, iso_speed=iso)


def exposure_from_opencv(cap: "cv2.VideoCapture", f_number: float) -> ExposureSample:
    """
    Read exposure from VideoCapture properties.

    Drivers that run auto-exposure usually report 0 or a negative log2 value;
    those are passed through as *None* so the gate reports the data as
    unavailable instead of computing nonsense.
    """
    raw_exposure = cap.get(cv2.CAP_PROP_EXPOSURE)
    raw_iso = cap.get(cv2.CAP_PROP_ISO_SPEED)
    exposure_time = raw_exposure * _V4L2_EXPOSURE_UNIT_S if raw_exposure > 0 else None
    iso = raw_iso if raw_iso > 0 else None
    return ExposureSample(f_number=f_number, exposure_time=exposure_time, iso_speed=iso)


class CaptureCamera:
    """
    Thin wrapper around a Pi camera module or a webcam.

    Parameters
    ----------
    resolution:
        (width, height) of captured frames.
    fps:
        Target frame rate.  Actual rate may differ slightly.
    flip_horizontal:
        Mirror the image left-to-right (selfie-style preview).
    camera_index:
        Fallback OpenCV camera index when picamera2 is unavailable.
    f_number:
        Lens aperture reported alongside every frame.  Default: 1.8.
    """

    def __init__(
        self,
        resolution: Tuple[int, int] = (640, 480),
        fps: int = 30,
        flip_horizontal: bool = True,
        camera_index: int = 0,
        f_number: float = 1.8,
    ) -> None:
        self.resolution = resolution
        self.fps = fps
        self.flip_horizontal = flip_horizontal
        self.camera_index = camera_index
        self.f_number = f_number

        self._cam: "Picamera2 | cv2.VideoCapture | None" = None
        self._use_picamera2 = _PICAMERA2_AVAILABLE
        self._warned_exposure = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._cam is not None

    def open(self) -> None:
        """Initialise and start the camera."""
        if self._use_picamera2:
            self._open_picamera2()
        else:
            self._open_opencv()
        logger.info(
            "Camera opened – backend=%s resolution=%s fps=%d",
            "picamera2" if self._use_picamera2 else "opencv",
            self.resolution,
            self.fps,
        )

    def close(self) -> None:
        """Stop and release the camera."""
        if self._cam is None:
            return
        if self._use_picamera2:
            self._cam.stop()
            self._cam.close()
        else:
            self._cam.release()
        self._cam = None
        logger.info("Camera closed.")

    def __enter__(self) -> "CaptureCamera":
        self.open()
        return self

    def __exit__(self, *_) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Frame acquisition
    # ------------------------------------------------------------------

    def read(self) -> Optional[Frame]:
        """
        Capture a single frame with its exposure metadata.

        Returns
        -------
        tuple
            ``(frame, exposure)`` where *frame* is a BGR array
            (H × W × 3, uint8), or *None* on failure.
        """
        if self._cam is None:
            raise RuntimeError("Camera is not open.  Call open() first.")

        if self._use_picamera2:
            result = self._read_picamera2()
        else:
            result = self._read_opencv()

        if result is not None:
            self._check_exposure(result[1])
        return result

    def frames(self) -> Generator[Frame, None, None]:
        """
        Yield ``(frame, exposure)`` pairs until the camera is closed or an
        error occurs.
        """
        _null_streak = 0
        while self._cam is not None:
            result = self.read()
            if result is None:
                _null_streak += 1
                if _null_streak >= 10:
                    logger.error(
                        "Camera returned 10 consecutive empty frames – aborting."
                    )
                    break
                continue
            _null_streak = 0
            yield result

    def _check_exposure(self, exposure: ExposureSample) -> None:
        if self._warned_exposure:
            return
        if exposure.exposure_time is None or exposure.iso_speed is None:
            logger.warning(
                "Camera does not report exposure metadata (%s) – "
                "capture will stay disabled.",
                exposure,
            )
            self._warned_exposure = True

    # ------------------------------------------------------------------
    # Private helpers – picamera2
    # ------------------------------------------------------------------

    def _open_picamera2(self) -> None:
        cam = Picamera2()
        w, h = self.resolution
        transform = Transform(hflip=self.flip_horizontal)
        config = cam.create_video_configuration(
            main={"size": (w, h), "format": "RGB888"},
            transform=transform,
            buffer_count=2,
        )
        cam.configure(config)
        frame_duration = int(1_000_000 / self.fps)   # microseconds
        try:
            cam.set_controls({
                "FrameDurationLimits": (frame_duration, frame_duration),
            })
        except Exception as exc:                         # noqa: BLE001
            logger.warning("Could not set FrameDurationLimits: %s", exc)
        cam.start()
        # Let auto-exposure settle before the gate sees any metadata.
        for _ in range(8):
            cam.capture_array("main")
        self._cam = cam

    def _read_picamera2(self) -> Optional[Frame]:
        request = self._cam.capture_request()
        try:
            frame = request.make_array("main")
            metadata = request.get_metadata()
        finally:
            request.release()
        if frame is None:
            logger.warning("capture_request returned no image.")
            return None
        if frame.ndim == 3 and frame.shape[2] == 4:
            frame = frame[:, :, :3]
        # picamera2 RGB888 → OpenCV BGR
        frame = cv2.cvtColor(frame, cv2.COLOR_RGB2BGR)
        return frame, exposure_from_picamera2(metadata, self.f_number)

    # ------------------------------------------------------------------
    # Private helpers – OpenCV fallback
    # ------------------------------------------------------------------

    def _open_opencv(self) -> None:
        cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            raise RuntimeError(
                f"Cannot open video capture device index={self.camera_index}"
            )
        # keep only the newest frame in the driver queue
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        w, h = self.resolution
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        cap.set(cv2.CAP_PROP_FPS, self.fps)
        self._cam = cap

    def _read_opencv(self) -> Optional[Frame]:
        ok, frame = self._cam.read()
        if not ok:
            logger.warning("VideoCapture.read() returned False.")
            return None
        if self.flip_horizontal:
            frame = cv2.flip(frame, 1)
        return frame, exposure_from_opencv(self._cam, self.f_number)
