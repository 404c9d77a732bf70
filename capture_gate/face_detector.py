"""
Face detector feeding the capture gate.

Uses the frontal-face Haar cascade that ships with opencv-python.  Boxes are
reported in frame pixel coordinates, which is the same space as the session
viewport ``Rect(0, 0, width, height)``, so no further conversion is needed
before evaluation.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

import cv2
import numpy as np

from capture_gate.models import FaceObservation, Rect

logger = logging.getLogger(__name__)

_DEFAULT_CASCADE = "haarcascade_frontalface_default.xml"


class FaceDetector:
    """
    Parameters
    ----------
    scale_factor:
        Image pyramid step passed to ``detectMultiScale``.  Default: 1.1.
    min_neighbors:
        Neighbour count a candidate needs to be kept.  Higher values give
        fewer false positives.  Default: 5.
    min_size:
        Smallest face (w, h) in pixels to report.  Default: (60, 60).
    cascade_path:
        Override the bundled cascade file.
    """

    def __init__(
        self,
        scale_factor: float = 1.1,
        min_neighbors: int = 5,
        min_size: Tuple[int, int] = (60, 60),
        cascade_path: str | None = None,
    ) -> None:
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = min_size

        path = cascade_path or cv2.data.haarcascades + _DEFAULT_CASCADE
        self._classifier = cv2.CascadeClassifier(path)
        if self._classifier.empty():
            raise RuntimeError(f"Failed to load Haar cascade from {path}")
        logger.debug("Loaded face cascade %s", path)

    def detect(self, frame: np.ndarray) -> List[FaceObservation]:
        """
        Return every face found in *frame*.

        Parameters
        ----------
        frame:
            BGR image array (H × W × 3, uint8) or a single-channel image.
        """
        if frame.ndim == 3:
            gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        else:
            gray = frame
        gray = cv2.equalizeHist(gray)

        boxes = self._classifier.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=self.min_size,
        )
        return [
            FaceObservation(Rect(float(x), float(y), float(w), float(h)))
            for (x, y, w, h) in boxes
        ]
