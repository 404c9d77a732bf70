"""
Real-time overlay for the capture screen.

Draws the following elements onto each video frame:
  • The detected face box (only while the face is framed and lit well).
  • A shutter indicator showing whether capture is enabled.
  • One transient advisory message keyed by the rejection reason.
  • Optional frame-rate counter.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from capture_gate.models import CaptureDecision, DecisionReason, FaceObservation

# ---------------------------------------------------------------------------
# Colour palette (BGR)
# ---------------------------------------------------------------------------
_GREEN  = (0, 220,  80)
_GREY   = (140, 140, 140)
_WHITE  = (255, 255, 255)
_BLACK  = (0, 0, 0)

# rejections that clear the face box
_HIDE_BOX = frozenset({DecisionReason.FACE_TOO_FAR, DecisionReason.INSUFFICIENT_LIGHT})


def _now() -> float:
    return cv2.getTickCount() / cv2.getTickFrequency()


class Visualizer:
    """
    Draws the capture UI onto OpenCV frames in-place.

    Parameters
    ----------
    resolution:
        (width, height) of the video frame.
    toast_seconds:
        How long an advisory message takes to fade out.
    show_fps:
        Whether to overlay computed FPS in the top-right corner.
    """

    def __init__(
        self,
        resolution: Tuple[int, int] = (640, 480),
        toast_seconds: float = 1.0,
        show_fps: bool = True,
    ) -> None:
        self.w, self.h = resolution
        self.toast_seconds = toast_seconds
        self.show_fps = show_fps

        self._toast: Optional[str] = None
        self._toast_started: float = 0.0

        self._fps_tick = cv2.getTickCount()
        self._fps_display: float = 0.0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def toast(self) -> Optional[str]:
        """Message currently on screen, if any."""
        return self._toast

    def show_toast(self, message: str, now: Optional[float] = None) -> None:
        """Replace the current advisory message and restart its fade."""
        self._toast = message
        self._toast_started = _now() if now is None else now

    def toast_alpha(self, now: Optional[float] = None) -> float:
        """Opacity of the current toast (1 → 0 over ``toast_seconds``)."""
        if self._toast is None:
            return 0.0
        now = _now() if now is None else now
        elapsed = now - self._toast_started
        if self.toast_seconds <= 0 or elapsed >= self.toast_seconds:
            return 0.0
        return max(0.0, 1.0 - elapsed / self.toast_seconds)

    def draw(
        self,
        frame: np.ndarray,
        decision: CaptureDecision,
        faces: Sequence[FaceObservation],
        now: Optional[float] = None,
    ) -> np.ndarray:
        """
        Annotate *frame* in-place and return it.

        Parameters
        ----------
        frame:
            BGR frame from the camera.
        decision:
            Gate result for this frame.
        faces:
            Faces detected in this frame, in frame coordinates.
        now:
            Clock value in seconds; defaults to the OpenCV tick clock.
        """
        now = _now() if now is None else now
        self._update_fps()

        # --- Face box --------------------------------------------------------
        if len(faces) == 1 and decision.reason not in _HIDE_BOX:
            x, y, bw, bh = faces[0].bounding_box.as_int_tuple()
            cv2.rectangle(frame, (x, y), (x + bw, y + bh), _GREEN, 2)

        # --- Advisory message ------------------------------------------------
        message = decision.message
        if message is not None and (
            message != self._toast or self.toast_alpha(now) == 0.0
        ):
            self.show_toast(message, now)
        elif message is None:
            self._toast = None
        self._draw_toast(frame, now)

        # --- Shutter ---------------------------------------------------------
        self._draw_shutter(frame, decision.allowed)

        # --- FPS counter -----------------------------------------------------
        if self.show_fps:
            cv2.putText(
                frame,
                f"FPS {self._fps_display:.1f}",
                (self.w - 100, 20),
                cv2.FONT_HERSHEY_SIMPLEX, 0.45, _WHITE, 1, cv2.LINE_AA,
            )

        return frame

    # ------------------------------------------------------------------
    # Private drawing helpers
    # ------------------------------------------------------------------

    def _draw_shutter(self, frame: np.ndarray, enabled: bool) -> None:
        centre = (self.w // 2, self.h - 50)
        col = _WHITE if enabled else _GREY
        cv2.circle(frame, centre, 30, col, 3, cv2.LINE_AA)
        if enabled:
            cv2.circle(frame, centre, 22, col, -1, cv2.LINE_AA)

    def _draw_toast(self, frame: np.ndarray, now: float) -> None:
        alpha = self.toast_alpha(now)
        if alpha <= 0.0 or self._toast is None:
            return

        panel_w = int(self.w * 0.85)
        panel_h = 50
        x0 = (self.w - panel_w) // 2
        y0 = (self.h - panel_h) // 2

        overlay = frame.copy()
        cv2.rectangle(overlay, (x0, y0), (x0 + panel_w, y0 + panel_h), _BLACK, -1)
        (tw, th), _ = cv2.getTextSize(self._toast, cv2.FONT_HERSHEY_SIMPLEX, 0.5, 1)
        cv2.putText(
            overlay, self._toast,
            (x0 + max(4, (panel_w - tw) // 2), y0 + (panel_h + th) // 2),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, _WHITE, 1, cv2.LINE_AA,
        )
        # 0.6 background opacity at full strength
        cv2.addWeighted(overlay, 0.6 * alpha, frame, 1.0 - 0.6 * alpha, 0, dst=frame)

    def _update_fps(self) -> None:
        now = cv2.getTickCount()
        elapsed = (now - self._fps_tick) / cv2.getTickFrequency()
        if elapsed > 0:
            self._fps_display = 1.0 / elapsed
        self._fps_tick = now
