#!/usr/bin/env python3
"""
Face Capture Gate – main entry point.

Usage
-----
    python main.py [OPTIONS]

Options
-------
    --resolution WxH       Camera resolution (default: 640x480)
    --fps INT              Target frame rate (default: 30)
    --camera-index INT     OpenCV camera index (fallback, default: 0)
    --no-flip              Disable horizontal mirror
    --min-overlap FLOAT    Minimum face/frame overlap in percent (default: 18)
    --min-luminosity FLOAT Minimum luminosity estimate (default: 4)
    --f-number FLOAT       Lens aperture reported with each frame (default: 1.8)
    --output-dir PATH      Where captured images are written (default: .)
    --auto-capture         Capture once each time the gate becomes ready
    --headless             Run without display window (log decisions only;
                           combine with --auto-capture to save images)

Keyboard shortcuts (when a window is open)
------------------------------------------
    space / c  – capture (only while the gate allows it)
    q / ESC    – quit
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import os
os.environ.setdefault("QT_QPA_PLATFORM", "xcb")

import cv2
import numpy as np

from capture_gate.camera import CaptureCamera
from capture_gate.evaluator import CaptureReadinessEvaluator
from capture_gate.face_detector import FaceDetector
from capture_gate.session import CaptureSession
from capture_gate.visualizer import Visualizer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("capture_gate")

WINDOW = "Face Capture"


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Camera capture gated on face framing and scene light",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--resolution", default="640x480",
                        help="Camera resolution, e.g. 640x480")
    parser.add_argument("--fps", type=int, default=30,
                        help="Target capture frame rate")
    parser.add_argument("--camera-index", type=int, default=0,
                        help="OpenCV VideoCapture index (fallback)")
    parser.add_argument("--no-flip", action="store_true",
                        help="Disable horizontal image flip")
    parser.add_argument("--min-overlap", type=float, default=18.0,
                        help="Minimum face/frame overlap in percent")
    parser.add_argument("--min-luminosity", type=float, default=4.0,
                        help="Minimum luminosity estimate")
    parser.add_argument("--f-number", type=float, default=1.8,
                        help="Lens aperture reported with each frame")
    parser.add_argument("--output-dir", type=Path, default=Path("."),
                        help="Directory for captured images")
    parser.add_argument("--auto-capture", action="store_true",
                        help="Capture once each time the gate becomes ready")
    parser.add_argument("--headless", action="store_true",
                        help="No display window; without --auto-capture nothing is "
                             "ever captured")
    return parser.parse_args(argv)


def save_capture(output_dir: Path):
    """Return a capture callback that writes each image as PNG."""
    def _save(image: np.ndarray) -> None:
        output_dir.mkdir(parents=True, exist_ok=True)
        fname = output_dir / f"capture_{int(time.time() * 1000)}.png"
        if not cv2.imwrite(str(fname), image):
            logger.error("Could not write %s", fname)
            return
        logger.info("Saved capture: %s", fname)
    return _save


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    try:
        res_w, res_h = (int(v) for v in args.resolution.lower().split("x"))
    except ValueError:
        logger.error("Invalid --resolution format.  Use WxH, e.g. 640x480.")
        return 1

    resolution = (res_w, res_h)

    camera = CaptureCamera(
        resolution=resolution,
        fps=args.fps,
        flip_horizontal=not args.no_flip,
        camera_index=args.camera_index,
        f_number=args.f_number,
    )
    try:
        detector = FaceDetector()
    except RuntimeError as exc:
        logger.error("%s", exc)
        return 1
    evaluator = CaptureReadinessEvaluator(
        min_overlap_percent=args.min_overlap,
        min_luminosity=args.min_luminosity,
    )
    logger.info("Starting face capture.  Press SPACE to capture, 'q' or ESC to quit.")

    if not args.headless:
        cv2.namedWindow(WINDOW, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(WINDOW, res_w, res_h)

    try:
        with camera:
            session = None
            for frame, exposure in camera.frames():
                if session is None:
                    # frame size may differ from the requested resolution
                    fh, fw = frame.shape[:2]
                    session = CaptureSession.for_resolution(
                        (fw, fh),
                        on_capture=save_capture(args.output_dir),
                        evaluator=evaluator,
                    )
                    vis = Visualizer(resolution=(fw, fh))

                faces = detector.detect(frame)
                decision = session.process(faces, exposure)
                if args.auto_capture and session.just_enabled:
                    session.capture(frame)

                if args.headless:
                    continue

                clean = frame.copy()
                annotated = vis.draw(frame, decision, faces)
                cv2.imshow(WINDOW, annotated)
                key = cv2.waitKey(1) & 0xFF
                if key in (ord("q"), 27):          # q or ESC
                    logger.info("Quit requested by user.")
                    break
                elif key in (ord(" "), ord("c")):
                    session.capture(clean)

    except KeyboardInterrupt:
        logger.info("Interrupted.")
    except RuntimeError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        if not args.headless:
            cv2.destroyAllWindows()

    return 0


def main(argv: list[str] | None = None) -> int:
    return run(parse_args(argv))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
