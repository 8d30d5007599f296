"""
Camera sources and frame clocks
===============================
A CameraSource hands out the newest frame of an exclusively owned video
device. OpenCVCamera wraps ``cv2.VideoCapture``; tests substitute their
own sources. A frame clock paces the scan loop: it blocks until the next
display tick and reports whether the loop should keep going.
"""

import logging
import threading
from typing import Optional

import cv2
import numpy as np

from plantcare.constants import CAMERA_WIDTH, CAMERA_HEIGHT, SCAN_FPS
from plantcare.exceptions import CameraUnavailableError
from plantcare.scan.frame import frame_from_bgr

logger = logging.getLogger(__name__)


class CameraSource:
    """Base class for camera devices."""

    def open(self):
        """Acquire the device. Raises CameraUnavailableError on failure."""
        raise NotImplementedError

    def read(self) -> Optional[np.ndarray]:
        """Newest RGBA frame, or None when no frame is ready yet."""
        raise NotImplementedError

    def release(self):
        """Release the device. Safe to call more than once."""
        raise NotImplementedError

    @property
    def is_open(self) -> bool:
        raise NotImplementedError


class OpenCVCamera(CameraSource):
    """
    OpenCV video device.

    Args:
        index: Device index (the rear camera on most phones/boards is
            configured through CAMERA_INDEX)
        width: Requested frame width
        height: Requested frame height
    """

    def __init__(self, index: int = 0, width: int = CAMERA_WIDTH, height: int = CAMERA_HEIGHT):
        self.index = index
        self.width = width
        self.height = height
        self._capture = None

    def open(self):
        capture = cv2.VideoCapture(self.index)
        if not capture.isOpened():
            capture.release()
            logger.error(f"Could not open camera {self.index}")
            raise CameraUnavailableError()

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self._capture = capture

        logger.info(
            f"Camera {self.index} opened at "
            f"{int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))}x"
            f"{int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))}"
        )

    def read(self):
        if self._capture is None:
            return None

        ret, frame = self._capture.read()
        if not ret or frame is None:
            return None
        return frame_from_bgr(frame)

    def release(self):
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info(f"Camera {self.index} released")

    @property
    def is_open(self) -> bool:
        return self._capture is not None


class IntervalFrameClock:
    """Paces the scan loop at a fixed frame rate."""

    def __init__(self, fps: float = SCAN_FPS):
        self.interval = 1.0 / fps if fps > 0 else 0.0

    def wait(self, stop_event: threading.Event) -> bool:
        """
        Block until the next tick.

        Returns:
            bool: False when the loop has been asked to stop
        """
        return not stop_event.wait(self.interval)
