"""
Overlay renderer
================
Paints detections onto a transparent RGBA surface aligned with the source
frame: translucent fill, opaque border and an optional label chip above
each box. The surface is cleared and resized to the source dimensions on
every pass, so nothing accumulates across ticks.
"""

import logging
import threading
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from plantcare.constants import (
    SEVERITY_COLORS,
    NEUTRAL_COLOR,
    get_severity_label
)

logger = logging.getLogger(__name__)

FONT = cv2.FONT_HERSHEY_SIMPLEX
FONT_SCALE = 0.6
FONT_THICKNESS = 2
CHIP_PADDING = 5


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    """'#EF4444' -> (239, 68, 68)"""
    color = color.lstrip('#')
    return tuple(int(color[i:i + 2], 16) for i in (0, 2, 4))


def format_chip_text(label: str, confidence: float) -> str:
    """Label chip text, confidence rounded half up to a whole percent."""
    return f"{label} {int(confidence * 100 + 0.5)}%"


class OverlayRenderer:
    """
    Draws detections on an RGBA numpy surface.

    Args:
        fill_alpha: Opacity of the box fill (0.2 - 0.25)
        border_width: Border thickness in pixels
        show_confidence: Draw the label chip
        color_coding: Use severity colours (neutral blue otherwise)
        show_boxes: Draw anything at all
    """

    def __init__(
        self,
        fill_alpha: float = 0.2,
        border_width: int = 3,
        show_confidence: bool = True,
        color_coding: bool = True,
        show_boxes: bool = True
    ):
        self.fill_alpha = fill_alpha
        self.border_width = border_width
        self.show_confidence = show_confidence
        self.color_coding = color_coding
        self.show_boxes = show_boxes

        self.surface: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    # =========================================================================
    # Surface lifecycle
    # =========================================================================

    def attach(self, size: Tuple[int, int] = (1, 1)):
        """Create a blank drawing surface of (width, height)."""
        width, height = size
        with self._lock:
            self.surface = np.zeros((height, width, 4), dtype=np.uint8)

    def detach(self):
        with self._lock:
            self.surface = None

    @property
    def attached(self) -> bool:
        return self.surface is not None

    def clear(self):
        with self._lock:
            if self.surface is not None:
                self.surface.fill(0)

    # =========================================================================
    # Drawing
    # =========================================================================

    def render(self, detections: Sequence, target_size: Tuple[int, int]):
        """
        Draw detections in order onto a surface sized (width, height).

        Silently does nothing while no surface is attached.
        """
        with self._lock:
            if self.surface is None:
                return

            width, height = target_size
            if self.surface.shape[:2] != (height, width):
                self.surface = np.zeros((height, width, 4), dtype=np.uint8)
            else:
                self.surface.fill(0)

            if not self.show_boxes:
                return

            for detection in detections:
                self._draw_detection(detection)

    def _color_for(self, severity: str) -> Tuple[int, int, int]:
        if not self.color_coding:
            return hex_to_rgb(NEUTRAL_COLOR)
        return hex_to_rgb(SEVERITY_COLORS.get(severity, NEUTRAL_COLOR))

    def _draw_detection(self, detection):
        r, g, b = self._color_for(detection.severity)
        x, y = int(detection.x), int(detection.y)
        x2 = x + int(detection.width) - 1
        y2 = y + int(detection.height) - 1

        fill = (r, g, b, int(round(self.fill_alpha * 255)))
        cv2.rectangle(self.surface, (x, y), (x2, y2), fill, thickness=-1)
        cv2.rectangle(self.surface, (x, y), (x2, y2), (r, g, b, 255),
                      thickness=self.border_width)

        if self.show_confidence:
            self._draw_chip(detection, x, y, (r, g, b, 255))

    def _draw_chip(self, detection, x, y, color):
        label = detection.label
        # Hershey fonts only cover ASCII
        if not label.isascii():
            label = get_severity_label(detection.severity, 'en')

        text = format_chip_text(label, detection.confidence)
        (text_width, text_height), baseline = cv2.getTextSize(
            text, FONT, FONT_SCALE, FONT_THICKNESS
        )
        chip_height = text_height + baseline + 2 * CHIP_PADDING
        chip_top = max(y - chip_height, 0)

        cv2.rectangle(
            self.surface,
            (x, chip_top),
            (x + text_width + 2 * CHIP_PADDING, chip_top + chip_height),
            color,
            thickness=-1
        )
        cv2.putText(
            self.surface,
            text,
            (x + CHIP_PADDING, chip_top + CHIP_PADDING + text_height),
            FONT,
            FONT_SCALE,
            (255, 255, 255, 255),
            FONT_THICKNESS,
            cv2.LINE_AA
        )

    # =========================================================================
    # Output
    # =========================================================================

    def snapshot(self) -> Optional[np.ndarray]:
        """Copy of the current surface (None when detached)."""
        with self._lock:
            return None if self.surface is None else self.surface.copy()

    def composite(self, frame: np.ndarray) -> np.ndarray:
        """Alpha-blend the overlay onto an RGB/RGBA frame; returns RGB uint8."""
        base = np.asarray(frame)[:, :, :3].astype(np.float32)
        overlay = self.snapshot()
        if overlay is None or overlay.shape[:2] != base.shape[:2]:
            return base.astype(np.uint8)

        alpha = overlay[:, :, 3:4].astype(np.float32) / 255.0
        blended = base * (1.0 - alpha) + overlay[:, :, :3].astype(np.float32) * alpha
        return np.clip(blended + 0.5, 0, 255).astype(np.uint8)

    def to_png(self) -> Optional[bytes]:
        """PNG bytes of the surface (None when detached)."""
        overlay = self.snapshot()
        if overlay is None:
            return None

        ok, buffer = cv2.imencode('.png', cv2.cvtColor(overlay, cv2.COLOR_RGBA2BGRA))
        if not ok:
            logger.warning("Overlay PNG encoding failed")
            return None
        return buffer.tobytes()
