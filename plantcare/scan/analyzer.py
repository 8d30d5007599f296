"""
Colour-statistics analyzer
==========================
Tiles a frame into square blocks, samples each block on a fixed stride and
collects average colour plus yellow / brown / dark pixel counts. Blocks
that look like plant material (green dominant and bright enough) are passed
to the SeverityClassifier; everything else is treated as background.

Only blocks that fit entirely inside the frame are scanned; trailing
partial blocks on the right and bottom edges are skipped. Detections are
returned in row-major order (left to right, top to bottom).
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from plantcare.constants import DEFAULT_LANGUAGE, get_severity_label
from plantcare.scan.classifier import Detection, SeverityClassifier
from plantcare.scan.profiles import ScanProfile, SENSITIVITY_PROFILE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionStatistics:
    """Sampled colour statistics of one grid block."""

    x: int
    y: int
    size: int
    avg_red: float
    avg_green: float
    avg_blue: float
    yellow_count: int
    brown_count: int
    dark_count: int
    sampled_count: int

    @property
    def disease_ratio(self) -> float:
        if self.sampled_count == 0:
            return 0.0
        return (self.yellow_count + self.brown_count + self.dark_count) / self.sampled_count

    def is_plant_like(self, profile: ScanProfile) -> bool:
        """Green-dominance gate: only these blocks are classified."""
        return (
            self.avg_green > self.avg_red * profile.green_margin
            and self.avg_green > self.avg_blue
            and self.avg_green > profile.brightness_floor
        )


class ColorStatisticsAnalyzer:
    """
    Grid-scan analyzer for one frame.

    Args:
        profile: ScanProfile with the grid geometry and colour heuristics
        classifier: SeverityClassifier (built from the profile policy if None)
        language: Language of detection labels ('en' or 'kn')
    """

    def __init__(
        self,
        profile: ScanProfile = SENSITIVITY_PROFILE,
        classifier: Optional[SeverityClassifier] = None,
        language: str = DEFAULT_LANGUAGE
    ):
        self.profile = profile
        self.classifier = classifier or SeverityClassifier(policy=profile.policy)
        self.language = language

    def region_statistics(self, frame, grid_size=None, sampling_stride=None) -> List[RegionStatistics]:
        """
        Compute statistics for every block that fits inside the frame.

        Returns an empty list for empty, malformed or too-small frames.
        """
        grid_size = int(grid_size or self.profile.grid_size)
        stride = int(sampling_stride or self.profile.sampling_stride)
        if grid_size < 1 or stride < 1:
            raise ValueError("grid_size and sampling_stride must be positive")

        pixels = _as_pixels(frame)
        if pixels is None:
            return []

        height, width = pixels.shape[:2]
        rows = height // grid_size
        cols = width // grid_size
        if rows == 0 or cols == 0:
            return []

        offsets = np.arange(0, grid_size, stride)
        n = len(offsets)
        ys = (np.arange(rows)[:, None] * grid_size + offsets[None, :]).ravel()
        xs = (np.arange(cols)[:, None] * grid_size + offsets[None, :]).ravel()

        # (rows, n, cols, n, 3): sampled pixels grouped per block
        samples = pixels[np.ix_(ys, xs)].reshape(rows, n, cols, n, 3)
        red = samples[..., 0]
        green = samples[..., 1]
        blue = samples[..., 2]

        p = self.profile
        yellow = (red > p.yellow_min_red) & (green > p.yellow_min_green) & (blue < p.yellow_max_blue)
        brown = (
            (red > p.brown_red[0]) & (red < p.brown_red[1])
            & (green > p.brown_green[0]) & (green < p.brown_green[1])
            & (blue < p.brown_max_blue)
        )
        if p.count_dark_spots:
            dark = (red < p.dark_max) & (green < p.dark_max) & (blue < p.dark_max)
            dark_counts = dark.sum(axis=(1, 3))
        else:
            dark_counts = np.zeros((rows, cols), dtype=np.int64)

        sampled = n * n
        means = samples.sum(axis=(1, 3)) / sampled
        yellow_counts = yellow.sum(axis=(1, 3))
        brown_counts = brown.sum(axis=(1, 3))

        stats = []
        for row in range(rows):
            for col in range(cols):
                stats.append(RegionStatistics(
                    x=col * grid_size,
                    y=row * grid_size,
                    size=grid_size,
                    avg_red=float(means[row, col, 0]),
                    avg_green=float(means[row, col, 1]),
                    avg_blue=float(means[row, col, 2]),
                    yellow_count=int(yellow_counts[row, col]),
                    brown_count=int(brown_counts[row, col]),
                    dark_count=int(dark_counts[row, col]),
                    sampled_count=sampled
                ))
        return stats

    def analyze(self, frame, grid_size=None, sampling_stride=None,
                sensitivity=None, language=None) -> List[Detection]:
        """
        Classify the plant-like blocks of a frame.

        Args:
            frame: H x W x 3/4 uint8 pixel array
            grid_size: Block size override
            sampling_stride: Sampling stride override
            sensitivity: Sensitivity override for this call
            language: Label language override

        Returns:
            list: Detection objects, row-major
        """
        language = language or self.language
        detections = []

        for region in self.region_statistics(frame, grid_size, sampling_stride):
            if not region.is_plant_like(self.profile):
                continue

            result = self.classifier.classify(region.disease_ratio, sensitivity)
            if result is None:
                continue

            detections.append(Detection(
                x=region.x,
                y=region.y,
                width=region.size,
                height=region.size,
                severity=result.severity,
                confidence=result.confidence,
                label=get_severity_label(result.severity, language)
            ))

        return detections


def _as_pixels(frame) -> Optional[np.ndarray]:
    """RGB int32 view of a frame, or None when it cannot be analysed."""
    if frame is None:
        return None

    try:
        array = np.asarray(frame)
    except (TypeError, ValueError):
        return None

    if array.ndim != 3 or array.shape[2] < 3 or array.size == 0:
        return None
    if not np.issubdtype(array.dtype, np.number):
        return None

    return array[:, :, :3].astype(np.int32, copy=False)
