"""
Severity classification
=======================
Maps the disease ratio of one plant-like region to a severity tier and a
confidence score. Bands are evaluated from most severe to least severe and
the first match wins.

Two policies are supported:

- ``fixed``: ratio > 0.15 is diseased, ratio in (0.05, 0.15] is moderate,
  anything lower yields no detection.
- ``sensitivity``: thresholds scale with the 0-100 sensitivity dial
  (t = sensitivity / 100). Ratios at or below the 0.2t noise floor yield
  no detection; above 0.4t is diseased; above 0.1t is moderate.

With ``demo_jitter`` the fixed policy labels about 30% of clean regions
"healthy", drawn from a seedable generator. Without it classification is
fully deterministic.
"""

import random
import logging
from dataclasses import dataclass, asdict
from typing import Optional

from plantcare.constants import (
    DEFAULT_SENSITIVITY,
    MIN_SENSITIVITY,
    MAX_SENSITIVITY,
    SEVERITY_DISEASED,
    SEVERITY_MODERATE,
    SEVERITY_HEALTHY
)
from plantcare.scan.profiles import POLICY_FIXED, POLICY_SENSITIVITY

logger = logging.getLogger(__name__)

# Fixed-threshold policy
FIXED_DISEASED_RATIO = 0.15
FIXED_MODERATE_RATIO = 0.05
FIXED_DISEASED_GAIN = 5
FIXED_DISEASED_CAP = 0.95
FIXED_MODERATE_GAIN = 3
FIXED_HEALTHY_CONFIDENCE = 0.9
DEMO_JITTER_THRESHOLD = 0.7

# Sensitivity-scaled policy (multipliers of t = sensitivity / 100)
NOISE_FLOOR_FACTOR = 0.2
DISEASED_FACTOR = 0.4
MODERATE_FACTOR = 0.1
SENSITIVITY_DISEASED_GAIN = 2.5
SENSITIVITY_DISEASED_CAP = 0.98
SENSITIVITY_MODERATE_GAIN = 3
HEALTHY_BASE_CONFIDENCE = 0.9
HEALTHY_PENALTY = 2


@dataclass(frozen=True)
class Classification:
    """Severity tier and confidence for one region."""

    severity: str
    confidence: float


@dataclass(frozen=True)
class Detection:
    """A classified rectangular region of one analysed frame."""

    x: int
    y: int
    width: int
    height: int
    severity: str
    confidence: float
    label: str

    def to_dict(self):
        return asdict(self)


def clamp_sensitivity(value) -> int:
    """Clamp a sensitivity value into the 0-100 range."""
    return int(max(MIN_SENSITIVITY, min(MAX_SENSITIVITY, round(float(value)))))


def _clamp_confidence(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class SeverityClassifier:
    """
    Configurable severity decision policy.

    Args:
        policy: 'fixed' or 'sensitivity'
        sensitivity: Default sensitivity dial (0-100)
        demo_jitter: Emit occasional random healthy detections (fixed policy)
        seed: Seed for the demo jitter generator
    """

    def __init__(
        self,
        policy: str = POLICY_SENSITIVITY,
        sensitivity: int = DEFAULT_SENSITIVITY,
        demo_jitter: bool = False,
        seed: Optional[int] = None
    ):
        if policy not in (POLICY_FIXED, POLICY_SENSITIVITY):
            raise ValueError(f"Unknown severity policy: {policy}")

        self.policy = policy
        self.sensitivity = sensitivity
        self.demo_jitter = demo_jitter
        self._rng = random.Random(seed)

    @property
    def sensitivity(self) -> int:
        return self._sensitivity

    @sensitivity.setter
    def sensitivity(self, value):
        self._sensitivity = clamp_sensitivity(value)

    def classify(self, disease_ratio: float, sensitivity=None) -> Optional[Classification]:
        """
        Classify one region.

        Args:
            disease_ratio: Fraction of sampled pixels matching disease colours
            sensitivity: Optional override of the configured sensitivity

        Returns:
            Classification, or None when the region should not be reported
        """
        if self.policy == POLICY_FIXED:
            return self._classify_fixed(disease_ratio)

        if sensitivity is None:
            sensitivity = self._sensitivity
        return self._classify_scaled(disease_ratio, clamp_sensitivity(sensitivity))

    def _classify_fixed(self, ratio: float) -> Optional[Classification]:
        if ratio > FIXED_DISEASED_RATIO:
            return Classification(
                SEVERITY_DISEASED,
                _clamp_confidence(min(ratio * FIXED_DISEASED_GAIN, FIXED_DISEASED_CAP))
            )
        if ratio > FIXED_MODERATE_RATIO:
            return Classification(
                SEVERITY_MODERATE,
                _clamp_confidence(ratio * FIXED_MODERATE_GAIN)
            )
        if self.demo_jitter and self._rng.random() > DEMO_JITTER_THRESHOLD:
            return Classification(SEVERITY_HEALTHY, FIXED_HEALTHY_CONFIDENCE)
        return None

    def _classify_scaled(self, ratio: float, sensitivity: int) -> Optional[Classification]:
        t = sensitivity / 100

        if ratio <= t * NOISE_FLOOR_FACTOR:
            return None

        if ratio > t * DISEASED_FACTOR:
            return Classification(
                SEVERITY_DISEASED,
                _clamp_confidence(min(ratio * SENSITIVITY_DISEASED_GAIN, SENSITIVITY_DISEASED_CAP))
            )
        if ratio > t * MODERATE_FACTOR:
            return Classification(
                SEVERITY_MODERATE,
                _clamp_confidence(ratio * SENSITIVITY_MODERATE_GAIN)
            )
        # Unreachable while the noise floor sits above the moderate band
        return Classification(
            SEVERITY_HEALTHY,
            _clamp_confidence(max(HEALTHY_BASE_CONFIDENCE - ratio * HEALTHY_PENALTY, 0))
        )
