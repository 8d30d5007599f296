"""
Scan profiles
=============
Named calibrations for the colour-statistics scan. Each profile bundles
the grid geometry, the colour heuristics, the plant-material gate and the
severity policy, so callers pick a profile by name instead of carrying
their own copy of the thresholds.
"""

from dataclasses import dataclass, replace
from typing import Tuple

POLICY_FIXED = 'fixed'
POLICY_SENSITIVITY = 'sensitivity'


@dataclass(frozen=True)
class ScanProfile:
    """Configuration of one analyzer/classifier calibration."""

    name: str
    policy: str
    grid_size: int
    sampling_stride: int

    # Plant-material gate: avgG > avgR * green_margin, avgG > avgB,
    # avgG > brightness_floor
    green_margin: float = 1.0
    brightness_floor: float = 50

    # Yellow: R > 150, G > 120, B < 100
    yellow_min_red: int = 150
    yellow_min_green: int = 120
    yellow_max_blue: int = 100

    # Brown: lo < R < hi, lo < G < hi, B < max
    brown_red: Tuple[int, int] = (100, 150)
    brown_green: Tuple[int, int] = (80, 130)
    brown_max_blue: int = 80

    # Dark spots: R, G, B all below the limit
    count_dark_spots: bool = False
    dark_max: int = 60

    # Overlay style
    fill_alpha: float = 0.2
    border_width: int = 3

    def with_overrides(self, **overrides):
        """Copy of the profile with some fields replaced (None values ignored)."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values) if values else self


# Live AR page: every pixel of 80x80 blocks, fixed thresholds
FIXED_PROFILE = ScanProfile(
    name=POLICY_FIXED,
    policy=POLICY_FIXED,
    grid_size=80,
    sampling_stride=1,
    green_margin=1.0,
    brightness_floor=50,
    brown_red=(100, 150),
    brown_green=(80, 130),
    count_dark_spots=False,
    fill_alpha=0.2,
    border_width=3
)

# Plant-scan page: every 2nd pixel of 100x100 blocks, sensitivity dial
SENSITIVITY_PROFILE = ScanProfile(
    name=POLICY_SENSITIVITY,
    policy=POLICY_SENSITIVITY,
    grid_size=100,
    sampling_stride=2,
    green_margin=1.1,
    brightness_floor=40,
    brown_red=(80, 140),
    brown_green=(60, 120),
    count_dark_spots=True,
    fill_alpha=0.25,
    border_width=4
)

PROFILES = {
    FIXED_PROFILE.name: FIXED_PROFILE,
    SENSITIVITY_PROFILE.name: SENSITIVITY_PROFILE
}


def get_profile(name: str) -> ScanProfile:
    """Look up a profile by name; raises ValueError for unknown names."""
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(
            f"Unknown scan profile '{name}'. Available: {', '.join(sorted(PROFILES))}"
        ) from None
