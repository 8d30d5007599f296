"""
PlantCare AI - Live scan core
Colour-statistics region analysis, severity classification, overlay
rendering and the camera scan loop.
"""

from .profiles import ScanProfile, FIXED_PROFILE, SENSITIVITY_PROFILE, get_profile
from .classifier import Classification, Detection, SeverityClassifier
from .analyzer import ColorStatisticsAnalyzer, RegionStatistics
from .renderer import OverlayRenderer
from .camera import CameraSource, OpenCVCamera, IntervalFrameClock
from .bridge import ExternalAnalysisBridge, DiagnosisResult, split_diagnosis
from .scheduler import CaptureScheduler, ScannerState, build_scheduler

__all__ = [
    'ScanProfile',
    'FIXED_PROFILE',
    'SENSITIVITY_PROFILE',
    'get_profile',
    'Classification',
    'Detection',
    'SeverityClassifier',
    'ColorStatisticsAnalyzer',
    'RegionStatistics',
    'OverlayRenderer',
    'CameraSource',
    'OpenCVCamera',
    'IntervalFrameClock',
    'ExternalAnalysisBridge',
    'DiagnosisResult',
    'split_diagnosis',
    'CaptureScheduler',
    'ScannerState',
    'build_scheduler'
]
