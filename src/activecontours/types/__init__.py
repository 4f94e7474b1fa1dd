"""
Type definitions for active contour segmentation.

Core data structures, configuration options and result types.
"""

from .core import (
    Snake,
    OverlapMask,
    SnakeError,
    EnergyInitError,
    EnergyUpdateError,
    OptimizerError,
)
from .config import (
    EnergyNormalizationMode,
    IntensityNormalizationMode,
    DistanceMetric,
    ForegroundColor,
    OptimizerOptions,
)
from .results import SnakeStatus, SegmentationResult

__all__ = [
    # Core
    'Snake', 'OverlapMask',
    'SnakeError', 'EnergyInitError', 'EnergyUpdateError', 'OptimizerError',
    # Config
    'EnergyNormalizationMode', 'IntensityNormalizationMode',
    'DistanceMetric', 'ForegroundColor', 'OptimizerOptions',
    # Results
    'SnakeStatus', 'SegmentationResult',
]
