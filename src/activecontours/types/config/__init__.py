"""
Configuration types for snake optimization.
"""

from .modes import (
    EnergyNormalizationMode,
    IntensityNormalizationMode,
    DistanceMetric,
    ForegroundColor,
)
from .optimizer_options import OptimizerOptions

__all__ = [
    'EnergyNormalizationMode', 'IntensityNormalizationMode',
    'DistanceMetric', 'ForegroundColor',
    'OptimizerOptions',
]
