"""
Active contours - snake segmentation with coupled multi-snake optimization.

This package provides parametric active contours (snakes) driven by a
weighted sum of pluggable energies:

- Internal energies (length, curvature)
- Image-based energies (intensity, gradient, distance field, gradient
  vector flow)
- Chan-Vese region fitting
- An overlap penalty that keeps coupled snakes apart

Basic Usage
-----------
>>> import activecontours as ac
>>> energies = [(ac.KassLengthEnergy(0.1), 1.0), (ac.ChanVeseRegionFitEnergy(), 1.0)]
>>> result = ac.segment_snake(image, initial_points, energies)
>>> print(result.snakes[0])

Several Objects
---------------
>>> energies.append((ac.OverlapPenaltyEnergy(rho=1.0), 1.0))
>>> result = ac.segment_snakes(image, [points_a, points_b], energies)
"""

# High-level API functions (most commonly used)
from .api import create_optimizer, segment_snake, segment_snakes

# Core types
from .types import (
    Snake, OverlapMask,
    SnakeError, EnergyInitError, EnergyUpdateError, OptimizerError,
    EnergyNormalizationMode, IntensityNormalizationMode,
    DistanceMetric, ForegroundColor, OptimizerOptions,
    SnakeStatus, SegmentationResult,
)

# Energies
from .core.energies import (
    EnergySet,
    constant_parameter, linear_ramp,
    KassLengthEnergy, KassCurvatureEnergy,
    ChanVeseRegionFitEnergy,
    OverlapPenaltyEnergy,
    IntensityEnergy, GradientEnergy, DistanceEnergy, GradientVectorFlowEnergy,
)

# Optimizers (for advanced users)
from .core.optimizers import (
    SnakeOptimizerVarCalc, SnakeOptimizerGreedy, SnakeOptimizerCoupled,
    MaxIterations, AreaDifference, SlidingAreaDifference, MotionDifference,
    ConstantStepSize, ExternalEnergyStepSize,
)

# Package metadata
__version__ = "0.1.0"

__all__ = [
    # High-level API
    'create_optimizer', 'segment_snake', 'segment_snakes',

    # Core types
    'Snake', 'OverlapMask',
    'SnakeError', 'EnergyInitError', 'EnergyUpdateError', 'OptimizerError',
    'EnergyNormalizationMode', 'IntensityNormalizationMode',
    'DistanceMetric', 'ForegroundColor', 'OptimizerOptions',
    'SnakeStatus', 'SegmentationResult',

    # Energies
    'EnergySet', 'constant_parameter', 'linear_ramp',
    'KassLengthEnergy', 'KassCurvatureEnergy',
    'ChanVeseRegionFitEnergy', 'OverlapPenaltyEnergy',
    'IntensityEnergy', 'GradientEnergy', 'DistanceEnergy', 'GradientVectorFlowEnergy',

    # Optimizers
    'SnakeOptimizerVarCalc', 'SnakeOptimizerGreedy', 'SnakeOptimizerCoupled',
    'MaxIterations', 'AreaDifference', 'SlidingAreaDifference', 'MotionDifference',
    'ConstantStepSize', 'ExternalEnergyStepSize',

    # Package info
    '__version__',
]
