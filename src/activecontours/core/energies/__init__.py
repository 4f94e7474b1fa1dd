"""
Snake energy terms.

Internal energies (length, curvature), the Chan-Vese region fit, the
overlap penalty for coupled snakes and image-based external energies.
"""

from .base import (
    EPSILON,
    TARGET_ENERGY_RANGE,
    EnergyCapabilities,
    SnakeEnergy,
    DerivableSnakeEnergy,
    EnergySet,
)
from .parameters import ParameterAdapter, constant_parameter, linear_ramp
from .internal import KassLengthEnergy, KassCurvatureEnergy
from .region_fit import ChanVeseRegionFitEnergy
from .overlap_penalty import OverlapPenaltyEnergy
from .image_based import (
    ImageBasedEnergy,
    IntensityEnergy,
    GradientEnergy,
    DistanceEnergy,
    GradientVectorFlowEnergy,
)

__all__ = [
    'EPSILON', 'TARGET_ENERGY_RANGE',
    'EnergyCapabilities', 'SnakeEnergy', 'DerivableSnakeEnergy', 'EnergySet',
    'ParameterAdapter', 'constant_parameter', 'linear_ramp',
    'KassLengthEnergy', 'KassCurvatureEnergy',
    'ChanVeseRegionFitEnergy',
    'OverlapPenaltyEnergy',
    'ImageBasedEnergy', 'IntensityEnergy', 'GradientEnergy',
    'DistanceEnergy', 'GradientVectorFlowEnergy',
]
