"""
Enumerations selecting normalization and distance-transform behavior.
"""

from enum import Enum


class EnergyNormalizationMode(Enum):
    """How energy derivatives are scaled before they are combined."""
    NONE = "none"
    BALANCED_DERIVATIVES = "balanced_derivatives"


class IntensityNormalizationMode(Enum):
    """How the input image is mapped to the working image."""
    NONE = "none"
    TRUE_RANGE = "true_range"  # image min/max
    THEORETIC_RANGE = "theoretic_range"  # dtype min/max


class DistanceMetric(Enum):
    """Metric used by the distance-field energy."""
    EUCLIDEAN = "euclidean"
    CHESSBOARD = "chessboard"
    CITYBLOCK = "cityblock"


class ForegroundColor(Enum):
    """Which binary value marks foreground pixels."""
    BLACK = "black"
    WHITE = "white"
