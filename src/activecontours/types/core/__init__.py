"""
Core data structures: snakes, overlap snapshots and exceptions.
"""

from .snake import Snake
from .overlap import OverlapMask
from .exceptions import SnakeError, EnergyInitError, EnergyUpdateError, OptimizerError

__all__ = [
    'Snake', 'OverlapMask',
    'SnakeError', 'EnergyInitError', 'EnergyUpdateError', 'OptimizerError',
]
