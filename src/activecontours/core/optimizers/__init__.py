"""
Snake optimizers.

Single-snake optimizers (variational and greedy), the coupled multi-snake
optimizer, termination criteria and step size strategies.
"""

from .base import MIN_SNAKE_POINTS, SnakeOptimizerSingle
from .variational import SnakeOptimizerVarCalc
from .greedy import SnakeOptimizerGreedy
from .coupled import SnakeOptimizerCoupled
from .termination import (
    TerminationCriterion,
    MaxIterations,
    AreaDifference,
    SlidingAreaDifference,
    MotionDifference,
)
from .step_size import StepSizeUpdater, ConstantStepSize, ExternalEnergyStepSize

__all__ = [
    'MIN_SNAKE_POINTS', 'SnakeOptimizerSingle',
    'SnakeOptimizerVarCalc', 'SnakeOptimizerGreedy', 'SnakeOptimizerCoupled',
    'TerminationCriterion', 'MaxIterations', 'AreaDifference',
    'SlidingAreaDifference', 'MotionDifference',
    'StepSizeUpdater', 'ConstantStepSize', 'ExternalEnergyStepSize',
]
