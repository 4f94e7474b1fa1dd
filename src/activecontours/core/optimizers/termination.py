"""
Termination criteria for snake optimizers.

A criterion is initialized with the optimizer it observes and is asked for
a status after every iteration.
"""

from abc import ABC, abstractmethod
from collections import deque

import numpy as np

from ...types.results.segmentation_result import SnakeStatus


class TerminationCriterion(ABC):
    """Decides after each iteration whether the optimization is done."""

    def __init__(self):
        self.optimizer = None

    def init(self, optimizer) -> bool:
        self.optimizer = optimizer
        return True

    @abstractmethod
    def check(self) -> SnakeStatus:
        """Status after the optimizer's latest iteration."""
        pass

    @abstractmethod
    def copy(self) -> "TerminationCriterion":
        """Fresh, uninitialized criterion with the same parameters."""
        pass

    def _snake_area(self, snake) -> int:
        return int(np.count_nonzero(
            snake.binary_mask(self.optimizer.width, self.optimizer.height)
        ))


class MaxIterations(TerminationCriterion):
    """Stop after a fixed number of iterations."""

    def __init__(self, max_iterations: int = 100):
        super().__init__()
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
        self.max_iterations = max_iterations

    def check(self) -> SnakeStatus:
        if self.optimizer.iteration >= self.max_iterations:
            return SnakeStatus.DONE
        return SnakeStatus.SUCCESS

    def copy(self) -> "MaxIterations":
        return MaxIterations(self.max_iterations)

    def __repr__(self) -> str:
        return f"MaxIterations(max_iterations={self.max_iterations})"


class AreaDifference(TerminationCriterion):
    """
    Stop when the snake area barely changes between two iterations.

    Parameters
    ----------
    fraction : float, default 0.001
        Relative area change below which the snake is considered converged
    max_iterations : int, default 100
        Iteration limit
    """

    def __init__(self, fraction: float = 0.001, max_iterations: int = 100):
        super().__init__()
        self.fraction = fraction
        self.max_iterations = max_iterations

    def check(self) -> SnakeStatus:
        opt = self.optimizer
        if opt.iteration > self.max_iterations:
            return SnakeStatus.DONE
        if opt.previous_snake is None:
            return SnakeStatus.SUCCESS
        old_area = self._snake_area(opt.previous_snake)
        new_area = self._snake_area(opt.snake)
        if old_area == 0:
            return SnakeStatus.DONE if new_area == 0 else SnakeStatus.SUCCESS
        if abs(1.0 - new_area / old_area) < self.fraction:
            return SnakeStatus.DONE
        return SnakeStatus.SUCCESS

    def copy(self) -> "AreaDifference":
        return AreaDifference(self.fraction, self.max_iterations)

    def __repr__(self) -> str:
        return f"AreaDifference(fraction={self.fraction}, max_iterations={self.max_iterations})"


class SlidingAreaDifference(TerminationCriterion):
    """
    Stop when the smoothed snake area stagnates.

    Areas are averaged over a sliding window; the optimization is done once
    the current mean differs from the mean ``offset`` iterations earlier by
    less than ``fraction`` relative to the earlier mean.

    Parameters
    ----------
    fraction : float, default 0.001
        Relative change threshold
    window : int, default 11
        Number of areas averaged
    offset : int, default 10
        Distance in iterations between the compared means
    """

    def __init__(self, fraction: float = 0.001, window: int = 11, offset: int = 10):
        super().__init__()
        if window < 1 or offset < 1:
            raise ValueError(f"window and offset must be positive, got {window}, {offset}")
        self.fraction = fraction
        self.window = window
        self.offset = offset
        self._areas = deque(maxlen=window)
        self._means = deque(maxlen=offset + 1)

    def init(self, optimizer) -> bool:
        self._areas.clear()
        self._means.clear()
        return super().init(optimizer)

    def check(self) -> SnakeStatus:
        self._areas.append(self._snake_area(self.optimizer.snake))
        if len(self._areas) < self.window:
            return SnakeStatus.SUCCESS
        self._means.append(float(np.mean(self._areas)))
        if len(self._means) < self.offset + 1:
            return SnakeStatus.SUCCESS

        earlier, current = self._means[0], self._means[-1]
        if earlier == 0:
            return SnakeStatus.DONE if current == 0 else SnakeStatus.SUCCESS
        if abs(current - earlier) / earlier < self.fraction:
            return SnakeStatus.DONE
        return SnakeStatus.SUCCESS

    def copy(self) -> "SlidingAreaDifference":
        return SlidingAreaDifference(self.fraction, self.window, self.offset)

    def __repr__(self) -> str:
        return (
            f"SlidingAreaDifference(fraction={self.fraction}, "
            f"window={self.window}, offset={self.offset})"
        )


class MotionDifference(TerminationCriterion):
    """
    Stop when most snake points have stopped moving.

    Points are matched to their position before the last iteration via
    their old ids; newly inserted points count as moving.

    Parameters
    ----------
    fraction : float, default 0.05
        Fraction of resting points at which the snake is done
    max_iterations : int, default 100
        Iteration limit
    epsilon : float, default 1e-10
        Movement in pixels below which a point is resting
    """

    def __init__(self, fraction: float = 0.05, max_iterations: int = 100, epsilon: float = 1e-10):
        super().__init__()
        self.fraction = fraction
        self.max_iterations = max_iterations
        self.epsilon = epsilon

    def resting_fraction(self) -> float:
        opt = self.optimizer
        current = opt.snake.pixel_points()
        previous = opt.previous_snake.pixel_points()
        ids = opt.snake.old_ids
        valid = (ids >= 0) & (ids < len(previous))
        moves = np.hypot(*(current[valid] - previous[ids[valid]]).T)
        return np.count_nonzero(moves < self.epsilon) / opt.snake.num_points

    def check(self) -> SnakeStatus:
        opt = self.optimizer
        if opt.iteration > self.max_iterations:
            return SnakeStatus.DONE
        if opt.previous_snake is None:
            return SnakeStatus.SUCCESS
        if self.resting_fraction() >= self.fraction:
            return SnakeStatus.DONE
        return SnakeStatus.SUCCESS

    def copy(self) -> "MotionDifference":
        return MotionDifference(self.fraction, self.max_iterations, self.epsilon)

    def __repr__(self) -> str:
        return (
            f"MotionDifference(fraction={self.fraction}, "
            f"max_iterations={self.max_iterations})"
        )
