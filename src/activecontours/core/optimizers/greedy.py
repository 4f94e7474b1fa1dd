"""
Greedy single-snake optimizer.

Every iteration visits the snake points in order and moves each one to the
position in its 3x3 pixel neighborhood with the lowest total energy.
"""

import logging
from typing import Optional

import numpy as np

from ...types.config.modes import EnergyNormalizationMode
from ...types.config.optimizer_options import OptimizerOptions
from ...types.core.overlap import OverlapMask
from ...types.results.segmentation_result import SnakeStatus
from .base import MIN_SNAKE_POINTS, SnakeOptimizerSingle

logger = logging.getLogger(__name__)

# The current position comes first so that ties keep the point in place
NEIGHBORHOOD = tuple(
    [(0, 0)] + [(dx, dy) for dy in (-1, 0, 1) for dx in (-1, 0, 1) if (dx, dy) != (0, 0)]
)


class SnakeOptimizerGreedy(SnakeOptimizerSingle):
    """
    Snake optimizer moving one point at a time to its best neighbor pixel.

    Works with any energy, derivable or not, and keeps the snake in pixel
    coordinates.
    """

    @classmethod
    def default_options(cls) -> OptimizerOptions:
        return OptimizerOptions.greedy_defaults()

    @property
    def normalization_mode(self) -> EnergyNormalizationMode:
        """Greedy search compares raw energy values, so energies are never rescaled."""
        return EnergyNormalizationMode.NONE

    def compute_scale_factor(self) -> float:
        return 1.0

    def clone(self) -> "SnakeOptimizerGreedy":
        return SnakeOptimizerGreedy(
            self.energies.copy(),
            options=self.options,
            termination=self.termination.copy(),
        )

    def _evaluate(self, overlap: Optional[OverlapMask]) -> float:
        current = self._request_overlap(overlap)
        self.update_energies(current)
        return self.calc_snake_energy(current, record=False)

    def _inside(self, x: float, y: float) -> bool:
        return 0 <= x <= self.width - 1 and 0 <= y <= self.height - 1

    def iterate(self, overlap: Optional[OverlapMask] = None) -> SnakeStatus:
        if self.snake.num_points <= MIN_SNAKE_POINTS:
            return SnakeStatus.FAIL

        self.iteration += 1
        self.previous_snake = self.snake.copy()
        self.snake.old_ids = np.arange(self.snake.num_points)

        moved = 0
        points = self.snake.points
        for i in range(self.snake.num_points):
            origin = points[i].copy()
            best_energy = None
            best_offset = (0, 0)
            for dx, dy in NEIGHBORHOOD:
                x, y = origin[0] + dx, origin[1] + dy
                if not self._inside(x, y):
                    continue
                points[i] = (x, y)
                energy = self._evaluate(overlap)
                if best_energy is None or energy < best_energy:
                    best_energy = energy
                    best_offset = (dx, dy)
            points[i] = origin + best_offset
            if best_offset != (0, 0):
                moved += 1

        if moved == 0:
            logger.debug("No snake point moved in iteration %d", self.iteration)
            return SnakeStatus.DONE

        if self.options.sample_energy_data:
            current = self._request_overlap(overlap)
            self.update_energies(current)
            self.calc_snake_energy(current)

        self.enforce_ccw()
        if self.options.resample and self.iteration % 2 == 0:
            self.resample_snake()
        if self.snake.num_points <= MIN_SNAKE_POINTS:
            logger.warning("Snake collapsed to %d points", self.snake.num_points)
            return SnakeStatus.FAIL
        self.snake.clip_to_image(self.width, self.height)

        status = self.termination.check()
        logger.debug("Iteration %d: %d of %d points moved", self.iteration, moved, self.snake.num_points)
        return status
