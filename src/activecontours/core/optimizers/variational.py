"""
Variational single-snake optimizer.

Each iteration solves the implicit Euler step of the snake's
Euler-Lagrange equation:

    (I + Gamma * A) X_new = X - Gamma * B

where ``A`` and ``B`` are the weighted sums of all energies' matrix and
vector parts and ``X`` stacks the x and y coordinates of the snake points.
"""

import logging
from typing import Optional

import numpy as np

from ...types.config.optimizer_options import OptimizerOptions
from ...types.core.exceptions import OptimizerError
from ...types.core.overlap import OverlapMask
from ...types.core.snake import Snake
from ...types.results.segmentation_result import SnakeStatus
from .base import MIN_SNAKE_POINTS, EnergiesLike, SnakeOptimizerSingle
from .step_size import ConstantStepSize, StepSizeUpdater
from .termination import TerminationCriterion

logger = logging.getLogger(__name__)


class SnakeOptimizerVarCalc(SnakeOptimizerSingle):
    """
    Snake optimizer based on variational calculus.

    Parameters
    ----------
    energies : EnergySet or sequence of (energy, weight) pairs
        Derivable energies to minimize
    options : OptimizerOptions, optional
        Optimization settings
    termination : TerminationCriterion, optional
        Overrides ``options.termination``
    step_size : StepSizeUpdater, optional
        Overrides ``options.step_size``; constant by default
    """

    def __init__(
        self,
        energies: EnergiesLike,
        options: Optional[OptimizerOptions] = None,
        termination: Optional[TerminationCriterion] = None,
        step_size: Optional[StepSizeUpdater] = None,
    ):
        super().__init__(energies, options, termination)
        if not self.energies.all_derivable:
            raise TypeError("The variational optimizer needs derivable energies only")
        if step_size is None:
            step_size = self.options.step_size
        if step_size is None:
            step_size = ConstantStepSize()
        self.step_size = step_size
        self.gamma: Optional[np.ndarray] = None
        self.last_matrix: Optional[np.ndarray] = None

    def compute_scale_factor(self) -> float:
        return float(max(self.width, self.height))

    def clone(self) -> "SnakeOptimizerVarCalc":
        return SnakeOptimizerVarCalc(
            self.energies.copy(),
            options=self.options,
            termination=self.termination.copy(),
            step_size=self.step_size.copy(),
        )

    def initialize(self, image, snake, exclude_mask=None) -> None:
        super().initialize(image, snake, exclude_mask)
        self.gamma = np.full(2 * self.snake.num_points, self.options.initial_gamma)
        if not self.step_size.init(self):
            raise OptimizerError(f"Step size updater could not be initialized: {self.step_size}")

    def assemble_system(self, overlap: Optional[OverlapMask] = None):
        """
        Update all energies and sum their weighted derivative parts.

        Returns
        -------
        A : np.ndarray
            ``2P x 2P`` system matrix
        B : np.ndarray
            Right-hand side of length ``2P``
        """
        size = 2 * self.snake.num_points
        A = np.zeros((size, size))
        B = np.zeros(size)
        for energy, weight in zip(self.energies.energies, self.weights):
            energy.update_status(self, overlap)
            matrix = energy.get_matrix_part(self, overlap)
            if matrix is not None:
                A += weight * matrix
            vector = energy.get_vector_part(self, overlap)
            if vector is not None:
                B += weight * vector
        return A, B

    def iterate(self, overlap: Optional[OverlapMask] = None) -> SnakeStatus:
        if self.snake.num_points <= MIN_SNAKE_POINTS:
            return SnakeStatus.FAIL

        self.iteration += 1
        self.previous_snake = self.snake.copy()
        n = self.snake.num_points

        A, B = self.assemble_system(overlap)
        if self.options.sample_energy_data:
            self.calc_snake_energy(overlap)

        gamma = self.gamma
        if gamma.size != 2 * n:
            gamma = np.full(2 * n, self.options.initial_gamma)
        H = np.eye(2 * n) + gamma[:, np.newaxis] * A
        X = np.concatenate([self.snake.x, self.snake.y])
        try:
            X_new = np.linalg.solve(H, X - gamma * B)
        except np.linalg.LinAlgError as exc:
            raise OptimizerError(f"Snake update failed in iteration {self.iteration}: {exc}") from exc
        self.last_matrix = A

        self.snake = Snake(
            np.column_stack((X_new[:n], X_new[n:])),
            scale_factor=self.scale_factor,
            normalized=True,
        )
        if not self.snake.is_simple():
            logger.debug("Snake is not simple, repairing it")
            self.snake.make_simple()
        self.enforce_ccw()
        if self.options.resample and self.iteration % 2 == 0:
            self.resample_snake()
        if self.snake.num_points <= MIN_SNAKE_POINTS:
            logger.warning("Snake collapsed to %d points", self.snake.num_points)
            return SnakeStatus.FAIL
        self.snake.clip_to_image(self.width, self.height)

        self.gamma = self.step_size.adapt(self.gamma)
        status = self.termination.check()
        logger.debug("Iteration %d: %d points, status %s", self.iteration, self.snake.num_points, status)
        return status
