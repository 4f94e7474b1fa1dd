"""
Internal smoothness energies after Kass, Witkin and Terzopoulos.

The length energy penalizes first-order differences of the snake, the
curvature energy second-order differences. Both contribute a
block-diagonal circulant matrix to the linear system and no vector part.
"""

import logging
from typing import Optional

import numpy as np

from ...types.config.modes import EnergyNormalizationMode
from ...types.core.exceptions import EnergyUpdateError
from ...types.core.overlap import OverlapMask
from ..algorithms.finite_differences import block_diagonal, circulant_stencil
from .base import EPSILON, DerivableSnakeEnergy, EnergyCapabilities
from .parameters import ParameterAdapter, constant_parameter

logger = logging.getLogger(__name__)


def expand_weights(weights, num_points: int, label: str) -> np.ndarray:
    """
    Expand weights to one value per snake point.

    A single value is broadcast; any other length must match the point
    count exactly.
    """
    weights = np.atleast_1d(np.asarray(weights, dtype=float))
    if not np.all(np.isfinite(weights)):
        raise EnergyUpdateError(f"{label} weights contain non-finite values")
    if weights.size == 1:
        return np.full(num_points, weights[0])
    if weights.size != num_points:
        raise ValueError(
            f"{label} has {weights.size} weights but the snake has {num_points} points"
        )
    return weights.copy()


class _KassEnergy(DerivableSnakeEnergy):
    """Shared weight handling of the length and curvature energies."""

    capabilities = EnergyCapabilities(has_matrix=True)

    # stencil of the matrix rows and bound factor of the derivative
    OFFSETS = ()
    COEFFICIENTS = ()
    DERIVATIVE_BOUND = 1.0

    def __init__(self, weight=1.0, adapter: Optional[ParameterAdapter] = None):
        self.initial_weights = np.atleast_1d(np.asarray(weight, dtype=float))
        if adapter is None:
            adapter = constant_parameter(self.initial_weights)
        self.adapter = adapter
        self.weights: Optional[np.ndarray] = None
        self.norm_factor = 1.0

    def init(self, optimizer) -> bool:
        self.weights = expand_weights(
            self.initial_weights, optimizer.snake.num_points, self.name
        )
        self.norm_factor = 1.0
        if optimizer.normalization_mode is EnergyNormalizationMode.BALANCED_DERIVATIVES:
            bound = self.DERIVATIVE_BOUND * self.adapter.max_value
            if bound > EPSILON:
                self.norm_factor = 1.0 / bound
            else:
                logger.warning(
                    "%s: derivative bound is zero, skipping normalization", self.name
                )
        return True

    def update_status(self, optimizer, overlap: Optional[OverlapMask] = None) -> None:
        updated = self.adapter(self.initial_weights, optimizer.iteration)
        self.weights = expand_weights(updated, optimizer.snake.num_points, self.name)

    def _current_weights(self, num_points: int) -> np.ndarray:
        if self.weights is None:
            return expand_weights(self.initial_weights, num_points, self.name)
        if self.weights.size != num_points:
            raise ValueError(
                f"{self.name} holds {self.weights.size} weights but the snake has "
                f"{num_points} points; update_status was not called after resampling"
            )
        return self.weights

    def get_matrix_part(self, optimizer, overlap: Optional[OverlapMask] = None) -> np.ndarray:
        weights = self._current_weights(optimizer.snake.num_points)
        block = circulant_stencil(weights, self.OFFSETS, self.COEFFICIENTS)
        return self.norm_factor * block_diagonal(block)

    def get_vector_part(self, optimizer, overlap: Optional[OverlapMask] = None) -> None:
        return None


class KassLengthEnergy(_KassEnergy):
    """
    Length (membrane) energy.

    ``E = 0.5 * norm * sum_i alpha_i * |C[i+1] - C[i]|^2``

    Parameters
    ----------
    alpha : float or array_like, default 1.0
        Weight, scalar or one value per point
    adapter : ParameterAdapter, optional
        Weight update strategy; constant weights by default
    """

    name = "length"
    OFFSETS = (-1, 0, 1)
    COEFFICIENTS = (-1.0, 2.0, -1.0)
    DERIVATIVE_BOUND = 2.0

    def __init__(self, alpha=1.0, adapter: Optional[ParameterAdapter] = None):
        super().__init__(alpha, adapter)

    @property
    def alphas(self) -> Optional[np.ndarray]:
        return self.weights

    def calc_energy(self, optimizer, overlap: Optional[OverlapMask] = None) -> float:
        snake = optimizer.snake
        weights = self._current_weights(snake.num_points)
        squared = np.sum(snake.first_differences() ** 2, axis=1)
        return float(0.5 * self.norm_factor * np.sum(weights * squared))


class KassCurvatureEnergy(_KassEnergy):
    """
    Curvature (thin plate) energy.

    ``E = 0.5 * norm * sum_i beta_i * |C[i+1] - 2 C[i] + C[i-1]|^2``

    Parameters
    ----------
    beta : float or array_like, default 1.0
        Weight, scalar or one value per point
    adapter : ParameterAdapter, optional
        Weight update strategy; constant weights by default
    """

    name = "curvature"
    OFFSETS = (-2, -1, 0, 1, 2)
    COEFFICIENTS = (1.0, -4.0, 6.0, -4.0, 1.0)
    DERIVATIVE_BOUND = 8.0

    def __init__(self, beta=1.0, adapter: Optional[ParameterAdapter] = None):
        super().__init__(beta, adapter)

    @property
    def betas(self) -> Optional[np.ndarray]:
        return self.weights

    def calc_energy(self, optimizer, overlap: Optional[OverlapMask] = None) -> float:
        snake = optimizer.snake
        weights = self._current_weights(snake.num_points)
        squared = np.sum(snake.second_differences() ** 2, axis=1)
        return float(0.5 * self.norm_factor * np.sum(weights * squared))
