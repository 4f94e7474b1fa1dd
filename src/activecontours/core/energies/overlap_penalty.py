"""
Overlap penalty for coupled snakes.

Every pixel covered by ``k >= 2`` snakes adds ``rho * C(k, 2)``, the number
of overlapping snake pairs, to the energy.
"""

import warnings
from typing import Optional

import numpy as np

from ...types.core.overlap import OverlapMask
from ..algorithms.finite_differences import cross_coupling_matrix
from ..algorithms.rasterize import pixel_indices
from .base import EPSILON, DerivableSnakeEnergy, EnergyCapabilities


def _missing_overlap_warning() -> None:
    warnings.warn(
        "Overlap mask is not available, overlap penalty contributes nothing",
        RuntimeWarning,
        stacklevel=3,
    )


class OverlapPenaltyEnergy(DerivableSnakeEnergy):
    """
    Penalty on pixels shared by several snakes.

    Parameters
    ----------
    rho : float, default 1.0
        Penalty per pair of overlapping snakes and pixel
    n_snakes : int, default 1
        Number of coupled snakes; set by the coupled optimizer
    """

    name = "overlap_penalty"
    capabilities = EnergyCapabilities(
        has_matrix=True, requires_ccw=True, requires_overlap=True
    )

    def __init__(self, rho: float = 1.0, n_snakes: int = 1):
        if rho < 0:
            raise ValueError(f"rho must be non-negative, got {rho}")
        self.rho = float(rho)
        self.n_snakes = n_snakes
        self.max_energy = self._max_energy()

    def _max_energy(self) -> float:
        return self.rho * self.n_snakes if self.rho > EPSILON else 1.0

    def init_coupled(self, n_snakes: int) -> bool:
        self.n_snakes = n_snakes
        self.max_energy = self._max_energy()
        return True

    @staticmethod
    def pixel_penalty(k) -> np.ndarray:
        """Number of snake pairs sharing a pixel covered ``k`` times."""
        k = np.asarray(k, dtype=float)
        return np.where(k >= 2, k * (k - 1) / 2.0, 0.0)

    def calc_energy(self, optimizer, overlap: Optional[OverlapMask] = None) -> float:
        if overlap is None:
            _missing_overlap_warning()
            return 0.0
        return float(self.rho * np.sum(self.pixel_penalty(overlap.counts)))

    def get_matrix_part(self, optimizer, overlap: Optional[OverlapMask] = None) -> np.ndarray:
        snake = optimizer.snake
        if overlap is None:
            _missing_overlap_warning()
            return np.zeros((2 * snake.num_points, 2 * snake.num_points))

        height, width = overlap.shape
        own = snake.binary_mask(width, height)
        px, py = pixel_indices(snake.pixel_points(), width, height, rounding="floor")
        others = overlap.counts[py, px] - own[py, px]
        return cross_coupling_matrix(self.rho * others / self.max_energy)

    def get_vector_part(self, optimizer, overlap: Optional[OverlapMask] = None) -> None:
        return None
