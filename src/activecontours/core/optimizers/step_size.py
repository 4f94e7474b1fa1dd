"""
Step size (gamma) strategies of the variational optimizer.

Gamma holds one entry per coordinate: the x entries of all points followed
by the y entries.
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from ..energies.image_based import DistanceEnergy


class StepSizeUpdater(ABC):
    """Adapts the step sizes after every iteration."""

    def __init__(self):
        self.optimizer = None

    def init(self, optimizer) -> bool:
        self.optimizer = optimizer
        return True

    @abstractmethod
    def adapt(self, gamma: np.ndarray) -> np.ndarray:
        """Step sizes for the optimizer's current snake."""
        pass

    @abstractmethod
    def copy(self) -> "StepSizeUpdater":
        pass


class ConstantStepSize(StepSizeUpdater):
    """Keep gamma; after resampling it is reset to the initial value."""

    def adapt(self, gamma: np.ndarray) -> np.ndarray:
        size = 2 * self.optimizer.snake.num_points
        if gamma is not None and gamma.size == size:
            return gamma
        return np.full(size, self.optimizer.options.initial_gamma)

    def copy(self) -> "ConstantStepSize":
        return ConstantStepSize()


class ExternalEnergyStepSize(StepSizeUpdater):
    """
    Point-wise step size from a distance energy.

    ``gamma_i = sqrt(E(p_i)) * factor`` for both coordinates of point ``i``,
    so points resting on the foreground (distance 0) stop moving.

    Parameters
    ----------
    energy : DistanceEnergy, optional
        Energy providing the distances; by default the first distance
        energy of the optimizer's energy set
    factor : float, default 25.0
        Scaling of the square-rooted distance
    """

    def __init__(self, energy: Optional[DistanceEnergy] = None, factor: float = 25.0):
        super().__init__()
        self.energy = energy
        self.factor = factor
        self._owned_energy = energy is None

    def init(self, optimizer) -> bool:
        super().init(optimizer)
        if self._owned_energy:
            self.energy = next(
                (e for e in optimizer.energies.energies if isinstance(e, DistanceEnergy)),
                None,
            )
        return self.energy is not None and self.energy.field is not None

    def adapt(self, gamma: np.ndarray) -> np.ndarray:
        values = self.energy.get_values(self.optimizer.snake.pixel_points())
        point_gamma = np.sqrt(np.maximum(values, 0.0)) * self.factor
        return np.concatenate([point_gamma, point_gamma])

    def copy(self) -> "ExternalEnergyStepSize":
        # an explicitly given energy belongs to another optimizer's set
        return ExternalEnergyStepSize(None, self.factor)
