"""
Base classes for snake energies.

Every energy follows the same lifecycle, driven by an optimizer:

1. ``init(optimizer)`` once before the first iteration,
2. ``update_status(optimizer, overlap)`` at the start of every iteration,
3. ``calc_energy`` and, for derivable energies, ``get_matrix_part`` and
   ``get_vector_part`` afterwards.

Optimizers decide how to treat an energy solely from its
``EnergyCapabilities`` record. The overlap mask of a coupled run is handed
to every call as an immutable ``OverlapMask`` snapshot (``None`` outside of
coupled optimization).
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ...types.core.overlap import OverlapMask

EPSILON = 1e-10

# Band into which balanced derivatives are mapped
TARGET_ENERGY_RANGE = (-1.0, 1.0)


@dataclass(frozen=True)
class EnergyCapabilities:
    """
    What an energy contributes and what it needs from the optimizer.

    Attributes
    ----------
    has_matrix : bool
        Energy contributes to the system matrix
    has_vector : bool
        Energy contributes to the right-hand side vector
    requires_ccw : bool
        Energy relies on counter-clockwise point order
    requires_overlap : bool
        Energy relies on an up-to-date overlap mask
    """
    has_matrix: bool = False
    has_vector: bool = False
    requires_ccw: bool = False
    requires_overlap: bool = False


class SnakeEnergy(ABC):
    """Energy term that can be evaluated for the current snake."""

    name = "energy"
    capabilities = EnergyCapabilities()

    def init(self, optimizer) -> bool:
        """
        Prepare the energy for an optimization run.

        Args:
            optimizer: The single-snake optimizer owning the run

        Returns:
            True if the energy is ready for use
        """
        return True

    def init_coupled(self, n_snakes: int) -> bool:
        """Prepare the energy for a coupled run over ``n_snakes`` snakes."""
        return True

    def update_status(self, optimizer, overlap: Optional[OverlapMask] = None) -> None:
        """Refresh per-iteration state from the optimizer's current snake."""
        pass

    @abstractmethod
    def calc_energy(self, optimizer, overlap: Optional[OverlapMask] = None) -> float:
        """
        Evaluate the energy for the optimizer's current snake.

        Args:
            optimizer: The single-snake optimizer
            overlap: Current overlap snapshot of a coupled run

        Returns:
            Energy value
        """
        pass

    def __str__(self) -> str:
        return self.name


class DerivableSnakeEnergy(SnakeEnergy):
    """Energy exposing matrix and vector parts for an implicit solve."""

    @abstractmethod
    def get_matrix_part(
        self, optimizer, overlap: Optional[OverlapMask] = None
    ) -> Optional[np.ndarray]:
        """
        Contribution to the ``2P x 2P`` system matrix.

        Returns:
            Matrix over the stacked x and y coordinates, or None
        """
        pass

    @abstractmethod
    def get_vector_part(
        self, optimizer, overlap: Optional[OverlapMask] = None
    ) -> Optional[np.ndarray]:
        """
        Contribution to the length ``2P`` right-hand side.

        Returns:
            Vector of x derivatives followed by y derivatives, or None
        """
        pass


class EnergySet:
    """
    Ordered collection of weighted energies.

    Parameters
    ----------
    energies : Sequence[SnakeEnergy]
        Energy terms
    weights : Sequence[float], optional
        External weight per energy, all ones by default
    """

    def __init__(
        self,
        energies: Sequence[SnakeEnergy],
        weights: Optional[Sequence[float]] = None,
    ):
        energies = list(energies)
        if not energies:
            raise ValueError("An energy set needs at least one energy")
        if weights is None:
            weights = [1.0] * len(energies)
        weights = [float(w) for w in weights]
        if len(weights) != len(energies):
            raise ValueError(
                f"Got {len(weights)} weights for {len(energies)} energies"
            )
        if any(w < 0 for w in weights):
            raise ValueError(f"Energy weights must be non-negative, got {weights}")
        if sum(weights) <= 0:
            raise ValueError("The sum of energy weights must be positive")
        self.energies: List[SnakeEnergy] = energies
        self.weights: List[float] = weights

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[SnakeEnergy, float]]) -> "EnergySet":
        pairs = list(pairs)
        return cls([e for e, _ in pairs], [w for _, w in pairs])

    def __len__(self) -> int:
        return len(self.energies)

    def __iter__(self) -> Iterator[Tuple[SnakeEnergy, float]]:
        return iter(zip(self.energies, self.weights))

    def normalized_weights(self) -> np.ndarray:
        weights = np.asarray(self.weights, dtype=float)
        return weights / weights.sum()

    def names(self) -> List[str]:
        """Energy names, made unique by numbering repeated names."""
        seen = {}
        names = []
        for energy in self.energies:
            count = seen.get(energy.name, 0) + 1
            seen[energy.name] = count
            names.append(energy.name if count == 1 else f"{energy.name}_{count}")
        return names

    @property
    def requires_ccw(self) -> bool:
        return any(e.capabilities.requires_ccw for e in self.energies)

    @property
    def requires_overlap(self) -> bool:
        return any(e.capabilities.requires_overlap for e in self.energies)

    @property
    def all_derivable(self) -> bool:
        return all(isinstance(e, DerivableSnakeEnergy) for e in self.energies)

    def copy(self) -> "EnergySet":
        """Deep copy with independent energy state."""
        return EnergySet(copy.deepcopy(self.energies), list(self.weights))
