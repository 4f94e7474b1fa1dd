"""
Adaptation of energy weights over iterations.

A ``ParameterAdapter`` pairs an update function with the largest absolute
weight it can ever produce; the bound is used for derivative normalization
when an energy is initialized.
"""

from dataclasses import dataclass
from typing import Callable

import numpy as np


@dataclass(frozen=True)
class ParameterAdapter:
    """
    Weight update strategy with an explicit bound.

    Attributes
    ----------
    update : Callable[[np.ndarray, int], np.ndarray]
        Maps the initial weights and the iteration count to new weights
    max_value : float
        Largest absolute weight ``update`` can return
    """
    update: Callable[[np.ndarray, int], np.ndarray]
    max_value: float

    def __post_init__(self):
        if self.max_value is None or not np.isfinite(self.max_value) or self.max_value < 0:
            raise ValueError(
                f"max_value must be a finite non-negative number, got {self.max_value}"
            )

    def __call__(self, weights: np.ndarray, iteration: int) -> np.ndarray:
        return np.asarray(self.update(weights, iteration), dtype=float)


def constant_parameter(value) -> ParameterAdapter:
    """Adapter that keeps the initial weights."""
    bound = float(np.max(np.abs(np.atleast_1d(np.asarray(value, dtype=float)))))
    return ParameterAdapter(update=lambda weights, iteration: weights, max_value=bound)


def linear_ramp(start: float, end: float, iterations: int) -> ParameterAdapter:
    """
    Adapter ramping a scalar weight linearly from ``start`` to ``end``.

    The end value is reached after ``iterations`` iterations and kept
    afterwards.
    """
    if iterations < 1:
        raise ValueError(f"Ramp length must be at least 1 iteration, got {iterations}")

    def update(weights, iteration):
        t = min(max(iteration, 0), iterations) / iterations
        return np.full_like(np.asarray(weights, dtype=float), start + (end - start) * t)

    return ParameterAdapter(update=update, max_value=max(abs(start), abs(end)))
