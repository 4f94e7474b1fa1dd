"""
Configuration options for snake optimization.

This module defines the configuration class shared by the single-snake
optimizers, the coupled optimizer and the high-level API.
"""

from typing import Any, Optional
from dataclasses import dataclass

from .modes import EnergyNormalizationMode, IntensityNormalizationMode


OPTIMIZATION_METHODS = ("variational", "greedy")


@dataclass
class OptimizerOptions:
    """
    Configuration options for snake optimization.

    Parameters
    ----------
    method : str, default "variational"
        Optimizer used per snake, "variational" or "greedy"
    energy_normalization : EnergyNormalizationMode, default BALANCED_DERIVATIVES
        Scaling applied to energy derivatives before they are combined
    intensity_normalization : IntensityNormalizationMode, default TRUE_RANGE
        Mapping of the input image to the working image
    resample : bool, default True
        Resample the snake every second iteration
    segment_length : float, default 5.0
        Target point distance for resampling (pixels)
    initial_gamma : float, default 0.5
        Initial step size of the variational optimizer
    max_iterations : int, default 100
        Iteration limit used when no termination criterion is given
    termination : TerminationCriterion, optional
        Termination criterion; defaults to ``MaxIterations(max_iterations)``
    step_size : StepSizeUpdater, optional
        Step size strategy; defaults to a constant step size
    sample_energy_data : bool, default False
        Record the energy values of every iteration in a table
    intermediate_interval : int, optional
        Keep a copy of the snakes every this many iterations
    update_overlap_mask : bool, default True
        Rebuild the overlap mask once per coupled iteration
    """
    method: str = "variational"
    energy_normalization: EnergyNormalizationMode = EnergyNormalizationMode.BALANCED_DERIVATIVES
    intensity_normalization: IntensityNormalizationMode = IntensityNormalizationMode.TRUE_RANGE
    resample: bool = True
    segment_length: float = 5.0
    initial_gamma: float = 0.5
    max_iterations: int = 100
    termination: Optional[Any] = None
    step_size: Optional[Any] = None
    sample_energy_data: bool = False
    intermediate_interval: Optional[int] = None
    update_overlap_mask: bool = True

    @classmethod
    def greedy_defaults(cls, **kwargs) -> "OptimizerOptions":
        """Options tuned for the greedy optimizer."""
        params = dict(
            method="greedy",
            energy_normalization=EnergyNormalizationMode.NONE,
            segment_length=25.0,
        )
        params.update(kwargs)
        return cls(**params)

    def validate(self) -> None:
        """Raise ``ValueError`` for out-of-range settings."""
        if self.method not in OPTIMIZATION_METHODS:
            raise ValueError(
                f"Unknown optimization method: {self.method}. "
                f"Available: {', '.join(OPTIMIZATION_METHODS)}"
            )
        if self.segment_length <= 0:
            raise ValueError(f"segment_length must be positive, got {self.segment_length}")
        if self.initial_gamma <= 0:
            raise ValueError(f"initial_gamma must be positive, got {self.initial_gamma}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {self.max_iterations}")
        if self.intermediate_interval is not None and self.intermediate_interval < 1:
            raise ValueError(
                f"intermediate_interval must be at least 1, got {self.intermediate_interval}"
            )
