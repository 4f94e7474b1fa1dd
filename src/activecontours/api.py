"""
Active contours Python API - High-level interface for snake segmentation.

This module provides the main user-facing functions: segmentation of a
single snake and coupled segmentation of several snakes that must not
overlap.
"""

from typing import Optional, Sequence

import numpy as np

from .types import OptimizerOptions, SegmentationResult
from .core.optimizers import (
    SnakeOptimizerCoupled,
    SnakeOptimizerGreedy,
    SnakeOptimizerSingle,
    SnakeOptimizerVarCalc,
)
from .core.optimizers.base import EnergiesLike


def create_optimizer(
    energies: EnergiesLike,
    options: Optional[OptimizerOptions] = None,
) -> SnakeOptimizerSingle:
    """
    Create the single-snake optimizer selected by ``options.method``.

    Parameters
    ----------
    energies : EnergySet or sequence of (energy, weight) pairs
        Energies to minimize
    options : OptimizerOptions, optional
        Optimization settings; variational by default

    Returns
    -------
    SnakeOptimizerSingle
        Uninitialized optimizer

    Raises
    ------
    ValueError
        If the method is unknown
    """
    if options is None:
        options = OptimizerOptions()
    if options.method == "variational":
        return SnakeOptimizerVarCalc(energies, options)
    if options.method == "greedy":
        return SnakeOptimizerGreedy(energies, options)
    raise ValueError(f"Unknown optimization method: {options.method}")


def segment_snake(
    image: np.ndarray,
    snake,
    energies: EnergiesLike,
    options: Optional[OptimizerOptions] = None,
    exclude_mask: Optional[np.ndarray] = None,
) -> SegmentationResult:
    """
    Segment one object by evolving a single snake.

    Parameters
    ----------
    image : np.ndarray
        2D image, or 3D image with a trailing channel axis
    snake : Snake or array_like
        Initial snake as ``(P, 2)`` pixel coordinates ``(x, y)``
    energies : EnergySet or sequence of (energy, weight) pairs
        Energies to minimize
    options : OptimizerOptions, optional
        Optimization settings
    exclude_mask : np.ndarray, optional
        Pixels ignored by region statistics

    Returns
    -------
    SegmentationResult
        Final snake, label image and run statistics

    Examples
    --------
    >>> import numpy as np
    >>> import activecontours as ac
    >>>
    >>> t = np.linspace(0, 2 * np.pi, 20, endpoint=False)
    >>> circle = np.column_stack([32 + 20 * np.cos(t), 32 + 20 * np.sin(t)])
    >>> energies = [(ac.KassLengthEnergy(0.1), 1.0), (ac.GradientEnergy(), 1.0)]
    >>> result = ac.segment_snake(image, circle, energies)
    >>> print(f"Final snake has {result.snakes[0].num_points} points")
    """
    optimizer = create_optimizer(energies, options)
    return optimizer.run(image, snake, exclude_mask)


def segment_snakes(
    image: np.ndarray,
    snakes: Sequence,
    energies: EnergiesLike,
    options: Optional[OptimizerOptions] = None,
    exclude_mask: Optional[np.ndarray] = None,
) -> SegmentationResult:
    """
    Segment several objects with coupled snakes.

    Every snake gets its own copy of the energies. Coupling energies such as
    the overlap penalty see the overlap of all snakes.

    Parameters
    ----------
    image : np.ndarray
        2D image, or 3D image with a trailing channel axis
    snakes : sequence of Snake or array_like
        Initial snakes in pixel coordinates
    energies : EnergySet or sequence of (energy, weight) pairs
        Energies to minimize
    options : OptimizerOptions, optional
        Optimization settings
    exclude_mask : np.ndarray, optional
        Pixels ignored by region statistics

    Returns
    -------
    SegmentationResult
        Final snakes, label image and per-snake statistics

    Examples
    --------
    >>> energies = [
    ...     (ac.KassLengthEnergy(0.1), 1.0),
    ...     (ac.ChanVeseRegionFitEnergy(), 1.0),
    ...     (ac.OverlapPenaltyEnergy(rho=1.0), 1.0),
    ... ]
    >>> result = ac.segment_snakes(image, [circle_a, circle_b], energies)
    >>> labels = result.label_image
    """
    optimizer = create_optimizer(energies, options)
    coupled = SnakeOptimizerCoupled(optimizer)
    return coupled.run(image, snakes, exclude_mask)
