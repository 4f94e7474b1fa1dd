"""
Base class of single-snake optimizers.

The optimizer owns the working image, the current snake and the energy
set, and drives the energy lifecycle: ``init`` once, then per iteration
``update_status`` before any energy or derivative query.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ...types.config.modes import EnergyNormalizationMode, IntensityNormalizationMode
from ...types.config.optimizer_options import OptimizerOptions
from ...types.core.exceptions import EnergyInitError, OptimizerError
from ...types.core.overlap import OverlapMask
from ...types.core.snake import Snake
from ...types.results.segmentation_result import SegmentationResult, SnakeStatus
from ..algorithms.intensity import normalize_intensities
from ..algorithms.rasterize import label_image
from ..energies.base import EnergySet, SnakeEnergy
from .termination import MaxIterations, TerminationCriterion

logger = logging.getLogger(__name__)

# Snakes with at most this many points cannot be optimized
MIN_SNAKE_POINTS = 5

EnergiesLike = Union[EnergySet, Sequence[Tuple[SnakeEnergy, float]]]


def as_energy_set(energies: EnergiesLike) -> EnergySet:
    if isinstance(energies, EnergySet):
        return energies
    return EnergySet.from_pairs(energies)


def as_snake(snake) -> Snake:
    """Accept a ``Snake`` or an ``(P, 2)`` array of pixel coordinates."""
    if isinstance(snake, Snake):
        return snake.copy()
    return Snake(snake)


class SnakeOptimizerSingle(ABC):
    """
    Evolves one snake by minimizing a weighted sum of energies.

    Parameters
    ----------
    energies : EnergySet or sequence of (energy, weight) pairs
        Energies to minimize
    options : OptimizerOptions, optional
        Optimization settings
    termination : TerminationCriterion, optional
        Overrides ``options.termination``
    """

    def __init__(
        self,
        energies: EnergiesLike,
        options: Optional[OptimizerOptions] = None,
        termination: Optional[TerminationCriterion] = None,
    ):
        if options is None:
            options = self.default_options()
        options.validate()
        self.energies = as_energy_set(energies)
        self.options = options
        if termination is None:
            termination = options.termination
        if termination is None:
            termination = MaxIterations(options.max_iterations)
        self.termination = termination

        # Set by a coupled optimizer; yields a fresh overlap snapshot
        self.overlap_provider: Optional[Callable[[], OverlapMask]] = None

        self.working_image: Optional[np.ndarray] = None
        self.exclude_mask: Optional[np.ndarray] = None
        self.width = 0
        self.height = 0
        self.channels = 0
        self.scale_factor = 1.0
        self.snake: Optional[Snake] = None
        self.previous_snake: Optional[Snake] = None
        self.iteration = 0
        self.energy = None
        self.weights: Optional[np.ndarray] = None
        self._energy_rows: List[dict] = []

    @classmethod
    def default_options(cls) -> OptimizerOptions:
        return OptimizerOptions()

    @property
    def normalization_mode(self) -> EnergyNormalizationMode:
        return self.options.energy_normalization

    @property
    def intensity_normalization(self) -> IntensityNormalizationMode:
        return self.options.intensity_normalization

    @property
    def requires_ccw(self) -> bool:
        return self.energies.requires_ccw

    @abstractmethod
    def compute_scale_factor(self) -> float:
        """Scale factor between pixel and snake coordinates."""
        pass

    @abstractmethod
    def iterate(self, overlap: Optional[OverlapMask] = None) -> SnakeStatus:
        """Perform one optimization step."""
        pass

    @abstractmethod
    def clone(self) -> "SnakeOptimizerSingle":
        """Uninitialized optimizer with the same configuration and copied energies."""
        pass

    # --- initialization ---

    def initialize(self, image: np.ndarray, snake, exclude_mask: Optional[np.ndarray] = None) -> None:
        """
        Prepare a run on ``image`` starting from ``snake``.

        Parameters
        ----------
        image : np.ndarray
            2D image or 3D image with a trailing channel axis
        snake : Snake or array_like
            Initial snake in pixel coordinates
        exclude_mask : np.ndarray, optional
            Boolean mask of pixels ignored by region statistics
        """
        image = np.asarray(image)
        if image.ndim not in (2, 3):
            raise ValueError(f"Expected a 2D or 3D image, got shape {image.shape}")
        self.height, self.width = image.shape[:2]
        self.channels = 1 if image.ndim == 2 else image.shape[2]
        self.working_image = normalize_intensities(image, self.intensity_normalization)

        if exclude_mask is not None:
            exclude_mask = np.asarray(exclude_mask, dtype=bool)
            if exclude_mask.shape != (self.height, self.width):
                raise ValueError(
                    f"Exclude mask shape {exclude_mask.shape} does not match "
                    f"image shape {(self.height, self.width)}"
                )
        self.exclude_mask = exclude_mask

        self.scale_factor = self.compute_scale_factor()
        initial = as_snake(snake)
        initial.normalize(self.scale_factor)
        self.snake = initial
        self.previous_snake = None
        self.iteration = 0
        self.energy = None
        self._energy_rows = []

        if (
            self.requires_ccw
            and self.snake.num_points > MIN_SNAKE_POINTS
            and not self.snake.is_ccw()
        ):
            logger.warning("Reversing initial snake to counter-clockwise order")
            self.snake.reverse()
        if self.snake.num_points <= MIN_SNAKE_POINTS or self.options.resample:
            self.resample_snake()

        for energy in self.energies.energies:
            if not energy.init(self):
                raise EnergyInitError(f"Energy could not be initialized: {energy}")
        self.weights = self.energies.normalized_weights()

        if not self.termination.init(self):
            raise OptimizerError(f"Termination criterion could not be initialized: {self.termination}")

        logger.info(
            "Initialized %s: image %dx%dx%d, %d snake points, scale factor %g, energies %s",
            type(self).__name__, self.width, self.height, self.channels,
            self.snake.num_points, self.scale_factor, self.energies.names(),
        )

    # --- snake maintenance ---

    def resample_snake(self) -> None:
        self.snake.resample(self.options.segment_length)

    def enforce_ccw(self) -> None:
        if self.requires_ccw and not self.snake.is_ccw():
            logger.debug("Snake is not counter-clockwise, reverting it")
            self.snake.reverse()

    def current_snake(self) -> Snake:
        """Copy of the current snake in pixel coordinates."""
        snake = self.snake.copy()
        snake.denormalize()
        return snake

    def _request_overlap(self, overlap: Optional[OverlapMask]) -> Optional[OverlapMask]:
        if self.overlap_provider is not None and self.energies.requires_overlap:
            return self.overlap_provider()
        return overlap

    # --- energy evaluation ---

    def update_energies(self, overlap: Optional[OverlapMask] = None) -> None:
        for energy in self.energies.energies:
            energy.update_status(self, overlap)

    def calc_snake_energy(self, overlap: Optional[OverlapMask] = None, record: bool = True) -> float:
        """
        Weighted sum of all energies for the current snake.

        When energy sampling is enabled the values are appended to the
        energy table.
        """
        values = [e.calc_energy(self, overlap) for e in self.energies.energies]
        total = float(np.dot(self.energies.weights, values))
        if record and self.options.sample_energy_data:
            row = {
                "iteration": self.iteration,
                "sum": total,
                "per_point": total / self.snake.num_points,
            }
            row.update(zip(self.energies.names(), values))
            self._energy_rows.append(row)
        self.energy = total
        return total

    @property
    def energy_table(self) -> pd.DataFrame:
        columns = ["iteration", "sum", "per_point"] + self.energies.names()
        return pd.DataFrame(self._energy_rows, columns=columns)

    # --- driver ---

    def run(
        self,
        image: np.ndarray,
        snake,
        exclude_mask: Optional[np.ndarray] = None,
        max_iterations: Optional[int] = None,
    ) -> SegmentationResult:
        """
        Optimize a snake until the termination criterion is met.

        Parameters
        ----------
        image : np.ndarray
            Input image
        snake : Snake or array_like
            Initial snake in pixel coordinates
        exclude_mask : np.ndarray, optional
            Pixels ignored by region statistics
        max_iterations : int, optional
            Hard iteration cap on top of the termination criterion

        Returns
        -------
        SegmentationResult
            Final snake, label image and run statistics

        Raises
        ------
        OptimizerError
            If an iteration fails
        """
        self.initialize(image, snake, exclude_mask)
        interval = self.options.intermediate_interval
        intermediate: List[List[Snake]] = []

        while True:
            status = self.iterate()
            if status is SnakeStatus.FAIL:
                raise OptimizerError(f"Snake iteration {self.iteration} failed")
            if interval and self.iteration % interval == 0:
                intermediate.append([self.current_snake()])
            if status is SnakeStatus.DONE:
                break
            if max_iterations is not None and self.iteration >= max_iterations:
                break

        if self.options.sample_energy_data:
            self.update_energies()
            self.calc_snake_energy()
        final = self.current_snake()
        logger.info("Snake optimization finished after %d iterations", self.iteration)
        return SegmentationResult(
            snakes=[final],
            label_image=label_image([final], self.width, self.height),
            status=status,
            iterations=self.iteration,
            iterations_per_snake=[self.iteration],
            energy_table=self.energy_table if self.options.sample_energy_data else None,
            intermediate_snakes=intermediate,
            failed_snakes=[],
        )
