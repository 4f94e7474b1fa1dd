"""
Coupled optimization of several snakes.

Each snake is evolved by its own clone of a single-snake optimizer. The
clones share an overlap mask that is rebuilt from all snakes once per
outer iteration and handed to every energy as a read-only snapshot.

A snake whose initialization or iteration fails drops out of the session
while the others continue. Only a coupling energy that cannot handle the
number of snakes aborts the whole session.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from ...types.core.exceptions import EnergyInitError, OptimizerError
from ...types.core.overlap import OverlapMask
from ...types.core.snake import Snake
from ...types.results.segmentation_result import SegmentationResult, SnakeStatus
from ..algorithms.rasterize import label_image
from .base import MIN_SNAKE_POINTS, SnakeOptimizerSingle

logger = logging.getLogger(__name__)


class SnakeOptimizerCoupled:
    """
    Optimizes several snakes at once, keeping track of their overlap.

    Parameters
    ----------
    optimizer : SnakeOptimizerSingle
        Template optimizer; it is cloned once per snake
    update_overlap_mask : bool, optional
        Rebuild the overlap mask every iteration; defaults to the
        template's ``options.update_overlap_mask``
    """

    def __init__(self, optimizer: SnakeOptimizerSingle, update_overlap_mask: Optional[bool] = None):
        self.template = optimizer
        if update_overlap_mask is None:
            update_overlap_mask = optimizer.options.update_overlap_mask
        self.update_overlap_mask = update_overlap_mask

        self.optimizers: List[SnakeOptimizerSingle] = []
        self.active: Optional[np.ndarray] = None
        self.failed: Optional[np.ndarray] = None
        self.iterations_per_snake: Optional[np.ndarray] = None
        self.iteration = 0
        self.overlap: Optional[OverlapMask] = None
        self.width = 0
        self.height = 0

    @property
    def n_snakes(self) -> int:
        return len(self.optimizers)

    @property
    def snakes(self) -> List[Snake]:
        """Current snakes in pixel coordinates."""
        return [opt.current_snake() for opt in self.optimizers]

    def initialize(self, image: np.ndarray, snakes: Sequence, exclude_mask: Optional[np.ndarray] = None) -> None:
        """
        Set up one optimizer per snake and build the first overlap mask.

        A snake whose optimizer cannot be initialized is marked as failed
        and stays inactive.

        Raises
        ------
        EnergyInitError
            If a coupling energy rejects the number of snakes
        """
        if len(snakes) == 0:
            raise ValueError("At least one snake is required")
        self.height, self.width = np.asarray(image).shape[:2]

        n = len(snakes)
        self.optimizers = []
        self.failed = np.zeros(n, dtype=bool)
        for i, snake in enumerate(snakes):
            opt = self.template.clone()
            try:
                opt.initialize(image, snake, exclude_mask)
            except (EnergyInitError, OptimizerError) as exc:
                logger.warning("Snake %d could not be initialized: %s", i, exc)
                self.failed[i] = True
            if self.update_overlap_mask:
                opt.overlap_provider = self.current_overlap
            self.optimizers.append(opt)

        for i, opt in enumerate(self.optimizers):
            if self.failed[i]:
                continue
            for energy in opt.energies.energies:
                if energy.capabilities.requires_overlap and not energy.init_coupled(n):
                    raise EnergyInitError(f"Energy could not be coupled to {n} snakes: {energy}")

        self.iteration = 0
        self.active = ~self.failed
        self.iterations_per_snake = np.zeros(n, dtype=int)
        self.overlap = self.current_overlap()
        logger.info(
            "Initialized coupled optimization of %d snakes (%d failed)", n, self.failed.sum()
        )

    def current_overlap(self) -> OverlapMask:
        """Fresh overlap snapshot of all current snakes."""
        return OverlapMask.from_snakes(
            [opt.snake for opt in self.optimizers],
            self.width,
            self.height,
            min_points=MIN_SNAKE_POINTS,
        )

    def iterate(self) -> SnakeStatus:
        """Advance every active snake by one iteration."""
        self.iteration += 1
        if self.update_overlap_mask:
            self.overlap = self.current_overlap()

        for i, opt in enumerate(self.optimizers):
            if not self.active[i]:
                continue
            status = opt.iterate(self.overlap)
            self.iterations_per_snake[i] += 1
            if status is SnakeStatus.FAIL:
                logger.warning(
                    "Snake %d failed in coupled iteration %d, continuing without it",
                    i, self.iteration,
                )
                self.active[i] = False
                self.failed[i] = True
            elif status is SnakeStatus.DONE:
                logger.debug("Snake %d done after %d iterations", i, opt.iteration)
                self.active[i] = False

        if not self.active.any():
            return SnakeStatus.DONE
        return SnakeStatus.SUCCESS

    def label_image(self) -> np.ndarray:
        return label_image(self.snakes, self.width, self.height)

    def energy_table(self) -> pd.DataFrame:
        """Energy tables of all snakes with an additional ``snake`` column."""
        tables = []
        for i, opt in enumerate(self.optimizers):
            table = opt.energy_table
            table.insert(0, "snake", i)
            tables.append(table)
        return pd.concat(tables, ignore_index=True)

    def run(
        self,
        image: np.ndarray,
        snakes: Sequence,
        exclude_mask: Optional[np.ndarray] = None,
        max_iterations: Optional[int] = None,
    ) -> SegmentationResult:
        """
        Optimize all snakes until each is done.

        Parameters
        ----------
        image : np.ndarray
            Input image
        snakes : sequence of Snake or array_like
            Initial snakes in pixel coordinates
        exclude_mask : np.ndarray, optional
            Pixels ignored by region statistics
        max_iterations : int, optional
            Hard cap on the number of outer iterations

        Returns
        -------
        SegmentationResult
            Final snakes, label image and run statistics
        """
        self.initialize(image, snakes, exclude_mask)
        interval = self.template.options.intermediate_interval
        sample = self.template.options.sample_energy_data
        intermediate: List[List[Snake]] = []

        while True:
            status = self.iterate()
            if interval and self.iteration % interval == 0:
                intermediate.append(self.snakes)
            if status is SnakeStatus.DONE:
                break
            if max_iterations is not None and self.iteration >= max_iterations:
                break

        if sample:
            overlap = self.current_overlap()
            for i, opt in enumerate(self.optimizers):
                if self.failed[i]:
                    continue
                opt.update_energies(overlap)
                opt.calc_snake_energy(overlap)

        final = self.snakes
        logger.info(
            "Coupled optimization finished after %d iterations (%s)",
            self.iteration, ", ".join(str(n) for n in self.iterations_per_snake),
        )
        return SegmentationResult(
            snakes=final,
            label_image=label_image(final, self.width, self.height),
            status=status,
            iterations=self.iteration,
            iterations_per_snake=[int(n) for n in self.iterations_per_snake],
            energy_table=self.energy_table() if sample else None,
            intermediate_snakes=intermediate,
            failed_snakes=[int(i) for i in np.flatnonzero(self.failed)],
        )
