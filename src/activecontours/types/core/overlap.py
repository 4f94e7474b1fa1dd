"""
Occupancy (overlap) mask shared by coupled snakes.

An ``OverlapMask`` is an immutable snapshot: the coupled optimizer builds a
new one from the current rasterizations of all snakes, and energies only
ever read it.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from .snake import Snake


@dataclass(frozen=True)
class OverlapMask:
    """
    Per-pixel count of snakes covering each pixel.

    Attributes
    ----------
    counts : np.ndarray
        Integer array of shape ``(height, width)``
    masks : np.ndarray
        Boolean array of shape ``(N, height, width)`` holding the interior
        of each snake the counts were built from
    snakes : Tuple[Snake, ...]
        Copies of the snakes at snapshot time
    """
    counts: np.ndarray
    masks: np.ndarray
    snakes: Tuple[Snake, ...]

    @classmethod
    def from_snakes(
        cls,
        snakes: Sequence[Snake],
        width: int,
        height: int,
        min_points: int = 5,
    ) -> "OverlapMask":
        """
        Rasterize all snakes and count coverage per pixel.

        Snakes with at most ``min_points`` points do not contribute.
        """
        masks = np.zeros((len(snakes), height, width), dtype=bool)
        for i, snake in enumerate(snakes):
            if snake.num_points <= min_points:
                continue
            masks[i] = snake.binary_mask(width, height)
        counts = masks.sum(axis=0).astype(np.int32)
        masks.setflags(write=False)
        counts.setflags(write=False)
        return cls(counts=counts, masks=masks, snakes=tuple(s.copy() for s in snakes))

    @property
    def n_snakes(self) -> int:
        return self.masks.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.counts.shape

    def overlap_area(self) -> int:
        """Number of pixels covered by at least two snakes."""
        return int(np.count_nonzero(self.counts >= 2))

    def uncovered(self) -> np.ndarray:
        """Boolean mask of pixels covered by no snake."""
        return self.counts == 0
