"""
Segmentation results.

This module defines the optimizer status and the result structure returned
by the optimizers and the high-level API.
"""

from enum import Enum
from typing import NamedTuple, List, Optional

import numpy as np
import pandas as pd

from ..core.snake import Snake


class SnakeStatus(Enum):
    """Outcome of a single optimizer iteration."""
    SUCCESS = "success"  # keep iterating
    DONE = "done"
    FAIL = "fail"


class SegmentationResult(NamedTuple):
    """
    Complete results of a snake segmentation run.

    Attributes
    ----------
    snakes : List[Snake]
        Final snakes in pixel coordinates
    label_image : np.ndarray
        Label image, 0 for background and ``k`` for the k-th snake
    status : SnakeStatus
        Status of the last iteration
    iterations : int
        Number of outer iterations performed
    iterations_per_snake : List[int]
        Iterations each snake was actively optimized
    energy_table : pd.DataFrame, optional
        Energy values per iteration if sampling was enabled
    intermediate_snakes : List[List[Snake]]
        Snake sets recorded during optimization
    failed_snakes : List[int]
        Indices of snakes whose optimization failed in a coupled run
    """
    snakes: List[Snake]
    label_image: np.ndarray
    status: SnakeStatus
    iterations: int
    iterations_per_snake: List[int]
    energy_table: Optional[pd.DataFrame]
    intermediate_snakes: List[List[Snake]]
    failed_snakes: List[int]
