"""
Shared fixtures for the active contour tests.
"""

import numpy as np
import pytest

from activecontours.core.algorithms.intensity import normalize_intensities
from activecontours.core.energies import EnergySet
from activecontours.types import (
    EnergyNormalizationMode,
    IntensityNormalizationMode,
    Snake,
)


class OptimizerStub:
    """Minimal stand-in for an optimizer as seen by energies."""

    def __init__(
        self,
        snake,
        image=None,
        normalization=EnergyNormalizationMode.NONE,
        intensity=IntensityNormalizationMode.NONE,
        exclude_mask=None,
        width=64,
        height=64,
        energies=None,
    ):
        self.snake = snake
        self.normalization_mode = normalization
        self.intensity_normalization = intensity
        self.exclude_mask = exclude_mask
        self.iteration = 0
        self.previous_snake = None
        if image is not None:
            self.working_image = normalize_intensities(image, intensity)
            self.height, self.width = np.asarray(image).shape[:2]
        else:
            self.working_image = None
            self.width, self.height = width, height
        if energies is not None:
            self.energies = EnergySet(energies)


def make_circle(cx, cy, radius, n_points, clockwise=False):
    """Circle polygon as ``(n_points, 2)`` pixel coordinates."""
    t = np.linspace(0, 2 * np.pi, n_points, endpoint=False)
    if clockwise:
        t = -t
    return np.column_stack([cx + radius * np.cos(t), cy + radius * np.sin(t)])


def make_square(x0, y0, x1, y1):
    """Counter-clockwise square polygon."""
    return np.array([[x0, y0], [x1, y0], [x1, y1], [x0, y1]], dtype=float)


@pytest.fixture
def circle():
    return make_circle


@pytest.fixture
def square():
    return make_square


@pytest.fixture
def stub():
    return OptimizerStub


@pytest.fixture
def octagon():
    """Octagon whose squared side lengths alternate between 1 and 2."""
    return Snake([
        [1, 0], [2, 0], [3, 1], [3, 2],
        [2, 3], [1, 3], [0, 2], [0, 1],
    ])
