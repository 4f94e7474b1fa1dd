"""
Image-based (external) snake energies.

These energies sample a scalar field at the snake points. The value is
looked up at the nearest pixel; derivatives are central differences that
fall back to the pixel itself at the image border. They only contribute to
the vector part of the linear system.
"""

import logging
from abc import abstractmethod
from typing import Optional, Tuple

import numpy as np

from ...types.config.modes import DistanceMetric, EnergyNormalizationMode, ForegroundColor
from ...types.core.exceptions import EnergyInitError
from ...types.core.overlap import OverlapMask
from ..algorithms.fields import (
    distance_field,
    gradient_vector_flow,
    reconstruct_potential,
    rescale,
    squared_gradient_magnitude,
)
from ..algorithms.intensity import to_channels
from ..algorithms.rasterize import pixel_indices
from .base import EPSILON, DerivableSnakeEnergy, EnergyCapabilities

logger = logging.getLogger(__name__)


class ImageBasedEnergy(DerivableSnakeEnergy):
    """
    Base class of energies defined by a scalar field over the image.

    Subclasses compute the raw field in ``compute_field``; ``normalize_energy``
    derives the normalized field from it.

    Parameters
    ----------
    image : np.ndarray, optional
        Source image; the optimizer's working image is used if omitted.
        Multi-channel images are averaged over channels.
    """

    name = "image"
    capabilities = EnergyCapabilities(has_vector=True)

    # target band of the normalized field
    TARGET_RANGE: Tuple[float, float] = (0.0, 1.0)
    # derivatives are divided by this in balanced mode
    BALANCED_DERIVATIVE_DIVISOR = 1.0

    def __init__(self, image: Optional[np.ndarray] = None):
        self.image = image
        self.raw_field: Optional[np.ndarray] = None
        self.field: Optional[np.ndarray] = None
        self.width = 0
        self.height = 0
        self._mode = EnergyNormalizationMode.BALANCED_DERIVATIVES

    def _source_image(self, optimizer) -> np.ndarray:
        image = self.image if self.image is not None else optimizer.working_image
        if image is None:
            raise EnergyInitError(f"{self.name}: no image given and no working image available")
        return to_channels(image).mean(axis=2)

    def init(self, optimizer) -> bool:
        source = self._source_image(optimizer)
        self.height, self.width = source.shape
        self._mode = optimizer.normalization_mode
        self.raw_field = self.compute_field(source)
        self.normalize_energy()
        return True

    @abstractmethod
    def compute_field(self, image: np.ndarray) -> np.ndarray:
        """Raw energy field for a 2D image."""
        pass

    def normalize_energy(self) -> None:
        """Rescale the raw field into ``TARGET_RANGE``."""
        self.field = rescale(self.raw_field, self.TARGET_RANGE)

    def _indices(self, pixel_points: np.ndarray):
        return pixel_indices(pixel_points, self.width, self.height, rounding="round")

    def get_values(self, pixel_points: np.ndarray) -> np.ndarray:
        px, py = self._indices(pixel_points)
        return self.field[py, px]

    def get_derivatives(self, pixel_points: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Central differences of the field in x and y."""
        px, py = self._indices(pixel_points)
        left = np.maximum(px - 1, 0)
        right = np.minimum(px + 1, self.width - 1)
        up = np.maximum(py - 1, 0)
        down = np.minimum(py + 1, self.height - 1)
        dx = self.field[py, right] - self.field[py, left]
        dy = self.field[down, px] - self.field[up, px]
        return dx, dy

    def get_value(self, x: float, y: float) -> float:
        return float(self.get_values(np.array([[x, y]]))[0])

    def get_derivative_x(self, x: float, y: float) -> float:
        return float(self.get_derivatives(np.array([[x, y]]))[0][0])

    def get_derivative_y(self, x: float, y: float) -> float:
        return float(self.get_derivatives(np.array([[x, y]]))[1][0])

    def calc_energy(self, optimizer, overlap: Optional[OverlapMask] = None) -> float:
        return float(np.sum(self.get_values(optimizer.snake.pixel_points())))

    def get_matrix_part(self, optimizer, overlap: Optional[OverlapMask] = None) -> None:
        return None

    def get_vector_part(self, optimizer, overlap: Optional[OverlapMask] = None) -> np.ndarray:
        dx, dy = self.get_derivatives(optimizer.snake.pixel_points())
        if self._mode is EnergyNormalizationMode.BALANCED_DERIVATIVES:
            dx = dx / self.BALANCED_DERIVATIVE_DIVISOR
            dy = dy / self.BALANCED_DERIVATIVE_DIVISOR
        return np.concatenate([dx, dy])


class IntensityEnergy(ImageBasedEnergy):
    """Normalized image intensity; attracts snakes to dark regions."""

    name = "intensity"

    def compute_field(self, image: np.ndarray) -> np.ndarray:
        return np.asarray(image, dtype=float)


class GradientEnergy(ImageBasedEnergy):
    """
    Negated squared gradient magnitude; attracts snakes to edges.

    The field is scaled by its largest magnitude into [-1, 0], so that
    zero gradient keeps zero energy. Derivatives of this energy span twice
    the field range and are divided by 4 in balanced mode.
    """

    name = "gradient"
    TARGET_RANGE = (-1.0, 0.0)
    BALANCED_DERIVATIVE_DIVISOR = 4.0

    def compute_field(self, image: np.ndarray) -> np.ndarray:
        return -squared_gradient_magnitude(image)

    def normalize_energy(self) -> None:
        peak = float(np.max(np.abs(self.raw_field)))
        factor = 1.0 / peak if peak > EPSILON else 1.0
        self.field = self.raw_field * factor


class DistanceEnergy(ImageBasedEnergy):
    """
    Distance to the nearest foreground pixel of a binary image.

    Parameters
    ----------
    image : np.ndarray, optional
        Binary image; non-zero pixels are white
    metric : DistanceMetric, default EUCLIDEAN
        Distance metric
    foreground : ForegroundColor, default WHITE
        Which pixels form the foreground
    """

    name = "distance"

    def __init__(
        self,
        image: Optional[np.ndarray] = None,
        metric: DistanceMetric = DistanceMetric.EUCLIDEAN,
        foreground: ForegroundColor = ForegroundColor.WHITE,
    ):
        super().__init__(image)
        self.metric = metric
        self.foreground = foreground

    def compute_field(self, image: np.ndarray) -> np.ndarray:
        try:
            return distance_field(image, self.metric, self.foreground)
        except ValueError as exc:
            raise EnergyInitError(f"{self.name}: {exc}") from exc


class GradientVectorFlowEnergy(ImageBasedEnergy):
    """
    Energy derived from the gradient vector flow (GVF) of an image.

    The derivatives are the negated flow components, each scaled by its
    largest magnitude. The value is a potential reconstructed from the
    normalized flow and rescaled to [0, 1]. GVF has a much larger capture
    range than the plain gradient.

    Parameters
    ----------
    image : np.ndarray, optional
        Source image
    iterations : int, default 120
        Number of diffusion iterations
    mu : float, default 0.2
        GVF regularization weight
    """

    name = "gvf"

    def __init__(self, image: Optional[np.ndarray] = None, iterations: int = 120, mu: float = 0.2):
        super().__init__(image)
        self.iterations = iterations
        self.mu = mu
        self.raw_flow: Optional[Tuple[np.ndarray, np.ndarray]] = None
        self.flow: Optional[Tuple[np.ndarray, np.ndarray]] = None

    def compute_field(self, image: np.ndarray) -> np.ndarray:
        self.raw_flow = gradient_vector_flow(image, self.iterations, self.mu)
        logger.debug("Computed GVF with %d iterations", self.iterations)
        return reconstruct_potential(*self.raw_flow)

    def normalize_energy(self) -> None:
        normalized = []
        for component in self.raw_flow:
            peak = float(np.max(np.abs(component)))
            normalized.append(component / peak if peak > EPSILON else component.copy())
        self.flow = (normalized[0], normalized[1])
        self.field = rescale(reconstruct_potential(*self.flow), self.TARGET_RANGE)

    def get_derivatives(self, pixel_points: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        px, py = self._indices(pixel_points)
        u, v = self.flow
        return -u[py, px], -v[py, px]
