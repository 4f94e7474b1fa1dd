"""
Chan-Vese region fitting energy.

The image inside a snake and the background outside of all snakes are each
modelled by their per-channel mean intensity. The energy sums the squared
deviations from these means:

    E = 1/C * sum_c [ lambda_in[c]  * sum_{inside}  (I_c - mu_in[c])^2
                    + lambda_out[c] * sum_{outside} (I_c - mu_out[c])^2 ]

Only visible pixels contribute. A pixel is invisible if it is excluded by
the optimizer, or if it lies outside the snake but is covered by another
snake of a coupled run.
"""

import logging
import warnings
from typing import Optional, Sequence

import numpy as np

from ...types.config.modes import EnergyNormalizationMode
from ...types.core.exceptions import EnergyInitError
from ...types.core.overlap import OverlapMask
from ..algorithms.finite_differences import cross_coupling_matrix
from ..algorithms.intensity import normalize_intensities, to_channels
from ..algorithms.rasterize import pixel_indices
from .base import EPSILON, TARGET_ENERGY_RANGE, DerivableSnakeEnergy, EnergyCapabilities

logger = logging.getLogger(__name__)

EXTERIOR, INTERIOR = 0, 1


def _region_means(channels: np.ndarray, region: np.ndarray) -> np.ndarray:
    """Per-channel mean over a boolean region, zero for empty regions."""
    count = np.count_nonzero(region)
    if count == 0:
        return np.zeros(channels.shape[2])
    return channels[region].mean(axis=0)


def _region_residual(channels: np.ndarray, region: np.ndarray, means: np.ndarray) -> np.ndarray:
    """Per-channel sum of squared deviations over a region."""
    if not region.any():
        return np.zeros(channels.shape[2])
    return np.sum((channels[region] - means) ** 2, axis=0)


class ChanVeseRegionFitEnergy(DerivableSnakeEnergy):
    """
    Chan-Vese region fitting energy for single and coupled snakes.

    Parameters
    ----------
    image : np.ndarray, optional
        Image to fit; it is normalized like the optimizer's working image.
        The working image is used if omitted.
    lambda_in : Sequence[float], optional
        Interior weights per channel, ``1/C`` each by default
    lambda_out : Sequence[float], optional
        Exterior weights per channel, ``1/C`` each by default
    """

    name = "region_fit"
    capabilities = EnergyCapabilities(
        has_matrix=True, requires_ccw=True, requires_overlap=True
    )

    def __init__(
        self,
        image: Optional[np.ndarray] = None,
        lambda_in: Optional[Sequence[float]] = None,
        lambda_out: Optional[Sequence[float]] = None,
    ):
        self.image = image
        self.lambda_in = lambda_in
        self.lambda_out = lambda_out

        self._channels: Optional[np.ndarray] = None
        self._lambda_in: Optional[np.ndarray] = None
        self._lambda_out: Optional[np.ndarray] = None
        self._means: Optional[np.ndarray] = None
        self._interior: Optional[np.ndarray] = None
        self._exterior: Optional[np.ndarray] = None
        self._derivative_range = (-1.0, 1.0)
        self._mode = EnergyNormalizationMode.BALANCED_DERIVATIVES
        self._coupled = False

    @staticmethod
    def _resolve_lambdas(values, n_channels: int, label: str) -> np.ndarray:
        if values is None or len(values) < n_channels:
            return np.full(n_channels, 1.0 / n_channels)
        values = np.asarray(values, dtype=float)[:n_channels]
        if np.any(values < 0):
            raise EnergyInitError(
                f"Region fit: at least one {label} parameter is smaller than zero: {values}"
            )
        return values

    def init(self, optimizer) -> bool:
        if self.image is not None:
            image = normalize_intensities(self.image, optimizer.intensity_normalization)
        elif optimizer.working_image is not None:
            image = optimizer.working_image
        else:
            raise EnergyInitError("Region fit: no image given and no working image available")

        self._channels = to_channels(image)
        height, width, n_channels = self._channels.shape
        if (height, width) != (optimizer.height, optimizer.width):
            raise EnergyInitError(
                f"Region fit: image shape {(height, width)} does not match "
                f"optimizer image shape {(optimizer.height, optimizer.width)}"
            )
        self._lambda_in = self._resolve_lambdas(self.lambda_in, n_channels, "lambda_in")
        self._lambda_out = self._resolve_lambdas(self.lambda_out, n_channels, "lambda_out")
        self._means = np.zeros((n_channels, 2))
        self._mode = optimizer.normalization_mode

        # squared residuals are bounded by the squared value span of the image
        span = float(self._channels.max() - self._channels.min())
        if span < EPSILON:
            span = 1.0
        bound = max(self._lambda_in.sum(), self._lambda_out.sum()) / n_channels * span ** 2
        if bound < EPSILON:
            bound = 1.0
        self._derivative_range = (-bound, bound)
        logger.debug("Region fit derivative range: %s", self._derivative_range)
        return True

    def init_coupled(self, n_snakes: int) -> bool:
        self._coupled = True
        return True

    @property
    def means(self) -> np.ndarray:
        """Means of shape ``(C, 2)``; column 0 exterior, column 1 interior."""
        return self._means.copy()

    @property
    def n_channels(self) -> int:
        return self._channels.shape[2]

    def _visible(self, optimizer, snake_mask: np.ndarray, overlap: Optional[OverlapMask]) -> np.ndarray:
        if optimizer.exclude_mask is None:
            visible = np.ones_like(snake_mask)
        else:
            visible = ~optimizer.exclude_mask
        if overlap is not None:
            visible &= ~(~snake_mask & (overlap.counts != 0))
        return visible

    def update_status(self, optimizer, overlap: Optional[OverlapMask] = None) -> None:
        snake = optimizer.snake
        snake_mask = snake.binary_mask(optimizer.width, optimizer.height)
        visible = self._visible(optimizer, snake_mask, overlap)
        snake.visibility_mask = visible

        self._interior = snake_mask & visible
        self._exterior = ~snake_mask & visible
        self._means[:, INTERIOR] = _region_means(self._channels, self._interior)
        self._means[:, EXTERIOR] = _region_means(self._channels, self._exterior)

    def _ensure_updated(self) -> None:
        if self._interior is None:
            raise RuntimeError("Region fit energy queried before update_status")

    def interior_energy(self) -> float:
        """Interior fitting term of the current snake."""
        self._ensure_updated()
        residual = _region_residual(self._channels, self._interior, self._means[:, INTERIOR])
        return float(np.dot(self._lambda_in, residual) / self.n_channels)

    def exterior_energy(self) -> float:
        """Exterior fitting term of the current snake."""
        self._ensure_updated()
        residual = _region_residual(self._channels, self._exterior, self._means[:, EXTERIOR])
        return float(np.dot(self._lambda_out, residual) / self.n_channels)

    def calc_energy(self, optimizer, overlap: Optional[OverlapMask] = None) -> float:
        if not self._coupled:
            return self.interior_energy() + self.exterior_energy()
        if overlap is None:
            warnings.warn(
                "Region fit: no overlap mask in coupled mode, using the single snake energy",
                RuntimeWarning,
            )
            return self.interior_energy() + self.exterior_energy()

        excluded = optimizer.exclude_mask
        inner = 0.0
        for mask in overlap.masks:
            region = mask if excluded is None else mask & ~excluded
            means = _region_means(self._channels, region)
            residual = _region_residual(self._channels, region, means)
            inner += float(np.dot(self._lambda_in, residual))

        # the shared background is counted once for all snakes
        outside = overlap.uncovered()
        if excluded is not None:
            outside = outside & ~excluded
        means = _region_means(self._channels, outside)
        outer = float(np.dot(self._lambda_out, _region_residual(self._channels, outside, means)))
        return (inner + outer) / self.n_channels

    def get_derivatives(self, pixel_points: np.ndarray) -> np.ndarray:
        """
        Pointwise derivative of the energy with respect to the region border.

        Pixels are looked up by truncating the coordinates.
        """
        self._ensure_updated()
        height, width = self._channels.shape[:2]
        px, py = pixel_indices(pixel_points, width, height, rounding="floor")
        values = self._channels[py, px, :]
        inner = self._lambda_in * (values - self._means[:, INTERIOR]) ** 2
        outer = self._lambda_out * (values - self._means[:, EXTERIOR]) ** 2
        return np.sum(inner - outer, axis=1) / self.n_channels

    def get_matrix_part(self, optimizer, overlap: Optional[OverlapMask] = None) -> np.ndarray:
        derivatives = self.get_derivatives(optimizer.snake.pixel_points())
        if self._mode is EnergyNormalizationMode.BALANCED_DERIVATIVES:
            low, high = self._derivative_range
            t_low, t_high = TARGET_ENERGY_RANGE
            taus = (derivatives - low) / (high - low) * (t_high - t_low) + t_low
        else:
            taus = derivatives
        return cross_coupling_matrix(taus)

    def get_vector_part(self, optimizer, overlap: Optional[OverlapMask] = None) -> None:
        return None
