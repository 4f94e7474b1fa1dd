"""
Intensity normalization of input images.
"""

import logging
from typing import Tuple

import numpy as np

from ...types.config.modes import IntensityNormalizationMode

logger = logging.getLogger(__name__)

EPSILON = 1e-10


def value_range_mapping(
    vmin: float, vmax: float
) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """
    Select source and target range for a value range.

    Returns
    -------
    source, target : Tuple[float, float]
        ``[min, max] -> [-1, 0]`` for purely negative values,
        ``[-maxabs, maxabs] -> [-1, 1]`` for mixed signs and
        ``[min, max] -> [0, 1]`` otherwise
    """
    if vmax < 0:
        return (vmin, vmax), (-1.0, 0.0)
    if vmin < 0 <= vmax:
        max_abs = max(abs(vmin), abs(vmax))
        return (-max_abs, max_abs), (-1.0, 1.0)
    return (vmin, vmax), (0.0, 1.0)


def _dtype_range(dtype: np.dtype) -> Tuple[float, float]:
    if dtype == np.bool_:
        return 0.0, 1.0
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        return float(info.min), float(info.max)
    # float images are expected in [0, 1]
    return 0.0, 1.0


def map_range(
    values: np.ndarray,
    source: Tuple[float, float],
    target: Tuple[float, float],
) -> np.ndarray:
    """Linearly map ``source`` onto ``target``; a degenerate source keeps unit scale."""
    values = np.asarray(values, dtype=float)
    span = source[1] - source[0]
    factor = (target[1] - target[0]) / span if span > EPSILON else 1.0
    return (values - source[0]) * factor + target[0]


def normalize_intensities(
    image: np.ndarray,
    mode: IntensityNormalizationMode = IntensityNormalizationMode.TRUE_RANGE,
) -> np.ndarray:
    """
    Convert an image to the floating-point working representation.

    Parameters
    ----------
    image : np.ndarray
        2D image or 3D image with a trailing channel axis
    mode : IntensityNormalizationMode, default TRUE_RANGE
        ``NONE`` only converts to float, ``TRUE_RANGE`` uses the image's
        own min/max and ``THEORETIC_RANGE`` the min/max of its dtype.
        All channels share one mapping.

    Returns
    -------
    np.ndarray
        Float image of the same shape
    """
    image = np.asarray(image)
    if mode is IntensityNormalizationMode.NONE:
        return image.astype(float)

    if mode is IntensityNormalizationMode.TRUE_RANGE:
        vmin, vmax = float(image.min()), float(image.max())
        if vmin < 0:
            logger.warning(
                "Image contains negative intensities (min=%s), mapping to a signed range",
                vmin,
            )
    elif mode is IntensityNormalizationMode.THEORETIC_RANGE:
        vmin, vmax = _dtype_range(image.dtype)
    else:
        raise ValueError(f"Unknown intensity normalization mode: {mode}")

    source, target = value_range_mapping(vmin, vmax)
    logger.debug("Normalizing image: %s -> %s", source, target)
    return map_range(image, source, target)


def to_channels(image: np.ndarray) -> np.ndarray:
    """Return a float ``(H, W, C)`` view of a 2D or 3D image."""
    image = np.asarray(image, dtype=float)
    if image.ndim == 2:
        return image[:, :, np.newaxis]
    if image.ndim == 3:
        return image
    raise ValueError(f"Expected a 2D or 3D image, got shape {image.shape}")
