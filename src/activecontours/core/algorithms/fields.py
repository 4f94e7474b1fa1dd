"""
Scalar and vector fields used by image-based snake energies.

This module provides gradient magnitudes, distance transforms, gradient
vector flow (Xu & Prince, 1998) and the reconstruction of a scalar
potential from a vector field.
"""

from typing import Tuple

import numpy as np
from scipy import ndimage, sparse
from scipy.sparse.linalg import lsqr

from ...types.config.modes import DistanceMetric, ForegroundColor

EPSILON = 1e-10


def rescale(values: np.ndarray, target: Tuple[float, float] = (0.0, 1.0)) -> np.ndarray:
    """
    Map the value range of ``values`` onto ``target``.

    Always computed from the given array, so rescaling a raw field twice
    yields the same result. Constant fields are returned unchanged.
    """
    values = np.asarray(values, dtype=float)
    vmin, vmax = float(values.min()), float(values.max())
    if vmax - vmin < EPSILON:
        return values.copy()
    return (values - vmin) / (vmax - vmin) * (target[1] - target[0]) + target[0]


def squared_gradient_magnitude(image: np.ndarray) -> np.ndarray:
    """Squared gradient magnitude from central differences."""
    gy, gx = np.gradient(np.asarray(image, dtype=float))
    return gx ** 2 + gy ** 2


def distance_field(
    image: np.ndarray,
    metric: DistanceMetric = DistanceMetric.EUCLIDEAN,
    foreground: ForegroundColor = ForegroundColor.WHITE,
) -> np.ndarray:
    """
    Distance of every pixel to the nearest foreground pixel.

    Parameters
    ----------
    image : np.ndarray
        Binary image; non-zero pixels are white
    metric : DistanceMetric, default EUCLIDEAN
        Distance metric
    foreground : ForegroundColor, default WHITE
        Which pixels form the foreground

    Returns
    -------
    np.ndarray
        Float distance map, zero on the foreground
    """
    white = np.asarray(image) != 0
    fg = white if foreground is ForegroundColor.WHITE else ~white
    if not fg.any():
        raise ValueError("Distance field needs at least one foreground pixel")

    # distances are measured to the nearest zero entry
    background = ~fg
    if metric is DistanceMetric.EUCLIDEAN:
        return ndimage.distance_transform_edt(background).astype(float)
    if metric is DistanceMetric.CHESSBOARD:
        return ndimage.distance_transform_cdt(background, metric="chessboard").astype(float)
    if metric is DistanceMetric.CITYBLOCK:
        return ndimage.distance_transform_cdt(background, metric="taxicab").astype(float)
    raise ValueError(f"Unknown distance metric: {metric}")


def gradient_vector_flow(
    image: np.ndarray,
    iterations: int = 120,
    mu: float = 0.2,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute the gradient vector flow of an image.

    The edge map ``|grad I|^2`` of the [0, 1]-rescaled image is normalized
    to [0, 1]; its gradient ``(fx, fy)`` is diffused by iterating::

        u <- u + mu * laplace(u) - (fx^2 + fy^2) * (u - fx)

    and likewise for ``v``.

    Parameters
    ----------
    image : np.ndarray
        2D input image
    iterations : int, default 120
        Number of diffusion iterations
    mu : float, default 0.2
        Regularization weight, at most 0.25 for a stable explicit scheme

    Returns
    -------
    u, v : np.ndarray
        x and y components of the flow field
    """
    if iterations < 0:
        raise ValueError(f"Iteration count must be non-negative, got {iterations}")
    if not 0 < mu <= 0.25:
        raise ValueError(f"mu must be in (0, 0.25], got {mu}")

    edges = rescale(squared_gradient_magnitude(rescale(image)))
    fy, fx = np.gradient(edges)
    weight = fx ** 2 + fy ** 2

    u, v = fx.copy(), fy.copy()
    for _ in range(iterations):
        u = u + mu * ndimage.laplace(u, mode="nearest") - weight * (u - fx)
        v = v + mu * ndimage.laplace(v, mode="nearest") - weight * (v - fy)
    return u, v


def reconstruct_potential(u: np.ndarray, v: np.ndarray) -> np.ndarray:
    """
    Approximate a scalar potential whose negative gradient is ``(u, v)``.

    Neighboring pixel differences of the potential are fitted in the least
    squares sense to the averaged field components. The result is shifted
    so that its minimum is zero.
    """
    height, width = u.shape
    index = np.arange(height * width).reshape(height, width)

    # horizontal pairs: phi[y, x+1] - phi[y, x] = -(u[y, x] + u[y, x+1]) / 2
    left, right = index[:, :-1].ravel(), index[:, 1:].ravel()
    rhs_x = -0.5 * (u[:, :-1] + u[:, 1:]).ravel()
    # vertical pairs
    top, bottom = index[:-1, :].ravel(), index[1:, :].ravel()
    rhs_y = -0.5 * (v[:-1, :] + v[1:, :]).ravel()

    n_x, n_y = left.size, top.size
    rows = np.concatenate([
        np.arange(n_x), np.arange(n_x),
        n_x + np.arange(n_y), n_x + np.arange(n_y),
    ])
    cols = np.concatenate([right, left, bottom, top])
    data = np.concatenate([
        np.ones(n_x), -np.ones(n_x), np.ones(n_y), -np.ones(n_y),
    ])
    system = sparse.csr_matrix((data, (rows, cols)), shape=(n_x + n_y, height * width))
    rhs = np.concatenate([rhs_x, rhs_y])

    if rhs.size == 0:
        return np.zeros((height, width))
    phi = lsqr(system, rhs)[0].reshape(height, width)
    return phi - phi.min()
