"""
Matrix builders for discretized snake energies.

All builders use modular indexing so that point ``P-1`` is followed by
point ``0``. Stencil entries landing on the same column are accumulated,
which keeps the stencils exact for short snakes.
"""

from typing import Sequence

import numpy as np


def circulant_stencil(
    weights: np.ndarray,
    offsets: Sequence[int],
    coefficients: Sequence[float],
) -> np.ndarray:
    """
    Build a ``P x P`` matrix from a per-row weighted stencil.

    Row ``i`` receives ``weights[i] * coefficients[k]`` at column
    ``(i + offsets[k]) mod P``.

    Parameters
    ----------
    weights : np.ndarray
        Per-point weights, length ``P``
    offsets : Sequence[int]
        Column offsets of the stencil
    coefficients : Sequence[float]
        Stencil coefficients matching ``offsets``

    Returns
    -------
    np.ndarray
        Dense ``P x P`` matrix
    """
    weights = np.asarray(weights, dtype=float)
    n = weights.size
    matrix = np.zeros((n, n))
    rows = np.arange(n)
    for offset, coefficient in zip(offsets, coefficients):
        np.add.at(matrix, (rows, (rows + offset) % n), weights * coefficient)
    return matrix


def block_diagonal(block: np.ndarray) -> np.ndarray:
    """Repeat a ``P x P`` block for the x and y halves of a ``2P x 2P`` matrix."""
    return np.kron(np.eye(2), block)


def cross_coupling_matrix(taus: np.ndarray) -> np.ndarray:
    """
    Inject per-point scalars into the x-y cross positions.

    For point ``i`` with successor ``n = (i + 1) mod P``::

        A[i, P+i] = -tau_i      A[i, P+n] = +tau_i
        A[P+i, i] = +tau_i      A[P+i, n] = -tau_i

    Multiplied with the stacked coordinates this yields
    ``tau_i * (y[n] - y[i], x[i] - x[n])``, i.e. a force along the segment
    normal whose sign is given by ``tau_i``.
    """
    taus = np.asarray(taus, dtype=float)
    n = taus.size
    matrix = np.zeros((2 * n, 2 * n))
    rows = np.arange(n)
    succ = (rows + 1) % n
    np.add.at(matrix, (rows, n + rows), -taus)
    np.add.at(matrix, (rows, n + succ), taus)
    np.add.at(matrix, (n + rows, rows), taus)
    np.add.at(matrix, (n + rows, succ), -taus)
    return matrix
