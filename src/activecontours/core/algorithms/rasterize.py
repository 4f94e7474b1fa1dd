"""
Rasterization and pixel lookup helpers for snakes.
"""

from typing import Sequence, Tuple

import numpy as np

from ...types.core.snake import Snake


def label_image(snakes: Sequence[Snake], width: int, height: int) -> np.ndarray:
    """
    Rasterize snakes into a label image.

    The k-th snake (1-based) is drawn with label ``k``; later snakes
    overwrite earlier ones where they overlap.
    """
    labels = np.zeros((height, width), dtype=np.int32)
    for k, snake in enumerate(snakes, start=1):
        if snake is None or snake.num_points < Snake.MIN_POINTS:
            continue
        labels[snake.binary_mask(width, height)] = k
    return labels


def pixel_indices(
    pixel_points: np.ndarray,
    width: int,
    height: int,
    rounding: str = "round",
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Integer pixel coordinates for sampling fields at snake points.

    Parameters
    ----------
    pixel_points : np.ndarray
        ``(P, 2)`` points in pixel coordinates
    width, height : int
        Image dimensions; indices are clipped to the image
    rounding : str, default "round"
        "round" for nearest-pixel lookup, "floor" for truncation

    Returns
    -------
    px, py : np.ndarray
        Column and row indices
    """
    if rounding == "round":
        idx = np.rint(pixel_points)
    elif rounding == "floor":
        idx = np.trunc(pixel_points)
    else:
        raise ValueError(f"Unknown rounding mode: {rounding}")
    idx = idx.astype(int)
    px = np.clip(idx[:, 0], 0, width - 1)
    py = np.clip(idx[:, 1], 0, height - 1)
    return px, py
