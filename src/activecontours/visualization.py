"""
Matplotlib rendering of snakes on top of an image.
"""

from typing import Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt

from .types.core.snake import Snake


def plot_snakes(
    image: np.ndarray,
    snakes: Sequence,
    ax: Optional[plt.Axes] = None,
    colormap: str = "tab10",
    show_points: bool = True,
) -> plt.Axes:
    """
    Overlay snake outlines on an image.

    Parameters
    ----------
    image : np.ndarray
        Grayscale or RGB image
    snakes : sequence of Snake or array_like
        Snakes in pixel coordinates
    ax : matplotlib.axes.Axes, optional
        Axes to draw into; a new figure is created if omitted
    colormap : str, default "tab10"
        Colormap cycling through snake colors
    show_points : bool, default True
        Mark the snake control points

    Returns
    -------
    matplotlib.axes.Axes
        Axes holding the plot
    """
    if ax is None:
        _, ax = plt.subplots()
    image = np.asarray(image)
    ax.imshow(image, cmap="gray" if image.ndim == 2 else None)

    cmap = plt.get_cmap(colormap)
    for i, snake in enumerate(snakes):
        points = snake.pixel_points() if isinstance(snake, Snake) else np.asarray(snake, dtype=float)
        closed = np.vstack([points, points[:1]])
        color = cmap(i % cmap.N)
        ax.plot(closed[:, 0], closed[:, 1], "-", color=color, linewidth=1.5, label=f"snake {i + 1}")
        if show_points:
            ax.plot(points[:, 0], points[:, 1], "o", color=color, markersize=3)

    ax.set_xlim(-0.5, image.shape[1] - 0.5)
    ax.set_ylim(image.shape[0] - 0.5, -0.5)
    ax.set_axis_off()
    return ax
