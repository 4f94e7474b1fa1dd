"""
Snake (active contour) data structure.

This module defines the closed polygonal curve evolved by the snake
optimizers, together with the geometric operations the energies and
optimizers rely on: wrap-around finite differences, rasterization,
orientation handling and resampling.
"""

from typing import Optional, Tuple

import numpy as np
from shapely.geometry import LinearRing, MultiPolygon, Polygon
from skimage.draw import polygon as draw_polygon


class Snake:
    """
    Closed, ordered sequence of 2D control points.

    Point ``P-1`` is adjacent to point ``0``. Coordinates are either raw
    pixel coordinates or normalized coordinates, i.e. pixel coordinates
    divided by ``scale_factor``.

    Parameters
    ----------
    points : array_like, shape (P, 2)
        Control points as ``(x, y)`` pairs
    scale_factor : float, default 1.0
        Factor mapping normalized coordinates to pixel coordinates
    normalized : bool, default False
        Whether ``points`` are given in normalized coordinates
    old_ids : array_like of int, optional
        Index of each point before the last optimizer step, -1 for points
        inserted since then. Defaults to ``0..P-1``.
    """

    MIN_POINTS = 3

    def __init__(
        self,
        points,
        scale_factor: float = 1.0,
        normalized: bool = False,
        old_ids=None,
    ):
        pts = np.array(points, dtype=float)
        if pts.ndim != 2 or pts.shape[1] != 2:
            raise ValueError(f"Snake points must have shape (P, 2), got {pts.shape}")
        if len(pts) < self.MIN_POINTS:
            raise ValueError(
                f"A snake needs at least {self.MIN_POINTS} points, got {len(pts)}"
            )
        if scale_factor <= 0:
            raise ValueError(f"Scale factor must be positive, got {scale_factor}")

        self.points = pts
        self.scale_factor = float(scale_factor)
        self.normalized = bool(normalized)
        if old_ids is None:
            old_ids = np.arange(len(pts))
        self.old_ids = np.array(old_ids, dtype=int)
        if self.old_ids.shape != (len(pts),):
            raise ValueError(
                f"Expected {len(pts)} old point ids, got {self.old_ids.shape[0]}"
            )
        self.visibility_mask: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self.points)

    def __repr__(self) -> str:
        return (
            f"Snake(num_points={self.num_points}, scale_factor={self.scale_factor}, "
            f"normalized={self.normalized})"
        )

    @property
    def num_points(self) -> int:
        return len(self.points)

    @property
    def x(self) -> np.ndarray:
        return self.points[:, 0]

    @property
    def y(self) -> np.ndarray:
        return self.points[:, 1]

    def copy(self) -> "Snake":
        snake = Snake(
            self.points.copy(),
            scale_factor=self.scale_factor,
            normalized=self.normalized,
            old_ids=self.old_ids.copy(),
        )
        if self.visibility_mask is not None:
            snake.visibility_mask = self.visibility_mask.copy()
        return snake

    def pixel_points(self) -> np.ndarray:
        """Return the points in pixel coordinates."""
        if self.normalized:
            return self.points * self.scale_factor
        return self.points.copy()

    def _to_own_units(self, pixel_length: float) -> float:
        if self.normalized:
            return pixel_length / self.scale_factor
        return pixel_length

    # --- finite differences ---

    def first_differences(self) -> np.ndarray:
        """Forward differences ``C[i+1] - C[i]`` with wrap-around."""
        return np.roll(self.points, -1, axis=0) - self.points

    def second_differences(self) -> np.ndarray:
        """Central second differences ``C[i+1] - 2 C[i] + C[i-1]`` with wrap-around."""
        return (
            np.roll(self.points, -1, axis=0)
            - 2.0 * self.points
            + np.roll(self.points, 1, axis=0)
        )

    def point_distances(self) -> np.ndarray:
        """Distance of each point to its successor."""
        return np.hypot(*self.first_differences().T)

    def length(self) -> float:
        return float(self.point_distances().sum())

    # --- geometry ---

    def signed_area(self) -> float:
        """Shoelace area in the snake's own coordinates."""
        x, y = self.x, self.y
        return 0.5 * float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))

    def area(self) -> float:
        """Enclosed area in pixel units."""
        area = abs(self.signed_area())
        if self.normalized:
            area *= self.scale_factor ** 2
        return area

    def is_ccw(self) -> bool:
        """
        Check for counter-clockwise point order.

        With this order the left normal ``(-dy, dx)`` of every segment points
        into the interior of the snake.
        """
        return self.signed_area() > 0

    def reverse(self) -> None:
        self.points = self.points[::-1].copy()
        self.old_ids = self.old_ids[::-1].copy()

    def center_of_mass(self) -> Tuple[float, float]:
        """Centroid of the enclosed polygon in the snake's own coordinates."""
        area = self.signed_area()
        x, y = self.x, self.y
        if abs(area) < 1e-12:
            return float(x.mean()), float(y.mean())
        cross = x * np.roll(y, -1) - np.roll(x, -1) * y
        cx = np.sum((x + np.roll(x, -1)) * cross) / (6.0 * area)
        cy = np.sum((y + np.roll(y, -1)) * cross) / (6.0 * area)
        return float(cx), float(cy)

    def binary_mask(self, width: int, height: int) -> np.ndarray:
        """
        Rasterize the snake interior.

        Parameters
        ----------
        width, height : int
            Image dimensions in pixels

        Returns
        -------
        np.ndarray
            Boolean mask of shape ``(height, width)``
        """
        pts = self.pixel_points()
        mask = np.zeros((height, width), dtype=bool)
        rr, cc = draw_polygon(pts[:, 1], pts[:, 0], shape=(height, width))
        mask[rr, cc] = True
        return mask

    # --- coordinate handling ---

    def normalize(self, scale_factor: float) -> None:
        """Express the points in normalized coordinates for ``scale_factor``."""
        if scale_factor <= 0:
            raise ValueError(f"Scale factor must be positive, got {scale_factor}")
        self.points = self.pixel_points() / scale_factor
        self.scale_factor = float(scale_factor)
        self.normalized = True

    def denormalize(self) -> None:
        """Express the points in pixel coordinates."""
        self.points = self.pixel_points()
        self.normalized = False

    def clip_to_image(self, width: int, height: int) -> None:
        max_x = self._to_own_units(width - 1)
        max_y = self._to_own_units(height - 1)
        self.points[:, 0] = np.clip(self.points[:, 0], 0.0, max_x)
        self.points[:, 1] = np.clip(self.points[:, 1], 0.0, max_y)

    # --- shape modification ---

    def resample(self, segment_length: float) -> None:
        """
        Resample the snake towards equidistant point spacing.

        Points closer than half the segment length to their predecessor are
        removed, and segments longer than 1.5 times the segment length are
        split by inserting equidistant points.

        Parameters
        ----------
        segment_length : float
            Target distance between neighboring points in pixels
        """
        seg = self._to_own_units(segment_length)
        if seg <= 0:
            raise ValueError(f"Segment length must be positive, got {segment_length}")

        keep = [0]
        for i in range(1, self.num_points):
            if np.hypot(*(self.points[i] - self.points[keep[-1]])) >= 0.5 * seg:
                keep.append(i)
        while (
            len(keep) > self.MIN_POINTS
            and np.hypot(*(self.points[keep[-1]] - self.points[keep[0]])) < 0.5 * seg
        ):
            keep.pop()
        if len(keep) < self.MIN_POINTS:
            keep = list(range(self.num_points))

        kept = self.points[keep]
        kept_ids = self.old_ids[keep]
        new_points = []
        new_ids = []
        n = len(kept)
        for i in range(n):
            start, end = kept[i], kept[(i + 1) % n]
            new_points.append(start)
            new_ids.append(kept_ids[i])
            dist = np.hypot(*(end - start))
            if dist > 1.5 * seg:
                parts = int(round(dist / seg))
                for j in range(1, parts):
                    new_points.append(start + (end - start) * j / parts)
                    new_ids.append(-1)

        self.points = np.array(new_points, dtype=float)
        self.old_ids = np.array(new_ids, dtype=int)

    def shift(self, distance: float) -> None:
        """
        Move every point along its outward normal.

        Parameters
        ----------
        distance : float
            Shift in pixels; positive values grow the snake
        """
        tangents = np.roll(self.points, -1, axis=0) - np.roll(self.points, 1, axis=0)
        norms = np.hypot(*tangents.T)
        norms[norms == 0] = 1.0
        left = np.column_stack((-tangents[:, 1], tangents[:, 0])) / norms[:, None]
        outward = -left if self.is_ccw() else left
        self.points = self.points + self._to_own_units(distance) * outward

    def is_simple(self) -> bool:
        """Check that the polygon has no self-intersections."""
        return bool(LinearRing(self.points).is_simple)

    def make_simple(self) -> None:
        """
        Remove self-intersections.

        The polygon is repaired with a zero-width buffer; if that splits it
        into several parts the largest one is kept. Point order is preserved.
        """
        repaired = Polygon(self.points).buffer(0)
        if isinstance(repaired, MultiPolygon):
            repaired = max(repaired.geoms, key=lambda p: p.area)
        if repaired.is_empty:
            return
        coords = np.asarray(repaired.exterior.coords)[:-1]
        if len(coords) < self.MIN_POINTS:
            return

        was_ccw = self.is_ccw()
        old_ids = np.full(len(coords), -1, dtype=int)
        for i, point in enumerate(coords):
            hits = np.flatnonzero(np.all(np.isclose(self.points, point), axis=1))
            if hits.size:
                old_ids[i] = self.old_ids[hits[0]]
        self.points = coords.astype(float)
        self.old_ids = old_ids
        if self.is_ccw() != was_ccw:
            self.reverse()
