"""Primitive shapes and their coverage tests.

Every shape lives in its own user space. The rasterizer maps sample
positions from device space back into user space and asks the shape which of
them are covered, either by its interior (fill) or by its outline widened to
the stroke width (stroke).
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

FILL_NONZERO = "nonzero"
FILL_EVENODD = "evenodd"
FILL_RULES = (FILL_NONZERO, FILL_EVENODD)

# Maximum number of segments used to approximate a curve.
MAX_CURVE_SEGMENTS = 1024

Point = tuple[float, float]
Box = tuple[float, float, float, float]
Subpath = tuple[np.ndarray, bool]


def arc_segments(radius: float, tolerance: float, sweep: float = 2 * math.pi) -> int:
    """Number of chords needed so a circular arc deviates less than tolerance."""
    if radius <= tolerance or tolerance <= 0:
        return max(1, math.ceil(abs(sweep) / (math.pi / 4)))
    step = 2 * math.acos(1 - tolerance / radius)
    if step <= 0:
        # acos rounds to zero for huge radii; use the small-angle bound.
        step = 2 * math.sqrt(2 * tolerance / radius)
    if step <= 0:
        return MAX_CURVE_SEGMENTS
    count = math.ceil(abs(sweep) / step)
    return max(1, min(MAX_CURVE_SEGMENTS, count))


def ellipse_points(
    cx: float, cy: float, rx: float, ry: float, tolerance: float
) -> np.ndarray:
    """Polygon approximation of an axis-aligned ellipse."""
    count = max(8, arc_segments(max(rx, ry), tolerance))
    angles = np.linspace(0.0, 2 * math.pi, count, endpoint=False)
    return np.stack([cx + rx * np.cos(angles), cy + ry * np.sin(angles)], axis=1)


def edges(subpaths: list[Subpath], close_all: bool) -> tuple[np.ndarray, np.ndarray]:
    """Collect the segments of a list of polylines as (starts, ends) arrays.

    Args:
        subpaths: Polylines with their closed flag.
        close_all: Close every polyline, as required for filling.
    """
    starts, ends = [], []
    for points, closed in subpaths:
        if len(points) < 2:
            continue
        starts.append(points[:-1])
        ends.append(points[1:])
        if (closed or close_all) and not np.array_equal(points[0], points[-1]):
            starts.append(points[-1:])
            ends.append(points[:1])
    if not starts:
        empty = np.zeros((0, 2), dtype=np.float64)
        return empty, empty
    return np.concatenate(starts), np.concatenate(ends)


def winding_numbers(
    points: np.ndarray, starts: np.ndarray, ends: np.ndarray
) -> np.ndarray:
    """Winding number of each point with respect to the closed edge set."""
    px = points[:, 0:1]
    py = points[:, 1:2]
    x0, y0 = starts[None, :, 0], starts[None, :, 1]
    x1, y1 = ends[None, :, 0], ends[None, :, 1]
    side = (x1 - x0) * (py - y0) - (px - x0) * (y1 - y0)
    upward = (y0 <= py) & (py < y1) & (side > 0)
    downward = (y1 <= py) & (py < y0) & (side < 0)
    return upward.sum(axis=1) - downward.sum(axis=1)


def segment_distance_squared(
    points: np.ndarray, starts: np.ndarray, ends: np.ndarray
) -> np.ndarray:
    """Squared distance from each point to the nearest segment."""
    if len(starts) == 0:
        return np.full(len(points), np.inf)
    direction = ends - starts
    length2 = (direction**2).sum(axis=1)
    safe_length2 = np.where(length2 > 0, length2, 1.0)
    offset = points[:, None, :] - starts[None, :, :]
    t = (offset * direction[None, :, :]).sum(axis=2) / safe_length2[None, :]
    t = np.where(length2[None, :] > 0, np.clip(t, 0.0, 1.0), 0.0)
    nearest = starts[None, :, :] + t[:, :, None] * direction[None, :, :]
    return ((points[:, None, :] - nearest) ** 2).sum(axis=2).min(axis=1)


class Shape(ABC):
    """Base class for drawable geometry in user space."""

    @abstractmethod
    def bbox(self) -> Box:
        """Bounding box of the shape interior as (x0, y0, x1, y1)."""

    @abstractmethod
    def contains(self, points: np.ndarray, fill_rule: str = FILL_NONZERO) -> np.ndarray:
        """Boolean mask of the (N, 2) points inside the shape interior."""

    @abstractmethod
    def outline(self, tolerance: float) -> list[Subpath]:
        """Polylines approximating the shape boundary within tolerance."""

    @property
    def fill_cost(self) -> int:
        """Work per sample of a containment test, used to size chunks."""
        return 1

    def stroke_contains(
        self, points: np.ndarray, half_width: float, tolerance: float
    ) -> np.ndarray:
        """Boolean mask of the points within half_width of the outline."""
        starts, ends = edges(self.outline(tolerance), close_all=False)
        return segment_distance_squared(points, starts, ends) <= half_width * half_width

    def stroke_cost(self, tolerance: float) -> int:
        starts, _ = edges(self.outline(tolerance), close_all=False)
        return max(1, len(starts))


@dataclass(frozen=True)
class Circle(Shape):
    cx: float
    cy: float
    r: float

    def bbox(self) -> Box:
        return (self.cx - self.r, self.cy - self.r, self.cx + self.r, self.cy + self.r)

    def contains(self, points: np.ndarray, fill_rule: str = FILL_NONZERO) -> np.ndarray:
        dx = points[:, 0] - self.cx
        dy = points[:, 1] - self.cy
        return dx * dx + dy * dy <= self.r * self.r

    def outline(self, tolerance: float) -> list[Subpath]:
        return [(ellipse_points(self.cx, self.cy, self.r, self.r, tolerance), True)]

    def stroke_contains(
        self, points: np.ndarray, half_width: float, tolerance: float
    ) -> np.ndarray:
        distance = np.hypot(points[:, 0] - self.cx, points[:, 1] - self.cy)
        return np.abs(distance - self.r) <= half_width

    def stroke_cost(self, tolerance: float) -> int:
        return 1


@dataclass(frozen=True)
class Ellipse(Shape):
    cx: float
    cy: float
    rx: float
    ry: float

    def bbox(self) -> Box:
        return (
            self.cx - self.rx,
            self.cy - self.ry,
            self.cx + self.rx,
            self.cy + self.ry,
        )

    def contains(self, points: np.ndarray, fill_rule: str = FILL_NONZERO) -> np.ndarray:
        nx = (points[:, 0] - self.cx) / self.rx
        ny = (points[:, 1] - self.cy) / self.ry
        return nx * nx + ny * ny <= 1.0

    def outline(self, tolerance: float) -> list[Subpath]:
        return [(ellipse_points(self.cx, self.cy, self.rx, self.ry, tolerance), True)]


@dataclass(frozen=True)
class Rect(Shape):
    """Rectangle with optional elliptical corners.

    Corner radii must already be clamped to half the width and height.
    """

    x: float
    y: float
    width: float
    height: float
    rx: float = 0.0
    ry: float = 0.0

    @property
    def is_rounded(self) -> bool:
        return self.rx > 0 and self.ry > 0

    def bbox(self) -> Box:
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def contains(self, points: np.ndarray, fill_rule: str = FILL_NONZERO) -> np.ndarray:
        px, py = points[:, 0], points[:, 1]
        x0, y0, x1, y1 = self.bbox()
        inside = (px >= x0) & (px <= x1) & (py >= y0) & (py <= y1)
        if not self.is_rounded:
            return inside
        # Distance to the inner rectangle, normalized by the corner radii.
        qx = np.clip(px, x0 + self.rx, x1 - self.rx)
        qy = np.clip(py, y0 + self.ry, y1 - self.ry)
        nx = (px - qx) / self.rx
        ny = (py - qy) / self.ry
        return inside & (nx * nx + ny * ny <= 1.0)

    def outline(self, tolerance: float) -> list[Subpath]:
        x0, y0, x1, y1 = self.bbox()
        if not self.is_rounded:
            corners = np.array([[x0, y0], [x1, y0], [x1, y1], [x0, y1]], np.float64)
            return [(corners, True)]
        count = max(2, arc_segments(max(self.rx, self.ry), tolerance, math.pi / 2))
        quarter = np.linspace(0.0, math.pi / 2, count + 1)
        centers = [
            (x1 - self.rx, y0 + self.ry, -math.pi / 2),
            (x1 - self.rx, y1 - self.ry, 0.0),
            (x0 + self.rx, y1 - self.ry, math.pi / 2),
            (x0 + self.rx, y0 + self.ry, math.pi),
        ]
        arcs = [
            np.stack(
                [cx + self.rx * np.cos(start + quarter), cy + self.ry * np.sin(start + quarter)],
                axis=1,
            )
            for cx, cy, start in centers
        ]
        return [(np.concatenate(arcs), True)]


@dataclass(frozen=True)
class Line(Shape):
    """A single segment. Lines have no interior and are only stroked."""

    x1: float
    y1: float
    x2: float
    y2: float

    def bbox(self) -> Box:
        return (
            min(self.x1, self.x2),
            min(self.y1, self.y2),
            max(self.x1, self.x2),
            max(self.y1, self.y2),
        )

    def contains(self, points: np.ndarray, fill_rule: str = FILL_NONZERO) -> np.ndarray:
        return np.zeros(len(points), dtype=bool)

    def outline(self, tolerance: float) -> list[Subpath]:
        return [(np.array([[self.x1, self.y1], [self.x2, self.y2]], np.float64), False)]


@dataclass(frozen=True)
class PathShape(Shape):
    """Flattened polylines from polygon, polyline and path elements.

    Every subpath is implicitly closed for filling; ``closed`` only affects
    stroking.
    """

    subpaths: tuple[tuple[Point, ...], ...]
    closed: tuple[bool, ...]

    def _subpaths(self) -> list[Subpath]:
        return [
            (np.array(points, dtype=np.float64).reshape(-1, 2), closed)
            for points, closed in zip(self.subpaths, self.closed)
        ]

    def bbox(self) -> Box:
        points = [p for subpath in self.subpaths for p in subpath]
        if not points:
            return (0.0, 0.0, 0.0, 0.0)
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        return (min(xs), min(ys), max(xs), max(ys))

    @property
    def fill_cost(self) -> int:
        return max(1, sum(len(subpath) for subpath in self.subpaths))

    def contains(self, points: np.ndarray, fill_rule: str = FILL_NONZERO) -> np.ndarray:
        starts, ends = edges(self._subpaths(), close_all=True)
        if len(starts) == 0:
            return np.zeros(len(points), dtype=bool)
        winding = winding_numbers(points, starts, ends)
        if fill_rule == FILL_EVENODD:
            return winding % 2 == 1
        return winding != 0

    def outline(self, tolerance: float) -> list[Subpath]:
        return self._subpaths()
