"""2D affine transforms and SVG transform-list parsing."""

import logging
import math
import re
from typing import Optional

import numpy as np

from svg2png.errors import ParseError
from svg2png.svg_utils import parse_numbers

logger = logging.getLogger(__name__)

TRANSFORM_RE = re.compile(r"\s*([A-Za-z]+)\s*\(([^)]*)\)\s*,?")

Box = tuple[float, float, float, float]


class Transform:
    """Affine transform stored as a 3x3 matrix acting on column vectors.

    Methods that add an operation return a new transform that applies the
    operation *first*, matching the left-to-right order of an SVG transform
    list: ``Transform().translate(10, 0).scale(2)`` maps ``(1, 0)`` to
    ``(12, 0)``.
    """

    __slots__ = ["m"]

    def __init__(self, matrix: Optional[np.ndarray] = None) -> None:
        self.m = np.identity(3) if matrix is None else np.asarray(matrix, np.float64)

    def __matmul__(self, other: "Transform") -> "Transform":
        return Transform(self.m @ other.m)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transform):
            return NotImplemented
        return bool(np.array_equal(self.m, other.m))

    def __hash__(self) -> int:
        return hash(tuple(self.m[:2].ravel().tolist()))

    def __repr__(self) -> str:
        return f"Transform({np.around(self.m, 4).tolist()[:2]})"

    def matrix(
        self, a: float, b: float, c: float, d: float, e: float, f: float
    ) -> "Transform":
        """Append an SVG matrix(a, b, c, d, e, f)."""
        return Transform(self.m @ np.array([[a, c, e], [b, d, f], [0, 0, 1]]))

    def translate(self, tx: float, ty: float = 0.0) -> "Transform":
        return self.matrix(1, 0, 0, 1, tx, ty)

    def scale(self, sx: float, sy: Optional[float] = None) -> "Transform":
        sy = sx if sy is None else sy
        return self.matrix(sx, 0, 0, sy, 0, 0)

    def rotate(self, degrees: float) -> "Transform":
        angle = math.radians(degrees)
        cos_a, sin_a = math.cos(angle), math.sin(angle)
        return self.matrix(cos_a, sin_a, -sin_a, cos_a, 0, 0)

    def skew(self, ax_degrees: float, ay_degrees: float) -> "Transform":
        return self.matrix(
            1,
            math.tan(math.radians(ay_degrees)),
            math.tan(math.radians(ax_degrees)),
            1,
            0,
            0,
        )

    @property
    def is_invertible(self) -> bool:
        try:
            inverse = np.linalg.inv(self.m[:2, :2])
        except np.linalg.LinAlgError:
            return False
        return bool(np.isfinite(inverse).all())

    def inverse(self) -> "Transform":
        """Return the inverse transform.

        Raises:
            ParseError: If the transform is degenerate.
        """
        if not self.is_invertible:
            raise ParseError(f"Transform is not invertible: {self!r}")
        return Transform(np.linalg.inv(self.m))

    def apply(self, points: np.ndarray) -> np.ndarray:
        """Transform an (N, 2) array of points."""
        if len(points) == 0:
            return points
        return points @ self.m[:2, :2].T + self.m[:2, 2]

    def max_scale(self) -> float:
        """Largest factor by which this transform stretches a unit vector."""
        return float(np.linalg.norm(self.m[:2, :2], ord=2))

    def bbox(self, box: Box) -> Box:
        """Map an axis-aligned box and return the bounding box of its image."""
        x0, y0, x1, y1 = box
        corners = self.apply(np.array([[x0, y0], [x1, y0], [x1, y1], [x0, y1]]))
        return (
            float(corners[:, 0].min()),
            float(corners[:, 1].min()),
            float(corners[:, 0].max()),
            float(corners[:, 1].max()),
        )


def parse_transform(text: Optional[str]) -> Transform:
    """Parse an SVG transform list.

    Supports matrix, translate, scale, rotate (with optional center), skewX
    and skewY.

    Raises:
        ParseError: If the list is malformed or an operation has the wrong
            number of arguments.
    """
    transform = Transform()
    if text is None or not text.strip():
        return transform

    def args_error(name: str, count: int, expected: str) -> ParseError:
        return ParseError(
            f"`{name}` transform requires {expected} arguments, {count} given"
        )

    remaining = text.strip()
    while remaining:
        match = TRANSFORM_RE.match(remaining)
        if match is None:
            raise ParseError(f"Failed to parse transform: {text!r}")
        remaining = remaining[match.end() :]
        op, args = match.group(1), parse_numbers(match.group(2))

        if op == "matrix":
            if len(args) != 6:
                raise args_error(op, len(args), "6")
            transform = transform.matrix(*args)
        elif op == "translate":
            if len(args) not in (1, 2):
                raise args_error(op, len(args), "1 or 2")
            transform = transform.translate(*args)
        elif op == "scale":
            if len(args) not in (1, 2):
                raise args_error(op, len(args), "1 or 2")
            transform = transform.scale(*args)
        elif op == "rotate":
            if len(args) == 1:
                transform = transform.rotate(args[0])
            elif len(args) == 3:
                angle, cx, cy = args
                transform = transform.translate(cx, cy).rotate(angle).translate(-cx, -cy)
            else:
                raise args_error(op, len(args), "1 or 3")
        elif op == "skewX":
            if len(args) != 1:
                raise args_error(op, len(args), "1")
            transform = transform.skew(args[0], 0)
        elif op == "skewY":
            if len(args) != 1:
                raise args_error(op, len(args), "1")
            transform = transform.skew(0, args[0])
        else:
            raise ParseError(f"Invalid transform operation: {op}")

    return transform
