"""SVG path data parsing and curve flattening.

For more info see the SVG path grammar:
https://www.w3.org/TR/SVG11/paths.html#PathDataBNF
"""

import logging
import math
import re

import numpy as np

from svg2png.errors import ParseError
from svg2png.geometry import MAX_CURVE_SEGMENTS, PathShape, Point, arc_segments

logger = logging.getLogger(__name__)

COMMANDS = "MmZzLlHhVvCcSsQqTtAa"
ARGUMENT_COUNTS = {
    "m": 2,
    "z": 0,
    "l": 2,
    "h": 1,
    "v": 1,
    "c": 6,
    "s": 4,
    "q": 4,
    "t": 2,
    "a": 7,
}
NUMBER_RE = re.compile(r"[-+]?(?:(?:\d*\.\d+)|(?:\d+\.?))(?:[Ee][-+]?\d+)?")
SEPARATORS = " \t\r\n,"


class PathScanner:
    """Tokenizer for path data that understands packed arc flags."""

    def __init__(self, data: str) -> None:
        self.data = data
        self.position = 0

    def skip_separators(self) -> None:
        while self.position < len(self.data) and self.data[self.position] in SEPARATORS:
            self.position += 1

    def at_end(self) -> bool:
        self.skip_separators()
        return self.position >= len(self.data)

    def peek_command(self) -> str | None:
        self.skip_separators()
        if self.position < len(self.data) and self.data[self.position] in COMMANDS:
            return self.data[self.position]
        return None

    def read_command(self) -> str:
        command = self.peek_command()
        if command is None:
            raise ParseError(
                f"Expected path command at offset {self.position}: {self.data!r}"
            )
        self.position += 1
        return command

    def read_number(self) -> float:
        self.skip_separators()
        match = NUMBER_RE.match(self.data, self.position)
        if match is None:
            raise ParseError(
                f"Expected number at offset {self.position}: {self.data!r}"
            )
        self.position = match.end()
        return float(match.group(0))

    def read_flag(self) -> float:
        self.skip_separators()
        if self.position < len(self.data) and self.data[self.position] in "01":
            self.position += 1
            return float(self.data[self.position - 1])
        raise ParseError(f"Expected arc flag at offset {self.position}: {self.data!r}")

    def read_arguments(self, command: str) -> list[float]:
        if command.lower() == "a":
            return [
                self.read_number(),
                self.read_number(),
                self.read_number(),
                self.read_flag(),
                self.read_flag(),
                self.read_number(),
                self.read_number(),
            ]
        return [self.read_number() for _ in range(ARGUMENT_COUNTS[command.lower()])]


def _curve_segments(second_difference: float, scale: float, tolerance: float) -> int:
    if second_difference <= 0 or tolerance <= 0:
        return 1
    count = math.ceil(math.sqrt(scale * second_difference / tolerance))
    return max(1, min(MAX_CURVE_SEGMENTS, count))


def flatten_quadratic(p0: Point, p1: Point, p2: Point, tolerance: float) -> np.ndarray:
    """Points along a quadratic Bezier curve, excluding the start point."""
    control = np.array([p0, p1, p2], dtype=np.float64)
    difference = float(np.linalg.norm(control[0] - 2 * control[1] + control[2]))
    count = _curve_segments(difference, 0.25, tolerance)
    t = np.linspace(0.0, 1.0, count + 1)[1:, None]
    return (
        (1 - t) ** 2 * control[0] + 2 * (1 - t) * t * control[1] + t**2 * control[2]
    )


def flatten_cubic(
    p0: Point, p1: Point, p2: Point, p3: Point, tolerance: float
) -> np.ndarray:
    """Points along a cubic Bezier curve, excluding the start point."""
    control = np.array([p0, p1, p2, p3], dtype=np.float64)
    difference = max(
        float(np.linalg.norm(control[0] - 2 * control[1] + control[2])),
        float(np.linalg.norm(control[1] - 2 * control[2] + control[3])),
    )
    count = _curve_segments(difference, 0.75, tolerance)
    t = np.linspace(0.0, 1.0, count + 1)[1:, None]
    return (
        (1 - t) ** 3 * control[0]
        + 3 * (1 - t) ** 2 * t * control[1]
        + 3 * (1 - t) * t**2 * control[2]
        + t**3 * control[3]
    )


def _angle_between(u: np.ndarray, v: np.ndarray) -> float:
    cross = u[0] * v[1] - u[1] * v[0]
    return math.atan2(float(cross), float(np.dot(u, v)))


def flatten_arc(
    src: Point,
    dst: Point,
    rx: float,
    ry: float,
    rotation: float,
    large_arc: bool,
    sweep: bool,
    tolerance: float,
) -> np.ndarray:
    """Points along an elliptical arc, excluding the start point.

    Converts endpoint parameterization to center parameterization following
    https://www.w3.org/TR/SVG/implnote.html#ArcImplementationNotes
    """
    if src == dst:
        return np.zeros((0, 2), dtype=np.float64)
    rx, ry = abs(rx), abs(ry)
    if rx == 0 or ry == 0:
        return np.array([dst], dtype=np.float64)

    phi = math.radians(rotation)
    cos_phi, sin_phi = math.cos(phi), math.sin(phi)
    start, end = np.array(src), np.array(dst)
    rotate = np.array([[cos_phi, sin_phi], [-sin_phi, cos_phi]])
    x1, y1 = rotate @ ((start - end) / 2)

    # Work in the unit circle of the ellipse so large radii cannot overflow.
    ux, uy = float(x1) / rx, float(y1) / ry
    distance = math.hypot(ux, uy)
    if distance == 0 or not math.isfinite(distance):
        return np.array([dst], dtype=np.float64)
    if distance > 1:
        # Scale up radii that are too small to span the endpoints.
        rx *= distance
        ry *= distance
        ux /= distance
        uy /= distance
        distance = 1.0

    factor = math.sqrt(max(0.0, 1.0 - distance * distance)) / distance
    if large_arc == sweep:
        factor = -factor
    cux, cuy = factor * uy, -factor * ux

    u = np.array([ux - cux, uy - cuy])
    v = np.array([-ux - cux, -uy - cuy])
    theta = _angle_between(np.array([1.0, 0.0]), u)
    delta = math.fmod(_angle_between(u, v), 2 * math.pi)
    if not math.isfinite(delta):
        return np.array([dst], dtype=np.float64)
    if not sweep and delta > 0:
        delta -= 2 * math.pi
    elif sweep and delta < 0:
        delta += 2 * math.pi

    count = arc_segments(max(rx, ry), tolerance, delta)
    half = delta * np.linspace(0.0, 1.0, count + 1)[1:] / 2
    middle = theta + half
    # Offsets from the start point keep precision when the radii dwarf the chord.
    local = np.stack(
        [-2 * rx * np.sin(middle) * np.sin(half), 2 * ry * np.cos(middle) * np.sin(half)],
        axis=1,
    )
    points = local @ rotate + start
    if not np.isfinite(points).all():
        return np.array([dst], dtype=np.float64)
    # Land exactly on the declared endpoint.
    points[-1] = end
    return points


def parse_path_data(data: str, tolerance: float) -> PathShape:
    """Parse SVG path data into flattened subpaths.

    Args:
        data: Value of the 'd' attribute.
        tolerance: Maximum deviation of flattened curves, in user units.

    Returns:
        PathShape with one polyline per subpath.

    Raises:
        ParseError: If the data does not follow the path grammar.
    """
    scanner = PathScanner(data)
    subpaths: list[tuple[Point, ...]] = []
    closed: list[bool] = []
    current: list[Point] = []
    position: Point = (0.0, 0.0)
    start: Point = (0.0, 0.0)
    last_control: Point | None = None
    last_command = ""

    def finish(is_closed: bool) -> None:
        nonlocal current
        if len(current) > 1:
            subpaths.append(tuple(current))
            closed.append(is_closed)
        current = []

    def extend(points: np.ndarray) -> None:
        current.extend((float(x), float(y)) for x, y in points)

    if scanner.at_end():
        return PathShape(subpaths=(), closed=())
    if scanner.peek_command() not in ("M", "m"):
        raise ParseError(f"Path data must begin with a moveto: {data!r}")

    command = ""
    while not scanner.at_end():
        explicit = scanner.peek_command()
        if explicit is not None:
            command = scanner.read_command()
        elif command in ("Z", "z"):
            raise ParseError(f"Unexpected number after closepath: {data!r}")
        elif command == "M":
            command = "L"
        elif command == "m":
            command = "l"

        relative = command.islower()
        kind = command.lower()
        args = scanner.read_arguments(command)
        ox, oy = position if relative else (0.0, 0.0)

        if current == [] and kind not in ("m", "z"):
            current = [position]

        if kind == "m":
            finish(False)
            position = (ox + args[0], oy + args[1])
            start = position
            current = [position]
        elif kind == "z":
            finish(True)
            position = start
        elif kind == "l":
            position = (ox + args[0], oy + args[1])
            current.append(position)
        elif kind == "h":
            position = (ox + args[0], position[1])
            current.append(position)
        elif kind == "v":
            position = (position[0], oy + args[0])
            current.append(position)
        elif kind in ("c", "s"):
            if kind == "c":
                c1 = (ox + args[0], oy + args[1])
                rest = args[2:]
            else:
                if last_control is not None and last_command in ("c", "s"):
                    c1 = (2 * position[0] - last_control[0], 2 * position[1] - last_control[1])
                else:
                    c1 = position
                rest = args
            c2 = (ox + rest[0], oy + rest[1])
            end = (ox + rest[2], oy + rest[3])
            extend(flatten_cubic(position, c1, c2, end, tolerance))
            last_control = c2
            position = end
        elif kind in ("q", "t"):
            if kind == "q":
                control = (ox + args[0], oy + args[1])
                end = (ox + args[2], oy + args[3])
            else:
                if last_control is not None and last_command in ("q", "t"):
                    control = (
                        2 * position[0] - last_control[0],
                        2 * position[1] - last_control[1],
                    )
                else:
                    control = position
                end = (ox + args[0], oy + args[1])
            extend(flatten_quadratic(position, control, end, tolerance))
            last_control = control
            position = end
        elif kind == "a":
            end = (ox + args[5], oy + args[6])
            extend(
                flatten_arc(
                    position,
                    end,
                    args[0],
                    args[1],
                    args[2],
                    bool(args[3]),
                    bool(args[4]),
                    tolerance,
                )
            )
            position = end

        if kind not in ("c", "s", "q", "t"):
            last_control = None
        last_command = kind

    finish(False)
    return PathShape(subpaths=tuple(subpaths), closed=tuple(closed))
