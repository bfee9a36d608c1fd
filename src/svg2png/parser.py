"""Vector scene parser.

Turns an SVG descriptor into a :class:`~svg2png.scene.Scene`: the canvas size
in device pixels and an ordered tuple of primitives whose geometry is
resolved in their own user space together with the user-to-device transform.

Parsing is a pure function of its input. Malformed markup, a missing or
wrong root element, invalid geometry and non-positive canvas dimensions all
raise :class:`~svg2png.errors.ParseError`.
"""

import dataclasses
import logging
import math
import xml.etree.ElementTree as ET
from typing import Optional, Union, cast

from svg2png import svg_utils
from svg2png.color_utils import BLACK, Paint, parse_color, parse_opacity, parse_paint
from svg2png.errors import ParseError
from svg2png.geometry import (
    FILL_NONZERO,
    FILL_RULES,
    Circle,
    Ellipse,
    Line,
    PathShape,
    Rect,
    Shape,
)
from svg2png.path import parse_path_data
from svg2png.resource_limits import ResourceLimits
from svg2png.scene import Primitive, Scene
from svg2png.transform import Transform, parse_transform

logger = logging.getLogger(__name__)

# Canvas size used when neither width/height nor viewBox are given.
DEFAULT_CANVAS_SIZE = 100.0

# Maximum deviation of flattened curves from the true outline, in pixels.
FLATTEN_TOLERANCE = 0.1

CONTAINER_ELEMENTS = frozenset(["g", "a", "switch"])
SHAPE_ELEMENTS = frozenset(
    ["circle", "ellipse", "rect", "line", "polyline", "polygon", "path"]
)
NON_RENDERING_ELEMENTS = frozenset(
    [
        "defs",
        "title",
        "desc",
        "metadata",
        "style",
        "script",
        "symbol",
        "clipPath",
        "mask",
        "marker",
        "pattern",
        "linearGradient",
        "radialGradient",
        "filter",
    ]
)
PRESENTATION_ATTRIBUTES = (
    "fill",
    "fill-opacity",
    "fill-rule",
    "stroke",
    "stroke-width",
    "stroke-opacity",
    "opacity",
    "color",
    "display",
    "visibility",
)
X_ALIGNMENTS = {"xMin": 0.0, "xMid": 0.5, "xMax": 1.0}
Y_ALIGNMENTS = {"YMin": 0.0, "YMid": 0.5, "YMax": 1.0}


@dataclasses.dataclass(frozen=True)
class Style:
    """Computed presentation state of an element."""

    fill: Optional[Paint] = BLACK
    fill_opacity: float = 1.0
    fill_rule: str = FILL_NONZERO
    stroke: Optional[Paint] = None
    stroke_width: float = 1.0
    stroke_opacity: float = 1.0
    color: Paint = BLACK
    visible: bool = True
    # Product of the 'opacity' of the element and all of its ancestors.
    opacity: float = 1.0


@dataclasses.dataclass(frozen=True)
class Viewport:
    """Reference lengths for percentage values in user space."""

    width: float
    height: float

    @property
    def diagonal(self) -> float:
        return math.hypot(self.width, self.height) / math.sqrt(2)


def parse(
    descriptor: Union[str, bytes], limits: Optional[ResourceLimits] = None
) -> Scene:
    """Parse an SVG descriptor into a Scene.

    Args:
        descriptor: SVG markup as string or UTF-8 bytes.
        limits: Resource limits. If None, ResourceLimits.default() is used.

    Returns:
        Scene with the canvas size and primitives in paint order.

    Raises:
        ParseError: If the descriptor is malformed, too large, has no <svg>
            root, declares a non-positive canvas, or contains invalid geometry.
    """
    return SceneParser(limits).parse(descriptor)


class SceneParser:
    """Builds a Scene from SVG markup.

    The parser itself keeps no state between calls; every call to ``parse``
    builds and returns a new Scene.
    """

    def __init__(
        self, limits: Optional[ResourceLimits] = None, dpi: float = svg_utils.DEFAULT_DPI
    ) -> None:
        self.limits = limits if limits is not None else ResourceLimits.default()
        self.dpi = dpi

    def parse(self, descriptor: Union[str, bytes]) -> Scene:
        if not isinstance(descriptor, (str, bytes)):
            raise ParseError(
                f"Descriptor must be str or bytes, got {type(descriptor).__name__}"
            )
        self._check_descriptor_size(descriptor)
        root = svg_utils.fromstring(descriptor)
        if svg_tag(root) != "svg":
            raise ParseError(f"Root element must be <svg>, got <{root.tag}>")
        self._check_element_count(root)

        width, height, viewport, view_transform = self._parse_viewport(root)
        primitives: list[Primitive] = []
        root_style = self._compute_style(root, Style(), viewport)
        if root_style is not None:
            root_transform = view_transform @ parse_transform(root.get("transform"))
            for child in root:
                self._walk(child, root_transform, root_style, viewport, primitives)

        scene = Scene(
            width=width,
            height=height,
            primitives=tuple(primitives),
            background=self._parse_background(root),
        )
        logger.debug(
            "Parsed scene %dx%d with %d primitive(s)",
            scene.width,
            scene.height,
            len(scene.primitives),
        )
        return scene

    def _check_descriptor_size(self, descriptor: Union[str, bytes]) -> None:
        if not self.limits.is_descriptor_size_limited():
            return
        size = (
            len(descriptor)
            if isinstance(descriptor, bytes)
            else len(descriptor.encode("utf-8"))
        )
        if size > self.limits.max_descriptor_size:
            raise ParseError(
                f"Descriptor size {size} exceeds maximum "
                f"{self.limits.max_descriptor_size} bytes. "
                f"To process: set SVG2PNG_MAX_DESCRIPTOR_SIZE environment variable, "
                f"or use ResourceLimits(max_descriptor_size=...) in Python API."
            )

    def _check_element_count(self, root: ET.Element) -> None:
        if not self.limits.is_element_count_limited():
            return
        count = sum(1 for _ in root.iter())
        if count > self.limits.max_elements:
            raise ParseError(
                f"Descriptor has {count} elements, exceeding maximum "
                f"{self.limits.max_elements}. "
                f"To process: set SVG2PNG_MAX_ELEMENTS environment variable, "
                f"or use ResourceLimits(max_elements=...) in Python API."
            )

    def _parse_viewport(
        self, root: ET.Element
    ) -> tuple[int, int, Viewport, Transform]:
        """Resolve the canvas size and the viewBox-to-canvas transform."""
        view_box = self._parse_view_box(root.get("viewBox"))
        reference_width = view_box[2] if view_box else None
        reference_height = view_box[3] if view_box else None

        width = svg_utils.parse_length(
            root.get("width"), reference=reference_width, dpi=self.dpi
        )
        height = svg_utils.parse_length(
            root.get("height"), reference=reference_height, dpi=self.dpi
        )
        if view_box is not None:
            _, _, vw, vh = view_box
            if width is None and height is None:
                width, height = vw, vh
            elif width is None:
                width = vw * height / vh
            elif height is None:
                height = vh * width / vw
        else:
            width = DEFAULT_CANVAS_SIZE if width is None else width
            height = DEFAULT_CANVAS_SIZE if height is None else height

        if not (math.isfinite(width) and math.isfinite(height)):
            raise ParseError(f"Canvas size must be finite, got {width}x{height}")
        if width <= 0 or height <= 0:
            raise ParseError(f"Canvas size must be positive, got {width}x{height}")

        canvas_width = to_screen_size(width)
        canvas_height = to_screen_size(height)

        if view_box is None:
            return (
                canvas_width,
                canvas_height,
                Viewport(width, height),
                Transform(),
            )
        transform = view_box_transform(
            view_box, width, height, root.get("preserveAspectRatio")
        )
        return (
            canvas_width,
            canvas_height,
            Viewport(view_box[2], view_box[3]),
            transform,
        )

    def _parse_view_box(
        self, value: Optional[str]
    ) -> Optional[tuple[float, float, float, float]]:
        if value is None:
            return None
        numbers = svg_utils.parse_numbers(value)
        if len(numbers) != 4:
            raise ParseError(f"viewBox requires 4 numbers: {value!r}")
        x, y, width, height = numbers
        if width <= 0 or height <= 0:
            raise ParseError(f"viewBox size must be positive: {value!r}")
        return (x, y, width, height)

    def _parse_background(self, root: ET.Element) -> Optional[Paint]:
        declarations = svg_utils.parse_style(root.get("style"))
        value = declarations.get("background-color", declarations.get("background"))
        if value is None:
            return None
        try:
            return parse_color(value)
        except ValueError:
            logger.warning("Unsupported background color: %s", value)
            return None

    def _compute_style(
        self, element: ET.Element, parent: Style, viewport: Viewport
    ) -> Optional[Style]:
        """Compute the style of an element, or None if it is not displayed."""
        attributes = {
            key: element.get(key)
            for key in PRESENTATION_ATTRIBUTES
            if element.get(key) is not None
        }
        attributes.update(
            (key, value)
            for key, value in svg_utils.parse_style(element.get("style")).items()
            if key in PRESENTATION_ATTRIBUTES
        )

        if attributes.get("display", "").strip() == "none":
            return None

        color = parent.color
        if "color" in attributes:
            color = parse_paint(attributes["color"], parent.color, parent.color) or BLACK

        fill_rule = attributes.get("fill-rule", parent.fill_rule).strip()
        if fill_rule not in FILL_RULES:
            logger.warning("Unsupported fill-rule %r, using nonzero", fill_rule)
            fill_rule = FILL_NONZERO

        stroke_width = parent.stroke_width
        if "stroke-width" in attributes:
            stroke_width = svg_utils.parse_length(
                attributes["stroke-width"], reference=viewport.diagonal, dpi=self.dpi
            )
            if stroke_width is None or stroke_width < 0:
                raise ParseError(
                    f"stroke-width must not be negative: {attributes['stroke-width']!r}"
                )

        visibility = attributes.get("visibility", "").strip()
        visible = parent.visible
        if visibility in ("hidden", "collapse"):
            visible = False
        elif visibility == "visible":
            visible = True

        return Style(
            fill=parse_paint(attributes.get("fill"), color, parent.fill),
            fill_opacity=parse_opacity(
                attributes.get("fill-opacity"), parent.fill_opacity
            ),
            fill_rule=fill_rule,
            stroke=parse_paint(attributes.get("stroke"), color, parent.stroke),
            stroke_width=stroke_width,
            stroke_opacity=parse_opacity(
                attributes.get("stroke-opacity"), parent.stroke_opacity
            ),
            color=color,
            visible=visible,
            opacity=parent.opacity * parse_opacity(attributes.get("opacity")),
        )

    def _walk(
        self,
        element: ET.Element,
        transform: Transform,
        parent_style: Style,
        viewport: Viewport,
        primitives: list[Primitive],
    ) -> None:
        tag = svg_tag(element)
        if not tag:
            return
        if tag in NON_RENDERING_ELEMENTS:
            logger.debug("Skipping non-rendering element <%s>", tag)
            return
        if tag not in CONTAINER_ELEMENTS and tag not in SHAPE_ELEMENTS:
            logger.debug("Skipping unsupported element <%s>", tag)
            return

        style = self._compute_style(element, parent_style, viewport)
        if style is None:
            return
        transform = transform @ parse_transform(element.get("transform"))

        if tag in CONTAINER_ELEMENTS:
            for child in element:
                self._walk(child, transform, style, viewport, primitives)
            return

        if not style.visible:
            return
        if not transform.is_invertible:
            logger.debug("Skipping <%s> with degenerate transform", tag)
            return
        tolerance = FLATTEN_TOLERANCE / transform.max_scale()
        shape = self._convert_shape(tag, element, viewport, tolerance)
        if shape is None:
            return

        fill = style.fill
        if fill is not None:
            fill = fill.with_opacity(style.fill_opacity * style.opacity)
        stroke = style.stroke
        if stroke is not None:
            stroke = stroke.with_opacity(style.stroke_opacity * style.opacity)
        primitive = Primitive(
            shape=shape,
            transform=transform,
            fill=fill,
            stroke=stroke,
            stroke_width=style.stroke_width,
            fill_rule=style.fill_rule,
        )
        if primitive.is_visible:
            primitives.append(primitive)
        else:
            logger.debug("Skipping invisible <%s>", tag)

    def _length(
        self, element: ET.Element, key: str, reference: float, default: float = 0.0
    ) -> float:
        value = svg_utils.parse_length(
            element.get(key), default=default, reference=reference, dpi=self.dpi
        )
        return cast(float, value)

    def _convert_shape(
        self, tag: str, element: ET.Element, viewport: Viewport, tolerance: float
    ) -> Optional[Shape]:
        if tag == "circle":
            r = self._length(element, "r", viewport.diagonal)
            if r < 0:
                raise ParseError(f"Circle radius must not be negative: {r}")
            if r == 0:
                return None
            return Circle(
                cx=self._length(element, "cx", viewport.width),
                cy=self._length(element, "cy", viewport.height),
                r=r,
            )

        if tag == "ellipse":
            rx = svg_utils.parse_length(
                auto_to_none(element.get("rx")), reference=viewport.width, dpi=self.dpi
            )
            ry = svg_utils.parse_length(
                auto_to_none(element.get("ry")), reference=viewport.height, dpi=self.dpi
            )
            rx = ry if rx is None else rx
            ry = rx if ry is None else ry
            if rx is None or ry is None:
                return None
            if rx < 0 or ry < 0:
                raise ParseError(f"Ellipse radii must not be negative: {rx}, {ry}")
            if rx == 0 or ry == 0:
                return None
            return Ellipse(
                cx=self._length(element, "cx", viewport.width),
                cy=self._length(element, "cy", viewport.height),
                rx=rx,
                ry=ry,
            )

        if tag == "rect":
            width = self._length(element, "width", viewport.width)
            height = self._length(element, "height", viewport.height)
            if width < 0 or height < 0:
                raise ParseError(f"Rect size must not be negative: {width}x{height}")
            if width == 0 or height == 0:
                return None
            rx = svg_utils.parse_length(
                auto_to_none(element.get("rx")), reference=viewport.width, dpi=self.dpi
            )
            ry = svg_utils.parse_length(
                auto_to_none(element.get("ry")), reference=viewport.height, dpi=self.dpi
            )
            rx = ry if rx is None else rx
            ry = rx if ry is None else ry
            rx, ry = rx or 0.0, ry or 0.0
            if rx < 0 or ry < 0:
                raise ParseError(f"Rect corner radii must not be negative: {rx}, {ry}")
            rx, ry = min(rx, width / 2), min(ry, height / 2)
            if rx == 0 or ry == 0:
                rx = ry = 0.0
            return Rect(
                x=self._length(element, "x", viewport.width),
                y=self._length(element, "y", viewport.height),
                width=width,
                height=height,
                rx=rx,
                ry=ry,
            )

        if tag == "line":
            return Line(
                x1=self._length(element, "x1", viewport.width),
                y1=self._length(element, "y1", viewport.height),
                x2=self._length(element, "x2", viewport.width),
                y2=self._length(element, "y2", viewport.height),
            )

        if tag in ("polyline", "polygon"):
            numbers = svg_utils.parse_numbers(element.get("points"))
            if len(numbers) % 2:
                raise ParseError(
                    f"<{tag}> points require an even number of coordinates"
                )
            points = tuple(zip(numbers[0::2], numbers[1::2]))
            if len(points) < 2:
                return None
            return PathShape(subpaths=(points,), closed=(tag == "polygon",))

        if tag == "path":
            data = element.get("d")
            if not data:
                return None
            shape = parse_path_data(data, tolerance)
            return shape if shape.subpaths else None

        return None


def svg_tag(element: ET.Element) -> str:
    """Local name of an element in the SVG (or no) namespace, else ''."""
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    if tag.startswith("{") and not tag.startswith("{" + svg_utils.NAMESPACE + "}"):
        return ""
    return svg_utils.local_name(tag)


def auto_to_none(value: Optional[str]) -> Optional[str]:
    if value is not None and value.strip() == "auto":
        return None
    return value


def to_screen_size(size: float) -> int:
    """Round a length up to whole device pixels, ignoring float noise."""
    return max(1, math.ceil(round(size, 6)))


def view_box_transform(
    view_box: tuple[float, float, float, float],
    width: float,
    height: float,
    preserve_aspect_ratio: Optional[str] = None,
) -> Transform:
    """Transform mapping viewBox coordinates onto a width x height viewport.

    Follows https://www.w3.org/TR/SVG/coords.html#PreserveAspectRatioAttribute
    with the default "xMidYMid meet".

    Raises:
        ParseError: If preserveAspectRatio is not recognized.
    """
    vx, vy, vw, vh = view_box
    tokens = (preserve_aspect_ratio or "xMidYMid meet").split()
    if tokens and tokens[0] == "defer":
        tokens = tokens[1:]
    if not tokens or len(tokens) > 2:
        raise ParseError(f"Invalid preserveAspectRatio: {preserve_aspect_ratio!r}")
    align = tokens[0]
    mode = tokens[1] if len(tokens) == 2 else "meet"
    if mode not in ("meet", "slice"):
        raise ParseError(f"Invalid preserveAspectRatio: {preserve_aspect_ratio!r}")

    if align == "none":
        return Transform().scale(width / vw, height / vh).translate(-vx, -vy)

    if len(align) != 8 or align[:4] not in X_ALIGNMENTS or align[4:] not in Y_ALIGNMENTS:
        raise ParseError(f"Invalid preserveAspectRatio: {preserve_aspect_ratio!r}")
    scale_x, scale_y = width / vw, height / vh
    scale = min(scale_x, scale_y) if mode == "meet" else max(scale_x, scale_y)
    tx = (width - vw * scale) * X_ALIGNMENTS[align[:4]]
    ty = (height - vh * scale) * Y_ALIGNMENTS[align[4:]]
    return Transform().translate(tx, ty).scale(scale).translate(-vx, -vy)
