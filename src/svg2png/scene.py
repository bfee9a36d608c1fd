import dataclasses
import logging
from typing import Optional

from svg2png.color_utils import Paint
from svg2png.geometry import FILL_NONZERO, Box, Shape
from svg2png.transform import Transform

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Primitive:
    """A shape with resolved paint and its user-to-device transform.

    ``fill`` and ``stroke`` already include every applicable opacity; either
    may be None when the corresponding paint is 'none'.
    """

    shape: Shape
    transform: Transform = dataclasses.field(default_factory=Transform)
    fill: Optional[Paint] = None
    stroke: Optional[Paint] = None
    stroke_width: float = 1.0
    fill_rule: str = FILL_NONZERO

    @property
    def is_visible(self) -> bool:
        has_fill = self.fill is not None and not self.fill.is_transparent
        has_stroke = (
            self.stroke is not None
            and not self.stroke.is_transparent
            and self.stroke_width > 0
        )
        return has_fill or has_stroke

    def device_bbox(self) -> Box:
        """Bounding box of everything the primitive may paint, in device space."""
        x0, y0, x1, y1 = self.shape.bbox()
        if self.stroke is not None and self.stroke_width > 0:
            pad = self.stroke_width / 2
            x0, y0, x1, y1 = x0 - pad, y0 - pad, x1 + pad, y1 + pad
        return self.transform.bbox((x0, y0, x1, y1))


@dataclasses.dataclass(frozen=True)
class Scene:
    """Parsed scene: canvas size in device pixels and primitives in paint order.

    Example usage::

        from svg2png import parse, render

        scene = parse('<svg width="80" height="60"><circle cx="5" cy="5" r="5"/></svg>')
        assert scene.canvas_size == (80, 60)
        image = render(scene)
    """

    width: int
    height: int
    primitives: tuple[Primitive, ...] = ()
    background: Optional[Paint] = None

    @property
    def canvas_size(self) -> tuple[int, int]:
        return (self.width, self.height)
