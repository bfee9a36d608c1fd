from logging import getLogger
from typing import Optional, Union

from svg2png.color_utils import Paint
from svg2png.errors import AllocationError, EncodingError, ParseError, SVG2PNGError
from svg2png.image_utils import EncodedImage
from svg2png.parser import SceneParser, parse
from svg2png.rasterizer import create_rasterizer, render
from svg2png.resource_limits import ResourceLimits
from svg2png.scene import Primitive, Scene
from svg2png.version import __version__ as __version__

logger = getLogger(__name__)


def rasterize(
    descriptor: Union[str, bytes],
    limits: Optional[ResourceLimits] = None,
    supersample: int = 4,
) -> EncodedImage:
    """Parse an SVG descriptor and render it to PNG.

    Example:
        >>> image = rasterize('<svg width="8" height="8"><rect width="4" height="4"/></svg>')
        >>> image.content_type
        'image/png'

    Raises:
        ParseError: If the descriptor is invalid.
        AllocationError: If the canvas exceeds the resource limits.
        EncodingError: If the PNG cannot be produced.
    """
    scene = parse(descriptor, limits=limits)
    return render(scene, limits=limits, supersample=supersample)


__all__ = [
    "AllocationError",
    "EncodedImage",
    "EncodingError",
    "Paint",
    "ParseError",
    "Primitive",
    "ResourceLimits",
    "SVG2PNGError",
    "Scene",
    "SceneParser",
    "create_rasterizer",
    "parse",
    "rasterize",
    "render",
]
