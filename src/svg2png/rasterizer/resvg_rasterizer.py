"""Resvg-based rasterizer module.

This module provides SVG rasterization using the resvg library via resvg-py.
It serves as a reference renderer for the built-in numpy rasterizer.
"""

import logging
from typing import Optional, Union

from svg2png.errors import EncodingError
from svg2png.image_utils import EncodedImage
from svg2png.parser import SceneParser
from svg2png.resource_limits import ResourceLimits

from .base_rasterizer import BaseRasterizer

logger = logging.getLogger(__name__)


class ResvgRasterizer(BaseRasterizer):
    """SVG rasterizer using resvg.

    The descriptor is validated with the built-in scene parser and the
    resource limits before it is handed to resvg, so malformed or oversized
    input is rejected with the same errors as the numpy rasterizer.

    Note:
        Requires resvg-py to be installed: `pip install svg2png[resvg]`

    Example:
        >>> rasterizer = ResvgRasterizer(dpi=96)
        >>> image = rasterizer.from_file('input.svg')
        >>> image.save('output.png')
    """

    def __init__(self, dpi: int = 0, limits: Optional[ResourceLimits] = None) -> None:
        """Initialize the resvg rasterizer.

        Args:
            dpi: Dots per inch for rendering. If 0 (default), uses resvg's
                default of 96 DPI.
            limits: Resource limits. If None, ResourceLimits.default() is used.

        Raises:
            ImportError: If resvg-py is not installed.
        """
        super().__init__(limits)
        try:
            import resvg_py  # noqa: F401
        except ImportError as e:
            raise ImportError(
                "resvg-py is required for ResvgRasterizer. "
                "Install with: pip install svg2png[resvg]"
            ) from e
        self.dpi = dpi

    def from_string(self, svg_content: Union[str, bytes]) -> EncodedImage:
        import resvg_py

        svg_string = (
            svg_content.decode("utf-8")
            if isinstance(svg_content, bytes)
            else svg_content
        )
        parser = SceneParser(self.limits, dpi=float(self.dpi or 96))
        scene = parser.parse(svg_string)
        self.limits.check_canvas(scene.width, scene.height)

        try:
            png_bytes = resvg_py.svg_to_bytes(svg_string=svg_string, dpi=int(self.dpi))
        except Exception as e:
            raise EncodingError(f"resvg failed to render: {e}") from e
        return EncodedImage(data=bytes(png_bytes), width=scene.width, height=scene.height)
