"""Boundary between a request handler and the rendering pipeline.

An HTTP layer (not part of this package) extracts an identifier from the
request and calls :meth:`ImageService.handle`, which resolves the identifier
to a scene descriptor, renders it and returns the status, body and content
type to send back. Core errors never leak to the caller: they are logged and
reported as a generic failure.

Example usage::

    from svg2png.service import ImageService

    service = ImageService()
    response = service.handle(request.query.get("title"))
    return Response(response.body, status=response.status,
                    headers={"content-type": response.content_type})
"""

import dataclasses
import logging
import xml.etree.ElementTree as ET
from typing import Callable, Optional

from svg2png import svg_utils
from svg2png.errors import SVG2PNGError
from svg2png.rasterizer import BaseRasterizer, NumpyRasterizer
from svg2png.version import __version__

logger = logging.getLogger(__name__)

DescriptorResolver = Callable[[str], str]

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


class DefaultSceneResolver:
    """Resolve every identifier to the same fixed scene.

    The identifier only gates access; it does not select content. The scene
    is an 800x600 canvas with a black circle of radius 50 at (50, 50).
    """

    width = 800
    height = 600

    def __call__(self, identifier: str) -> str:
        svg = ET.Element("svg")
        svg_utils.set_attribute(svg, "xmlns", svg_utils.NAMESPACE)
        svg_utils.set_attribute(svg, "viewBox", [0, 0, self.width, self.height])
        svg_utils.set_attribute(svg, "width", self.width)
        svg_utils.set_attribute(svg, "height", self.height)
        svg_utils.create_node("circle", parent=svg, cx=50, cy=50, r=50)
        return svg_utils.tostring(svg)


@dataclasses.dataclass(frozen=True)
class ImageResponse:
    status: int
    body: bytes
    content_type: str


class ImageService:
    """Turn an identifier into an image response.

    Args:
        resolver: Maps an identifier to a scene descriptor. Defaults to
            DefaultSceneResolver.
        rasterizer: Renders descriptors. Defaults to NumpyRasterizer.
    """

    def __init__(
        self,
        resolver: Optional[DescriptorResolver] = None,
        rasterizer: Optional[BaseRasterizer] = None,
    ) -> None:
        self.resolver = resolver if resolver is not None else DefaultSceneResolver()
        self.rasterizer = rasterizer if rasterizer is not None else NumpyRasterizer()

    def handle(self, identifier: Optional[str]) -> ImageResponse:
        """Render the image for an identifier.

        Returns:
            404 when the identifier is missing, 500 when rendering
            fails, otherwise 200 with the PNG bytes.
        """
        if identifier is None:
            return ImageResponse(404, b"Not found", TEXT_CONTENT_TYPE)
        try:
            descriptor = self.resolver(identifier)
            image = self.rasterizer.from_string(descriptor)
        except SVG2PNGError:
            logger.exception("Failed to render image for %r", identifier)
            return ImageResponse(500, b"Internal error", TEXT_CONTENT_TYPE)
        return ImageResponse(200, image.data, image.content_type)

    def version(self) -> ImageResponse:
        """Report the package version."""
        return ImageResponse(200, __version__.encode("utf-8"), TEXT_CONTENT_TYPE)
