import logging
from abc import ABC, abstractmethod
from typing import Optional, Union

from svg2png.image_utils import EncodedImage
from svg2png.resource_limits import ResourceLimits

logger = logging.getLogger(__name__)


class BaseRasterizer(ABC):
    """Base class for SVG rasterizer implementations.

    This abstract base class defines the interface for converting scene
    descriptors to encoded images. Subclasses must implement the
    `from_string` method to provide the actual rasterization logic.
    Implementations keep no per-call state, so one instance may serve
    concurrent callers.
    """

    def __init__(self, limits: Optional[ResourceLimits] = None) -> None:
        self.limits = limits if limits is not None else ResourceLimits.default()

    @abstractmethod
    def from_string(self, svg_content: Union[str, bytes]) -> EncodedImage:
        """Rasterize SVG content from a string or bytes to an encoded PNG.

        Args:
            svg_content: SVG content as string or bytes.

        Returns:
            EncodedImage containing the PNG bytes.

        Raises:
            ParseError: If the SVG content is invalid.
            AllocationError: If the canvas is empty or exceeds the limits.
            EncodingError: If the image cannot be encoded.
        """
        raise NotImplementedError

    def from_file(self, filepath: str) -> EncodedImage:
        """Rasterize an SVG file to an encoded PNG.

        Args:
            filepath: Path to the SVG file to rasterize.

        Returns:
            EncodedImage containing the PNG bytes.
        """
        with open(filepath, "rb") as f:
            svg_content = f.read()
        return self.from_string(svg_content)
